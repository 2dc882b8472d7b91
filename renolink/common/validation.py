"""Field validators shared by the request schemas.

Each helper returns the cleaned value or raises ``ValueError`` so it can be
called directly from a pydantic ``field_validator``.
"""

from __future__ import annotations

import re

_PHONE_RE = re.compile(r"^[\d\s\-+()]{10,15}$")
_BUSINESS_NUMBER_RE = re.compile(r"^[a-zA-Z0-9]{9,15}$")
_OBR_RE = re.compile(r"^[a-zA-Z0-9]{5,20}$")

MIN_PASSWORD_LENGTH = 8


def validate_password(password: str) -> str:
    if not password:
        raise ValueError("Password is required.")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    if not re.search(r"[A-Z]", password):
        raise ValueError("Password must contain at least one uppercase letter.")
    if not re.search(r"[a-z]", password):
        raise ValueError("Password must contain at least one lowercase letter.")
    if not re.search(r"[0-9]", password):
        raise ValueError("Password must contain at least one number.")
    return password


def validate_phone(phone: str) -> str:
    phone = phone.strip()
    if not phone:
        raise ValueError("Phone number is required.")
    if not _PHONE_RE.match(phone):
        raise ValueError("Please enter a valid phone number.")
    return phone


def validate_required(value: str, field_name: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError(f"{field_name} is required.")
    return value


def validate_business_number(bn: str) -> str:
    compact = re.sub(r"\s", "", bn)
    if not compact:
        raise ValueError("Business Number is required.")
    if not _BUSINESS_NUMBER_RE.match(compact):
        raise ValueError("Please enter a valid Business Number (9-15 alphanumeric characters).")
    return compact


def validate_obr_number(obr: str) -> str:
    compact = re.sub(r"\s", "", obr)
    if not compact:
        raise ValueError("Ontario Business Registry number is required.")
    if not _OBR_RE.match(compact):
        raise ValueError("Please enter a valid OBR number.")
    return compact
