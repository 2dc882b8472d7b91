import uuid

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, EmailStr, field_validator
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from renolink.api.deps import get_current_user, get_db
from renolink.common.enums import UserRole, VerificationStatus
from renolink.common.events import ADMIN_TOPIC, emit
from renolink.common.exceptions import BadRequestError, PermissionDeniedError
from renolink.common.logging import get_logger
from renolink.common.security import (
    create_access_token,
    create_password_reset_token,
    create_refresh_token,
    decode_token,
    get_password_hash,
    verify_password,
)
from renolink.common.validation import (
    validate_business_number,
    validate_obr_number,
    validate_password,
    validate_phone,
    validate_required,
)
from renolink.config import settings
from renolink.db.models.user import User

logger = get_logger("api.auth")

router = APIRouter(prefix="/auth", tags=["Authentication"])

DASHBOARD_ROUTES = {
    UserRole.HOMEOWNER.value: "/dashboard/homeowner",
    UserRole.CONTRACTOR.value: "/dashboard/contractor",
    UserRole.ADMIN.value: "/dashboard/admin",
}


def dashboard_route(role: str) -> str:
    return DASHBOARD_ROUTES.get(role, "/login")


# ---------- Schemas ----------


class HomeownerRegisterRequest(BaseModel):
    email: EmailStr
    password: str
    full_name: str
    phone: str

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return validate_password(v)

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: str) -> str:
        return validate_phone(v)

    @field_validator("full_name")
    @classmethod
    def _name(cls, v: str) -> str:
        return validate_required(v, "Full name")


class ContractorRegisterRequest(BaseModel):
    email: EmailStr
    password: str
    company_name: str
    contact_name: str
    phone: str
    business_number: str
    obr_number: str

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return validate_password(v)

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: str) -> str:
        return validate_phone(v)

    @field_validator("company_name")
    @classmethod
    def _company(cls, v: str) -> str:
        return validate_required(v, "Company name")

    @field_validator("contact_name")
    @classmethod
    def _contact(cls, v: str) -> str:
        return validate_required(v, "Contact name")

    @field_validator("business_number")
    @classmethod
    def _bn(cls, v: str) -> str:
        return validate_business_number(v)

    @field_validator("obr_number")
    @classmethod
    def _obr(cls, v: str) -> str:
        return validate_obr_number(v)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    role: str | None = None
    dashboard_url: str | None = None


class RefreshRequest(BaseModel):
    refresh_token: str


class ProfileUpdateRequest(BaseModel):
    full_name: str | None = None
    phone: str | None = None
    company_name: str | None = None
    contact_name: str | None = None

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: str | None) -> str | None:
        return validate_phone(v) if v is not None else v


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordResetConfirm(BaseModel):
    token: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def _password(cls, v: str) -> str:
        return validate_password(v)


class UserResponse(BaseModel):
    id: uuid.UUID
    email: str
    full_name: str
    phone: str | None
    role: str
    is_active: bool
    company_name: str | None = None
    contact_name: str | None = None
    business_number: str | None = None
    obr_number: str | None = None
    verification_status: str | None = None
    credit_balance: int | None = None

    model_config = {"from_attributes": True}

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        data = cls.model_validate(user)
        if user.role != UserRole.CONTRACTOR.value:
            data.credit_balance = None
        return data


# ---------- Endpoints ----------


async def _ensure_email_free(db: AsyncSession, email: str) -> None:
    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        raise BadRequestError("An account with this email already exists")


@router.post("/register/homeowner", response_model=UserResponse, status_code=201)
async def register_homeowner(body: HomeownerRegisterRequest, db: AsyncSession = Depends(get_db)):
    await _ensure_email_free(db, body.email)

    user = User(
        email=body.email,
        hashed_password=get_password_hash(body.password),
        full_name=body.full_name,
        phone=body.phone,
        role=UserRole.HOMEOWNER.value,
    )
    db.add(user)
    await db.flush()
    logger.info("Registered homeowner %s", user.id)
    return UserResponse.from_user(user)


@router.post("/register/contractor", response_model=UserResponse, status_code=201)
async def register_contractor(body: ContractorRegisterRequest, db: AsyncSession = Depends(get_db)):
    await _ensure_email_free(db, body.email)

    user = User(
        email=body.email,
        hashed_password=get_password_hash(body.password),
        full_name=body.contact_name,
        phone=body.phone,
        role=UserRole.CONTRACTOR.value,
        company_name=body.company_name,
        contact_name=body.contact_name,
        business_number=body.business_number,
        obr_number=body.obr_number,
        verification_status=VerificationStatus.PENDING.value,
        credit_balance=0,
    )
    db.add(user)
    await db.flush()
    logger.info("Registered contractor %s (%s), awaiting verification", user.id, user.company_name)

    emit(db, ADMIN_TOPIC, "contractor.registered", {
        "user_id": str(user.id),
        "company_name": user.company_name,
    })
    return UserResponse.from_user(user)


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, response: Response, db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(User).where(User.email == body.email, User.is_deleted.is_(False))
    )
    user = result.scalar_one_or_none()

    if not user or not verify_password(body.password, user.hashed_password):
        raise PermissionDeniedError("Invalid email or password")

    if not user.is_active:
        raise PermissionDeniedError("Account is inactive")

    access_token = create_access_token({"sub": str(user.id)})
    refresh_token = create_refresh_token({"sub": str(user.id)})

    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        access_token,
        httponly=True,
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        role=user.role,
        dashboard_url=dashboard_route(user.role),
    )


@router.post("/logout", status_code=204)
async def logout(response: Response):
    response.delete_cookie(settings.SESSION_COOKIE_NAME)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(body: RefreshRequest, db: AsyncSession = Depends(get_db)):
    try:
        payload = decode_token(body.refresh_token)
    except ValueError:
        raise PermissionDeniedError("Invalid refresh token")

    if payload.get("type") != "refresh":
        raise PermissionDeniedError("Invalid token type")

    user_id = payload.get("sub")
    result = await db.execute(
        select(User).where(User.id == uuid.UUID(user_id), User.is_deleted.is_(False))
    )
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise PermissionDeniedError("User not found")

    return TokenResponse(
        access_token=create_access_token({"sub": str(user.id)}),
        refresh_token=create_refresh_token({"sub": str(user.id)}),
        role=user.role,
        dashboard_url=dashboard_route(user.role),
    )


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return UserResponse.from_user(current_user)


@router.patch("/me", response_model=UserResponse)
async def update_me(
    body: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if current_user.role != UserRole.CONTRACTOR.value:
        changes.pop("company_name", None)
        changes.pop("contact_name", None)
    for field, value in changes.items():
        setattr(current_user, field, value.strip() if isinstance(value, str) else value)
    await db.flush()
    return UserResponse.from_user(current_user)


@router.post("/password-reset", status_code=202)
async def request_password_reset(body: PasswordResetRequest, db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(User).where(User.email == body.email, User.is_deleted.is_(False))
    )
    user = result.scalar_one_or_none()
    # Same response whether or not the account exists
    if user:
        token = create_password_reset_token({"sub": str(user.id)})
        logger.info("Password reset requested for %s; token issued (delivery not configured)", user.id)
        logger.debug("Password reset token for %s: %s", user.id, token)
    return {"status": "accepted"}


@router.post("/password-reset/confirm", status_code=204)
async def confirm_password_reset(body: PasswordResetConfirm, db: AsyncSession = Depends(get_db)):
    try:
        payload = decode_token(body.token)
    except ValueError:
        raise BadRequestError("Invalid or expired reset token")
    if payload.get("type") != "password_reset":
        raise BadRequestError("Invalid or expired reset token")

    result = await db.execute(
        select(User).where(User.id == uuid.UUID(payload["sub"]), User.is_deleted.is_(False))
    )
    user = result.scalar_one_or_none()
    if not user:
        raise BadRequestError("Invalid or expired reset token")

    user.hashed_password = get_password_hash(body.new_password)
    await db.flush()
    logger.info("Password reset completed for %s", user.id)
