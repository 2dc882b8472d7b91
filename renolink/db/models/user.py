from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from renolink.common.enums import UserRole, VerificationStatus
from renolink.db.base import BaseModel


class User(BaseModel):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("credit_balance >= 0", name="ck_users_credit_balance_non_negative"),
    )

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    role: Mapped[UserRole] = mapped_column(String(20), nullable=False, default=UserRole.HOMEOWNER)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)

    # Contractor profile
    company_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    business_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    obr_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    verification_status: Mapped[str | None] = mapped_column(String(20), nullable=True, index=True)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Only the ledger service writes this column
    credit_balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    @property
    def is_contractor(self) -> bool:
        return self.role == UserRole.CONTRACTOR.value

    @property
    def is_verified(self) -> bool:
        return self.is_contractor and self.verification_status == VerificationStatus.APPROVED.value
