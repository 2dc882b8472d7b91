import uuid
from decimal import Decimal

from sqlalchemy import ForeignKey, Integer, Numeric, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from renolink.common.enums import TransactionType
from renolink.db.base import BaseModel


class CreditTransaction(BaseModel):
    """Immutable ledger entry. ``credit_delta`` is signed, ``credit_amount`` is its magnitude."""

    __tablename__ = "credit_transactions"

    contractor_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    type: Mapped[TransactionType] = mapped_column(String(20), nullable=False)
    credit_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    credit_delta: Mapped[int] = mapped_column(Integer, nullable=False)
    cost: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    package_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    related_project_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("projects.id"), nullable=True, index=True
    )
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
