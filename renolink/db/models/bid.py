import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from renolink.common.enums import BidStatus
from renolink.db.base import BaseModel


class Bid(BaseModel):
    __tablename__ = "bids"

    contractor_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    homeowner_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    project_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("projects.id"), nullable=False, index=True
    )
    contractor_name: Mapped[str] = mapped_column(String(255), nullable=False)
    project_category: Mapped[str] = mapped_column(String(100), nullable=False)
    itemized_costs: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    total_cost: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    estimated_timeline: Mapped[str] = mapped_column(String(255), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[BidStatus] = mapped_column(String(20), nullable=False, default=BidStatus.SUBMITTED)
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
