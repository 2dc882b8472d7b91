import uuid

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from renolink.db.base import BaseModel


def unlock_key(contractor_id: uuid.UUID, project_id: uuid.UUID) -> str:
    return f"{contractor_id}_{project_id}"


class ProjectUnlock(BaseModel):
    """One-time, irreversible grant of private-detail visibility."""

    __tablename__ = "project_unlocks"
    __table_args__ = (
        UniqueConstraint("contractor_id", "project_id", name="uq_project_unlocks_contractor_project"),
    )

    unlock_key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    contractor_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    project_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("projects.id"), nullable=False, index=True
    )
    homeowner_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    credit_cost: Mapped[int] = mapped_column(Integer, nullable=False)
