import uuid

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from renolink.common.enums import ProjectStatus
from renolink.db.base import BaseModel


class Project(BaseModel):
    """Public projection of a posted project, visible to every contractor."""

    __tablename__ = "projects"

    homeowner_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    category: Mapped[str] = mapped_column(String(40), nullable=False, index=True)
    category_name: Mapped[str] = mapped_column(String(100), nullable=False)
    property_type: Mapped[str] = mapped_column(String(20), nullable=False)
    ownership_status: Mapped[str | None] = mapped_column(String(30), nullable=True)
    budget_range: Mapped[str] = mapped_column(String(20), nullable=False)
    budget_label: Mapped[str] = mapped_column(String(50), nullable=False)
    preferred_start_date: Mapped[str] = mapped_column(String(30), nullable=False)
    city: Mapped[str] = mapped_column(String(255), nullable=False)
    credit_cost: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[ProjectStatus] = mapped_column(
        String(20), nullable=False, default=ProjectStatus.OPEN, index=True
    )

    private_details = relationship(
        "ProjectPrivateDetails", back_populates="project", uselist=False, lazy="selectin"
    )


class ProjectPrivateDetails(BaseModel):
    """Address, contact and full description; withheld until unlocked."""

    __tablename__ = "project_private_details"

    project_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("projects.id"), nullable=False, unique=True
    )
    homeowner_name: Mapped[str] = mapped_column(String(255), nullable=False)
    homeowner_email: Mapped[str] = mapped_column(String(255), nullable=False)
    homeowner_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    full_description: Mapped[str] = mapped_column(Text, nullable=False)
    street_address: Mapped[str] = mapped_column(String(500), nullable=False)
    unit: Mapped[str | None] = mapped_column(String(50), nullable=True)
    province: Mapped[str] = mapped_column(String(50), nullable=False)
    postal_code: Mapped[str] = mapped_column(String(20), nullable=False)
    scope_of_work: Mapped[list | None] = mapped_column(JSONB, nullable=True, default=list)
    has_drawings: Mapped[str | None] = mapped_column(String(20), nullable=True)
    has_permits: Mapped[str | None] = mapped_column(String(20), nullable=True)
    materials_provider: Mapped[str | None] = mapped_column(String(50), nullable=True)
    deadline: Mapped[str | None] = mapped_column(String(100), nullable=True)
    contact_preference: Mapped[str | None] = mapped_column(String(20), nullable=True)
    parking_available: Mapped[str | None] = mapped_column(String(20), nullable=True)
    building_restrictions: Mapped[str | None] = mapped_column(Text, nullable=True)

    project = relationship("Project", back_populates="private_details")
