"""Homeowner project posting and management."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from renolink.api.deps import get_db, require_role
from renolink.common.enums import (
    BudgetRange,
    OwnershipStatus,
    PreferredStartDate,
    ProjectCategory,
    ProjectStatus,
    PropertyType,
    UserRole,
)
from renolink.common.events import ADMIN_TOPIC, emit
from renolink.common.exceptions import InvalidTransitionError, PermissionDeniedError
from renolink.common.logging import get_logger
from renolink.common.validation import validate_required
from renolink.core.ledger.pricing import BUDGET_LABELS, CREDIT_COST_MAP, budget_label_for, credit_cost_for
from renolink.core.marketplace.catalog import (
    CATEGORY_LABELS,
    OWNERSHIP_STATUS_LABELS,
    PROPERTY_TYPE_LABELS,
    PROVINCE_OPTIONS,
    SCOPE_OF_WORK_OPTIONS,
    START_DATE_LABELS,
    VALID_STATUS_TRANSITIONS,
)
from renolink.core.marketplace.service import get_project
from renolink.db.models.bid import Bid
from renolink.db.models.project import Project, ProjectPrivateDetails
from renolink.db.models.user import User

logger = get_logger("api.projects")

router = APIRouter(prefix="/projects", tags=["Projects"])


# ---------- Schemas ----------


class ProjectCreateRequest(BaseModel):
    title: str
    category: ProjectCategory
    property_type: PropertyType
    ownership_status: OwnershipStatus | None = None
    budget_range: BudgetRange
    preferred_start_date: PreferredStartDate
    city: str
    street_address: str
    unit: str = ""
    province: str
    postal_code: str
    description: str = Field(min_length=20)
    scope_of_work: list[str] = []
    has_drawings: str | None = None
    has_permits: str | None = None
    materials_provider: str | None = None
    deadline: str = ""
    contact_preference: str | None = None
    parking_available: str | None = None
    building_restrictions: str = ""

    @field_validator("title", "city", "street_address", "postal_code")
    @classmethod
    def _required(cls, v: str, info) -> str:
        return validate_required(v, info.field_name.replace("_", " ").capitalize())

    @field_validator("description")
    @classmethod
    def _description(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 20:
            raise ValueError("Description must be at least 20 characters.")
        return v

    @field_validator("province")
    @classmethod
    def _province(cls, v: str) -> str:
        if v not in PROVINCE_OPTIONS:
            raise ValueError("Please select a province.")
        return v


class ProjectStatusUpdate(BaseModel):
    status: ProjectStatus


class PrivateDetailsResponse(BaseModel):
    homeowner_name: str
    homeowner_email: str
    homeowner_phone: str | None
    full_description: str
    street_address: str
    unit: str | None
    province: str
    postal_code: str
    scope_of_work: list | None
    has_drawings: str | None
    has_permits: str | None
    materials_provider: str | None
    deadline: str | None
    contact_preference: str | None
    parking_available: str | None
    building_restrictions: str | None

    model_config = {"from_attributes": True}


class ProjectResponse(BaseModel):
    """Public projection. ``private_details`` is only filled for entitled viewers."""

    id: uuid.UUID
    homeowner_id: uuid.UUID
    title: str
    category: str
    category_name: str
    property_type: str
    ownership_status: str | None
    budget_range: str
    budget_label: str
    preferred_start_date: str
    city: str
    credit_cost: int
    status: str
    created_at: str
    bid_count: int | None = None
    is_unlocked: bool | None = None
    private_details: PrivateDetailsResponse | None = None

    @classmethod
    def from_project(
        cls,
        project: Project,
        include_private: bool = False,
        bid_count: int | None = None,
        is_unlocked: bool | None = None,
    ) -> "ProjectResponse":
        details = None
        if include_private and project.private_details is not None:
            details = PrivateDetailsResponse.model_validate(project.private_details)
        return cls(
            id=project.id,
            homeowner_id=project.homeowner_id,
            title=project.title,
            category=project.category,
            category_name=project.category_name,
            property_type=project.property_type,
            ownership_status=project.ownership_status,
            budget_range=project.budget_range,
            budget_label=project.budget_label,
            preferred_start_date=project.preferred_start_date,
            city=project.city,
            credit_cost=project.credit_cost,
            status=project.status,
            created_at=project.created_at.isoformat(),
            bid_count=bid_count,
            is_unlocked=is_unlocked,
            private_details=details,
        )


class ProjectListResponse(BaseModel):
    projects: list[ProjectResponse]
    total: int


class Option(BaseModel):
    value: str
    label: str


class BudgetOption(Option):
    credit_cost: int


class ProjectOptionsResponse(BaseModel):
    categories: list[Option]
    property_types: list[Option]
    ownership_statuses: list[Option]
    start_dates: list[Option]
    budget_ranges: list[BudgetOption]
    provinces: list[str]
    scope_of_work: list[str]


def _options(labels: dict) -> list[Option]:
    return [Option(value=key.value, label=label) for key, label in labels.items()]


# ---------- Endpoints ----------


@router.post("", response_model=ProjectResponse, status_code=201)
async def create_project(
    body: ProjectCreateRequest,
    current_user: User = Depends(require_role(UserRole.HOMEOWNER)),
    db: AsyncSession = Depends(get_db),
):
    project = Project(
        homeowner_id=current_user.id,
        title=body.title,
        category=body.category.value,
        category_name=CATEGORY_LABELS[body.category],
        property_type=body.property_type.value,
        ownership_status=body.ownership_status.value if body.ownership_status else None,
        budget_range=body.budget_range.value,
        budget_label=budget_label_for(body.budget_range),
        preferred_start_date=body.preferred_start_date.value,
        city=body.city,
        credit_cost=credit_cost_for(body.budget_range),
        status=ProjectStatus.OPEN.value,
    )
    project.private_details = ProjectPrivateDetails(
        homeowner_name=current_user.full_name,
        homeowner_email=current_user.email,
        homeowner_phone=current_user.phone,
        full_description=body.description,
        street_address=body.street_address,
        unit=body.unit.strip(),
        province=body.province,
        postal_code=body.postal_code,
        scope_of_work=body.scope_of_work,
        has_drawings=body.has_drawings,
        has_permits=body.has_permits,
        materials_provider=body.materials_provider,
        deadline=body.deadline.strip(),
        contact_preference=body.contact_preference,
        parking_available=body.parking_available,
        building_restrictions=body.building_restrictions.strip(),
    )
    db.add(project)
    await db.flush()
    logger.info("Project %s posted by %s (%s, %d credits)", project.id, current_user.id, project.budget_range, project.credit_cost)

    emit(db, ADMIN_TOPIC, "project.created", {
        "project_id": str(project.id),
        "category": project.category,
        "city": project.city,
    })
    return ProjectResponse.from_project(project, include_private=True, bid_count=0)


@router.get("", response_model=ProjectListResponse)
async def list_my_projects(
    current_user: User = Depends(require_role(UserRole.HOMEOWNER, UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    query = select(Project).where(Project.is_deleted.is_(False))
    if current_user.role != UserRole.ADMIN.value:
        query = query.where(Project.homeowner_id == current_user.id)

    result = await db.execute(query.order_by(Project.created_at.desc()))
    projects = result.scalars().all()

    counts_result = await db.execute(
        select(Bid.project_id, func.count(Bid.id))
        .where(Bid.project_id.in_([p.id for p in projects]), Bid.is_deleted.is_(False))
        .group_by(Bid.project_id)
    )
    bid_counts = dict(counts_result.all())

    return ProjectListResponse(
        projects=[
            ProjectResponse.from_project(p, include_private=True, bid_count=bid_counts.get(p.id, 0))
            for p in projects
        ],
        total=len(projects),
    )


@router.get("/options", response_model=ProjectOptionsResponse)
async def project_options():
    """Choices for the post-project form. Budget ranges carry their unlock cost."""
    return ProjectOptionsResponse(
        categories=_options(CATEGORY_LABELS),
        property_types=_options(PROPERTY_TYPE_LABELS),
        ownership_statuses=_options(OWNERSHIP_STATUS_LABELS),
        start_dates=_options(START_DATE_LABELS),
        budget_ranges=[
            BudgetOption(value=budget.value, label=label, credit_cost=CREDIT_COST_MAP[budget])
            for budget, label in BUDGET_LABELS.items()
        ],
        provinces=list(PROVINCE_OPTIONS),
        scope_of_work=list(SCOPE_OF_WORK_OPTIONS),
    )


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_my_project(
    project_id: uuid.UUID,
    current_user: User = Depends(require_role(UserRole.HOMEOWNER, UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    project = await _owned_project(project_id, current_user, db)
    bid_count = (
        await db.execute(
            select(func.count(Bid.id)).where(Bid.project_id == project.id, Bid.is_deleted.is_(False))
        )
    ).scalar() or 0
    return ProjectResponse.from_project(project, include_private=True, bid_count=bid_count)


@router.patch("/{project_id}/status", response_model=ProjectResponse)
async def update_project_status(
    project_id: uuid.UUID,
    body: ProjectStatusUpdate,
    current_user: User = Depends(require_role(UserRole.HOMEOWNER, UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    project = await _owned_project(project_id, current_user, db)

    current = ProjectStatus(project.status)
    if body.status not in VALID_STATUS_TRANSITIONS[current]:
        raise InvalidTransitionError("project", current.value, body.status.value)

    project.status = body.status.value
    await db.flush()
    logger.info("Project %s status %s -> %s", project.id, current.value, body.status.value)
    return ProjectResponse.from_project(project, include_private=True)


async def _owned_project(project_id: uuid.UUID, user: User, db: AsyncSession) -> Project:
    project = await get_project(db, project_id)
    if user.role != UserRole.ADMIN.value and project.homeowner_id != user.id:
        raise PermissionDeniedError("You do not have access to this project")
    return project
