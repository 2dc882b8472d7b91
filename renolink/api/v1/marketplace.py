"""Contractor-facing marketplace: browse open projects and unlock them."""

import uuid

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from renolink.api.deps import get_db, require_role, require_verified_contractor
from renolink.api.v1.projects import PrivateDetailsResponse, ProjectResponse
from renolink.common.enums import ProjectCategory, ProjectStatus, UserRole
from renolink.common.events import emit, user_topic
from renolink.common.pagination import PaginatedResponse, PaginationParams, paginate
from renolink.core.ledger.service import LedgerService
from renolink.core.marketplace.service import can_view_private_details, get_project
from renolink.db.models.project import Project
from renolink.db.models.user import User

router = APIRouter(prefix="/marketplace", tags=["Marketplace"])

ledger = LedgerService()


# ---------- Schemas ----------


class UnlockResponse(BaseModel):
    project_id: uuid.UUID
    credit_cost: int
    credit_balance: int
    unlocked_at: str
    private_details: PrivateDetailsResponse | None


class UnlockedProjectsResponse(BaseModel):
    project_ids: list[uuid.UUID]
    total: int


# ---------- Endpoints ----------


@router.get("/projects", response_model=PaginatedResponse[ProjectResponse])
async def browse_projects(
    category: ProjectCategory | None = Query(None),
    current_user: User = Depends(require_role(UserRole.CONTRACTOR, UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
    params: PaginationParams = Depends(),
):
    query = select(Project).where(
        Project.status == ProjectStatus.OPEN.value,
        Project.is_deleted.is_(False),
    )
    if category is not None:
        query = query.where(Project.category == category.value)
    query = query.order_by(Project.created_at.desc())

    items, total = await paginate(db, query, params, Project)

    unlocked: set[uuid.UUID] = set()
    if current_user.is_contractor:
        unlocked = set(await ledger.get_contractor_unlocks(db, current_user.id))

    return PaginatedResponse[ProjectResponse](
        items=[
            ProjectResponse.from_project(
                p,
                is_unlocked=p.id in unlocked if current_user.is_contractor else None,
            )
            for p in items
        ],
        total=total,
        page=params.page,
        page_size=params.page_size,
        total_pages=params.total_pages(total),
    )


@router.get("/projects/{project_id}", response_model=ProjectResponse)
async def get_marketplace_project(
    project_id: uuid.UUID,
    current_user: User = Depends(require_role(UserRole.CONTRACTOR, UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    project = await get_project(db, project_id)
    entitled = await can_view_private_details(db, project, current_user)
    return ProjectResponse.from_project(
        project,
        include_private=entitled,
        is_unlocked=entitled if current_user.is_contractor else None,
    )


@router.post("/projects/{project_id}/unlock", response_model=UnlockResponse, status_code=201)
async def unlock_project(
    project_id: uuid.UUID,
    current_user: User = Depends(require_verified_contractor),
    db: AsyncSession = Depends(get_db),
):
    # Cost always comes from the stored project
    unlock = await ledger.unlock_project(db, current_user.id, project_id)
    details = await ledger.get_project_private_details(db, project_id)

    emit(db, user_topic(current_user.id), "credits.balance_changed", {
        "credit_balance": current_user.credit_balance,
        "delta": -unlock.credit_cost,
        "reason": "unlock",
        "project_id": str(project_id),
    })
    return UnlockResponse(
        project_id=project_id,
        credit_cost=unlock.credit_cost,
        credit_balance=current_user.credit_balance,
        unlocked_at=unlock.created_at.isoformat(),
        private_details=PrivateDetailsResponse.model_validate(details) if details else None,
    )


@router.get("/unlocks", response_model=UnlockedProjectsResponse)
async def list_unlocked_projects(
    current_user: User = Depends(require_role(UserRole.CONTRACTOR)),
    db: AsyncSession = Depends(get_db),
):
    project_ids = await ledger.get_contractor_unlocks(db, current_user.id)
    return UnlockedProjectsResponse(project_ids=project_ids, total=len(project_ids))
