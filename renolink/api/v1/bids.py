"""Bids on unlocked projects and the homeowner's accept/reject decision."""

from __future__ import annotations

import uuid
from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from renolink.api.deps import get_current_user, get_db, require_role
from renolink.common.enums import BidStatus, UserRole
from renolink.common.events import emit, user_topic
from renolink.common.exceptions import PermissionDeniedError
from renolink.core.bids.schemas import BidDraft
from renolink.core.bids.service import BidService
from renolink.core.marketplace.service import get_project
from renolink.db.models.bid import Bid
from renolink.db.models.user import User

router = APIRouter(prefix="/bids", tags=["Bids"])

bids = BidService()


# ---------- Schemas ----------


class BidResponse(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    contractor_id: uuid.UUID
    homeowner_id: uuid.UUID
    contractor_name: str
    project_category: str
    itemized_costs: list
    total_cost: Decimal
    estimated_timeline: str
    notes: str | None
    status: str
    created_at: str
    decided_at: str | None

    @classmethod
    def from_bid(cls, bid: Bid) -> BidResponse:
        return cls(
            id=bid.id,
            project_id=bid.project_id,
            contractor_id=bid.contractor_id,
            homeowner_id=bid.homeowner_id,
            contractor_name=bid.contractor_name,
            project_category=bid.project_category,
            itemized_costs=bid.itemized_costs,
            total_cost=bid.total_cost,
            estimated_timeline=bid.estimated_timeline,
            notes=bid.notes,
            status=bid.status,
            created_at=bid.created_at.isoformat(),
            decided_at=bid.decided_at.isoformat() if bid.decided_at else None,
        )


# ---------- Endpoints ----------


@router.post("/projects/{project_id}", response_model=BidResponse, status_code=201)
async def submit_bid(
    project_id: uuid.UUID,
    body: BidDraft,
    current_user: User = Depends(require_role(UserRole.CONTRACTOR)),
    db: AsyncSession = Depends(get_db),
):
    bid = await bids.submit_bid(db, current_user, project_id, body)
    emit(db, user_topic(bid.homeowner_id), "bid.submitted", {
        "bid_id": str(bid.id),
        "project_id": str(project_id),
        "contractor_name": bid.contractor_name,
        "total_cost": str(bid.total_cost),
    })
    return BidResponse.from_bid(bid)


@router.get("/mine", response_model=list[BidResponse])
async def list_my_bids(
    status: BidStatus | None = Query(None),
    current_user: User = Depends(require_role(UserRole.CONTRACTOR)),
    db: AsyncSession = Depends(get_db),
):
    return [BidResponse.from_bid(b) for b in await bids.get_contractor_bids(db, current_user.id, status)]


@router.get("/received", response_model=list[BidResponse])
async def list_received_bids(
    status: BidStatus | None = Query(None),
    current_user: User = Depends(require_role(UserRole.HOMEOWNER)),
    db: AsyncSession = Depends(get_db),
):
    return [BidResponse.from_bid(b) for b in await bids.get_homeowner_bids(db, current_user.id, status)]


@router.get("/projects/{project_id}", response_model=list[BidResponse])
async def list_project_bids(
    project_id: uuid.UUID,
    current_user: User = Depends(require_role(UserRole.HOMEOWNER, UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    project = await get_project(db, project_id)
    if current_user.role != UserRole.ADMIN.value and project.homeowner_id != current_user.id:
        raise PermissionDeniedError("You do not have access to this project")
    return [BidResponse.from_bid(b) for b in await bids.get_bids_for_project(db, project_id)]


@router.get("/{bid_id}", response_model=BidResponse)
async def get_bid(
    bid_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    bid = await bids.get_bid(db, bid_id)
    if current_user.role != UserRole.ADMIN.value and current_user.id not in (
        bid.contractor_id,
        bid.homeowner_id,
    ):
        raise PermissionDeniedError("You do not have access to this bid")
    return BidResponse.from_bid(bid)


@router.post("/{bid_id}/accept", response_model=BidResponse)
async def accept_bid(
    bid_id: uuid.UUID,
    current_user: User = Depends(require_role(UserRole.HOMEOWNER, UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    return await _decide(db, bid_id, BidStatus.ACCEPTED, current_user)


@router.post("/{bid_id}/reject", response_model=BidResponse)
async def reject_bid(
    bid_id: uuid.UUID,
    current_user: User = Depends(require_role(UserRole.HOMEOWNER, UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    return await _decide(db, bid_id, BidStatus.REJECTED, current_user)


async def _decide(db: AsyncSession, bid_id: uuid.UUID, status: BidStatus, actor: User) -> BidResponse:
    bid = await bids.update_bid_status(db, bid_id, status, actor)
    emit(db, user_topic(bid.contractor_id), "bid.status_changed", {
        "bid_id": str(bid.id),
        "project_id": str(bid.project_id),
        "status": bid.status,
    })
    return BidResponse.from_bid(bid)
