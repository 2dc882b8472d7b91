import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from renolink.common.enums import BidStatus, ProjectStatus, UserRole
from renolink.common.exceptions import (
    BadRequestError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
)
from renolink.common.logging import get_logger
from renolink.core.bids.schemas import BidDraft
from renolink.core.bids.workflow import check_transition, compute_total
from renolink.core.marketplace.service import find_unlock, get_project
from renolink.db.base import utcnow
from renolink.db.models.bid import Bid
from renolink.db.models.user import User

logger = get_logger("bids.service")


class BidService:
    async def submit_bid(
        self, db: AsyncSession, contractor: User, project_id: uuid.UUID, draft: BidDraft
    ) -> Bid:
        project = await get_project(db, project_id)
        if project.status != ProjectStatus.OPEN.value:
            raise BadRequestError("Bids can only be submitted on open projects")
        if await find_unlock(db, contractor.id, project_id) is None:
            raise PermissionDeniedError("Unlock this project before submitting a bid")

        items = [item.model_dump(mode="json") for item in draft.itemized_costs]
        bid = Bid(
            contractor_id=contractor.id,
            homeowner_id=project.homeowner_id,
            project_id=project_id,
            contractor_name=contractor.company_name or contractor.full_name,
            project_category=project.category_name,
            itemized_costs=items,
            total_cost=compute_total(items),
            estimated_timeline=draft.estimated_timeline,
            notes=draft.notes,
            status=BidStatus.SUBMITTED.value,
        )
        db.add(bid)
        await db.flush()
        logger.info("Bid %s submitted by %s on project %s (total %s)", bid.id, contractor.id, project_id, bid.total_cost)
        return bid

    async def update_bid_status(
        self, db: AsyncSession, bid_id: uuid.UUID, status: BidStatus, actor: User
    ) -> Bid:
        bid = await self.get_bid(db, bid_id)
        if actor.role != UserRole.ADMIN.value and bid.homeowner_id != actor.id:
            raise PermissionDeniedError("Only the project owner can decide on this bid")

        current = bid.status
        target = check_transition(current, status)

        # Compare-and-set: a concurrent decision that committed first leaves no matching row
        result = await db.execute(
            update(Bid)
            .where(Bid.id == bid.id, Bid.status == current)
            .values(status=target.value, decided_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await db.refresh(bid)
            raise InvalidTransitionError("bid", bid.status, target.value)
        await db.refresh(bid)
        logger.info("Bid %s moved to %s by %s", bid.id, target.value, actor.id)
        return bid

    async def get_bid(self, db: AsyncSession, bid_id: uuid.UUID) -> Bid:
        result = await db.execute(select(Bid).where(Bid.id == bid_id, Bid.is_deleted.is_(False)))
        bid = result.scalar_one_or_none()
        if not bid:
            raise NotFoundError("Bid", str(bid_id))
        return bid

    async def get_bids_for_project(self, db: AsyncSession, project_id: uuid.UUID) -> list[Bid]:
        result = await db.execute(
            select(Bid)
            .where(Bid.project_id == project_id, Bid.is_deleted.is_(False))
            .order_by(Bid.total_cost)
        )
        return list(result.scalars().all())

    async def get_contractor_bids(
        self, db: AsyncSession, contractor_id: uuid.UUID, status: BidStatus | None = None
    ) -> list[Bid]:
        query = select(Bid).where(Bid.contractor_id == contractor_id, Bid.is_deleted.is_(False))
        if status is not None:
            query = query.where(Bid.status == status.value)
        result = await db.execute(query.order_by(Bid.created_at.desc()))
        return list(result.scalars().all())

    async def get_homeowner_bids(
        self, db: AsyncSession, homeowner_id: uuid.UUID, status: BidStatus | None = None
    ) -> list[Bid]:
        query = select(Bid).where(Bid.homeowner_id == homeowner_id, Bid.is_deleted.is_(False))
        if status is not None:
            query = query.where(Bid.status == status.value)
        result = await db.execute(query.order_by(Bid.created_at.desc()))
        return list(result.scalars().all())
