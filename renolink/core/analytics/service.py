"""Naive counters behind the role dashboards."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from renolink.common.enums import BidStatus, ProjectStatus, UserRole, VerificationStatus
from renolink.core.analytics.schemas import (
    ContractorStats,
    HomeownerStats,
    PlatformStats,
)
from renolink.db.models.bid import Bid
from renolink.db.models.conversation import Conversation
from renolink.db.models.project import Project
from renolink.db.models.unlock import ProjectUnlock
from renolink.db.models.user import User


async def _count(db: AsyncSession, query) -> int:
    return (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0


async def _grouped(db: AsyncSession, column, *where) -> dict[str, int]:
    result = await db.execute(select(column, func.count()).where(*where).group_by(column))
    return {key: count for key, count in result.all()}


async def platform_stats(db: AsyncSession) -> PlatformStats:
    users_by_role = await _grouped(db, User.role, User.is_deleted.is_(False))
    contractors_by_status = await _grouped(
        db,
        User.verification_status,
        User.is_deleted.is_(False),
        User.role == UserRole.CONTRACTOR.value,
    )
    credits = (
        await db.execute(
            select(func.coalesce(func.sum(User.credit_balance), 0)).where(
                User.role == UserRole.CONTRACTOR.value, User.is_deleted.is_(False)
            )
        )
    ).scalar()
    projects_by_status = await _grouped(db, Project.status, Project.is_deleted.is_(False))
    bids_by_status = await _grouped(db, Bid.status, Bid.is_deleted.is_(False))

    return PlatformStats(
        total_users=sum(users_by_role.values()),
        users_by_role=users_by_role,
        verified_contractors=contractors_by_status.get(VerificationStatus.APPROVED.value, 0),
        pending_contractors=contractors_by_status.get(VerificationStatus.PENDING.value, 0),
        credits_in_circulation=int(credits or 0),
        total_projects=sum(projects_by_status.values()),
        projects_by_status=projects_by_status,
        total_bids=sum(bids_by_status.values()),
        accepted_bids=bids_by_status.get(BidStatus.ACCEPTED.value, 0),
        conversations=await _count(db, select(Conversation.id).where(Conversation.is_deleted.is_(False))),
        unlocks=await _count(db, select(ProjectUnlock.id)),
    )


async def contractor_stats(db: AsyncSession, contractor: User) -> ContractorStats:
    bids_by_status = await _grouped(
        db, Bid.status, Bid.contractor_id == contractor.id, Bid.is_deleted.is_(False)
    )
    return ContractorStats(
        credit_balance=contractor.credit_balance or 0,
        verification_status=contractor.verification_status or VerificationStatus.PENDING.value,
        unlocked_projects=await _count(
            db, select(ProjectUnlock.id).where(ProjectUnlock.contractor_id == contractor.id)
        ),
        bids_submitted=sum(bids_by_status.values()),
        bids_accepted=bids_by_status.get(BidStatus.ACCEPTED.value, 0),
        conversations=await _count(
            db, select(Conversation.id).where(Conversation.contractor_id == contractor.id)
        ),
        open_projects=await _count(
            db,
            select(Project.id).where(
                Project.status == ProjectStatus.OPEN.value, Project.is_deleted.is_(False)
            ),
        ),
    )


async def homeowner_stats(db: AsyncSession, homeowner: User) -> HomeownerStats:
    projects_by_status = await _grouped(
        db, Project.status, Project.homeowner_id == homeowner.id, Project.is_deleted.is_(False)
    )
    bids_by_status = await _grouped(
        db, Bid.status, Bid.homeowner_id == homeowner.id, Bid.is_deleted.is_(False)
    )
    return HomeownerStats(
        total_projects=sum(projects_by_status.values()),
        projects_by_status=projects_by_status,
        bids_received=sum(bids_by_status.values()),
        bids_pending=bids_by_status.get(BidStatus.SUBMITTED.value, 0),
        conversations=await _count(
            db, select(Conversation.id).where(Conversation.homeowner_id == homeowner.id)
        ),
    )
