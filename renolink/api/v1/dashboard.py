from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from renolink.api.deps import get_current_user, get_db, require_role
from renolink.common.enums import UserRole
from renolink.core.analytics.schemas import ContractorStats, HomeownerStats, PlatformStats
from renolink.core.analytics.service import contractor_stats, homeowner_stats, platform_stats
from renolink.core.messaging.service import MessagingService
from renolink.db.models.user import User

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])

messaging = MessagingService()


# ---------- Schemas ----------


class DashboardResponse(BaseModel):
    role: str
    unread_messages: int
    contractor: ContractorStats | None = None
    homeowner: HomeownerStats | None = None
    platform: PlatformStats | None = None


# ---------- Endpoints ----------


@router.get("", response_model=DashboardResponse)
async def my_dashboard(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Counters for the caller's own dashboard, shaped by role."""
    response = DashboardResponse(
        role=current_user.role,
        unread_messages=await messaging.unread_count(db, current_user),
    )
    if current_user.role == UserRole.CONTRACTOR.value:
        response.contractor = await contractor_stats(db, current_user)
    elif current_user.role == UserRole.HOMEOWNER.value:
        response.homeowner = await homeowner_stats(db, current_user)
    else:
        response.platform = await platform_stats(db)
    return response


@router.get("/contractor", response_model=ContractorStats)
async def contractor_dashboard(
    current_user: User = Depends(require_role(UserRole.CONTRACTOR)),
    db: AsyncSession = Depends(get_db),
):
    return await contractor_stats(db, current_user)


@router.get("/homeowner", response_model=HomeownerStats)
async def homeowner_dashboard(
    current_user: User = Depends(require_role(UserRole.HOMEOWNER)),
    db: AsyncSession = Depends(get_db),
):
    return await homeowner_stats(db, current_user)
