import uuid
from typing import Literal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel as PydanticModel
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from renolink.api.deps import get_db, require_role
from renolink.api.v1.auth import UserResponse
from renolink.api.v1.credits import TransactionResponse
from renolink.common.enums import UserRole, VerificationStatus
from renolink.common.events import ADMIN_TOPIC, emit, user_topic
from renolink.common.exceptions import BadRequestError, NotFoundError
from renolink.common.logging import get_logger
from renolink.core.analytics.schemas import PlatformStats
from renolink.core.analytics.service import platform_stats
from renolink.core.ledger.schemas import LedgerReconciliation
from renolink.core.ledger.service import LedgerService
from renolink.db.base import utcnow
from renolink.db.models.audit import AuditLog
from renolink.db.models.user import User

logger = get_logger("api.admin")

router = APIRouter(prefix="/admin", tags=["Admin"])

ledger = LedgerService()


# ---------- Schemas ----------


class UserAdminResponse(UserResponse):
    verified_at: str | None = None
    admin_notes: str | None = None
    created_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserAdminResponse":
        base = UserResponse.from_user(user)
        return cls(
            **base.model_dump(),
            verified_at=user.verified_at.isoformat() if user.verified_at else None,
            admin_notes=user.admin_notes,
            created_at=user.created_at.isoformat(),
        )


class VerificationDecision(PydanticModel):
    decision: Literal["approved", "rejected"]
    notes: str = ""


class RefundRequest(PydanticModel):
    project_id: uuid.UUID
    reason: str | None = None


# ---------- Endpoints ----------


@router.get("/stats", response_model=PlatformStats)
async def get_platform_stats(
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    return await platform_stats(db)


@router.get("/users", response_model=list[UserAdminResponse])
async def list_all_users(
    role: UserRole | None = Query(None),
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    query = select(User).where(User.is_deleted.is_(False))
    if role is not None:
        query = query.where(User.role == role.value)
    result = await db.execute(query.order_by(User.created_at.desc()))
    return [UserAdminResponse.from_user(u) for u in result.scalars().all()]


@router.get("/contractors", response_model=list[UserAdminResponse])
async def list_contractors(
    status: VerificationStatus | None = Query(None),
    search: str | None = Query(None, description="Name, company, email, phone, BN or OBR"),
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    query = select(User).where(
        User.role == UserRole.CONTRACTOR.value, User.is_deleted.is_(False)
    )
    if status is not None:
        query = query.where(User.verification_status == status.value)
    if search and search.strip():
        term = f"%{search.strip().lower()}%"
        query = query.where(or_(
            User.full_name.ilike(term),
            User.company_name.ilike(term),
            User.contact_name.ilike(term),
            User.email.ilike(term),
            User.phone.ilike(term),
            User.business_number.ilike(term),
            User.obr_number.ilike(term),
        ))
    result = await db.execute(query.order_by(User.created_at.desc()))
    return [UserAdminResponse.from_user(u) for u in result.scalars().all()]


@router.post("/contractors/{user_id}/verification", response_model=UserAdminResponse)
async def decide_verification(
    user_id: uuid.UUID,
    body: VerificationDecision,
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    contractor = await _get_user(db, user_id)
    if not contractor.is_contractor:
        raise BadRequestError("Only contractor accounts can be verified")

    previous = contractor.verification_status
    contractor.verification_status = body.decision
    contractor.admin_notes = body.notes.strip() or None
    contractor.verified_at = utcnow() if body.decision == VerificationStatus.APPROVED.value else None
    db.add(AuditLog(
        entity_type="user",
        entity_id=contractor.id,
        action=f"verification_{body.decision}",
        actor_id=current_user.id,
        diff={"from": previous, "to": body.decision, "notes": contractor.admin_notes},
    ))
    await db.flush()
    logger.info("Contractor %s verification %s -> %s by %s", contractor.id, previous, body.decision, current_user.id)

    emit(db, user_topic(contractor.id), "verification.updated", {
        "verification_status": contractor.verification_status,
        "notes": contractor.admin_notes,
    })
    emit(db, ADMIN_TOPIC, "contractor.verified", {
        "user_id": str(contractor.id),
        "verification_status": contractor.verification_status,
    })
    return UserAdminResponse.from_user(contractor)


@router.patch("/users/{user_id}/deactivate", status_code=204)
async def deactivate_user(
    user_id: uuid.UUID,
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    user = await _get_user(db, user_id)
    if user.id == current_user.id:
        raise BadRequestError("You cannot deactivate your own account")
    user.is_active = False
    await db.flush()
    logger.info("User %s deactivated by %s", user.id, current_user.id)


@router.patch("/users/{user_id}/activate", status_code=204)
async def activate_user(
    user_id: uuid.UUID,
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    user = await _get_user(db, user_id)
    user.is_active = True
    await db.flush()
    logger.info("User %s activated by %s", user.id, current_user.id)


@router.get("/ledger/drift", response_model=list[LedgerReconciliation])
async def ledger_drift(
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    return await ledger.reconcile_all(db)


@router.get("/ledger/{contractor_id}", response_model=LedgerReconciliation)
async def reconcile_contractor(
    contractor_id: uuid.UUID,
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    report = await ledger.reconcile(db, contractor_id)
    if not report.is_consistent:
        await ledger.record_drift(db, report, actor_id=current_user.id)
    return report


@router.post("/ledger/{contractor_id}/refund", response_model=TransactionResponse, status_code=201)
async def refund_unlock(
    contractor_id: uuid.UUID,
    body: RefundRequest,
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    tx = await ledger.refund_unlock(
        db, contractor_id, body.project_id, actor_id=current_user.id, reason=body.reason
    )
    emit(db, user_topic(contractor_id), "credits.balance_changed", {
        "delta": tx.credit_delta,
        "reason": "refund",
        "project_id": str(body.project_id),
    })
    return TransactionResponse.from_transaction(tx)


async def _get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    result = await db.execute(select(User).where(User.id == user_id, User.is_deleted.is_(False)))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("User", str(user_id))
    return user
