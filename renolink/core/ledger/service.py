"""Credit ledger: project unlocks, simulated credit purchases, refunds, reconciliation.

Every balance mutation for a contractor runs under that contractor's
``asyncio.Lock`` and re-reads the balance with a row lock before writing, so
two overlapping requests from the same contractor are applied one after the
other. The balance change, the unlock row and the ledger entry are flushed
together in the request's transaction; either all of them commit or none do.
"""

from __future__ import annotations

import uuid

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from renolink.common.enums import TransactionType, UserRole
from renolink.common.exceptions import (
    AlreadyUnlockedError,
    BadRequestError,
    ConflictError,
    InsufficientCreditsError,
    NotFoundError,
    ProjectNotFoundError,
    StoreUnavailableError,
)
from renolink.common.locks import KeyedLock
from renolink.common.logging import get_logger
from renolink.core.ledger.pricing import get_package
from renolink.core.ledger.schemas import LedgerReconciliation
from renolink.core.marketplace.service import find_unlock
from renolink.db.models.audit import AuditLog
from renolink.db.models.project import Project, ProjectPrivateDetails
from renolink.db.models.transaction import CreditTransaction
from renolink.db.models.unlock import ProjectUnlock, unlock_key
from renolink.db.models.user import User

logger = get_logger("ledger.service")

# Shared by every LedgerService in the process
contractor_locks = KeyedLock()


class LedgerService:
    def __init__(self, locks: KeyedLock | None = None):
        self.locks = locks or contractor_locks

    # ---------- Mutations ----------

    async def unlock_project(
        self,
        db: AsyncSession,
        contractor_id: uuid.UUID,
        project_id: uuid.UUID,
        credit_cost: int | None = None,
    ) -> ProjectUnlock:
        async with self.locks.hold(contractor_id):
            try:
                return await self._unlock(db, contractor_id, project_id, credit_cost)
            except (OperationalError, InterfaceError) as e:
                logger.error("Store failure unlocking project %s for %s: %s", project_id, contractor_id, e)
                raise StoreUnavailableError() from e

    async def _unlock(
        self,
        db: AsyncSession,
        contractor_id: uuid.UUID,
        project_id: uuid.UUID,
        credit_cost: int | None,
    ) -> ProjectUnlock:
        if await find_unlock(db, contractor_id, project_id) is not None:
            raise AlreadyUnlockedError(str(project_id))

        project: Project | None = None
        if credit_cost is None:
            project = await self._load_project(db, project_id)
            credit_cost = project.credit_cost
        if credit_cost <= 0:
            raise BadRequestError("credit_cost must be a positive number of credits")

        contractor = await self._lock_contractor(db, contractor_id)
        balance = contractor.credit_balance or 0
        if balance < credit_cost:
            raise InsufficientCreditsError(required=credit_cost, available=balance)

        if project is None:
            project = await self._load_project(db, project_id)

        unlock = ProjectUnlock(
            unlock_key=unlock_key(contractor_id, project_id),
            contractor_id=contractor_id,
            project_id=project_id,
            homeowner_id=project.homeowner_id,
            credit_cost=credit_cost,
        )
        entry = CreditTransaction(
            contractor_id=contractor_id,
            type=TransactionType.UNLOCK.value,
            credit_amount=credit_cost,
            credit_delta=-credit_cost,
            related_project_id=project_id,
        )
        contractor.credit_balance = balance - credit_cost
        db.add_all([unlock, entry])

        try:
            await db.flush()
        except IntegrityError as e:
            # Another writer inserted the same unlock key first
            logger.warning("Unlock race lost for %s: %s", unlock.unlock_key, e.orig)
            raise AlreadyUnlockedError(str(project_id)) from e

        logger.info(
            "Contractor %s unlocked project %s for %d credits (balance %d -> %d)",
            contractor_id, project_id, credit_cost, balance, contractor.credit_balance,
        )
        return unlock

    async def buy_credits(
        self, db: AsyncSession, contractor_id: uuid.UUID, package_id: str
    ) -> CreditTransaction:
        """Simulated purchase: no payment gateway is contacted."""
        package = get_package(package_id)
        if package is None:
            raise BadRequestError(f"Unknown credit package '{package_id}'")

        async with self.locks.hold(contractor_id):
            try:
                contractor = await self._lock_contractor(db, contractor_id)
                balance = contractor.credit_balance or 0

                entry = CreditTransaction(
                    contractor_id=contractor_id,
                    type=TransactionType.PURCHASE.value,
                    credit_amount=package.credits,
                    credit_delta=package.credits,
                    cost=package.price,
                    package_id=package.id,
                    reference=f"sim_{uuid.uuid4().hex[:16]}",
                )
                contractor.credit_balance = balance + package.credits
                db.add(entry)
                await db.flush()
            except (OperationalError, InterfaceError) as e:
                logger.error("Store failure buying credits for %s: %s", contractor_id, e)
                raise StoreUnavailableError() from e

        logger.info(
            "Contractor %s bought package %s: +%d credits (balance %d -> %d)",
            contractor_id, package.id, package.credits, balance, contractor.credit_balance,
        )
        return entry

    async def refund_unlock(
        self,
        db: AsyncSession,
        contractor_id: uuid.UUID,
        project_id: uuid.UUID,
        actor_id: uuid.UUID | None = None,
        reason: str | None = None,
    ) -> CreditTransaction:
        """Return an unlock's credits. The grant itself stays in place."""
        async with self.locks.hold(contractor_id):
            unlock = await find_unlock(db, contractor_id, project_id)
            if unlock is None:
                raise NotFoundError("Unlock", unlock_key(contractor_id, project_id))

            existing = await db.execute(
                select(CreditTransaction.id).where(
                    CreditTransaction.contractor_id == contractor_id,
                    CreditTransaction.related_project_id == project_id,
                    CreditTransaction.type == TransactionType.REFUND.value,
                )
            )
            if existing.first() is not None:
                raise ConflictError("This unlock has already been refunded")

            contractor = await self._lock_contractor(db, contractor_id)
            balance = contractor.credit_balance or 0

            entry = CreditTransaction(
                contractor_id=contractor_id,
                type=TransactionType.REFUND.value,
                credit_amount=unlock.credit_cost,
                credit_delta=unlock.credit_cost,
                related_project_id=project_id,
            )
            contractor.credit_balance = balance + unlock.credit_cost
            db.add(entry)
            db.add(AuditLog(
                entity_type="project_unlock",
                entity_id=unlock.id,
                action="refunded",
                actor_id=actor_id,
                diff={"credits": unlock.credit_cost, "reason": reason},
            ))
            await db.flush()

        logger.info("Refunded %d credits to %s for project %s", unlock.credit_cost, contractor_id, project_id)
        return entry

    # ---------- Reads ----------

    async def get_contractor_unlocks(self, db: AsyncSession, contractor_id: uuid.UUID) -> list[uuid.UUID]:
        result = await db.execute(
            select(ProjectUnlock.project_id)
            .where(ProjectUnlock.contractor_id == contractor_id)
            .order_by(ProjectUnlock.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_project_private_details(
        self, db: AsyncSession, project_id: uuid.UUID
    ) -> ProjectPrivateDetails | None:
        """Pure read. Callers must check ``can_view_private_details`` first."""
        result = await db.execute(
            select(ProjectPrivateDetails).where(ProjectPrivateDetails.project_id == project_id)
        )
        return result.scalar_one_or_none()

    async def list_transactions(
        self, db: AsyncSession, contractor_id: uuid.UUID
    ) -> list[CreditTransaction]:
        result = await db.execute(
            select(CreditTransaction)
            .where(CreditTransaction.contractor_id == contractor_id)
            .order_by(CreditTransaction.created_at.desc())
        )
        return list(result.scalars().all())

    async def reconcile(self, db: AsyncSession, contractor_id: uuid.UUID) -> LedgerReconciliation:
        contractor = await db.get(User, contractor_id, populate_existing=True)
        if contractor is None or contractor.role != UserRole.CONTRACTOR.value:
            raise NotFoundError("Contractor", str(contractor_id))

        result = await db.execute(
            select(
                func.coalesce(func.sum(CreditTransaction.credit_delta), 0),
                func.count(CreditTransaction.id),
            ).where(CreditTransaction.contractor_id == contractor_id)
        )
        ledger_total, count = result.one()
        return LedgerReconciliation(
            contractor_id=contractor_id,
            balance=contractor.credit_balance or 0,
            ledger_total=int(ledger_total),
            transaction_count=count,
        )

    async def reconcile_all(self, db: AsyncSession) -> list[LedgerReconciliation]:
        """Return a report for every contractor whose balance disagrees with the ledger."""
        totals_q = (
            select(
                CreditTransaction.contractor_id,
                func.sum(CreditTransaction.credit_delta),
                func.count(CreditTransaction.id),
            )
            .group_by(CreditTransaction.contractor_id)
        )
        totals = {row[0]: (int(row[1]), row[2]) for row in (await db.execute(totals_q)).all()}

        contractors = await db.execute(
            select(User.id, User.credit_balance).where(
                User.role == UserRole.CONTRACTOR.value, User.is_deleted.is_(False)
            )
        )

        drifted = []
        for contractor_id, balance in contractors.all():
            ledger_total, count = totals.get(contractor_id, (0, 0))
            report = LedgerReconciliation(
                contractor_id=contractor_id,
                balance=balance or 0,
                ledger_total=ledger_total,
                transaction_count=count,
            )
            if not report.is_consistent:
                drifted.append(report)
        return drifted

    async def record_drift(
        self, db: AsyncSession, report: LedgerReconciliation, actor_id: uuid.UUID | None = None
    ) -> AuditLog:
        """Audit a reconciliation mismatch. Balances are never auto-corrected."""
        entry = AuditLog(
            entity_type="user",
            entity_id=report.contractor_id,
            action="ledger_drift",
            actor_id=actor_id,
            diff={
                "balance": report.balance,
                "ledger_total": report.ledger_total,
                "drift": report.drift,
            },
        )
        db.add(entry)
        await db.flush()
        logger.warning(
            "Ledger drift for contractor %s: balance=%d ledger=%d drift=%d",
            report.contractor_id, report.balance, report.ledger_total, report.drift,
        )
        return entry

    # ---------- Helpers ----------

    async def _lock_contractor(self, db: AsyncSession, contractor_id: uuid.UUID) -> User:
        result = await db.execute(
            select(User)
            .where(
                User.id == contractor_id,
                User.role == UserRole.CONTRACTOR.value,
                User.is_deleted.is_(False),
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        contractor = result.scalar_one_or_none()
        if contractor is None:
            raise NotFoundError("Contractor", str(contractor_id))
        return contractor

    async def _load_project(self, db: AsyncSession, project_id: uuid.UUID) -> Project:
        result = await db.execute(
            select(Project).where(Project.id == project_id, Project.is_deleted.is_(False))
        )
        project = result.scalar_one_or_none()
        if project is None or project.homeowner_id is None:
            raise ProjectNotFoundError(str(project_id))
        return project
