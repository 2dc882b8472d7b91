import asyncio

from sqlalchemy.ext.asyncio import AsyncSession

from renolink.common.logging import get_logger
from renolink.tasks.celery_app import app

logger = get_logger("tasks.ledger")


def _run_async(coro):
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


async def audit_ledgers(db: AsyncSession) -> list[dict]:
    """Reconcile every contractor and audit each drifted balance. Returns the drift reports."""
    from renolink.core.ledger.service import LedgerService

    service = LedgerService()
    drifted = await service.reconcile_all(db)
    for report in drifted:
        await service.record_drift(db, report)
    return [report.model_dump(mode="json") for report in drifted]


@app.task(name="renolink.tasks.ledger_tasks.check_all_ledgers")
def check_all_ledgers():
    """Celery Beat task: compare every contractor balance with their ledger."""
    logger.info("Reconciling contractor ledgers")

    async def _check():
        from renolink.db.session import async_session_factory

        async with async_session_factory() as db:
            try:
                drifted = await audit_ledgers(db)
                await db.commit()
                if drifted:
                    logger.warning("Found %d contractor ledgers out of balance", len(drifted))
                else:
                    logger.info("All contractor ledgers balance")
                return drifted
            except Exception as e:
                await db.rollback()
                logger.error("Ledger reconciliation failed: %s", e)
                raise

    return _run_async(_check())


@app.task(name="renolink.tasks.ledger_tasks.reconcile_contractor")
def reconcile_contractor(contractor_id: str):
    logger.info("Reconciling ledger for contractor %s", contractor_id)

    async def _reconcile():
        import uuid

        from renolink.core.ledger.service import LedgerService
        from renolink.db.session import async_session_factory

        async with async_session_factory() as db:
            try:
                service = LedgerService()
                report = await service.reconcile(db, uuid.UUID(contractor_id))
                if not report.is_consistent:
                    await service.record_drift(db, report)
                await db.commit()
                return report.model_dump(mode="json")
            except Exception as e:
                await db.rollback()
                logger.error("Reconciliation failed for contractor %s: %s", contractor_id, e)
                raise

    return _run_async(_reconcile())
