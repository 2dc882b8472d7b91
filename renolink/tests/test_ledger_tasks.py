import pytest
from sqlalchemy import select

from renolink.db.models.audit import AuditLog
from renolink.tasks.celery_app import app
from renolink.tasks.ledger_tasks import audit_ledgers


def test_beat_schedule_registered():
    schedule = app.conf.beat_schedule["check-all-ledgers"]
    assert schedule["task"] == "renolink.tasks.ledger_tasks.check_all_ledgers"
    assert app.conf.task_routes["renolink.tasks.ledger_tasks.*"] == {"queue": "ledger"}


@pytest.mark.asyncio
async def test_audit_ledgers_clean(db_session, contractor_user):
    assert await audit_ledgers(db_session) == []


@pytest.mark.asyncio
async def test_audit_ledgers_records_drift(db_session, contractor_user, make_contractor):
    await make_contractor(balance=4)
    contractor_user.credit_balance = 7
    await db_session.flush()

    reports = await audit_ledgers(db_session)
    assert reports == [{
        "contractor_id": str(contractor_user.id),
        "balance": 7,
        "ledger_total": 10,
        "transaction_count": 1,
        "drift": -3,
    }]

    result = await db_session.execute(select(AuditLog).where(AuditLog.action == "ledger_drift"))
    entry = result.scalar_one()
    assert entry.entity_id == contractor_user.id
    assert entry.actor_id is None
    assert entry.diff == {"balance": 7, "ledger_total": 10, "drift": -3}
    # Balances are reported, never corrected
    assert contractor_user.credit_balance == 7
