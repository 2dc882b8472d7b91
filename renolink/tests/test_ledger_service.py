import asyncio
import uuid

import pytest
from sqlalchemy import func, select

from renolink.common.enums import BudgetRange, TransactionType
from renolink.common.exceptions import (
    AlreadyUnlockedError,
    BadRequestError,
    ConflictError,
    InsufficientCreditsError,
    NotFoundError,
    ProjectNotFoundError,
)
from renolink.common.locks import KeyedLock
from renolink.core.ledger.service import LedgerService
from renolink.db.models.audit import AuditLog
from renolink.db.models.transaction import CreditTransaction
from renolink.db.models.unlock import ProjectUnlock, unlock_key


@pytest.fixture
def ledger():
    return LedgerService(locks=KeyedLock())


async def _count(db, model, *where) -> int:
    return (await db.execute(select(func.count()).select_from(model).where(*where))).scalar()


@pytest.mark.asyncio
async def test_unlock_deducts_credits_and_records_entry(db_session, ledger, contractor_user, project):
    unlock = await ledger.unlock_project(db_session, contractor_user.id, project.id, credit_cost=3)

    assert unlock.unlock_key == f"{contractor_user.id}_{project.id}"
    assert unlock.homeowner_id == project.homeowner_id
    assert unlock.credit_cost == 3
    assert contractor_user.credit_balance == 7

    result = await db_session.execute(
        select(CreditTransaction).where(
            CreditTransaction.contractor_id == contractor_user.id,
            CreditTransaction.type == TransactionType.UNLOCK.value,
        )
    )
    entries = result.scalars().all()
    assert len(entries) == 1
    assert entries[0].credit_amount == 3
    assert entries[0].credit_delta == -3
    assert entries[0].related_project_id == project.id


@pytest.mark.asyncio
async def test_unlock_uses_project_cost_by_default(db_session, ledger, make_contractor, make_project, homeowner_user):
    contractor = await make_contractor(balance=20)
    project = await make_project(homeowner_user, budget=BudgetRange.FROM_50000_TO_100000)

    unlock = await ledger.unlock_project(db_session, contractor.id, project.id)

    assert unlock.credit_cost == 10
    assert contractor.credit_balance == 10


@pytest.mark.asyncio
async def test_second_unlock_is_rejected_without_writes(db_session, ledger, contractor_user, project):
    await ledger.unlock_project(db_session, contractor_user.id, project.id, credit_cost=3)
    tx_before = await _count(db_session, CreditTransaction, CreditTransaction.contractor_id == contractor_user.id)

    with pytest.raises(AlreadyUnlockedError) as exc:
        await ledger.unlock_project(db_session, contractor_user.id, project.id, credit_cost=3)

    assert exc.value.status_code == 409
    assert contractor_user.credit_balance == 7
    assert await _count(db_session, ProjectUnlock, ProjectUnlock.contractor_id == contractor_user.id) == 1
    assert await _count(db_session, CreditTransaction, CreditTransaction.contractor_id == contractor_user.id) == tx_before


@pytest.mark.asyncio
async def test_insufficient_balance_leaves_state_unchanged(db_session, ledger, make_contractor, project):
    contractor = await make_contractor(balance=5)

    with pytest.raises(InsufficientCreditsError) as exc:
        await ledger.unlock_project(db_session, contractor.id, project.id, credit_cost=7)

    assert exc.value.status_code == 402
    assert exc.value.required == 7
    assert exc.value.available == 5
    assert contractor.credit_balance == 5
    assert await _count(db_session, ProjectUnlock, ProjectUnlock.contractor_id == contractor.id) == 0
    assert await _count(
        db_session,
        CreditTransaction,
        CreditTransaction.contractor_id == contractor.id,
        CreditTransaction.type == TransactionType.UNLOCK.value,
    ) == 0


@pytest.mark.asyncio
async def test_unlock_missing_project(db_session, ledger, contractor_user):
    with pytest.raises(ProjectNotFoundError):
        await ledger.unlock_project(db_session, contractor_user.id, uuid.uuid4(), credit_cost=2)
    assert contractor_user.credit_balance == 10


@pytest.mark.asyncio
async def test_unlock_rejects_non_positive_cost(db_session, ledger, contractor_user, project):
    with pytest.raises(BadRequestError):
        await ledger.unlock_project(db_session, contractor_user.id, project.id, credit_cost=0)


@pytest.mark.asyncio
async def test_unlock_requires_contractor(db_session, ledger, homeowner_user, project):
    with pytest.raises(NotFoundError):
        await ledger.unlock_project(db_session, homeowner_user.id, project.id, credit_cost=2)


@pytest.mark.asyncio
async def test_unlock_grants_private_details(db_session, ledger, contractor_user, project):
    await ledger.unlock_project(db_session, contractor_user.id, project.id)

    assert project.id in await ledger.get_contractor_unlocks(db_session, contractor_user.id)
    details = await ledger.get_project_private_details(db_session, project.id)
    assert details is not None
    assert details.full_description.startswith("Gut and rebuild")
    assert details.street_address == "42 Maple Ave"


@pytest.mark.asyncio
async def test_concurrent_unlocks_only_one_succeeds(db_session, ledger, contractor_user, project):
    results = await asyncio.gather(
        ledger.unlock_project(db_session, contractor_user.id, project.id, credit_cost=3),
        ledger.unlock_project(db_session, contractor_user.id, project.id, credit_cost=3),
        return_exceptions=True,
    )

    successes = [r for r in results if isinstance(r, ProjectUnlock)]
    failures = [r for r in results if isinstance(r, AlreadyUnlockedError)]
    assert len(successes) == 1
    assert len(failures) == 1
    assert contractor_user.credit_balance == 7
    assert await _count(
        db_session, ProjectUnlock, ProjectUnlock.unlock_key == unlock_key(contractor_user.id, project.id)
    ) == 1


@pytest.mark.asyncio
async def test_buy_credits(db_session, ledger, make_contractor):
    contractor = await make_contractor(balance=0)

    tx = await ledger.buy_credits(db_session, contractor.id, "professional")

    assert contractor.credit_balance == 25
    assert tx.type == TransactionType.PURCHASE.value
    assert tx.credit_delta == 25
    assert tx.package_id == "professional"
    assert str(tx.cost) == "99.00"
    assert tx.reference.startswith("sim_")


@pytest.mark.asyncio
async def test_buy_unknown_package(db_session, ledger, contractor_user):
    with pytest.raises(BadRequestError):
        await ledger.buy_credits(db_session, contractor_user.id, "platinum")
    assert contractor_user.credit_balance == 10


@pytest.mark.asyncio
async def test_balance_matches_ledger_after_mixed_operations(db_session, ledger, make_contractor, make_project, homeowner_user):
    contractor = await make_contractor(balance=0)
    await ledger.buy_credits(db_session, contractor.id, "starter")
    for budget in (BudgetRange.UNDER_5000, BudgetRange.FROM_5000_TO_15000, BudgetRange.FROM_15000_TO_30000):
        p = await make_project(homeowner_user, budget=budget)
        await ledger.unlock_project(db_session, contractor.id, p.id)
    expensive = await make_project(homeowner_user, budget=BudgetRange.OVER_250000)
    with pytest.raises(InsufficientCreditsError):
        await ledger.unlock_project(db_session, contractor.id, expensive.id)

    report = await ledger.reconcile(db_session, contractor.id)

    assert report.balance == 10 - 2 - 3 - 5
    assert report.ledger_total == report.balance
    assert report.transaction_count == 4
    assert report.is_consistent


@pytest.mark.asyncio
async def test_refund_returns_credits_once(db_session, ledger, contractor_user, project, admin_user):
    await ledger.unlock_project(db_session, contractor_user.id, project.id, credit_cost=5)

    tx = await ledger.refund_unlock(db_session, contractor_user.id, project.id, actor_id=admin_user.id, reason="duplicate lead")

    assert tx.type == TransactionType.REFUND.value
    assert tx.credit_delta == 5
    assert contractor_user.credit_balance == 10
    # Grant stays in place
    assert project.id in await ledger.get_contractor_unlocks(db_session, contractor_user.id)
    assert await _count(db_session, AuditLog, AuditLog.action == "refunded") == 1

    with pytest.raises(ConflictError):
        await ledger.refund_unlock(db_session, contractor_user.id, project.id)
    assert contractor_user.credit_balance == 10


@pytest.mark.asyncio
async def test_refund_without_unlock(db_session, ledger, contractor_user, project):
    with pytest.raises(NotFoundError):
        await ledger.refund_unlock(db_session, contractor_user.id, project.id)


@pytest.mark.asyncio
async def test_reconcile_all_reports_only_drift(db_session, ledger, contractor_user, make_contractor, admin_user):
    drifted = await make_contractor(balance=0)
    drifted.credit_balance = 42
    await db_session.flush()

    reports = await ledger.reconcile_all(db_session)

    assert [r.contractor_id for r in reports] == [drifted.id]
    assert reports[0].drift == 42
    assert not reports[0].is_consistent

    entry = await ledger.record_drift(db_session, reports[0], actor_id=admin_user.id)
    assert entry.action == "ledger_drift"
    assert entry.diff["drift"] == 42
    # Reporting never corrects the balance
    assert drifted.credit_balance == 42


@pytest.mark.asyncio
async def test_list_transactions_newest_first(db_session, ledger, contractor_user, project):
    await ledger.unlock_project(db_session, contractor_user.id, project.id, credit_cost=3)

    transactions = await ledger.list_transactions(db_session, contractor_user.id)

    assert [t.type for t in transactions] == [TransactionType.UNLOCK.value, TransactionType.PURCHASE.value]


@pytest.mark.asyncio
async def test_stale_existence_check_falls_back_to_unique_constraint(
    db_session, ledger, contractor_user, project, monkeypatch
):
    await ledger.unlock_project(db_session, contractor_user.id, project.id, credit_cost=3)
    await db_session.commit()

    # Another process inserted the unlock after this one checked for it
    async def missing(*args, **kwargs):
        return None

    monkeypatch.setattr("renolink.core.ledger.service.find_unlock", missing)
    with pytest.raises(AlreadyUnlockedError):
        await ledger.unlock_project(db_session, contractor_user.id, project.id, credit_cost=3)
    await db_session.rollback()

    await db_session.refresh(contractor_user)
    assert contractor_user.credit_balance == 7
    assert await _count(
        db_session, ProjectUnlock, ProjectUnlock.contractor_id == contractor_user.id
    ) == 1
    assert await _count(
        db_session,
        CreditTransaction,
        CreditTransaction.contractor_id == contractor_user.id,
        CreditTransaction.type == TransactionType.UNLOCK.value,
    ) == 1


@pytest.mark.asyncio
async def test_explicit_cost_checks_balance_before_project(db_session, ledger, make_contractor):
    contractor = await make_contractor(balance=2)

    with pytest.raises(InsufficientCreditsError):
        await ledger.unlock_project(db_session, contractor.id, uuid.uuid4(), credit_cost=5)

    # Without an explicit cost the project is the only source of the price
    with pytest.raises(ProjectNotFoundError):
        await ledger.unlock_project(db_session, contractor.id, uuid.uuid4())
