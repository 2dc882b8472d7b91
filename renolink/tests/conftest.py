import uuid
from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import JSON, event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from renolink.common.enums import (
    BudgetRange,
    ProjectCategory,
    ProjectStatus,
    TransactionType,
    UserRole,
    VerificationStatus,
)
from renolink.common.security import create_access_token, get_password_hash
from renolink.core.ledger.pricing import budget_label_for, credit_cost_for
from renolink.core.marketplace.catalog import CATEGORY_LABELS
from renolink.db.base import Base
from renolink.db.models import *  # noqa: F401,F403 - ensure all models loaded
from renolink.db.models.project import Project, ProjectPrivateDetails
from renolink.db.models.transaction import CreditTransaction
from renolink.db.models.user import User

# In-memory SQLite, one database per test - remap JSONB to JSON
TEST_DATABASE_URL = "sqlite+aiosqlite://"

PASSWORD = "Testpass123"


# Make JSONB render as JSON for SQLite
@event.listens_for(Base.metadata, "before_create")
def _remap_jsonb(target, connection, **kw):
    if connection.dialect.name == "sqlite":
        for table in target.tables.values():
            for column in table.columns:
                if isinstance(column.type, JSONB):
                    column.type = JSON()


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def client(db_session):
    from renolink.api.deps import get_db
    from renolink.main import app

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------- Factories ----------


@pytest.fixture
def make_contractor(db_session):
    """Create a contractor whose balance is backed by a matching purchase entry."""

    async def _make(
        balance: int = 0,
        status: VerificationStatus = VerificationStatus.APPROVED,
        company_name: str = "Test Renovations Inc.",
    ) -> User:
        user = User(
            id=uuid.uuid4(),
            email=f"contractor_{uuid.uuid4().hex[:8]}@test.com",
            hashed_password=get_password_hash(PASSWORD),
            full_name="Test Contractor",
            phone="416-555-0199",
            role=UserRole.CONTRACTOR.value,
            company_name=company_name,
            contact_name="Test Contractor",
            business_number="123456789",
            obr_number="1234567",
            verification_status=status.value,
            credit_balance=balance,
        )
        db_session.add(user)
        if balance:
            db_session.add(CreditTransaction(
                contractor_id=user.id,
                type=TransactionType.PURCHASE.value,
                credit_amount=balance,
                credit_delta=balance,
                reference="test_opening_balance",
            ))
        await db_session.flush()
        return user

    return _make


@pytest.fixture
def make_project(db_session):
    async def _make(
        owner: User,
        budget: BudgetRange = BudgetRange.FROM_15000_TO_30000,
        category: ProjectCategory = ProjectCategory.KITCHEN,
        status: ProjectStatus = ProjectStatus.OPEN,
    ) -> Project:
        project = Project(
            id=uuid.uuid4(),
            homeowner_id=owner.id,
            title=f"{CATEGORY_LABELS[category]} project",
            category=category.value,
            category_name=CATEGORY_LABELS[category],
            property_type="house",
            ownership_status="own",
            budget_range=budget.value,
            budget_label=budget_label_for(budget),
            preferred_start_date="within_month",
            city="Toronto",
            credit_cost=credit_cost_for(budget),
            status=status.value,
        )
        project.private_details = ProjectPrivateDetails(
            homeowner_name=owner.full_name,
            homeowner_email=owner.email,
            homeowner_phone=owner.phone,
            full_description="Gut and rebuild the kitchen, including new cabinets and counters.",
            street_address="42 Maple Ave",
            unit="",
            province="Ontario",
            postal_code="M4E 1A1",
            scope_of_work=["Demolition", "Cabinets"],
        )
        db_session.add(project)
        await db_session.flush()
        return project

    return _make


# ---------- Users ----------


@pytest.fixture
async def homeowner_user(db_session):
    user = User(
        id=uuid.uuid4(),
        email=f"homeowner_{uuid.uuid4().hex[:8]}@test.com",
        hashed_password=get_password_hash(PASSWORD),
        full_name="Test Homeowner",
        phone="416-555-0101",
        role=UserRole.HOMEOWNER.value,
    )
    db_session.add(user)
    await db_session.flush()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def admin_user(db_session):
    user = User(
        id=uuid.uuid4(),
        email=f"admin_{uuid.uuid4().hex[:8]}@test.com",
        hashed_password=get_password_hash(PASSWORD),
        full_name="Test Admin",
        role=UserRole.ADMIN.value,
    )
    db_session.add(user)
    await db_session.flush()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def contractor_user(make_contractor):
    return await make_contractor(balance=10)


@pytest.fixture
async def pending_contractor(make_contractor):
    return await make_contractor(
        balance=10, status=VerificationStatus.PENDING, company_name="Pending Builders"
    )


@pytest.fixture
async def project(make_project, homeowner_user):
    return await make_project(homeowner_user)


# ---------- Auth headers ----------


def _headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}


@pytest.fixture
def auth_headers(homeowner_user):
    return _headers(homeowner_user)


@pytest.fixture
def contractor_headers(contractor_user):
    return _headers(contractor_user)


@pytest.fixture
def pending_headers(pending_contractor):
    return _headers(pending_contractor)


@pytest.fixture
def admin_headers(admin_user):
    return _headers(admin_user)


@pytest.fixture
def headers_for():
    return _headers
