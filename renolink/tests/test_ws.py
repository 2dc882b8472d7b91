import asyncio
import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from starlette.testclient import TestClient

from renolink.api.deps import get_session_factory
from renolink.common.enums import UserRole, VerificationStatus
from renolink.common.events import bus
from renolink.common.security import create_access_token, get_password_hash
from renolink.core.messaging.service import conversation_key
from renolink.db.base import Base
from renolink.db.models.conversation import Conversation
from renolink.db.models.project import Project
from renolink.db.models.user import User


def _user(role: UserRole, name: str, **extra) -> User:
    return User(
        id=uuid.uuid4(),
        email=f"{name.lower().replace(' ', '_')}_{uuid.uuid4().hex[:6]}@test.com",
        hashed_password=get_password_hash("Testpass123"),
        full_name=name,
        role=role.value,
        **extra,
    )


def _conversation(contractor: User, homeowner: User, project: Project) -> Conversation:
    return Conversation(
        conversation_key=conversation_key(contractor.id, project.id),
        contractor_id=contractor.id,
        homeowner_id=homeowner.id,
        project_id=project.id,
        homeowner_name=homeowner.full_name,
        contractor_name=contractor.company_name,
        project_category=project.category_name,
    )


async def _seed(sessions):
    homeowner = _user(UserRole.HOMEOWNER, "Live Homeowner")
    contractor = _user(
        UserRole.CONTRACTOR, "Live Contractor",
        company_name="Live Renovations", verification_status=VerificationStatus.APPROVED.value,
    )
    outsider = _user(
        UserRole.CONTRACTOR, "Other Contractor",
        company_name="Other Builders", verification_status=VerificationStatus.APPROVED.value,
    )
    project = Project(
        id=uuid.uuid4(),
        homeowner_id=homeowner.id,
        title="Kitchen project",
        category="kitchen",
        category_name="Kitchen Renovation",
        property_type="house",
        budget_range="15000_30000",
        budget_label="$15,000 - $30,000",
        preferred_start_date="within_month",
        city="Toronto",
        credit_cost=5,
        status="open",
    )
    own = _conversation(contractor, homeowner, project)
    foreign = _conversation(outsider, homeowner, project)
    async with sessions() as db:
        db.add_all([homeowner, contractor, outsider])
        await db.flush()
        db.add(project)
        await db.flush()
        db.add_all([own, foreign])
        await db.commit()
    return {"contractor": contractor, "own": own, "foreign": foreign}


@pytest.fixture
def live(tmp_path):
    """App wired to a file database that both HTTP requests and the socket can reach."""
    from renolink.main import app

    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'live.db'}", poolclass=NullPool)
    sessions = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def _setup():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        return await _seed(sessions)

    seeded = asyncio.run(_setup())
    app.dependency_overrides[get_session_factory] = lambda: sessions

    with TestClient(app) as client:
        yield client, seeded

    app.dependency_overrides.clear()
    asyncio.run(engine.dispose())


def _token(user: User) -> str:
    return create_access_token({"sub": str(user.id)})


def test_user_topic_receives_committed_balance_change(live):
    client, seeded = live
    contractor = seeded["contractor"]
    token = _token(contractor)

    with client.websocket_connect(f"/api/v1/ws?token={token}") as ws:
        hello = ws.receive_json()
        assert hello["event"] == "connected"
        assert hello["data"]["topics"] == [f"user:{contractor.id}"]

        response = client.post(
            "/api/v1/credits/purchase",
            headers={"Authorization": f"Bearer {token}"},
            json={"package_id": "starter"},
        )
        assert response.status_code == 201

        message = ws.receive_json()
        assert message["event"] == "credits.balance_changed"
        assert message["topic"] == f"user:{contractor.id}"
        assert message["data"]["credit_balance"] == 10
        assert message["data"]["delta"] == 10
        assert message["data"]["reason"] == "purchase"


def test_subscribe_only_to_own_conversations(live):
    client, seeded = live

    with client.websocket_connect(f"/api/v1/ws?token={_token(seeded['contractor'])}") as ws:
        ws.receive_json()

        ws.send_json({"action": "subscribe", "conversation_id": str(seeded["foreign"].id)})
        assert ws.receive_json() == {"event": "error", "data": {"message": "Conversation not found"}}

        ws.send_json({"action": "subscribe", "conversation_id": "not-a-uuid"})
        assert ws.receive_json()["event"] == "error"

        ws.send_json({"action": "subscribe", "conversation_id": str(seeded["own"].id)})
        reply = ws.receive_json()
        assert reply == {"event": "subscribed", "data": {"topic": f"conversation:{seeded['own'].id}"}}

        ws.send_json({"action": "ping"})
        assert ws.receive_json()["event"] == "pong"

        ws.send_json({"action": "dance"})
        assert ws.receive_json()["data"]["message"] == "Unknown action: dance"


def test_disconnect_cancels_every_subscription(live):
    client, seeded = live
    before = bus.subscriber_count()

    with client.websocket_connect(f"/api/v1/ws?token={_token(seeded['contractor'])}") as ws:
        ws.receive_json()
        ws.send_json({"action": "subscribe", "conversation_id": str(seeded["own"].id)})
        ws.receive_json()
        assert bus.subscriber_count() == before + 2

    assert bus.subscriber_count() == before
