import uuid

import pytest
from sqlalchemy import select

from renolink.db.models.audit import AuditLog


@pytest.mark.asyncio
async def test_admin_only(client, auth_headers, contractor_headers):
    for headers in (auth_headers, contractor_headers):
        response = await client.get("/api/v1/admin/stats", headers=headers)
        assert response.status_code == 403


@pytest.mark.asyncio
async def test_platform_stats(client, admin_headers, contractor_user, pending_contractor, project):
    response = await client.get("/api/v1/admin/stats", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["users_by_role"] == {"admin": 1, "contractor": 2, "homeowner": 1}
    assert data["total_users"] == 4
    assert data["verified_contractors"] == 1
    assert data["pending_contractors"] == 1
    assert data["credits_in_circulation"] == 20
    assert data["total_projects"] == 1
    assert data["projects_by_status"] == {"open": 1}
    assert data["unlocks"] == 0


@pytest.mark.asyncio
async def test_list_users_by_role(client, admin_headers, homeowner_user, contractor_user):
    response = await client.get("/api/v1/admin/users", headers=admin_headers, params={"role": "homeowner"})
    assert response.status_code == 200
    assert [u["id"] for u in response.json()] == [str(homeowner_user.id)]


@pytest.mark.asyncio
async def test_list_contractors_filter_and_search(client, admin_headers, contractor_user, pending_contractor):
    response = await client.get(
        "/api/v1/admin/contractors", headers=admin_headers, params={"status": "pending"}
    )
    assert [u["company_name"] for u in response.json()] == ["Pending Builders"]

    response = await client.get(
        "/api/v1/admin/contractors", headers=admin_headers, params={"search": "  renovations "}
    )
    assert [u["id"] for u in response.json()] == [str(contractor_user.id)]

    response = await client.get(
        "/api/v1/admin/contractors", headers=admin_headers, params={"search": "123456789"}
    )
    assert len(response.json()) == 2


@pytest.mark.asyncio
async def test_approve_then_reject_contractor(client, db_session, admin_headers, admin_user, pending_contractor):
    url = f"/api/v1/admin/contractors/{pending_contractor.id}/verification"

    response = await client.post(url, headers=admin_headers, json={"decision": "approved", "notes": " Docs ok "})
    assert response.status_code == 200
    data = response.json()
    assert data["verification_status"] == "approved"
    assert data["verified_at"] is not None
    assert data["admin_notes"] == "Docs ok"

    response = await client.post(url, headers=admin_headers, json={"decision": "rejected"})
    data = response.json()
    assert data["verification_status"] == "rejected"
    assert data["verified_at"] is None
    assert data["admin_notes"] is None

    result = await db_session.execute(
        select(AuditLog).where(AuditLog.entity_id == pending_contractor.id).order_by(AuditLog.created_at)
    )
    entries = result.scalars().all()
    assert [e.action for e in entries] == ["verification_approved", "verification_rejected"]
    assert entries[0].actor_id == admin_user.id
    assert entries[1].diff["from"] == "approved"


@pytest.mark.asyncio
async def test_verification_rejects_bad_input(client, admin_headers, homeowner_user, pending_contractor):
    response = await client.post(
        f"/api/v1/admin/contractors/{homeowner_user.id}/verification",
        headers=admin_headers,
        json={"decision": "approved"},
    )
    assert response.status_code == 400

    response = await client.post(
        f"/api/v1/admin/contractors/{pending_contractor.id}/verification",
        headers=admin_headers,
        json={"decision": "pending"},
    )
    assert response.status_code == 422

    response = await client.post(
        f"/api/v1/admin/contractors/{uuid.uuid4()}/verification",
        headers=admin_headers,
        json={"decision": "approved"},
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_approved_contractor_can_unlock(client, admin_headers, pending_headers, project):
    url = f"/api/v1/marketplace/projects/{project.id}/unlock"
    assert (await client.post(url, headers=pending_headers)).status_code == 403

    response = await client.get("/api/v1/admin/contractors", headers=admin_headers, params={"status": "pending"})
    contractor_id = response.json()[0]["id"]
    await client.post(
        f"/api/v1/admin/contractors/{contractor_id}/verification",
        headers=admin_headers,
        json={"decision": "approved"},
    )
    assert (await client.post(url, headers=pending_headers)).status_code == 201


@pytest.mark.asyncio
async def test_deactivate_and_activate(client, admin_headers, admin_user, homeowner_user, auth_headers):
    response = await client.patch(f"/api/v1/admin/users/{homeowner_user.id}/deactivate", headers=admin_headers)
    assert response.status_code == 204
    assert homeowner_user.is_active is False

    response = await client.get("/api/v1/auth/me", headers=auth_headers)
    assert response.status_code == 403

    response = await client.patch(f"/api/v1/admin/users/{homeowner_user.id}/activate", headers=admin_headers)
    assert response.status_code == 204
    response = await client.get("/api/v1/auth/me", headers=auth_headers)
    assert response.status_code == 200

    response = await client.patch(f"/api/v1/admin/users/{admin_user.id}/deactivate", headers=admin_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_ledger_drift_report(client, db_session, admin_headers, contractor_user, make_contractor):
    await make_contractor(balance=3)
    response = await client.get("/api/v1/admin/ledger/drift", headers=admin_headers)
    assert response.json() == []

    contractor_user.credit_balance = 25
    await db_session.flush()

    response = await client.get("/api/v1/admin/ledger/drift", headers=admin_headers)
    reports = response.json()
    assert len(reports) == 1
    assert reports[0]["contractor_id"] == str(contractor_user.id)
    assert reports[0]["drift"] == 15

    response = await client.get(f"/api/v1/admin/ledger/{contractor_user.id}", headers=admin_headers)
    assert response.json()["ledger_total"] == 10
    audit = await db_session.execute(
        select(AuditLog).where(AuditLog.entity_id == contractor_user.id, AuditLog.action == "ledger_drift")
    )
    assert audit.scalar_one().diff["drift"] == 15


@pytest.mark.asyncio
async def test_refund_unlock(client, admin_headers, contractor_headers, contractor_user, project):
    await client.post(f"/api/v1/marketplace/projects/{project.id}/unlock", headers=contractor_headers)
    assert contractor_user.credit_balance == 5

    url = f"/api/v1/admin/ledger/{contractor_user.id}/refund"
    body = {"project_id": str(project.id), "reason": "Homeowner unreachable"}
    response = await client.post(url, headers=admin_headers, json=body)
    assert response.status_code == 201
    assert response.json()["type"] == "refund"
    assert response.json()["credit_delta"] == 5
    assert contractor_user.credit_balance == 10

    response = await client.post(url, headers=admin_headers, json=body)
    assert response.status_code == 409

    # The grant survives the refund
    response = await client.get(f"/api/v1/marketplace/projects/{project.id}", headers=contractor_headers)
    assert response.json()["is_unlocked"] is True

    response = await client.get(f"/api/v1/admin/ledger/{contractor_user.id}", headers=admin_headers)
    assert response.json()["drift"] == 0
