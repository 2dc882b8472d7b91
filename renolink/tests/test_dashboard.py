import pytest

from renolink.common.security import create_access_token


def _cookie(user):
    return {"Cookie": f"access_token={create_access_token({'sub': str(user.id)})}"}


@pytest.mark.asyncio
async def test_contractor_dashboard(client, contractor_headers, project):
    await client.post(f"/api/v1/marketplace/projects/{project.id}/unlock", headers=contractor_headers)

    response = await client.get("/api/v1/dashboard", headers=contractor_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["role"] == "contractor"
    assert data["homeowner"] is None
    assert data["contractor"]["credit_balance"] == 5
    assert data["contractor"]["unlocked_projects"] == 1
    assert data["contractor"]["open_projects"] == 1
    assert data["contractor"]["verification_status"] == "approved"


@pytest.mark.asyncio
async def test_homeowner_dashboard(client, auth_headers, contractor_headers, project):
    await client.post(f"/api/v1/marketplace/projects/{project.id}/unlock", headers=contractor_headers)
    conversation = (
        await client.post("/api/v1/conversations", headers=contractor_headers, json={"project_id": str(project.id)})
    ).json()
    await client.post(
        f"/api/v1/conversations/{conversation['id']}/messages", headers=contractor_headers, json={"content": "Hi"}
    )

    response = await client.get("/api/v1/dashboard", headers=auth_headers)
    data = response.json()
    assert data["unread_messages"] == 1
    assert data["homeowner"]["total_projects"] == 1
    assert data["homeowner"]["projects_by_status"] == {"open": 1}
    assert data["homeowner"]["conversations"] == 1

    response = await client.get("/api/v1/dashboard/contractor", headers=auth_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_dashboard(client, admin_headers, contractor_user):
    response = await client.get("/api/v1/dashboard", headers=admin_headers)
    data = response.json()
    assert data["role"] == "admin"
    assert data["platform"]["verified_contractors"] == 1


# ---------- Pages ----------


@pytest.mark.asyncio
async def test_public_pages(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert "RenoLink" in response.text

    response = await client.get("/register", params={"kind": "contractor"})
    assert "Contractor registration" in response.text

    response = await client.get("/register", params={"kind": "admin"})
    assert "Homeowner registration" in response.text


@pytest.mark.asyncio
async def test_dashboard_requires_session(client):
    for path in ("/dashboard", "/dashboard/homeowner", "/dashboard/contractor/credits"):
        response = await client.get(path)
        assert response.status_code == 303
        assert response.headers["location"] == "/login"


@pytest.mark.asyncio
async def test_dashboard_routes_by_role(client, homeowner_user, contractor_user):
    response = await client.get("/dashboard", headers=_cookie(contractor_user))
    assert response.status_code == 303
    assert response.headers["location"] == "/dashboard/contractor"

    response = await client.get("/login", headers=_cookie(homeowner_user))
    assert response.headers["location"] == "/dashboard/homeowner"

    response = await client.get("/dashboard/contractor/credits", headers=_cookie(contractor_user))
    assert response.status_code == 200
    assert "10 credits" in response.text
    assert 'data-section="credits"' in response.text

    # Wrong role goes back to sign in
    response = await client.get("/dashboard/contractor", headers=_cookie(homeowner_user))
    assert response.status_code == 303
    assert response.headers["location"] == "/login"


@pytest.mark.asyncio
async def test_unknown_dashboard_section(client, homeowner_user):
    response = await client.get("/dashboard/homeowner/ledger", headers=_cookie(homeowner_user))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_health_and_request_headers(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "X-Request-ID" in response.headers
    assert "X-Request-Duration-Ms" in response.headers
