"""
ART Job Board - API Integration Tests

End-to-end tests through the FastAPI app using httpx.
"""

import pytest
from httpx import AsyncClient

from jobboard.models.client import Client
from jobboard.models.project import Project
from jobboard.models.user import User


pytestmark = pytest.mark.asyncio

TEST_PASSWORD = "TestPassword123"


# ===========================================
# HEALTH & AUTH
# ===========================================

async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_requires_authentication(client: AsyncClient):
    response = await client.get("/api/v1/projects")
    assert response.status_code == 401
    assert response.json()["detail"]["code"] == "UNAUTHORIZED"


async def test_login_and_me(client: AsyncClient, admin_user: User):
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": admin_user.email, "password": TEST_PASSWORD},
    )
    assert response.status_code == 200
    token = response.json()["tokens"]["access_token"]

    me = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["role"] == "Admin"


async def test_login_wrong_password(client: AsyncClient, admin_user: User):
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": admin_user.email, "password": "not-the-password1"},
    )
    assert response.status_code == 401


async def test_register_creates_elite_client(client: AsyncClient, admin_headers):
    response = await client.post(
        "/api/v1/auth/register",
        json={
            "email": "owner@newroofs.com.au",
            "password": "Shingles2026",
            "first_name": "Casey",
            "last_name": "Owner",
            "company_name": "New Roofs Pty Ltd",
            "timezone": "Australia/Perth",
        },
    )
    assert response.status_code == 201
    user = response.json()["user"]
    assert user["role"] == "User"

    client_response = await client.get(f"/api/v1/clients/{user['client_id']}", headers=admin_headers)
    assert client_response.json()["loyalty_tier"] == "Elite"


# ===========================================
# PROJECTS
# ===========================================

async def test_portal_user_requests_estimate(client: AsyncClient, portal_headers, test_client_account: Client):
    response = await client.post(
        "/api/v1/projects",
        json={"name": "7 Bay Rd", "address": "7 Bay Rd, Manly NSW", "posting_date": "2026-10-02"},
        headers=portal_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["project_number"] == "26-10-001"
    assert data["client_id"] == str(test_client_account.id)
    assert data["estimate_status"] == "Estimate Requested"
    assert data["project_status"] == "Estimate Requested"
    assert data["estimate_sent"] == []


async def test_project_numbers_are_sequential(client: AsyncClient, admin_headers, test_client_account: Client):
    numbers = []
    for name in ("A", "B"):
        response = await client.post(
            "/api/v1/projects",
            json={"name": name, "client_id": str(test_client_account.id), "posting_date": "2026-11-15"},
            headers=admin_headers,
        )
        numbers.append(response.json()["project_number"])
    assert numbers == ["26-11-001", "26-11-002"]


async def test_staff_must_name_client(client: AsyncClient, admin_headers):
    response = await client.post("/api/v1/projects", json={"name": "Orphan"}, headers=admin_headers)
    assert response.status_code == 422


async def test_portal_user_cannot_see_other_clients(
    client: AsyncClient, db_session, portal_headers, other_client_account: Client
):
    from datetime import date
    project = Project(
        project_number="26-03-050",
        name="Elsewhere",
        client_id=other_client_account.id,
        posting_date=date(2026, 3, 5),
        estimate_sent=[],
    )
    db_session.add(project)
    await db_session.commit()

    response = await client.get(f"/api/v1/projects/{project.id}", headers=portal_headers)
    assert response.status_code == 404

    listing = await client.get("/api/v1/projects", headers=portal_headers)
    assert listing.json()["total"] == 0


async def test_send_estimate_flow(
    client: AsyncClient, test_project: Project, admin_headers, estimator_headers, portal_headers
):
    url = f"/api/v1/projects/{test_project.id}"

    response = await client.post(f"{url}/status", json={"status": "Sent"}, headers=admin_headers)
    assert response.status_code == 200
    body = response.json()
    project = body["project"]
    assert project["estimate_status"] == "Sent"
    assert project["project_status"] == "Estimate Completed"
    assert project["pricing_snapshot"]["price_each"] == 70.0
    assert project["pricing_snapshot"]["total_price"] == 140.0
    assert project["pricing_snapshot"]["loyalty_tier"] == "Elite"
    assert len(project["estimate_sent"]) == 1
    assert project["date_completed"] is not None
    assert body["email_sent"] is True

    # Pricing inputs are frozen for estimators
    locked = await client.patch(url, json={"qty": 5}, headers=estimator_headers)
    assert locked.status_code == 403
    assert locked.json()["detail"]["code"] == "ESTIMATE_LOCKED"

    # Notes are still editable
    notes = await client.patch(url, json={"notes": "Gutters extra"}, headers=estimator_headers)
    assert notes.status_code == 200

    pricing = await client.get(f"{url}/pricing", headers=portal_headers)
    assert pricing.status_code == 200
    assert pricing.json()["source"] == "snapshot"
    assert pricing.json()["total_price"] == 140.0

    # Client moves the job along
    approved = await client.post(f"{url}/client-status", json={"client_status": "Approved"}, headers=portal_headers)
    assert approved.status_code == 200
    assert approved.json()["project_status"] == "Approved"
    assert approved.json()["status"] == "Estimate Completed"

    # Re-send keeps the snapshot and resets the client status
    resent = await client.post(f"{url}/status", json={"status": "Sent"}, headers=admin_headers)
    project = resent.json()["project"]
    assert len(project["estimate_sent"]) == 2
    assert project["pricing_snapshot"]["price_each"] == 70.0
    assert project["client_status"] is None
    assert project["project_status"] == "Estimate Completed"

    # Cancelling clears the snapshot but keeps the send history
    cancelled = await client.post(f"{url}/status", json={"status": "Cancelled"}, headers=portal_headers)
    project = cancelled.json()["project"]
    assert project["estimate_status"] == "Cancelled"
    assert project["pricing_snapshot"] is None
    assert project["date_completed"] is None
    assert len(project["estimate_sent"]) == 2


async def test_estimator_cannot_send(client: AsyncClient, test_project: Project, estimator_headers):
    response = await client.post(
        f"/api/v1/projects/{test_project.id}/status",
        json={"status": "Sent"},
        headers=estimator_headers,
    )
    assert response.status_code == 403
    assert response.json()["detail"]["code"] == "TRANSITION_FORBIDDEN"


async def test_estimator_completion_redirected(client: AsyncClient, test_project: Project, estimator_headers):
    response = await client.post(
        f"/api/v1/projects/{test_project.id}/status",
        json={"status": "Estimate Completed"},
        headers=estimator_headers,
    )
    assert response.status_code == 200
    assert response.json()["redirected"] is True
    assert response.json()["project"]["estimate_status"] == "Awaiting Review"


async def test_stale_version_rejected(client: AsyncClient, test_project: Project, admin_headers):
    response = await client.post(
        f"/api/v1/projects/{test_project.id}/status",
        json={"status": "Sent", "expected_version": test_project.version + 1},
        headers=admin_headers,
    )
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "VERSION_CONFLICT"


async def test_send_requires_quantity(client: AsyncClient, db_session, test_project: Project, admin_headers):
    test_project.qty = None
    await db_session.commit()

    response = await client.post(
        f"/api/v1/projects/{test_project.id}/status",
        json={"status": "Sent"},
        headers=admin_headers,
    )
    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "INVALID_AMOUNT"


# ===========================================
# LOYALTY & PRICING
# ===========================================

async def test_loyalty_admin_endpoints(client: AsyncClient, test_client_account: Client, admin_headers, estimator_headers):
    base = f"/api/v1/loyalty/clients/{test_client_account.id}"

    forbidden = await client.post(f"{base}/manual-tier", json={"tier": "Pro"}, headers=estimator_headers)
    assert forbidden.status_code == 403

    manual = await client.post(f"{base}/manual-tier", json={"tier": "Pro", "reason": "Trial"}, headers=admin_headers)
    assert manual.status_code == 200
    assert manual.json()["loyalty_tier"] == "Pro"
    assert manual.json()["manual_tier_override"] is True

    months = await client.post(f"{base}/protection-months", json={"delta": 2}, headers=admin_headers)
    assert months.json()["protection_months"] == 2
    assert months.json()["protection_tier"] == "Pro"

    cashback = await client.post(f"{base}/cashback/apply", json={"amount": 10}, headers=admin_headers)
    assert cashback.status_code == 422
    assert cashback.json()["detail"]["code"] == "INSUFFICIENT_CASHBACK"

    evaluation = await client.post(f"{base}/evaluate", json={"month": "2026-02"}, headers=admin_headers)
    assert evaluation.status_code == 200
    assert evaluation.json()["skipped"] is False
    assert evaluation.json()["units"] == 0

    state = await client.get(base, headers=estimator_headers)
    assert [m["month"] for m in state.json()["monthly_history"]] == ["2026-02"]


async def test_plan_types(client: AsyncClient, portal_headers):
    response = await client.get("/api/v1/pricing/plan-types", params={"tier": "Pro"}, headers=portal_headers)
    assert response.status_code == 200
    standard = next(p for p in response.json() if p["label"] == "Standard")
    assert standard["tiers"][0]["AUD"] == 80
    assert standard["tiers"][0]["USD"] == 60


async def test_convert(client: AsyncClient, portal_headers):
    response = await client.get(
        "/api/v1/pricing/convert",
        params={"amount": 80, "from": "AUD", "to": "USD"},
        headers=portal_headers,
    )
    assert response.status_code == 200
    assert response.json()["converted"] == 60

    bad = await client.get(
        "/api/v1/pricing/convert",
        params={"amount": 80, "from": "AUD", "to": "GBP"},
        headers=portal_headers,
    )
    assert bad.status_code == 422
    assert bad.json()["detail"]["code"] == "INVALID_CURRENCY"
