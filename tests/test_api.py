from decimal import Decimal

import pytest
from sqlalchemy import select

from freelancehub.models import AuditLog

LEGACY_HEADERS = {"Authorization": "Bearer test-dev-key"}


@pytest.fixture
def headers(make_headers, client_user, freelancer_user, admin_user):
    return {
        "client": make_headers(client_user),
        "freelancer": make_headers(freelancer_user),
        "admin": make_headers(admin_user),
    }


async def _create_project(client, headers, budget="1000.00"):
    response = await client.post(
        "/projects",
        json={"title": "Mobile app", "description": "Build an iOS app.", "budget": budget, "required_skills": ["swift"]},
        headers=headers["client"],
    )
    assert response.status_code == 201, response.text
    return response.json()


async def _assign(client, headers, amount="800.00"):
    project = await _create_project(client, headers)
    bid = await client.post(
        f"/projects/{project['id']}/bids",
        json={"amount": amount, "timeline": "3 weeks", "proposal": "Shipped ten apps."},
        headers=headers["freelancer"],
    )
    assert bid.status_code == 201, bid.text
    accepted = await client.post(f"/bids/{bid.json()['id']}/accept", headers=headers["client"])
    assert accepted.status_code == 200, accepted.text
    return accepted.json()


@pytest.mark.anyio
async def test_missing_api_key(client):
    response = await client.get("/projects")
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "NO_API_KEY"


@pytest.mark.anyio
async def test_unknown_api_key(client):
    response = await client.get("/projects", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "UNAUTHORIZED_KEY"


@pytest.mark.anyio
async def test_x_api_key_header_is_accepted(client, make_headers, client_user):
    token = make_headers(client_user)["Authorization"].split(" ", 1)[1]
    response = await client.get("/users/me", headers={"X-API-Key": token})
    assert response.status_code == 200
    assert response.json()["username"] == client_user.username


@pytest.mark.anyio
async def test_legacy_key_is_audited(client, db_session):
    response = await client.get("/projects", headers=LEGACY_HEADERS)
    assert response.status_code == 200
    audit = db_session.scalars(select(AuditLog).where(AuditLog.action == "LEGACY_API_KEY_USED")).first()
    assert audit is not None


@pytest.mark.anyio
async def test_legacy_key_rejected_when_disabled(client, monkeypatch):
    monkeypatch.setattr("freelancehub.security.DEV_API_KEY_ALLOWED", False)
    response = await client.get("/projects", headers=LEGACY_HEADERS)
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "LEGACY_KEY_FORBIDDEN"


@pytest.mark.anyio
async def test_admin_provisions_user_and_key(client):
    created = await client.post(
        "/users",
        json={"username": "newbie", "email": "newbie@example.com", "role": "freelancer"},
        headers=LEGACY_HEADERS,
    )
    assert created.status_code == 201, created.text
    user_id = created.json()["id"]

    issued = await client.post("/apikeys", json={"name": "newbie-cli", "user_id": user_id}, headers=LEGACY_HEADERS)
    assert issued.status_code == 201, issued.text
    raw = issued.json()["key"]

    me = await client.get("/users/me", headers={"Authorization": f"Bearer {raw}"})
    assert me.status_code == 200
    assert me.json()["role"] == "freelancer"

    revoked = await client.delete(f"/apikeys/{issued.json()['id']}", headers=LEGACY_HEADERS)
    assert revoked.status_code == 204
    me_again = await client.get("/users/me", headers={"Authorization": f"Bearer {raw}"})
    assert me_again.status_code == 401


@pytest.mark.anyio
async def test_role_errors_use_standard_payload(client, headers):
    response = await client.post(
        "/projects",
        json={"title": "x", "description": "y", "budget": "10"},
        headers=headers["freelancer"],
    )
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "UNAUTHORIZED"

    users = await client.post(
        "/users",
        json={"username": "x", "email": "x@example.com", "role": "client"},
        headers=headers["client"],
    )
    assert users.status_code == 403


@pytest.mark.anyio
async def test_request_validation_errors(client, headers):
    response = await client.post("/projects", json={"title": "Only a title"}, headers=headers["client"])
    assert response.status_code == 422
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert "body.description" in error["details"]["fields"]

    zero = await client.post(
        "/projects",
        json={"title": "Site", "description": "d", "budget": "0"},
        headers=headers["client"],
    )
    assert zero.status_code == 422
    assert zero.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.anyio
async def test_not_found(client, headers):
    response = await client.get("/projects/9999", headers=headers["client"])
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.anyio
async def test_escrow_flow_over_http(client, headers, freelancer_user):
    accepted = await _assign(client, headers)
    project_id = accepted["project"]["id"]
    bid_id = accepted["bid"]["id"]
    assert accepted["project"]["status"] == "in_progress"
    assert accepted["project"]["freelancer_id"] == freelancer_user.id
    assert [n["type"] for n in accepted["notifications"]] == ["bid_accepted"]

    funded = await client.post("/escrows", json={"project_id": project_id, "bid_id": bid_id}, headers=headers["client"])
    assert funded.status_code == 201, funded.text
    escrow = funded.json()["escrow"]
    assert escrow["status"] == "pending"
    assert Decimal(escrow["amount"]) == Decimal("800.00")

    duplicate = await client.post(
        "/escrows", json={"project_id": project_id, "bid_id": bid_id}, headers=headers["client"]
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["error"]["code"] == "CONFLICT"

    early = await client.post(
        f"/escrows/{escrow['id']}/advance", json={"status": "ready_for_release"}, headers=headers["client"]
    )
    assert early.status_code == 409
    assert early.json()["error"]["code"] == "INVALID_STATE_TRANSITION"

    completed = await client.post(f"/projects/{project_id}/complete", headers=headers["freelancer"])
    assert completed.status_code == 200
    assert completed.json()["project"]["status"] == "completed"

    approved = await client.post(
        f"/escrows/{escrow['id']}/advance", json={"status": "ready_for_release"}, headers=headers["client"]
    )
    assert approved.status_code == 200, approved.text

    by_client = await client.post(
        f"/escrows/{escrow['id']}/advance", json={"status": "released"}, headers=headers["client"]
    )
    assert by_client.status_code == 403

    released = await client.post(
        f"/escrows/{escrow['id']}/advance", json={"status": "released"}, headers=headers["admin"]
    )
    assert released.status_code == 200
    assert released.json()["escrow"]["status"] == "released"

    project = await client.get(f"/projects/{project_id}", headers=headers["client"])
    assert project.json()["status"] == "closed"

    inbox = await client.get("/notifications", headers=headers["freelancer"])
    assert [n["type"] for n in inbox.json()] == ["bid_accepted", "escrow_funds_sent", "escrow_funds_released"]

    stats = await client.get("/escrows/statistics", headers=headers["admin"])
    assert stats.status_code == 200
    assert stats.json()["by_status"]["released"] == 1

    cleared = await client.post(f"/escrows/{escrow['id']}/notifications/read", headers=headers["admin"])
    assert cleared.json()["updated"] == 2
    counts = await client.get("/notifications/counts", headers=headers["admin"])
    assert counts.json()["escrow_notifications"] == 0


@pytest.mark.anyio
async def test_settle_before_completion_is_precondition_failure(client, headers):
    accepted = await _assign(client, headers)
    response = await client.post(f"/projects/{accepted['project']['id']}/settle", headers=headers["client"])
    assert response.status_code == 412
    assert response.json()["error"]["code"] == "PRECONDITION_FAILED"


@pytest.mark.anyio
async def test_mark_read_over_http_is_idempotent(client, headers):
    await _assign(client, headers)
    inbox = await client.get("/notifications", params={"unread": True}, headers=headers["freelancer"])
    note_id = inbox.json()[0]["id"]

    first = await client.post(f"/notifications/{note_id}/read", headers=headers["freelancer"])
    second = await client.post(f"/notifications/{note_id}/read", headers=headers["freelancer"])
    assert first.status_code == second.status_code == 200
    assert first.json()["read_at"] == second.json()["read_at"]

    other = await client.post(f"/notifications/{note_id}/read", headers=headers["client"])
    assert other.status_code == 403
    assert other.json()["error"]["code"] == "FORBIDDEN"

    counts = await client.get("/notifications/counts", headers=headers["freelancer"])
    assert counts.json()["notifications"] == 0


@pytest.mark.anyio
async def test_withdraw_and_dispute_over_http(client, headers, client_user):
    accepted = await _assign(client, headers)
    project_id = accepted["project"]["id"]

    dispute = await client.post(
        "/disputes", json={"project_id": project_id, "description": "Missed milestone"}, headers=headers["client"]
    )
    assert dispute.status_code == 201, dispute.text
    dispute_id = dispute.json()["dispute"]["id"]

    closed = await client.post(f"/disputes/{dispute_id}/close", headers=headers["admin"])
    assert closed.status_code == 200
    assert {n["type"] for n in closed.json()["notifications"]} == {"dispute_closed"}
    again = await client.post(f"/disputes/{dispute_id}/close", headers=headers["admin"])
    assert again.status_code == 409

    withdrawn = await client.delete(f"/bids/{accepted['bid']['id']}", headers=headers["freelancer"])
    assert withdrawn.status_code == 200
    body = withdrawn.json()
    assert body["project"]["status"] == "open"
    assert body["project"]["freelancer_id"] is None
    assert [(n["type"], n["recipient_id"]) for n in body["notifications"]] == [("bid_cancelled", client_user.id)]


@pytest.mark.anyio
async def test_suspended_user_key_is_rejected(client, headers, freelancer_user):
    suspended = await client.post(f"/users/{freelancer_user.id}/suspend", headers=headers["admin"])
    assert suspended.status_code == 200
    assert suspended.json()["user"]["is_active"] is False

    response = await client.get("/projects", headers=headers["freelancer"])
    assert response.status_code == 401
