import httpx
import pytest
import pytest_asyncio

from main import app

ADMIN = {"X-User-Id": "admin-1", "X-User-Role": "admin"}
EMPLOYER = {"X-User-Id": "employer-1", "X-User-Role": "employer"}
ADMIN_BASE = "/v1/admin/compliance-calendar"
BASE = "/v1/compliance-calendar"

NEW_EVENT = {
    "title": "PF Return June",
    "notes": "Monthly provident fund return",
    "category": "PF Return",
    "due_date": "2025-06-10T00:00:00Z",
    "recurrence": "MONTHLY",
    "tags": ["pf"],
}


@pytest_asyncio.fixture
async def client(database):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def _create(client, **overrides):
    resp = await client.post(ADMIN_BASE, json={**NEW_EVENT, **overrides}, headers=ADMIN)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


@pytest.mark.asyncio
async def test_admin_creates_and_lists_events(client):
    event = await _create(client)
    assert event["category"] == "PF Return"
    assert event["is_active"] is True

    resp = await client.get(ADMIN_BASE, headers=ADMIN)
    body = resp.json()
    assert body["status_code"] == 200
    assert body["data"]["pagination"]["total"] == 1
    assert body["data"]["result"][0]["event_id"] == event["event_id"]


@pytest.mark.asyncio
async def test_admin_routes_require_admin_role(client):
    resp = await client.post(ADMIN_BASE, json=NEW_EVENT, headers=EMPLOYER)
    assert resp.status_code == 403
    assert resp.json() == {"status_code": 403, "data": None, "message": "Admin access required"}


@pytest.mark.asyncio
async def test_missing_identity_header_is_a_validation_error(client):
    resp = await client.get(BASE)
    assert resp.status_code == 400
    assert resp.json()["status_code"] == 400


@pytest.mark.asyncio
async def test_employer_status_flow(client):
    event = await _create(client)
    eid = event["event_id"]

    resp = await client.get(f"{BASE}/{eid}/status", headers=EMPLOYER)
    assert resp.json()["data"]["status"] == "UPCOMING"
    assert resp.json()["data"]["persisted"] is False

    resp = await client.post(f"{BASE}/{eid}/status", json={"status": "PAID"}, headers=EMPLOYER)
    assert resp.status_code == 400
    assert "date_paid" in resp.json()["message"]

    resp = await client.post(
        f"{BASE}/{eid}/status",
        json={"status": "PAID", "date_paid": "2025-06-09T10:00:00Z", "notes": "NEFT"},
        headers=EMPLOYER,
    )
    assert resp.status_code == 200
    assert resp.json()["message"] == "Compliance status updated to PAID"
    assert resp.json()["data"]["date_paid"].startswith("2025-06-09T10:00:00")

    resp = await client.post(f"{BASE}/{eid}/status", json={"status": "UPCOMING"}, headers=EMPLOYER)
    assert resp.status_code == 400

    resp = await client.put(
        f"{ADMIN_BASE}/{eid}/status/employer-1", json={"status": "UPCOMING"}, headers=ADMIN
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["updated_by"] == "admin-1"

    resp = await client.get(f"{BASE}/summary", headers=EMPLOYER)
    assert resp.json()["data"] == {"UPCOMING": 1, "YET_TO_PAY": 0, "PAID": 0, "MISSED": 0}


@pytest.mark.asyncio
async def test_reminders_and_detail(client):
    event = await _create(client)
    eid = event["event_id"]

    resp = await client.post(f"{BASE}/{eid}/reminders", json={"channels": ["EMAIL"]}, headers=EMPLOYER)
    assert resp.status_code == 201
    assert [r["offset"] for r in resp.json()["data"]] == ["BEFORE_7_DAYS", "BEFORE_1_DAY", "ON_DUE_DATE"]

    resp = await client.post(f"{BASE}/{eid}/reminders", headers=EMPLOYER)
    assert resp.status_code == 201
    assert resp.json()["data"] == []

    resp = await client.get(f"{BASE}/{eid}", headers=EMPLOYER)
    detail = resp.json()["data"]
    assert detail["event"]["title"] == "PF Return June"
    assert detail["status"]["persisted"] is True
    assert len(detail["reminders"]) == 3

    resp = await client.get(BASE, headers=EMPLOYER)
    entry = resp.json()["data"]["result"][0]
    assert entry["is_reminder_active"] is True
    assert entry["active_channels"] == ["EMAIL"]


@pytest.mark.asyncio
async def test_attachments_and_history(client):
    event = await _create(client)
    eid = event["event_id"]

    resp = await client.post(
        f"{BASE}/{eid}/attachments", json={"url": "https://files.example.com/challan.pdf"}, headers=EMPLOYER
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["attachments"] == ["https://files.example.com/challan.pdf"]

    resp = await client.get(f"{BASE}/history", headers=EMPLOYER)
    data = resp.json()["data"]
    assert data["pagination"]["total"] == 1
    assert data["result"][0]["title"] == "PF Return June"


@pytest.mark.asyncio
async def test_bad_ids_and_unknown_events(client):
    resp = await client.get(f"{BASE}/not-a-uuid", headers=EMPLOYER)
    assert resp.status_code == 400
    assert resp.json()["message"].startswith("Invalid compliance calendar ID")

    resp = await client.get(f"{BASE}/00000000-0000-0000-0000-0000000000aa", headers=EMPLOYER)
    assert resp.status_code == 404
    assert resp.json()["message"] == "Compliance calendar event not found"


@pytest.mark.asyncio
async def test_admin_update_delete_archive_and_analytics(client):
    event = await _create(client, due_date="2099-06-10T00:00:00Z")
    eid = event["event_id"]
    await _create(client, title="Old filing", due_date="2020-01-01T00:00:00Z")

    resp = await client.patch(f"{ADMIN_BASE}/{eid}", json={"notes": "Updated notes"}, headers=ADMIN)
    assert resp.json()["data"]["notes"] == "Updated notes"

    resp = await client.post(f"{ADMIN_BASE}/archive", params={"days_old": 365}, headers=ADMIN)
    assert resp.json()["data"] == {"archived": 1}

    resp = await client.delete(f"{ADMIN_BASE}/{eid}", headers=ADMIN)
    assert resp.json()["data"]["is_active"] is False

    resp = await client.get(f"{ADMIN_BASE}/analytics", headers=ADMIN)
    assert resp.json()["data"]["total_compliances"] == 0

    resp = await client.get(f"{BASE}/analytics", headers=EMPLOYER)
    assert resp.json()["data"]["total_assigned"] == 0


@pytest.mark.asyncio
async def test_report_endpoint(client):
    event = await _create(client)
    await client.post(f"{BASE}/{event['event_id']}/status", json={"status": "MISSED"}, headers=EMPLOYER)

    resp = await client.get(
        f"{BASE}/report",
        params={"start": "2000-01-01T00:00:00Z", "end": "2100-01-01T00:00:00Z"},
        headers=EMPLOYER,
    )
    data = resp.json()["data"]
    assert data["total_records"] == 1
    assert data["missed"] == 1


@pytest.mark.asyncio
async def test_patch_rejects_null_for_required_fields(client):
    event = await _create(client)
    eid = event["event_id"]

    for body in ({"tags": None}, {"title": None}, {"due_date": None}):
        resp = await client.patch(f"{ADMIN_BASE}/{eid}", json=body, headers=ADMIN)
        assert resp.status_code == 400, body
        assert "cannot be null" in resp.json()["message"]

    resp = await client.get(f"{ADMIN_BASE}/{eid}", headers=ADMIN)
    assert resp.json()["data"]["title"] == "PF Return June"
    assert resp.json()["data"]["tags"] == ["pf"]

    resp = await client.get(BASE, headers=EMPLOYER)
    assert resp.status_code == 200

    resp = await client.patch(f"{ADMIN_BASE}/{eid}", json={"document": None}, headers=ADMIN)
    assert resp.status_code == 200
    assert resp.json()["data"]["document"] is None


@pytest.mark.asyncio
async def test_admin_list_can_include_inactive_events(client):
    event = await _create(client)
    await client.delete(f"{ADMIN_BASE}/{event['event_id']}", headers=ADMIN)

    resp = await client.get(ADMIN_BASE, headers=ADMIN)
    assert resp.json()["data"]["pagination"]["total"] == 0

    resp = await client.get(ADMIN_BASE, params={"is_active": "all"}, headers=ADMIN)
    assert [e["is_active"] for e in resp.json()["data"]["result"]] == [False]

    resp = await client.get(ADMIN_BASE, params={"is_active": "false"}, headers=ADMIN)
    assert resp.json()["data"]["pagination"]["total"] == 1
