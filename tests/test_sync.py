"""Test the sync endpoint."""

import pytest
from httpx import AsyncClient

from crmsync.api.deps import get_calendar_client
from crmsync.main import app


@pytest.fixture
def use_calendar():
    """Serve sync requests from the given calendar stand-in."""
    def install(calendar):
        app.dependency_overrides[get_calendar_client] = lambda: calendar
        return calendar

    return install


@pytest.mark.asyncio
async def test_sync_creates_contacts(client: AsyncClient, use_calendar, fake_calendar, make_event):
    fake_calendar.events = [
        make_event("evt-a", [("x@ex.com", "Xavier"), ("y@ex.com", "Yolanda")]),
        make_event("evt-b", [("x@ex.com", None)]),
    ]
    use_calendar(fake_calendar)

    response = await client.post("/api/sync", json={"days": 7})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Sync completed: 2 new contacts found"
    assert body["data"]["eventsProcessed"] == 2
    assert body["data"]["totalContacts"] == 2
    assert [c["email"] for c in body["data"]["newContacts"]] == ["x@ex.com", "y@ex.com"]
    assert body["data"]["errors"] == []

    contacts = (await client.get("/api/contacts")).json()["data"]
    counts = {c["email"]: c["meeting_count"] for c in contacts}
    assert counts == {"x@ex.com": 2, "y@ex.com": 1}


@pytest.mark.asyncio
async def test_sync_without_body_uses_default_window(client: AsyncClient, use_calendar, fake_calendar):
    use_calendar(fake_calendar)

    response = await client.post("/api/sync")

    assert response.status_code == 200
    time_min, time_max = fake_calendar.windows[0]
    assert (time_max - time_min).days == 7


@pytest.mark.asyncio
@pytest.mark.parametrize("days", [0, 31])
async def test_sync_rejects_bad_window(client: AsyncClient, use_calendar, fake_calendar, days):
    use_calendar(fake_calendar)

    response = await client.post("/api/sync", json={"days": days})

    assert response.status_code == 400
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_sync_requires_authentication(client: AsyncClient, use_calendar, unauthenticated_calendar):
    use_calendar(unauthenticated_calendar)

    response = await client.post("/api/sync", json={})

    assert response.status_code == 401
    body = response.json()
    assert body["success"] is False
    assert "authenticate" in body["error"]


@pytest.mark.asyncio
async def test_sync_with_real_client_and_no_credentials(
    client: AsyncClient, monkeypatch, test_settings
):
    """Nothing connected yet: the real calendar client refuses with 401."""
    monkeypatch.setattr(test_settings, "google_client_id", "client-id")
    monkeypatch.setattr(test_settings, "google_client_secret", "client-secret")

    response = await client.post("/api/sync")

    assert response.status_code == 401
