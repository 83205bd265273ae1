"""Test the calendar sync pass."""

from datetime import timedelta

import pytest

from crmsync.core.sync_orchestrator import SyncOrchestrator, is_valid_email
from crmsync.exceptions import AuthExpiredError, StoreError, ValidationError
from crmsync.services.contact_store import ContactStore


def test_is_valid_email():
    assert is_valid_email("person@example.com")
    assert not is_valid_email("not-an-email")
    assert not is_valid_email("")
    assert not is_valid_email(None)


@pytest.mark.asyncio
async def test_two_events_shared_attendee(store: ContactStore, fake_calendar, make_event):
    fake_calendar.events = [
        make_event("evt-a", [("x@ex.com", "Xavier"), ("y@ex.com", "Yolanda")]),
        make_event("evt-b", [("x@ex.com", None)]),
    ]

    result = await SyncOrchestrator(fake_calendar, store).run(7)

    assert result.events_processed == 2
    assert [c.email for c in result.new_contacts] == ["x@ex.com", "y@ex.com"]
    assert result.total_contacts == 2
    assert result.errors == []

    x = await store.get_by_email("x@ex.com")
    y = await store.get_by_email("y@ex.com")
    assert x.meeting_count == 2
    assert x.name == "Xavier"
    assert y.meeting_count == 1

    assert (await store.get_event("evt-a")).attendees_count == 2
    assert (await store.get_event("evt-b")).attendees_count == 1


@pytest.mark.asyncio
async def test_window_covers_requested_days(store: ContactStore, fake_calendar):
    await SyncOrchestrator(fake_calendar, store).run(3)

    time_min, time_max = fake_calendar.windows[0]
    assert time_max - time_min == timedelta(days=3)


@pytest.mark.asyncio
async def test_default_window(store: ContactStore, fake_calendar):
    await SyncOrchestrator(fake_calendar, store).run()

    time_min, time_max = fake_calendar.windows[0]
    assert time_max - time_min == timedelta(days=7)


@pytest.mark.asyncio
@pytest.mark.parametrize("days", [0, -1, 31])
async def test_days_out_of_range(store: ContactStore, fake_calendar, days):
    with pytest.raises(ValidationError):
        await SyncOrchestrator(fake_calendar, store).run(days)
    assert fake_calendar.windows == []


@pytest.mark.asyncio
async def test_invalid_attendee_emails_skipped(store: ContactStore, fake_calendar, make_event):
    fake_calendar.events = [
        make_event("evt-a", [("room-42", "Board Room"), ("ok@ex.com", "Okay")]),
    ]

    result = await SyncOrchestrator(fake_calendar, store).run(7)

    assert [c.email for c in result.new_contacts] == ["ok@ex.com"]
    assert result.total_contacts == 1
    assert result.errors == []


@pytest.mark.asyncio
async def test_failed_attendee_does_not_stop_pass(
    store: ContactStore, fake_calendar, make_event, monkeypatch
):
    upsert = store.upsert_from_attendance

    async def flaky_upsert(email, display_name, event_date):
        if email == "bad@ex.com":
            raise StoreError("Failed to record attendance", details="disk full")
        return await upsert(email, display_name, event_date)

    monkeypatch.setattr(store, "upsert_from_attendance", flaky_upsert)
    fake_calendar.events = [
        make_event("evt-a", [("bad@ex.com", None), ("good@ex.com", "Good")]),
    ]

    result = await SyncOrchestrator(fake_calendar, store).run(7)

    assert [c.email for c in result.new_contacts] == ["good@ex.com"]
    assert len(result.errors) == 1
    assert "bad@ex.com" in result.errors[0]
    assert result.events_processed == 1


@pytest.mark.asyncio
async def test_auth_failure_aborts_pass(store: ContactStore, unauthenticated_calendar):
    with pytest.raises(AuthExpiredError):
        await SyncOrchestrator(unauthenticated_calendar, store).run(7)

    assert await store.count() == 0


@pytest.mark.asyncio
async def test_auto_tags_new_external_contacts(
    store: ContactStore, fake_calendar, make_event, monkeypatch
):
    monkeypatch.setattr(store.settings, "auto_tag_new_leads", True)
    fake_calendar.events = [
        make_event("evt-a", [("lead@ex.com", "Lead"), ("me@acme.com", "Me")]),
    ]

    await SyncOrchestrator(fake_calendar, store).run(7)

    assert (await store.get_by_email("lead@ex.com")).tags == ["New Lead"]
    assert (await store.get_by_email("me@acme.com")).tags == []


@pytest.mark.asyncio
async def test_existing_contact_not_reported_again(store: ContactStore, fake_calendar, make_event):
    await store.create_contact("known@ex.com", name="Known")
    fake_calendar.events = [make_event("evt-a", [("known@ex.com", None)])]

    result = await SyncOrchestrator(fake_calendar, store).run(7)

    assert result.new_contacts == []
    assert (await store.get_by_email("known@ex.com")).meeting_count == 1
