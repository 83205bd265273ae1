"""Single calendar event endpoints: Google data plus local notes."""

from typing import Annotated

from fastapi import APIRouter, Depends

from crmsync.api.deps import get_calendar_client, get_contact_store, read_or_default
from crmsync.schemas.calendar import EventDetailResponse, EventSnapshot, EventUpdate
from crmsync.services.contact_store import ContactStore
from crmsync.services.google_calendar import CalendarClient, parse_calendar_event, to_rfc3339

router = APIRouter()


def build_patch_body(payload: EventUpdate) -> dict:
    """Google Calendar patch body from the provider-owned fields that were set."""
    body: dict = {}
    for field in ("summary", "description", "location"):
        value = getattr(payload, field)
        if value is not None:
            body[field] = value
    if payload.start is not None:
        body["start"] = {"dateTime": to_rfc3339(payload.start)}
    if payload.end is not None:
        body["end"] = {"dateTime": to_rfc3339(payload.end)}
    return body


@router.get("/{event_id}", response_model=EventDetailResponse)
async def get_event(
    event_id: str,
    calendar: Annotated[CalendarClient, Depends(get_calendar_client)],
    store: Annotated[ContactStore, Depends(get_contact_store)],
) -> EventDetailResponse:
    """Get a Google Calendar event with its local notes."""
    event = await calendar.get_event(event_id)
    local = await read_or_default(lambda: store.get_event(event_id), None, "fetch event notes")

    return EventDetailResponse(data={**event, "notes": local.notes if local else None})


@router.post("/{event_id}", response_model=EventDetailResponse)
async def update_event(
    event_id: str,
    payload: EventUpdate,
    calendar: Annotated[CalendarClient, Depends(get_calendar_client)],
    store: Annotated[ContactStore, Depends(get_contact_store)],
) -> EventDetailResponse:
    """Patch event fields on Google and store notes locally."""
    body = build_patch_body(payload)
    if body:
        event = await calendar.patch_event(event_id, body)
    else:
        event = await calendar.get_event(event_id)

    stored = await store.upsert_event(EventSnapshot.from_calendar_event(parse_calendar_event(event)))
    if payload.notes is not None:
        stored = await store.set_event_notes(stored.google_event_id, payload.notes)

    return EventDetailResponse(
        data={**event, "notes": stored.notes},
        message="Event updated",
    )
