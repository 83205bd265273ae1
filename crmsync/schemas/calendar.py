"""Calendar schemas."""

from datetime import date, datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

from crmsync.schemas.common import CamelModel


class CalendarAttendee(BaseModel):
    """An attendee as reported by Google Calendar."""

    email: str
    display_name: str | None = None


class CalendarEvent(BaseModel):
    """A Google Calendar event reduced to the fields the CRM uses."""

    id: str
    summary: str | None = None
    description: str | None = None
    start: datetime | None = None
    end: datetime | None = None
    attendees: list[CalendarAttendee] = []
    hangout_link: str | None = None

    # Untouched provider payload, served by the calendar proxy endpoint
    raw: dict[str, Any] = Field(default_factory=dict, exclude=True)

    @property
    def start_date(self) -> date:
        """Date the event happened on, today when Google gave no start."""
        if self.start is None:
            return datetime.now(timezone.utc).date()
        return self.start.date()


class TimeRange(BaseModel):
    start: datetime
    end: datetime


class CalendarEventsResponse(CamelModel):
    success: bool = True
    data: list[dict[str, Any]]
    view: Literal["day", "week", "month"]
    time_range: TimeRange


class EventDetailResponse(BaseModel):
    success: bool = True
    data: dict[str, Any]
    message: str | None = None


class EventUpdate(BaseModel):
    """Editable event fields; ``notes`` is stored locally, the rest on Google."""

    summary: str | None = None
    description: str | None = None
    location: str | None = None
    start: datetime | None = None
    end: datetime | None = None
    notes: str | None = None


class EventSnapshot(BaseModel):
    """Provider-owned fields of an event as stored locally.

    ``notes`` is a local annotation; leaving it as None keeps whatever notes the
    stored row already has.
    """

    google_event_id: str
    summary: str | None = None
    description: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    attendees_emails: list[str] = []
    hangout_link: str | None = None
    notes: str | None = None

    @property
    def attendees_count(self) -> int:
        return len(self.attendees_emails)

    @classmethod
    def from_calendar_event(cls, event: CalendarEvent, notes: str | None = None) -> "EventSnapshot":
        return cls(
            google_event_id=event.id,
            summary=event.summary,
            description=event.description,
            start_time=_naive_utc(event.start),
            end_time=_naive_utc(event.end),
            attendees_emails=[attendee.email.lower() for attendee in event.attendees],
            hangout_link=event.hangout_link,
            notes=notes,
        )


def _naive_utc(value: datetime | None) -> datetime | None:
    # Timestamps are stored as naive UTC
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
