"""Pydantic schemas for API validation."""

from crmsync.schemas.calendar import (
    CalendarAttendee,
    CalendarEvent,
    CalendarEventsResponse,
    EventDetailResponse,
    EventSnapshot,
    EventUpdate,
    TimeRange,
)
from crmsync.schemas.common import CamelModel, ErrorResponse
from crmsync.schemas.contact import (
    ContactCreate,
    ContactEnvelope,
    ContactListResponse,
    ContactResponse,
    NewContactsResponse,
    TagCount,
    TaggedContactsResponse,
    TagListResponse,
    TagsUpdate,
)
from crmsync.schemas.sync import NewContact, SyncRequest, SyncResponse, SyncResult

__all__ = [
    "CalendarAttendee",
    "CalendarEvent",
    "CalendarEventsResponse",
    "EventDetailResponse",
    "EventSnapshot",
    "EventUpdate",
    "TimeRange",
    "CamelModel",
    "ErrorResponse",
    "ContactCreate",
    "ContactEnvelope",
    "ContactListResponse",
    "ContactResponse",
    "NewContactsResponse",
    "TagCount",
    "TaggedContactsResponse",
    "TagListResponse",
    "TagsUpdate",
    "NewContact",
    "SyncRequest",
    "SyncResponse",
    "SyncResult",
]
