"""Sync schemas."""

from datetime import date

from pydantic import Field

from crmsync.schemas.common import CamelModel


class SyncRequest(CamelModel):
    days: int | None = Field(default=None, ge=1)


class NewContact(CamelModel):
    email: str
    name: str | None = None
    first_seen: date


class SyncResult(CamelModel):
    """Outcome of one sync pass."""

    new_contacts: list[NewContact] = []
    total_contacts: int = 0
    events_processed: int = 0
    errors: list[str] = []


class SyncResponse(CamelModel):
    success: bool = True
    data: SyncResult
    message: str
