"""Calendar event model mirroring Google Calendar data."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from crmsync.models.contact import TagList, utcnow
from crmsync.services.database import Base


class Event(Base):
    """Cached Google Calendar event with a local-only notes field."""

    __tablename__ = "events"

    id: Mapped[int] = mapped_column(primary_key=True)

    # Google identifiers
    google_event_id: Mapped[str] = mapped_column(String(255), unique=True, index=True)

    # Scheduling fields owned by Google
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    end_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    hangout_link: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Attendee snapshot at last sync
    attendees_count: Mapped[int] = mapped_column(Integer, default=0)
    attendees_emails: Mapped[list[str]] = mapped_column(TagList, default=list)

    # Local annotation, never overwritten by sync
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)
