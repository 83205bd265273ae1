"""Durable storage of contacts and mirrored calendar events."""

import logging
from collections import Counter
from contextlib import asynccontextmanager
from datetime import date, timedelta
from typing import AsyncIterator

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from crmsync.config import NEW_LEAD_TAG, Settings, get_settings
from crmsync.exceptions import (
    DuplicateEmailError,
    NotFoundError,
    PolicyViolationError,
    StoreError,
)
from crmsync.models.contact import Contact, utcnow
from crmsync.models.event import Event
from crmsync.schemas.calendar import EventSnapshot
from crmsync.schemas.contact import TagCount

logger = logging.getLogger(__name__)

# Columns sync is allowed to overwrite on an existing event row
EVENT_PROVIDER_FIELDS = (
    "summary",
    "description",
    "start_time",
    "end_time",
    "attendees_count",
    "attendees_emails",
    "hangout_link",
)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def email_domain(email: str) -> str:
    return normalize_email(email).rsplit("@", 1)[-1]


def clean_tags(tags: list[str]) -> list[str]:
    """Strip blanks and repeated labels, keeping first-seen order."""
    cleaned: list[str] = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in cleaned:
            cleaned.append(tag)
    return cleaned


class ContactStore:
    """Upserts and queries over the ``contacts`` and ``events`` tables.

    Every mutation commits on its own, so one failed write never takes earlier
    ones with it. Insert-or-update paths use a single ``INSERT ... ON CONFLICT``
    statement and rely on the database for per-row atomicity. Any database
    failure surfaces as ``StoreError``.
    """

    def __init__(self, db: AsyncSession, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()

    @asynccontextmanager
    async def _guard(self, what: str) -> AsyncIterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error while trying to {what}: {e}")
            raise StoreError(f"Failed to {what}", details=str(e)) from e

    def _insert(self, model):
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return pg_insert(model)
        if dialect == "sqlite":
            return sqlite_insert(model)
        raise StoreError(f"Unsupported database dialect: {dialect}")

    def is_own_domain(self, email: str) -> bool:
        """True when the address belongs to the owning organization."""
        domain = self.settings.organization_domain.strip().lower().lstrip("@")
        return bool(domain) and email_domain(email) == domain

    def check_tag_policy(self, email: str, tags: list[str]) -> None:
        """Reject the reserved lead tag on the organization's own addresses."""
        if not self.is_own_domain(email):
            return
        if any(tag.casefold() == NEW_LEAD_TAG.casefold() for tag in tags):
            raise PolicyViolationError(
                f"'{NEW_LEAD_TAG}' tag cannot be applied to internal address {email}"
            )

    async def rollback(self) -> None:
        """Discard the current unit of work after a failure."""
        await self.db.rollback()

    # ------------------------------------------------------------------
    # Contacts
    # ------------------------------------------------------------------

    async def get(self, contact_id: int) -> Contact | None:
        async with self._guard("fetch contact"):
            return await self.db.get(Contact, contact_id)

    async def get_by_email(self, email: str) -> Contact | None:
        async with self._guard("fetch contact"):
            result = await self.db.execute(
                select(Contact).where(Contact.email == normalize_email(email))
            )
            return result.scalar_one_or_none()

    async def upsert_from_attendance(
        self, email: str, display_name: str | None, event_date: date
    ) -> tuple[Contact, bool]:
        """Record one meeting attendance; returns the contact and whether it is new.

        ``last_seen`` always moves to ``event_date`` and ``meeting_count`` always
        grows by one, whatever order events arrive in. A blank name never
        replaces a stored one. The contact is new only when this statement
        inserted the row, seen as ``created_at`` carrying this call's stamp.
        """
        email = normalize_email(email)
        name = (display_name or "").strip() or None
        now = utcnow()

        async with self._guard("record attendance"):
            stmt = self._insert(Contact).values(
                email=email,
                name=name,
                first_seen=event_date,
                last_seen=event_date,
                meeting_count=1,
                tags=[],
                created_at=now,
                updated_at=now,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[Contact.email],
                set_={
                    "name": func.coalesce(stmt.excluded.name, Contact.name),
                    "last_seen": stmt.excluded.last_seen,
                    "meeting_count": Contact.meeting_count + 1,
                    "updated_at": now,
                },
            )
            result = await self.db.scalars(
                stmt.returning(Contact), execution_options={"populate_existing": True}
            )
            contact = result.one()
            await self.db.commit()

        return contact, contact.created_at == now

    async def create_contact(
        self,
        email: str,
        name: str | None = None,
        tags: list[str] | None = None,
        notes: str | None = None,
    ) -> Contact:
        """Create a contact explicitly; it starts with no recorded meetings."""
        email = normalize_email(email)
        tags = clean_tags(tags or [])
        self.check_tag_policy(email, tags)

        existing = await self.get_by_email(email)
        if existing is not None:
            raise DuplicateEmailError(email, existing)

        today = utcnow().date()
        contact = Contact(
            email=email,
            name=(name or "").strip() or None,
            first_seen=today,
            last_seen=today,
            meeting_count=0,
            tags=tags,
            notes=notes,
        )

        try:
            self.db.add(contact)
            await self.db.commit()
            await self.db.refresh(contact)
        except IntegrityError as e:
            # Lost a race with a concurrent insert of the same email
            await self.db.rollback()
            raise DuplicateEmailError(email, await self._find_quietly(email)) from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreError("Failed to create contact", details=str(e)) from e

        logger.info(f"Created contact {email}")
        return contact

    async def _find_quietly(self, email: str) -> Contact | None:
        try:
            return await self.get_by_email(email)
        except StoreError:
            return None

    async def set_tags(
        self, contact_id: int, tags: list[str], notes: str | None = None
    ) -> Contact:
        """Replace a contact's tags (and notes, when given)."""
        contact = await self.get(contact_id)
        if contact is None:
            raise NotFoundError(f"Contact {contact_id} not found")

        tags = clean_tags(tags)
        self.check_tag_policy(contact.email, tags)

        async with self._guard("update tags"):
            contact.tags = tags
            if notes is not None:
                contact.notes = notes
            contact.updated_at = utcnow()
            await self.db.commit()
            await self.db.refresh(contact)

        return contact

    async def list_all(self) -> list[Contact]:
        async with self._guard("list contacts"):
            result = await self.db.execute(
                select(Contact).order_by(Contact.created_at.desc(), Contact.id.desc())
            )
            return list(result.scalars().all())

    async def list_since(self, days: int) -> list[Contact]:
        """Contacts created within the last ``days`` days."""
        cutoff = utcnow() - timedelta(days=days)
        async with self._guard("list new contacts"):
            result = await self.db.execute(
                select(Contact)
                .where(Contact.created_at >= cutoff)
                .order_by(Contact.created_at.desc(), Contact.id.desc())
            )
            return list(result.scalars().all())

    async def list_by_tag(self, tag: str) -> list[Contact]:
        # tags is JSONB on Postgres but plain JSON on SQLite; filter here to stay portable
        return [contact for contact in await self.list_all() if tag in (contact.tags or [])]

    async def count(self) -> int:
        async with self._guard("count contacts"):
            result = await self.db.execute(select(func.count(Contact.id)))
            return result.scalar_one()

    async def list_tags_with_counts(self) -> list[TagCount]:
        """Tag usage across contacts; predefined tags are always present."""
        counts: Counter[str] = Counter()
        for contact in await self.list_all():
            counts.update(contact.tags or [])

        predefined = list(dict.fromkeys(self.settings.predefined_tags))
        others = sorted(
            (tag for tag in counts if tag not in predefined),
            key=lambda tag: (-counts[tag], tag),
        )
        return [TagCount(tag=tag, count=counts.get(tag, 0)) for tag in predefined + others]

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def get_event(self, google_event_id: str) -> Event | None:
        async with self._guard("fetch event"):
            result = await self.db.execute(
                select(Event).where(Event.google_event_id == google_event_id)
            )
            return result.scalar_one_or_none()

    async def upsert_event(self, snapshot: EventSnapshot) -> Event:
        """Insert or refresh an event; local notes survive unless given."""
        now = utcnow()
        values = {
            "google_event_id": snapshot.google_event_id,
            "summary": snapshot.summary,
            "description": snapshot.description,
            "start_time": snapshot.start_time,
            "end_time": snapshot.end_time,
            "attendees_count": snapshot.attendees_count,
            "attendees_emails": snapshot.attendees_emails,
            "hangout_link": snapshot.hangout_link,
            "created_at": now,
            "updated_at": now,
        }
        if snapshot.notes is not None:
            values["notes"] = snapshot.notes

        async with self._guard("store event"):
            stmt = self._insert(Event).values(**values)
            update = {field: getattr(stmt.excluded, field) for field in EVENT_PROVIDER_FIELDS}
            update["updated_at"] = now
            if snapshot.notes is not None:
                update["notes"] = stmt.excluded.notes
            stmt = stmt.on_conflict_do_update(
                index_elements=[Event.google_event_id],
                set_=update,
            )
            result = await self.db.scalars(
                stmt.returning(Event), execution_options={"populate_existing": True}
            )
            event = result.one()
            await self.db.commit()

        return event

    async def set_event_notes(self, google_event_id: str, notes: str | None) -> Event:
        """Replace the local notes of a stored event."""
        event = await self.get_event(google_event_id)
        if event is None:
            raise NotFoundError(f"Event {google_event_id} not found")

        async with self._guard("update event notes"):
            event.notes = notes
            event.updated_at = utcnow()
            await self.db.commit()
            await self.db.refresh(event)

        return event
