"""Calendar-to-contacts sync pass."""

import logging
from datetime import datetime, timedelta, timezone

from email_validator import EmailNotValidError, validate_email

from crmsync.config import NEW_LEAD_TAG, Settings, get_settings
from crmsync.exceptions import ValidationError
from crmsync.schemas.calendar import CalendarAttendee, CalendarEvent, EventSnapshot
from crmsync.schemas.sync import NewContact, SyncResult
from crmsync.services.contact_store import ContactStore, normalize_email
from crmsync.services.google_calendar import CalendarClient

logger = logging.getLogger(__name__)


def is_valid_email(email: str | None) -> bool:
    """Syntax-only check; no DNS lookups."""
    if not email:
        return False
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


class SyncOrchestrator:
    """Pulls recent calendar events and folds their attendees into contacts.

    Only a missing authorization or a failed event listing aborts a pass.
    Failures on a single attendee or event are rolled back, recorded in
    ``SyncResult.errors`` and the pass moves on to the next item.
    """

    def __init__(
        self,
        calendar: CalendarClient,
        store: ContactStore,
        settings: Settings | None = None,
    ):
        self.calendar = calendar
        self.store = store
        self.settings = settings or get_settings()

    def window_days(self, days: int | None) -> int:
        if days is None:
            return self.settings.sync_default_days
        if not 1 <= days <= self.settings.sync_max_days:
            raise ValidationError(
                f"days must be between 1 and {self.settings.sync_max_days}"
            )
        return days

    async def run(self, days: int | None = None) -> SyncResult:
        """Run one sync pass over the last ``days`` days."""
        days = self.window_days(days)
        time_max = datetime.now(timezone.utc)
        time_min = time_max - timedelta(days=days)

        events = await self.calendar.list_events(time_min, time_max)
        logger.info(f"Processing {len(events)} events from last {days} days")

        result = SyncResult(events_processed=len(events))
        reported: set[str] = set()

        for event in events:
            for attendee in event.attendees:
                await self._process_attendee(event, attendee, result, reported)
            await self._store_event(event, result)

        try:
            result.total_contacts = await self.store.count()
        except Exception as e:
            logger.error(f"Could not count contacts after sync: {e}")
            result.errors.append(f"Failed to count contacts: {e}")

        logger.info(
            f"Sync completed: {len(result.new_contacts)} new contacts, "
            f"{result.events_processed} events, {len(result.errors)} errors"
        )
        return result

    async def _process_attendee(
        self,
        event: CalendarEvent,
        attendee: CalendarAttendee,
        result: SyncResult,
        reported: set[str],
    ) -> None:
        if not is_valid_email(attendee.email):
            logger.debug(f"Skipping attendee with invalid email {attendee.email!r}")
            return

        email = normalize_email(attendee.email)
        try:
            contact, created = await self.store.upsert_from_attendance(
                email, attendee.display_name, event.start_date
            )
            if created and email not in reported:
                reported.add(email)
                result.new_contacts.append(
                    NewContact(email=contact.email, name=contact.name, first_seen=contact.first_seen)
                )
                logger.info(f"New contact: {email} ({contact.name or 'No name'})")
                if self.settings.auto_tag_new_leads and not self.store.is_own_domain(email):
                    await self.store.set_tags(contact.id, [NEW_LEAD_TAG])
        except Exception as e:
            logger.error(f"Failed to record {email} for event {event.id}: {e}")
            result.errors.append(f"Failed to process attendee {email} in event {event.id}: {e}")
            await self.store.rollback()

    async def _store_event(self, event: CalendarEvent, result: SyncResult) -> None:
        try:
            await self.store.upsert_event(EventSnapshot.from_calendar_event(event))
        except Exception as e:
            logger.error(f"Failed to store event {event.id}: {e}")
            result.errors.append(f"Failed to store event {event.id}: {e}")
            await self.store.rollback()
