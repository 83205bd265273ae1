"""Google Calendar client: OAuth consent and event access."""

import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow, InstalledAppFlow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from crmsync.config import Settings, get_settings
from crmsync.exceptions import (
    AuthConfigurationError,
    AuthExpiredError,
    NotFoundError,
    ProviderError,
    ValidationError,
)
from crmsync.schemas.calendar import CalendarAttendee, CalendarEvent
from crmsync.services.credentials import CredentialStore

logger = logging.getLogger(__name__)

# Read and edit events; event patches are made from the dashboard
SCOPES = ["https://www.googleapis.com/auth/calendar.events"]

PAGE_SIZE = 250


def to_rfc3339(value: datetime) -> str:
    """Format a datetime for the Calendar API, treating naive values as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def _parse_event_time(value: dict | None) -> datetime | None:
    if not value:
        return None
    if "dateTime" in value:
        return datetime.fromisoformat(value["dateTime"].replace("Z", "+00:00"))
    if "date" in value:
        # All-day event
        return datetime.fromisoformat(value["date"]).replace(tzinfo=timezone.utc)
    return None


def parse_calendar_event(event: dict) -> CalendarEvent:
    """Parse a Google Calendar event into our schema."""
    attendees = [
        CalendarAttendee(email=attendee["email"], display_name=attendee.get("displayName"))
        for attendee in event.get("attendees", [])
        if attendee.get("email")
    ]

    # Prefer the video entry point from conferenceData over hangoutLink
    meeting_link = None
    for entry in event.get("conferenceData", {}).get("entryPoints", []):
        if entry.get("entryPointType") == "video":
            meeting_link = entry.get("uri")
            break
    if not meeting_link:
        meeting_link = event.get("hangoutLink")

    return CalendarEvent(
        id=event.get("id", ""),
        summary=event.get("summary"),
        description=event.get("description"),
        start=_parse_event_time(event.get("start")),
        end=_parse_event_time(event.get("end")),
        attendees=attendees,
        hangout_link=meeting_link,
        raw=event,
    )


class CalendarClient:
    """Talks to Google Calendar on behalf of the credentials in ``credential_store``.

    Every call that reaches Google maps authorization failures (HTTP 401/403 or
    a failed token refresh) to ``AuthExpiredError`` after discarding the stored
    credentials; every other failure becomes ``ProviderError``.
    """

    def __init__(self, credential_store: CredentialStore, settings: Settings | None = None):
        self.credential_store = credential_store
        self.settings = settings or get_settings()

    # ------------------------------------------------------------------
    # OAuth
    # ------------------------------------------------------------------

    def _client_config(self) -> dict:
        if self.settings.google_client_id and self.settings.google_client_secret:
            return {
                "web": {
                    "client_id": self.settings.google_client_id,
                    "client_secret": self.settings.google_client_secret,
                    "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                    "token_uri": "https://oauth2.googleapis.com/token",
                    "redirect_uris": [self.settings.google_redirect_uri],
                }
            }

        secrets_file = Path(self.settings.google_client_secrets_file)
        if self.settings.deployment_mode == "local" and secrets_file.exists():
            return json.loads(secrets_file.read_text())

        raise AuthConfigurationError(
            "Google OAuth client is not configured. "
            "Set GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET"
            + (
                f" or provide {secrets_file}"
                if self.settings.deployment_mode == "local"
                else ""
            )
            + "."
        )

    def get_flow(self) -> Flow:
        """Create the web consent flow."""
        flow = Flow.from_client_config(self._client_config(), scopes=SCOPES)
        flow.redirect_uri = self.settings.google_redirect_uri
        return flow

    def authorization_url(self) -> str:
        """Build the consent URL and move the store to AUTH_PENDING."""
        flow = self.get_flow()
        authorization_url, state = flow.authorization_url(
            access_type="offline",
            include_granted_scopes="true",
            prompt="consent",
        )
        self.credential_store.begin(state, code_verifier=getattr(flow, "code_verifier", None))
        return authorization_url

    async def complete_authorization(self, code: str, state: str | None) -> Credentials:
        """Exchange the consent code for credentials and install them.

        ``state`` must match the token issued with the last consent URL, so a
        code from a consent this server never started is refused.
        """
        expected = self.credential_store.pending_state_token
        if expected is None or state != expected:
            raise ValidationError("Authorization state mismatch. Please start the sign-in again.")

        flow = self.get_flow()
        flow.code_verifier = self.credential_store.pending_code_verifier

        try:
            await asyncio.to_thread(flow.fetch_token, code=code)
        except Exception as e:
            raise ValidationError(f"Failed to exchange authorization code: {e}") from e

        self.credential_store.replace(flow.credentials)
        return flow.credentials

    async def initialize(self, interactive: bool = False) -> Credentials:
        """Return usable credentials, establishing them when possible.

        In local mode credentials saved by an earlier run are reused, and with
        ``interactive=True`` the installed-app consent flow is opened in a
        browser. Hosted mode relies on the web consent flow only.
        """
        store = self.credential_store
        if store.is_authenticated:
            return store.credentials

        if self.settings.deployment_mode == "local" and store.load_persisted(SCOPES):
            return store.credentials

        client_config = self._client_config()

        if interactive and self.settings.deployment_mode == "local":
            flow = InstalledAppFlow.from_client_config(client_config, SCOPES)
            credentials = await asyncio.to_thread(flow.run_local_server, port=0)
            store.replace(credentials)
            return credentials

        raise AuthExpiredError("Google Calendar not connected. Please authenticate.")

    # ------------------------------------------------------------------
    # Calendar API
    # ------------------------------------------------------------------

    async def _execute(self, make_request: Callable[[Any], Any], what: str) -> dict:
        credentials = await self.initialize()

        def call() -> dict:
            service = build("calendar", "v3", credentials=credentials, cache_discovery=False)
            return make_request(service).execute()

        try:
            return await asyncio.to_thread(call)
        except HttpError as e:
            if e.resp.status in (401, 403):
                self.credential_store.clear(f"Google answered {e.resp.status} while trying to {what}")
                raise AuthExpiredError(
                    "Google Calendar authorization expired. Please re-authenticate."
                ) from e
            if e.resp.status == 404:
                raise NotFoundError(f"Calendar event not found while trying to {what}") from e
            raise ProviderError(f"Failed to {what}: {e}") from e
        except RefreshError as e:
            self.credential_store.clear(f"token refresh failed: {e}")
            raise AuthExpiredError(
                "Google Calendar authorization expired. Please re-authenticate."
            ) from e
        except Exception as e:
            raise ProviderError(f"Failed to {what}: {e}") from e

    async def list_events(self, time_min: datetime, time_max: datetime) -> list[CalendarEvent]:
        """List events starting in [time_min, time_max), recurring ones expanded."""
        events: list[CalendarEvent] = []
        page_token: str | None = None

        while True:
            params = {
                "calendarId": self.settings.calendar_id,
                "timeMin": to_rfc3339(time_min),
                "timeMax": to_rfc3339(time_max),
                "singleEvents": True,
                "orderBy": "startTime",
                "maxResults": PAGE_SIZE,
            }
            if page_token:
                params["pageToken"] = page_token

            result = await self._execute(
                lambda service: service.events().list(**params),
                "fetch calendar events",
            )
            events.extend(parse_calendar_event(item) for item in result.get("items", []))

            page_token = result.get("nextPageToken")
            if not page_token:
                break

        logger.debug(f"Fetched {len(events)} events between {time_min} and {time_max}")
        return events

    async def get_event(self, event_id: str) -> dict:
        """Fetch a single raw event."""
        return await self._execute(
            lambda service: service.events().get(
                calendarId=self.settings.calendar_id, eventId=event_id
            ),
            f"fetch event {event_id}",
        )

    async def patch_event(self, event_id: str, body: dict) -> dict:
        """Patch fields of a single event and return the updated raw event."""
        return await self._execute(
            lambda service: service.events().patch(
                calendarId=self.settings.calendar_id, eventId=event_id, body=body
            ),
            f"update event {event_id}",
        )
