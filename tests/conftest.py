"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
from google.oauth2.credentials import Credentials
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from crmsync.config import get_settings
from crmsync.exceptions import AuthExpiredError
from crmsync.main import app
from crmsync.schemas.calendar import CalendarAttendee, CalendarEvent
from crmsync.services.contact_store import ContactStore
from crmsync.services.credentials import CredentialStore
from crmsync.services.database import get_db
from crmsync.services.migrations import apply_migrations

# Create in-memory SQLite for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

ORG_DOMAIN = "acme.com"


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    """Predictable settings for every test."""
    settings = get_settings()
    monkeypatch.setattr(settings, "organization_domain", ORG_DOMAIN)
    monkeypatch.setattr(settings, "auto_tag_new_leads", False)
    monkeypatch.setattr(settings, "degrade_reads_on_store_error", True)
    monkeypatch.setattr(settings, "deployment_mode", "hosted")
    monkeypatch.setattr(settings, "google_client_id", "")
    monkeypatch.setattr(settings, "google_client_secret", "")
    return settings


@pytest.fixture
async def engine():
    """Fresh database with every migration applied."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(apply_migrations)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Get a test database session."""
    session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_maker() as session:
        yield session


@pytest.fixture
def store(db_session: AsyncSession, test_settings) -> ContactStore:
    return ContactStore(db_session, test_settings)


@pytest.fixture
def credential_store() -> CredentialStore:
    """In-memory credential store installed on the app."""
    credential_store = CredentialStore()
    app.state.credential_store = credential_store
    return credential_store


@pytest.fixture
def google_credentials() -> Credentials:
    return Credentials(
        token="test-access-token",
        refresh_token="test-refresh-token",
        token_uri="https://oauth2.googleapis.com/token",
        client_id="test-client-id",
        client_secret="test-client-secret",
    )


@pytest.fixture
async def client(db_session: AsyncSession, credential_store) -> AsyncGenerator[AsyncClient, None]:
    """Get async test client."""
    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


class FakeCalendar:
    """Stands in for CalendarClient.list_events."""

    def __init__(self, events: list[CalendarEvent] | None = None, fail: Exception | None = None):
        self.events = events or []
        self.fail = fail
        self.windows: list[tuple[datetime, datetime]] = []

    async def list_events(self, time_min: datetime, time_max: datetime) -> list[CalendarEvent]:
        self.windows.append((time_min, time_max))
        if self.fail is not None:
            raise self.fail
        return list(self.events)


def _make_event(
    event_id: str,
    attendees: list[tuple[str, str | None]],
    start: datetime | None = None,
    summary: str = "Meeting",
) -> CalendarEvent:
    """Build a calendar event with ``(email, display_name)`` attendees."""
    start = start or datetime(2026, 10, 14, 15, 0, tzinfo=timezone.utc)
    return CalendarEvent(
        id=event_id,
        summary=summary,
        start=start,
        end=start + timedelta(hours=1),
        attendees=[CalendarAttendee(email=email, display_name=name) for email, name in attendees],
        raw={"id": event_id, "summary": summary},
    )


@pytest.fixture
def make_event():
    return _make_event


@pytest.fixture
def fake_calendar() -> FakeCalendar:
    return FakeCalendar()


@pytest.fixture
def unauthenticated_calendar() -> FakeCalendar:
    return FakeCalendar(fail=AuthExpiredError("Google Calendar not connected. Please authenticate."))
