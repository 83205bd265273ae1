"""Test startup schema migrations."""

import pytest
import sqlalchemy as sa
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from crmsync.services.migrations import MIGRATIONS, apply_migrations


@pytest.fixture
async def bare_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield engine
    await engine.dispose()


def _columns(connection, table: str) -> set[str]:
    return {column["name"] for column in sa.inspect(connection).get_columns(table)}


@pytest.mark.asyncio
async def test_fresh_database_gets_full_schema(bare_engine):
    async with bare_engine.begin() as conn:
        applied = await conn.run_sync(apply_migrations)
        contact_columns = await conn.run_sync(_columns, "contacts")
        event_columns = await conn.run_sync(_columns, "events")

    assert applied == len(MIGRATIONS)
    assert {"email", "tags", "notes", "updated_at", "meeting_count"} <= contact_columns
    assert {"google_event_id", "description", "hangout_link", "attendees_emails", "notes"} <= event_columns


@pytest.mark.asyncio
async def test_migrations_are_idempotent(bare_engine):
    async with bare_engine.begin() as conn:
        await conn.run_sync(apply_migrations)

    async with bare_engine.begin() as conn:
        applied = await conn.run_sync(apply_migrations)

    assert applied == 0


@pytest.mark.asyncio
async def test_old_install_is_upgraded_without_losing_rows(bare_engine):
    """A database from before tags and notes existed keeps its contacts."""
    async with bare_engine.begin() as conn:
        await conn.execute(sa.text(
            "CREATE TABLE contacts ("
            "id INTEGER PRIMARY KEY, email VARCHAR(255) NOT NULL UNIQUE, name VARCHAR(255), "
            "first_seen DATE NOT NULL, last_seen DATE NOT NULL, "
            "meeting_count INTEGER NOT NULL DEFAULT 1, "
            "created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP)"
        ))
        await conn.execute(sa.text(
            "INSERT INTO contacts (email, name, first_seen, last_seen, meeting_count, created_at) "
            "VALUES ('old@example.com', 'Old Timer', '2024-01-02', '2024-03-04', 5, '2024-01-02 10:00:00')"
        ))

    async with bare_engine.begin() as conn:
        applied = await conn.run_sync(apply_migrations)

    async with bare_engine.connect() as conn:
        row = (await conn.execute(sa.text(
            "SELECT email, meeting_count, tags, notes, updated_at, created_at FROM contacts"
        ))).one()
        has_events = await conn.run_sync(lambda sync_conn: sa.inspect(sync_conn).has_table("events"))

    # contacts existed already; events, contact columns and event columns were added
    assert applied == 3
    assert has_events
    assert row.email == "old@example.com"
    assert row.meeting_count == 5
    assert row.tags == "[]"
    assert row.notes is None
    assert row.updated_at == row.created_at
