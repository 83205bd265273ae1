"""Ordered, idempotent schema migrations applied once at startup.

Each step inspects the live schema and only adds what is missing, so running
the list against a fresh database, an up-to-date database or an installation
created by an older release all converge on the same schema. Steps never drop
or rewrite existing columns.
"""

import logging
from dataclasses import dataclass
from typing import Callable

import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy.engine import Connection

from crmsync.models.contact import TagList

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Migration:
    """A named schema step; ``apply`` returns True when it changed anything."""

    name: str
    apply: Callable[[Operations, sa.Inspector], bool]


def _add_missing_columns(
    op: Operations, inspector: sa.Inspector, table: str, columns: list[sa.Column]
) -> bool:
    existing = {column["name"] for column in inspector.get_columns(table)}
    missing = [column for column in columns if column.name not in existing]
    for column in missing:
        op.add_column(table, column)
    return bool(missing)


def _create_contacts(op: Operations, inspector: sa.Inspector) -> bool:
    if inspector.has_table("contacts"):
        return False
    op.create_table(
        "contacts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("first_seen", sa.Date(), nullable=False),
        sa.Column("last_seen", sa.Date(), nullable=False),
        sa.Column("meeting_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_contacts_email", "contacts", ["email"], unique=True)
    op.create_index("ix_contacts_created_at", "contacts", ["created_at"], unique=False)
    return True


def _create_events(op: Operations, inspector: sa.Inspector) -> bool:
    if inspector.has_table("events"):
        return False
    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("google_event_id", sa.String(length=255), nullable=False),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("start_time", sa.DateTime(), nullable=True),
        sa.Column("end_time", sa.DateTime(), nullable=True),
        sa.Column("attendees_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_events_google_event_id", "events", ["google_event_id"], unique=True)
    return True


def _backfill_contact_columns(op: Operations, inspector: sa.Inspector) -> bool:
    changed = _add_missing_columns(
        op,
        inspector,
        "contacts",
        [
            sa.Column("tags", TagList, nullable=False, server_default=sa.text("'[]'")),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
        ],
    )
    if changed:
        op.execute("UPDATE contacts SET updated_at = created_at WHERE updated_at IS NULL")
    return changed


def _backfill_event_columns(op: Operations, inspector: sa.Inspector) -> bool:
    changed = _add_missing_columns(
        op,
        inspector,
        "events",
        [
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("hangout_link", sa.Text(), nullable=True),
            sa.Column("attendees_emails", TagList, nullable=False, server_default=sa.text("'[]'")),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
        ],
    )
    if changed:
        op.execute("UPDATE events SET updated_at = created_at WHERE updated_at IS NULL")
    return changed


MIGRATIONS: list[Migration] = [
    Migration("001_create_contacts", _create_contacts),
    Migration("002_create_events", _create_events),
    Migration("003_contact_tags_notes", _backfill_contact_columns),
    Migration("004_event_details_notes", _backfill_event_columns),
]


def apply_migrations(connection: Connection) -> int:
    """Apply every migration step in order; returns how many made changes."""
    op = Operations(MigrationContext.configure(connection))
    changed = 0
    for migration in MIGRATIONS:
        # Fresh inspector per step so earlier steps are visible
        if migration.apply(op, sa.inspect(connection)):
            logger.info(f"Migration {migration.name} applied")
            changed += 1
        else:
            logger.debug(f"Migration {migration.name} already up to date")
    return changed
