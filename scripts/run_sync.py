#!/usr/bin/env python3
"""Run one calendar sync pass from the command line."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add the project root to the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from crmsync.config import get_settings
from crmsync.core.sync_orchestrator import SyncOrchestrator
from crmsync.exceptions import CRMSyncError
from crmsync.services.contact_store import ContactStore
from crmsync.services.credentials import CredentialStore
from crmsync.services.database import async_session_maker, close_db, init_db
from crmsync.services.google_calendar import CalendarClient

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


async def run_sync(days: int | None) -> int:
    """Sync contacts from recent calendar events and print a summary."""
    settings = get_settings()
    token_file = settings.google_token_file if settings.deployment_mode == "local" else None
    calendar = CalendarClient(CredentialStore(token_file=token_file), settings)

    await init_db()
    try:
        # Opens the browser consent flow when no saved token exists
        await calendar.initialize(interactive=True)

        async with async_session_maker() as db:
            result = await SyncOrchestrator(calendar, ContactStore(db, settings), settings).run(days)
    finally:
        await close_db()

    print("\nSync completed successfully!")
    print("Results:")
    print(f"   - Events processed: {result.events_processed}")
    print(f"   - New contacts: {len(result.new_contacts)}")
    print(f"   - Total contacts: {result.total_contacts}")

    if result.new_contacts:
        print("\nNew contacts found:")
        for index, contact in enumerate(result.new_contacts, start=1):
            print(f"   {index}. {contact.email} ({contact.name or 'No name'})")

    if result.errors:
        print("\nSkipped items:")
        for error in result.errors:
            print(f"   - {error}")

    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--days", type=int, default=None, help="Days of history to scan")
    args = parser.parse_args()

    try:
        return asyncio.run(run_sync(args.days))
    except CRMSyncError as e:
        print(f"Sync failed: {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
