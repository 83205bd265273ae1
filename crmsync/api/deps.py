"""Shared FastAPI dependencies."""

import logging
from typing import Annotated, Awaitable, Callable, TypeVar

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from crmsync.config import get_settings
from crmsync.exceptions import StoreError
from crmsync.services.contact_store import ContactStore
from crmsync.services.credentials import CredentialStore
from crmsync.services.database import get_db
from crmsync.services.google_calendar import CalendarClient

logger = logging.getLogger(__name__)

T = TypeVar("T")


def get_credential_store(request: Request) -> CredentialStore:
    """The credential store owned by the running application."""
    return request.app.state.credential_store


def get_calendar_client(
    credential_store: Annotated[CredentialStore, Depends(get_credential_store)],
) -> CalendarClient:
    return CalendarClient(credential_store)


def get_contact_store(db: Annotated[AsyncSession, Depends(get_db)]) -> ContactStore:
    return ContactStore(db)


async def read_or_default(read: Callable[[], Awaitable[T]], default: T, what: str) -> T:
    """Run a read, answering ``default`` on store failure when degraded reads are on.

    Keeps the dashboard usable through partial database outages. Writes never
    go through here.
    """
    try:
        return await read()
    except StoreError as e:
        if not get_settings().degrade_reads_on_store_error:
            raise
        logger.warning(f"Serving empty result, failed to {what}: {e.details or e}")
        return default
