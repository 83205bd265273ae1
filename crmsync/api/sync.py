"""Sync API endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Body, Depends

from crmsync.api.deps import get_calendar_client, get_contact_store
from crmsync.core.sync_orchestrator import SyncOrchestrator
from crmsync.schemas.sync import SyncRequest, SyncResponse
from crmsync.services.contact_store import ContactStore
from crmsync.services.google_calendar import CalendarClient

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("", response_model=SyncResponse)
async def run_sync(
    calendar: Annotated[CalendarClient, Depends(get_calendar_client)],
    store: Annotated[ContactStore, Depends(get_contact_store)],
    payload: Annotated[SyncRequest | None, Body()] = None,
) -> SyncResponse:
    """Run one sync pass over recent calendar events."""
    days = payload.days if payload else None
    logger.info(f"Manual sync requested (days={days or 'default'})")

    result = await SyncOrchestrator(calendar, store).run(days)

    return SyncResponse(
        data=result,
        message=f"Sync completed: {len(result.new_contacts)} new contacts found",
    )
