"""Calendar API endpoints."""

from datetime import date, datetime, time, timedelta, timezone
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query

from crmsync.api.deps import get_calendar_client
from crmsync.schemas.calendar import CalendarEventsResponse, TimeRange
from crmsync.services.google_calendar import CalendarClient

router = APIRouter()

CalendarView = Literal["day", "week", "month"]


def compute_time_range(view: CalendarView, day: date) -> TimeRange:
    """UTC window for a dashboard view; weeks run Monday to Monday."""
    if view == "day":
        start = day
        end = day + timedelta(days=1)
    elif view == "week":
        start = day - timedelta(days=day.weekday())
        end = start + timedelta(days=7)
    else:
        start = day.replace(day=1)
        end = (start + timedelta(days=32)).replace(day=1)

    return TimeRange(
        start=datetime.combine(start, time.min, tzinfo=timezone.utc),
        end=datetime.combine(end, time.min, tzinfo=timezone.utc),
    )


@router.get("/events", response_model=CalendarEventsResponse)
async def list_events(
    calendar: Annotated[CalendarClient, Depends(get_calendar_client)],
    view: CalendarView = "week",
    date_: Annotated[date | None, Query(alias="date")] = None,
) -> CalendarEventsResponse:
    """List raw Google Calendar events for a day, week or month."""
    time_range = compute_time_range(view, date_ or datetime.now(timezone.utc).date())
    events = await calendar.list_events(time_range.start, time_range.end)

    return CalendarEventsResponse(
        data=[event.raw for event in events],
        view=view,
        time_range=time_range,
    )
