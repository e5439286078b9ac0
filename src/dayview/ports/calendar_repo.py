"""Calendar repository interface."""

from datetime import date
from typing import Protocol

from dayview.core.calendar import RawCalendarEvent


class CalendarRepository(Protocol):
    """Interface for fetching calendar events from any backend."""

    def fetch_calendar_events(
        self, access_token: str, window_start: date, window_end: date
    ) -> list[RawCalendarEvent]:
        """Fetch events starting within the inclusive date window."""
        ...
