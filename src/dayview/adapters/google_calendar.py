"""Google Calendar API adapter."""

import logging
from datetime import date, datetime, time, timedelta
from urllib.parse import quote
from zoneinfo import ZoneInfo

import requests

from dayview.core.calendar import RawCalendarEvent
from dayview.errors import DayviewError

from .google_api import GoogleAPIClient, most_severe

logger = logging.getLogger(__name__)

API_BASE = "https://www.googleapis.com/calendar/v3"
SCOPES = ["https://www.googleapis.com/auth/calendar.readonly"]


class GoogleCalendarAdapter(GoogleAPIClient):
    """
    Fetches events from Google Calendar via the REST API.

    Implements CalendarRepository protocol. Queries the primary calendar and
    every configured class calendar; one unreachable calendar does not fail
    the fetch.
    """

    def __init__(
        self,
        primary_calendar_id: str = "primary",
        class_calendar_ids: list[str] | None = None,
        timezone: str = "America/Toronto",
        session: requests.Session | None = None,
    ):
        super().__init__(session)
        self.primary_calendar_id = primary_calendar_id
        self.class_calendar_ids = class_calendar_ids or []
        self.timezone = timezone

    def calendar_ids(self) -> list[str]:
        """Primary first, then class calendars, without duplicates."""
        ids = [self.primary_calendar_id, *self.class_calendar_ids]
        return list(dict.fromkeys(ids))

    def _window_bounds(self, window_start: date, window_end: date) -> tuple[str, str]:
        tz = ZoneInfo(self.timezone)
        time_min = datetime.combine(window_start, time.min, tzinfo=tz)
        time_max = datetime.combine(window_end + timedelta(days=1), time.min, tzinfo=tz)
        return time_min.isoformat(), time_max.isoformat()

    def _fetch_collection(
        self, access_token: str, calendar_id: str, time_min: str, time_max: str
    ) -> list[RawCalendarEvent]:
        items = self._paginate(
            f"{API_BASE}/calendars/{quote(calendar_id, safe='')}/events",
            access_token,
            params={
                "timeMin": time_min,
                "timeMax": time_max,
                "singleEvents": "true",
                "orderBy": "startTime",
                "timeZone": self.timezone,
            },
        )

        events = []
        for item in items:
            if item.get("status") == "cancelled":
                continue
            event = RawCalendarEvent.from_api(item, calendar_id)
            if event is None:
                logger.debug(f"Skipping event without start in {calendar_id}: {item.get('id')}")
                continue
            events.append(event)
        return events

    def fetch_calendar_events(
        self, access_token: str, window_start: date, window_end: date
    ) -> list[RawCalendarEvent]:
        """Fetch events for the inclusive date window from every calendar."""
        time_min, time_max = self._window_bounds(window_start, window_end)

        events: list[RawCalendarEvent] = []
        failures: list[Exception] = []
        succeeded = 0

        for calendar_id in self.calendar_ids():
            try:
                collection = self._fetch_collection(access_token, calendar_id, time_min, time_max)
            except DayviewError as e:
                logger.warning(f"Failed to fetch calendar {calendar_id}: {e}")
                failures.append(e)
                continue
            logger.debug(f"Fetched {len(collection)} events from {calendar_id}")
            events.extend(collection)
            succeeded += 1

        if failures and not succeeded:
            raise most_severe(failures)

        return events
