"""Pure calendar domain logic - no I/O dependencies."""

from dataclasses import dataclass
from datetime import date, datetime

MINUTES_PER_DAY = 1440

EVENT_TYPE_CLASS = "class"
EVENT_TYPE_GENERIC = "generic"


@dataclass
class RawCalendarEvent:
    """A calendar event as returned by the remote provider.

    ``start``/``end`` are a ``date`` for all-day events and a ``datetime``
    (as rendered by the remote, offset included) otherwise.
    """

    id: str
    title: str
    start: datetime | date
    end: datetime | date | None
    all_day: bool
    source_collection_id: str

    @classmethod
    def from_api(cls, data: dict, collection_id: str) -> "RawCalendarEvent | None":
        """Create from a Google Calendar event resource.

        Returns None for items without a usable start.
        """
        start_raw = data.get("start") or {}
        end_raw = data.get("end") or {}

        try:
            if start_raw.get("dateTime"):
                start = datetime.fromisoformat(start_raw["dateTime"])
                end = datetime.fromisoformat(end_raw["dateTime"]) if end_raw.get("dateTime") else None
                all_day = False
            elif start_raw.get("date"):
                start = date.fromisoformat(start_raw["date"])
                end = date.fromisoformat(end_raw["date"]) if end_raw.get("date") else None
                all_day = True
            else:
                return None
        except ValueError:
            return None

        return cls(
            id=data.get("id", ""),
            title=data.get("summary") or "No Title",
            start=start,
            end=end,
            all_day=all_day,
            source_collection_id=collection_id,
        )

    def start_date(self) -> date:
        """Calendar date the event starts on, ignoring time of day."""
        if isinstance(self.start, datetime):
            return self.start.date()
        return self.start


@dataclass
class CalendarEvent:
    """A normalized event attached to a Day."""

    id: str
    title: str
    type: str
    start_time_of_day: str
    duration_minutes: int

    @property
    def is_class(self) -> bool:
        return self.type == EVENT_TYPE_CLASS


def event_duration_minutes(raw: RawCalendarEvent) -> int:
    """
    Duration of an event in whole minutes.

    All-day events count 1440 minutes per day spanned (end date is exclusive,
    at least one day). Timed events without an end are zero-length markers.
    """
    if raw.all_day:
        if raw.end is None:
            return MINUTES_PER_DAY
        end_date = raw.end.date() if isinstance(raw.end, datetime) else raw.end
        days = (end_date - raw.start_date()).days
        return MINUTES_PER_DAY * max(days, 1)

    if not isinstance(raw.end, datetime):
        return 0
    minutes = int((raw.end - raw.start).total_seconds() // 60)
    return max(minutes, 0)


def normalize_event(raw: RawCalendarEvent, class_collection_ids=()) -> CalendarEvent:
    """
    Convert a raw event into its view-model form.

    Pure function - no I/O. Class classification is by source calendar only.
    """
    if raw.all_day or not isinstance(raw.start, datetime):
        start_time = "00:00"
    else:
        start_time = raw.start.strftime("%H:%M")

    event_type = EVENT_TYPE_CLASS if raw.source_collection_id in class_collection_ids else EVENT_TYPE_GENERIC

    return CalendarEvent(
        id=raw.id,
        title=raw.title,
        type=event_type,
        start_time_of_day=start_time,
        duration_minutes=event_duration_minutes(raw),
    )
