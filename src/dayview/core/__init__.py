"""Functional core - pure business logic with no I/O."""

from .tasks import RawTask, Task, normalize_task, parse_due_date, filter_incomplete
from .calendar import CalendarEvent, RawCalendarEvent, normalize_event, event_duration_minutes
from .agenda import Day, SyncResult, normalize, window_dates, without_tasks, count_items
from .session import Session

__all__ = [
    # Tasks
    "RawTask",
    "Task",
    "normalize_task",
    "parse_due_date",
    "filter_incomplete",
    # Calendar
    "RawCalendarEvent",
    "CalendarEvent",
    "normalize_event",
    "event_duration_minutes",
    # Agenda
    "Day",
    "SyncResult",
    "normalize",
    "window_dates",
    "without_tasks",
    "count_items",
    # Session
    "Session",
]
