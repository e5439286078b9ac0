"""Pure agenda assembly logic - no I/O dependencies."""

from dataclasses import dataclass, field, replace
from datetime import date, timedelta

from .calendar import CalendarEvent, RawCalendarEvent, normalize_event
from .tasks import RawTask, Task, normalize_task

DEFAULT_WINDOW_DAYS = 14


@dataclass
class Day:
    """One calendar date of the agenda window."""

    date: date
    events: list[CalendarEvent] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)


@dataclass
class SyncResult:
    """Complete output of one normalization pass."""

    days: list[Day]
    undated_tasks: list[Task] = field(default_factory=list)

    def day_for(self, target_date: date) -> Day | None:
        """Day of the window matching a date, if any."""
        for day in self.days:
            if day.date == target_date:
                return day
        return None

    def all_tasks(self) -> list[Task]:
        """Every task in the result, dated first, then undated."""
        return [t for day in self.days for t in day.tasks] + list(self.undated_tasks)

    def find_task(self, task_id: str) -> Task | None:
        for task in self.all_tasks():
            if task.id == task_id:
                return task
        return None


def window_dates(window_start: date, window_length_days: int) -> list[date]:
    """Consecutive dates starting at window_start."""
    return [window_start + timedelta(days=i) for i in range(window_length_days)]


def normalize(
    raw_events: list[RawCalendarEvent],
    raw_tasks: list[RawTask],
    window_start: date,
    window_length_days: int = DEFAULT_WINDOW_DAYS,
    class_collection_ids=(),
) -> SyncResult:
    """
    Merge raw events and tasks into a fixed window of Days.

    Pure function - no I/O. Events land on their start date only. Tasks land
    on their due date, in undated_tasks when they have none, and are dropped
    when due outside the window or deleted remotely.
    """
    days = [Day(date=d) for d in window_dates(window_start, window_length_days)]
    by_date = {day.date: day for day in days}
    class_ids = frozenset(class_collection_ids)

    for raw in raw_events:
        day = by_date.get(raw.start_date())
        if day is None:
            continue
        day.events.append(normalize_event(raw, class_ids))

    undated: list[Task] = []
    for raw in raw_tasks:
        if raw.deleted:
            continue
        if raw.due is None:
            undated.append(normalize_task(raw))
            continue
        day = by_date.get(raw.due)
        if day is not None:
            day.tasks.append(normalize_task(raw))

    return SyncResult(days=days, undated_tasks=undated)


def without_tasks(result: SyncResult, task_ids) -> SyncResult:
    """
    Copy of a result with the given task ids removed.

    Pure function - no I/O. Used to hide tasks pending optimistic completion.
    """
    hidden = set(task_ids)
    if not hidden:
        return result
    return SyncResult(
        days=[
            replace(day, events=list(day.events), tasks=[t for t in day.tasks if t.id not in hidden])
            for day in result.days
        ],
        undated_tasks=[t for t in result.undated_tasks if t.id not in hidden],
    )


def count_items(result: SyncResult) -> tuple[int, int, int]:
    """Return (events, dated tasks, undated tasks) totals."""
    events = sum(len(day.events) for day in result.days)
    tasks = sum(len(day.tasks) for day in result.days)
    return events, tasks, len(result.undated_tasks)
