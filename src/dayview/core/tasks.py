"""Pure task domain logic - no I/O dependencies."""

from dataclasses import dataclass
from datetime import date

STATUS_NEEDS_ACTION = "needsAction"
STATUS_COMPLETED = "completed"


def parse_due_date(value: str | None) -> date | None:
    """
    Read a remote due value as a literal calendar date.

    Google Tasks encodes date-only due dates as UTC midnight
    ("2026-01-18T00:00:00.000Z"). Only the YYYY-MM-DD prefix is meaningful;
    converting the instant through a timezone would shift it a day.
    """
    if not value:
        return None
    try:
        return date.fromisoformat(value.split("T")[0])
    except ValueError:
        return None


@dataclass
class RawTask:
    """A task as returned by the remote provider."""

    id: str
    title: str
    notes: str | None = None
    status: str = STATUS_NEEDS_ACTION
    due: date | None = None
    deleted: bool = False

    @classmethod
    def from_api(cls, data: dict) -> "RawTask":
        """Create RawTask from a Google Tasks task resource."""
        status = data.get("status", STATUS_NEEDS_ACTION)
        if status not in (STATUS_NEEDS_ACTION, STATUS_COMPLETED):
            status = STATUS_NEEDS_ACTION
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            notes=data.get("notes") or None,
            status=status,
            due=parse_due_date(data.get("due")),
            deleted=bool(data.get("deleted", False)),
        )


@dataclass
class Task:
    """A normalized task. ``due_date`` is "" for undated tasks."""

    id: str
    title: str
    notes: str | None
    is_completed: bool
    due_date: str
    # The remote task model carries no time of day
    time_of_day: str | None = None

    @property
    def is_undated(self) -> bool:
        return self.due_date == ""


def normalize_task(raw: RawTask) -> Task:
    """
    Convert a raw task into its view-model form.

    Pure function - no I/O.
    """
    return Task(
        id=raw.id,
        title=raw.title,
        notes=raw.notes,
        is_completed=raw.status == STATUS_COMPLETED,
        due_date=raw.due.isoformat() if raw.due else "",
        time_of_day=None,
    )


def filter_incomplete(tasks: list[Task]) -> list[Task]:
    """Tasks that still need action."""
    return [t for t in tasks if not t.is_completed]
