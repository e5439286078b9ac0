"""Task repository interface."""

from typing import Protocol

from dayview.core.tasks import RawTask


class TaskRepository(Protocol):
    """Interface for fetching and completing tasks on any backend."""

    def fetch_tasks(self, access_token: str) -> list[RawTask]:
        """Fetch all tasks, completed and hidden included, from every list."""
        ...

    def find_owning_list_id(self, access_token: str, task_id: str) -> str | None:
        """Return the id of the list containing a task, or None."""
        ...

    def complete_task(self, access_token: str, list_id: str, task_id: str) -> None:
        """Mark a task as completed."""
        ...
