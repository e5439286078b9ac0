"""Google Tasks API adapter - HTTP client for task lists and tasks."""

import logging

import requests

from dayview.core.tasks import STATUS_COMPLETED, RawTask
from dayview.errors import DayviewError, TaskCompletionError

from .google_api import GoogleAPIClient, most_severe

logger = logging.getLogger(__name__)

API_BASE = "https://tasks.googleapis.com/tasks/v1"
SCOPES = ["https://www.googleapis.com/auth/tasks"]

TASK_QUERY = {
    "showCompleted": "true",
    "showHidden": "true",
    "maxResults": "100",
}


class GoogleTasksAdapter(GoogleAPIClient):
    """
    Google Tasks API adapter.

    Implements TaskRepository protocol. No business logic - just I/O.
    Always fetches the full task set; due-date filtering on the server is
    unreliable for date-only values, so it happens in the normalizer.
    """

    def __init__(self, session: requests.Session | None = None):
        super().__init__(session)

    def _get_task_lists(self, access_token: str) -> list[dict]:
        """Get all task lists owned by the user."""
        return self._paginate(f"{API_BASE}/users/@me/lists", access_token)

    def _get_list_tasks(self, access_token: str, list_id: str) -> list[dict]:
        """Get every task of a list, completed and hidden included."""
        return self._paginate(f"{API_BASE}/lists/{list_id}/tasks", access_token, params=TASK_QUERY)

    def fetch_tasks(self, access_token: str) -> list[RawTask]:
        """Fetch all tasks from all lists."""
        task_lists = self._get_task_lists(access_token)
        logger.debug(f"Found {len(task_lists)} task lists")

        tasks: list[RawTask] = []
        failures: list[Exception] = []
        succeeded = 0

        for task_list in task_lists:
            list_id = task_list["id"]
            try:
                items = self._get_list_tasks(access_token, list_id)
            except DayviewError as e:
                logger.warning(f"Failed to fetch tasks from {task_list.get('title', list_id)}: {e}")
                failures.append(e)
                continue
            tasks.extend(RawTask.from_api(item) for item in items if item.get("id"))
            succeeded += 1

        if failures and not succeeded:
            raise most_severe(failures)

        return tasks

    def find_owning_list_id(self, access_token: str, task_id: str) -> str | None:
        """Scan lists in order and return the id of the first holding the task."""
        for task_list in self._get_task_lists(access_token):
            list_id = task_list["id"]
            try:
                items = self._get_list_tasks(access_token, list_id)
            except DayviewError as e:
                logger.warning(f"Error searching task list {task_list.get('title', list_id)}: {e}")
                continue
            if any(item.get("id") == task_id for item in items):
                logger.debug(f"Task {task_id} belongs to list {list_id}")
                return list_id

        logger.warning(f"Task not found in any list: {task_id}")
        return None

    def complete_task(self, access_token: str, list_id: str, task_id: str) -> None:
        """Mark a task as completed."""
        try:
            resp = self._session.patch(
                f"{API_BASE}/lists/{list_id}/tasks/{task_id}",
                json={"status": STATUS_COMPLETED},
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except requests.RequestException as e:
            raise TaskCompletionError(f"Failed to complete task: {e}") from e

        if not resp.ok:
            logger.error(f"Failed to complete task {task_id}: {resp.status_code} {resp.text}")
            raise TaskCompletionError(
                f"Failed to complete task: {resp.status_code} {resp.text}",
                status=resp.status_code,
            )
