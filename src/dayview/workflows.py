"""Shared workflow layer between the CLI commands.

Wires configuration to adapters, the sync cache and the coordinator, and
defines the single fetch cycle that feeds the cache.
"""

import asyncio
import logging
from datetime import date, datetime, timedelta
from functools import partial
from typing import Callable
from zoneinfo import ZoneInfo

from .adapters.file_credentials import FileCredentialStore
from .adapters.google_calendar import GoogleCalendarAdapter
from .adapters.google_tasks import GoogleTasksAdapter
from .adapters.token_endpoint import TokenEndpointClient
from .config import SESSION_FILE, Config
from .coordinator import AgendaCoordinator
from .core.agenda import SyncResult, count_items, normalize
from .ports.calendar_repo import CalendarRepository
from .ports.task_repo import TaskRepository
from .sync import SyncCache

logger = logging.getLogger(__name__)


def today_in(timezone: str) -> date:
    """Today's date in the configured timezone."""
    return datetime.now(ZoneInfo(timezone)).date()


async def fetch_agenda(
    calendar_repo: CalendarRepository,
    task_repo: TaskRepository,
    access_token: str,
    window_start: date,
    window_days: int = 14,
    class_collection_ids=(),
) -> SyncResult:
    """
    Fetch events and tasks concurrently, then normalize them.

    Both fetches must succeed before normalization runs.
    """
    window_end = window_start + timedelta(days=window_days - 1)
    raw_events, raw_tasks = await asyncio.gather(
        asyncio.to_thread(calendar_repo.fetch_calendar_events, access_token, window_start, window_end),
        asyncio.to_thread(task_repo.fetch_tasks, access_token),
    )
    logger.debug(f"Fetched {len(raw_events)} raw events and {len(raw_tasks)} raw tasks")

    result = normalize(raw_events, raw_tasks, window_start, window_days, class_collection_ids)
    events, tasks, undated = count_items(result)
    logger.info(f"Agenda synced: {events} events, {tasks} dated tasks, {undated} undated tasks")
    return result


def make_fetcher(
    config: Config,
    calendar_repo: CalendarRepository,
    task_repo: TaskRepository,
    today: Callable[[], date] | None = None,
):
    """Build the cache fetcher: access token in, SyncResult out."""
    today = today or partial(today_in, config.timezone)

    async def fetcher(access_token: str) -> SyncResult:
        return await fetch_agenda(
            calendar_repo,
            task_repo,
            access_token,
            today(),
            config.window_days,
            config.class_calendar_ids,
        )

    return fetcher


def build_coordinator(config: Config, store: FileCredentialStore | None = None) -> AgendaCoordinator:
    """Wire adapters, cache and coordinator from configuration."""
    calendar_repo = GoogleCalendarAdapter(
        primary_calendar_id=config.primary_calendar_id,
        class_calendar_ids=config.class_calendar_ids,
        timezone=config.timezone,
    )
    task_repo = GoogleTasksAdapter()

    cache = SyncCache(
        make_fetcher(config, calendar_repo, task_repo),
        stale_after=config.stale_seconds,
        refresh_interval=config.refresh_interval_seconds,
        max_retries=config.max_retries,
        base_delay=config.retry_base_delay,
        max_delay=config.retry_max_delay,
    )

    return AgendaCoordinator(
        store=store or FileCredentialStore(SESSION_FILE),
        token_service=TokenEndpointClient(config.auth_server_url),
        task_repo=task_repo,
        cache=cache,
        redirect_uri=config.redirect_uri,
    )
