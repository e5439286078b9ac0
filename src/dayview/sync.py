"""Sync cache layer - owns the fetch cycle and the current agenda per credential.

Each credential key moves through ``idle -> fetching -> {fresh, stale, error}``.
Fresh results go stale after a fixed window; background refreshes run on
staleness, foreground regain, reconnection and a periodic interval, but only
while the view is in the foreground. At most one fetch per key is in flight.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .core.agenda import SyncResult
from .errors import AuthError, DayviewError
from .retry import call_with_backoff

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], Awaitable[SyncResult]]
AuthFailureHandler = Callable[[str, AuthError], Awaitable[None]]


class SyncState(Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    FRESH = "fresh"
    STALE = "stale"
    ERROR = "error"


@dataclass
class CacheSnapshot:
    """Read-only view of one cache entry."""

    state: SyncState
    result: SyncResult | None = None
    error: Exception | None = None
    fetched_at: float | None = None

    @property
    def is_fetching(self) -> bool:
        return self.state == SyncState.FETCHING


class _Entry:
    def __init__(self) -> None:
        self.state = SyncState.IDLE
        self.result: SyncResult | None = None
        self.error: Exception | None = None
        self.fetched_at: float | None = None
        self.in_flight: asyncio.Task | None = None
        self.stale_timer: asyncio.TimerHandle | None = None
        self.generation = 0
        # Background refreshes spawned for this key, cancelled when it is dropped
        self.background: set[asyncio.Task] = set()
        # Set when invalidated while a fetch is running
        self.dirty = False

    def snapshot(self) -> CacheSnapshot:
        return CacheSnapshot(
            state=self.state,
            result=self.result,
            error=self.error,
            fetched_at=self.fetched_at,
        )

    def cancel_stale_timer(self) -> None:
        if self.stale_timer is not None:
            self.stale_timer.cancel()
            self.stale_timer = None


class SyncCache:
    """
    Per-credential agenda cache.

    ``fetcher`` is awaited with the credential key (the access token) and
    returns a fresh SyncResult. Listeners receive ``(key, snapshot)`` on every
    state change.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        stale_after: float = 300.0,
        refresh_interval: float = 60.0,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        on_auth_failure: AuthFailureHandler | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ):
        self._fetcher = fetcher
        self.stale_after = stale_after
        self.refresh_interval = refresh_interval
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.on_auth_failure = on_auth_failure
        self._sleep = sleep
        self._clock = clock

        self._entries: dict[str, _Entry] = {}
        self._listeners: list[Callable[[str, CacheSnapshot], None]] = []
        self._background: set[asyncio.Task] = set()
        self._scheduler: AsyncIOScheduler | None = None
        self._active_key: str | None = None
        self.foreground = True

    # ============== Observation ==============

    @property
    def active_key(self) -> str | None:
        return self._active_key

    def subscribe(self, listener: Callable[[str, CacheSnapshot], None]) -> Callable[[], None]:
        """Register a change listener. Returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def get_snapshot(self, key: str | None = None) -> CacheSnapshot:
        """Snapshot of a key, the active key by default."""
        key = key if key is not None else self._active_key
        entry = self._entries.get(key) if key is not None else None
        if entry is None:
            return CacheSnapshot(state=SyncState.IDLE)
        return entry.snapshot()

    def _notify(self, key: str) -> None:
        snapshot = self.get_snapshot(key)
        for listener in list(self._listeners):
            try:
                listener(key, snapshot)
            except Exception:
                logger.exception("Sync cache listener failed")

    # ============== Fetching ==============

    async def refresh(self, key: str, force: bool = False) -> SyncResult | None:
        """
        Return the agenda for a key, fetching unless a fresh result is cached.

        Concurrent calls for one key share a single in-flight fetch. Raises the
        fetch error after retries; the previous result stays cached.
        """
        entry = self._entries.setdefault(key, _Entry())

        if entry.in_flight is not None:
            return await asyncio.shield(entry.in_flight)

        if not force and entry.state == SyncState.FRESH and entry.result is not None:
            return entry.result

        task = asyncio.create_task(self._run_fetch(key, entry, entry.generation))
        entry.in_flight = task
        return await asyncio.shield(task)

    def _is_current(self, key: str, entry: _Entry, generation: int) -> bool:
        return self._entries.get(key) is entry and entry.generation == generation

    async def _run_fetch(self, key: str, entry: _Entry, generation: int) -> SyncResult:
        entry.state = SyncState.FETCHING
        entry.dirty = False
        entry.cancel_stale_timer()
        self._notify(key)

        try:
            result = await call_with_backoff(
                lambda: self._fetcher(key),
                max_retries=self.max_retries,
                base_delay=self.base_delay,
                max_delay=self.max_delay,
                sleep=self._sleep,
                label="agenda fetch",
            )
        except Exception as e:
            entry.in_flight = None
            if self._is_current(key, entry, generation):
                entry.state = SyncState.ERROR
                entry.error = e
                self._notify(key)
            raise

        entry.in_flight = None
        if not self._is_current(key, entry, generation):
            logger.info("Discarding agenda fetched for a superseded credential")
            return result

        entry.result = result
        entry.error = None
        entry.fetched_at = self._clock()

        if entry.dirty:
            # Invalidated mid-flight: the result may predate a mutation
            entry.state = SyncState.STALE
            self._notify(key)
            self._spawn_refresh(key, force=True)
        else:
            entry.state = SyncState.FRESH
            self._schedule_stale(key, entry, generation)
            self._notify(key)
        return result

    def _schedule_stale(self, key: str, entry: _Entry, generation: int) -> None:
        loop = asyncio.get_running_loop()
        entry.stale_timer = loop.call_later(self.stale_after, self._mark_stale, key, entry, generation)

    def _mark_stale(self, key: str, entry: _Entry, generation: int) -> None:
        entry.stale_timer = None
        if not self._is_current(key, entry, generation) or entry.state != SyncState.FRESH:
            return
        entry.state = SyncState.STALE
        self._notify(key)
        if key == self._active_key and self.foreground:
            self._spawn_refresh(key)

    def _track(self, task: asyncio.Task) -> asyncio.Task:
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    def _spawn_refresh(self, key: str, force: bool = False) -> asyncio.Task:
        task = self._track(asyncio.create_task(self._background_refresh(key, force)))
        entry = self._entries.get(key)
        if entry is not None:
            entry.background.add(task)
            task.add_done_callback(entry.background.discard)
        return task

    async def _background_refresh(self, key: str, force: bool) -> None:
        # Dropped or superseded while waiting to run
        if key != self._active_key or key not in self._entries:
            return
        try:
            await self.refresh(key, force=force)
        except AuthError as e:
            logger.warning(f"Background refresh rejected: {e}")
            if self.on_auth_failure is not None:
                # Runs outside this key's tasks: handling it may drop the key
                self._track(asyncio.create_task(self._escalate(key, e)))
        except DayviewError as e:
            logger.warning(f"Background refresh failed, keeping last result: {e}")

    async def _escalate(self, key: str, error: AuthError) -> None:
        try:
            await self.on_auth_failure(key, error)
        except DayviewError as e:
            logger.error(f"Could not recover from rejected credential: {e}")

    # ============== Invalidation ==============

    def invalidate(self, key: str | None = None) -> asyncio.Task | None:
        """
        Mark a key stale and refetch it if it is the active key.

        Returns the background refresh task, if one was started.
        """
        key = key if key is not None else self._active_key
        entry = self._entries.get(key) if key is not None else None
        if entry is None:
            return None

        if entry.in_flight is not None:
            entry.dirty = True
            return None

        entry.cancel_stale_timer()
        entry.state = SyncState.STALE if entry.result is not None else SyncState.IDLE
        self._notify(key)
        if key == self._active_key:
            return self._spawn_refresh(key, force=True)
        return None

    def activate(self, key: str | None) -> None:
        """
        Make ``key`` the credential the view follows.

        The previous key's result is carried over as a stale placeholder so a
        renewed credential keeps data on screen; the previous entry is dropped.
        """
        previous = self._active_key
        if previous == key:
            return
        self._active_key = key
        if key is None:
            return

        entry = self._entries.setdefault(key, _Entry())
        old = self._entries.get(previous) if previous is not None else None
        if old is not None and entry.result is None and old.result is not None:
            entry.result = old.result
            entry.fetched_at = old.fetched_at
            entry.state = SyncState.STALE

        if previous is not None:
            self._drop(previous)
        self._notify(key)

    def _drop(self, key: str) -> None:
        entry = self._entries.pop(key, None)
        if entry is None:
            return
        entry.cancel_stale_timer()
        entry.generation += 1
        for task in list(entry.background):
            task.cancel()

    def clear(self, key: str | None = None) -> None:
        """Forget one key, or everything. In-flight results are discarded."""
        keys = [key] if key is not None else list(self._entries)
        for k in keys:
            self._drop(k)
            self._notify(k)
        if key is None or key == self._active_key:
            self._active_key = None

    # ============== Triggers ==============

    def _refresh_if_stale(self) -> asyncio.Task | None:
        key = self._active_key
        if key is None or not self.foreground:
            return None
        if self.get_snapshot(key).state in (SyncState.IDLE, SyncState.STALE, SyncState.ERROR):
            return self._spawn_refresh(key)
        return None

    def set_foreground(self, visible: bool) -> asyncio.Task | None:
        """Record view visibility. Regaining it refreshes stale data."""
        was_visible = self.foreground
        self.foreground = visible
        if visible and not was_visible:
            return self._refresh_if_stale()
        return None

    def notify_reconnected(self) -> asyncio.Task | None:
        """Network came back: refresh stale data."""
        return self._refresh_if_stale()

    def on_interval(self) -> asyncio.Task | None:
        """Periodic tick: force a refresh of the active key while visible."""
        if self._active_key is None or not self.foreground:
            return None
        return self._spawn_refresh(self._active_key, force=True)

    async def _interval_job(self) -> None:
        task = self.on_interval()
        if task is not None:
            # A logout or credential change may cancel it
            await asyncio.wait({task})

    def start(self) -> None:
        """Start the periodic refresh job. Must run inside the event loop."""
        if self._scheduler is not None:
            return
        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self._interval_job,
            IntervalTrigger(seconds=self.refresh_interval),
            id="agenda_refresh",
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.start()
        logger.info(f"Scheduled agenda refresh every {self.refresh_interval:.0f}s")

    def shutdown(self) -> None:
        """Stop the periodic job, timers and background refreshes."""
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
        for entry in self._entries.values():
            entry.cancel_stale_timer()
        for task in list(self._background):
            task.cancel()
