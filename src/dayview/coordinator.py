"""Session and mutation coordinator.

Binds the credential store, token service, sync cache and task repository:
resumes or renews the session on startup, escalates fetch auth failures to a
single refresh-token exchange (then logout), and applies task completion
optimistically.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from .core.agenda import SyncResult, without_tasks
from .core.session import Session
from .errors import (
    AuthError,
    ConfigurationError,
    DayviewError,
    TaskCompletionError,
    TokenExchangeError,
    TokenRefreshError,
)
from .ports.credential_store import CredentialStore
from .ports.task_repo import TaskRepository
from .ports.token_service import TokenService
from .sync import CacheSnapshot, SyncCache, SyncState

logger = logging.getLogger(__name__)


@dataclass
class AgendaView:
    """What presentation consumers see."""

    result: SyncResult | None
    is_fetching: bool
    is_authenticated: bool
    last_error: Exception | None = None
    removing: frozenset[str] = field(default_factory=frozenset)


class AgendaCoordinator:
    """
    Orchestrates one user's session and agenda.

    Owns the single Session value; the credential store is its only
    persistence boundary. Blocking adapter calls run in worker threads.
    """

    def __init__(
        self,
        store: CredentialStore,
        token_service: TokenService,
        task_repo: TaskRepository,
        cache: SyncCache,
        redirect_uri: str = "",
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.token_service = token_service
        self.task_repo = task_repo
        self.cache = cache
        self.redirect_uri = redirect_uri
        self._clock = clock

        self.session = Session()
        self.last_error: Exception | None = None
        self._removing: set[str] = set()
        self._completed: set[str] = set()
        self._refreshing: asyncio.Task | None = None
        self._listeners: list[Callable[[AgendaView], None]] = []

        self.cache.on_auth_failure = self.handle_auth_failure
        self.cache.subscribe(self._on_cache_change)

    # ============== View model ==============

    def snapshot(self) -> AgendaView:
        """Current view model, with tasks pending completion hidden."""
        cache_snapshot = self.cache.get_snapshot() if self.session.authenticated else None
        result = cache_snapshot.result if cache_snapshot else None
        if result is not None:
            result = without_tasks(result, self._removing)
        return AgendaView(
            result=result,
            is_fetching=bool(cache_snapshot and cache_snapshot.is_fetching),
            is_authenticated=self.session.authenticated,
            last_error=self.last_error,
            removing=frozenset(self._removing),
        )

    def subscribe(self, listener: Callable[[AgendaView], None]) -> Callable[[], None]:
        """Register a view listener. Returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        view = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception:
                logger.exception("Agenda listener failed")

    def _on_cache_change(self, key: str, snapshot: CacheSnapshot) -> None:
        if key != self.session.access_token:
            return
        if snapshot.result is not None and not snapshot.is_fetching and self._completed:
            # Completed tasks stay hidden until a synced result confirms them
            confirmed = set()
            for task_id in self._completed:
                task = snapshot.result.find_task(task_id)
                if task is None or task.is_completed:
                    confirmed.add(task_id)
            self._completed -= confirmed
            self._removing -= confirmed
        if snapshot.state == SyncState.FRESH:
            self.last_error = None
        self._notify()

    # ============== Session lifecycle ==============

    def _persist(self) -> None:
        self.store.save(self.session)

    async def start(self, sync: bool = True) -> None:
        """Resume a stored session, renewing it if needed, then sync."""
        stored = self.store.load()
        if stored is None:
            logger.info("No stored session - logged out")
            self._notify()
            return

        self.session.access_token = stored.access_token
        self.session.access_token_expiry = stored.access_token_expiry
        self.session.refresh_token = stored.refresh_token

        if not self.session.is_expired(self._clock()):
            self.session.authenticated = True
            self.cache.activate(self.session.access_token)
            if sync:
                await self._sync(force=False)
            return

        if not self.session.refresh_token:
            logger.info("Stored access token expired and no refresh token - logged out")
            await self.logout()
            return

        if await self._renew() and sync:
            await self._sync(force=False)

    async def login(self, code: str) -> None:
        """Exchange an authorization code and start syncing."""
        generation = self.session.generation
        try:
            grant = await asyncio.to_thread(
                self.token_service.exchange_authorization_code, code, self.redirect_uri
            )
        except (TokenExchangeError, ConfigurationError) as e:
            logger.error(f"Login failed: {e}")
            self.last_error = e
            self._notify()
            raise

        if self.session.generation != generation:
            logger.info("Discarding login result after a concurrent session change")
            return

        self.session.apply_grant(
            grant.access_token,
            grant.expires_in_seconds,
            self._clock(),
            refresh_token=grant.refresh_token,
        )
        self._persist()
        self.last_error = None
        self.cache.activate(self.session.access_token)
        logger.info("Logged in")
        await self._sync(force=True)

    async def logout(self) -> None:
        """Forget credentials and cached data."""
        self.store.clear()
        self.cache.clear()
        self.session.reset()
        self._removing.clear()
        self._completed.clear()
        logger.info("Logged out")
        self._notify()

    async def _renew(self) -> bool:
        """
        Exchange the refresh token once. Logs out on failure.

        Concurrent callers share one exchange. Returns True on success.
        """
        if self._refreshing is not None:
            return await asyncio.shield(self._refreshing)
        self._refreshing = asyncio.create_task(self._run_renew())
        try:
            return await asyncio.shield(self._refreshing)
        finally:
            self._refreshing = None

    async def _run_renew(self) -> bool:
        refresh_token = self.session.refresh_token
        if not refresh_token:
            logger.warning("Cannot renew session without a refresh token")
            await self.logout()
            return False

        generation = self.session.generation
        try:
            grant = await asyncio.to_thread(self.token_service.refresh_access_token, refresh_token)
        except ConfigurationError as e:
            logger.error(f"Cannot renew session: {e}")
            self.last_error = e
            self._notify()
            raise
        except TokenRefreshError as e:
            logger.error(f"Token refresh failed, logging out: {e}")
            if self.session.generation == generation:
                await self.logout()
            self.last_error = e
            self._notify()
            return False

        if self.session.generation != generation:
            # A logout or new login happened meanwhile
            logger.info("Discarding refreshed token after a concurrent session change")
            return False

        self.session.apply_grant(grant.access_token, grant.expires_in_seconds, self._clock())
        self._persist()
        self.cache.activate(self.session.access_token)
        logger.info("Access token renewed")
        return True

    async def handle_auth_failure(self, key: str, error: AuthError) -> None:
        """
        React to a 401/403 from a fetch: one refresh-token exchange, else logout.

        Background failures leave the renewed token to the next scheduled sync.
        """
        if not self.session.authenticated or key != self.session.access_token:
            logger.debug("Ignoring auth failure for a superseded credential")
            return
        logger.warning(f"Authentication rejected by provider: {error}")
        self.last_error = error
        await self._renew()

    # ============== Sync ==============

    async def _sync(self, force: bool, retry_auth: bool = True) -> None:
        """Refresh the active credential, routing failures."""
        key = self.session.access_token
        try:
            await self.cache.refresh(key, force=force)
        except AuthError as e:
            await self.handle_auth_failure(key, e)
            # Renewed: one more attempt with the new token
            if retry_auth and self.session.authenticated and self.session.access_token != key:
                await self._sync(force=True, retry_auth=False)
        except DayviewError as e:
            logger.warning(f"Sync failed, keeping last result: {e}")
            self.last_error = e
            self._notify()

    async def manual_refresh(self) -> None:
        """User-requested refresh, bypassing the staleness window."""
        if not self.session.authenticated:
            logger.info("Ignoring refresh while logged out")
            return
        if self.session.is_expired(self._clock()):
            if not await self._renew():
                return
        await self._sync(force=True)

    # ============== Mutations ==============

    async def complete_task(self, task_id: str) -> None:
        """
        Complete a task optimistically.

        The task is hidden at once; on failure it reappears and the error is
        raised. No automatic retry.
        """
        if not self.session.authenticated:
            raise TaskCompletionError("Not logged in")

        access_token = self.session.access_token
        self._removing.add(task_id)
        self._notify()

        try:
            list_id = await asyncio.to_thread(self.task_repo.find_owning_list_id, access_token, task_id)
            if list_id is None:
                raise TaskCompletionError(f"Could not find task list for task {task_id}")
            await asyncio.to_thread(self.task_repo.complete_task, access_token, list_id, task_id)
        except DayviewError as e:
            logger.error(f"Failed to complete task {task_id}: {e}")
            self._removing.discard(task_id)
            self.last_error = e
            self._notify()
            if isinstance(e, AuthError):
                await self.handle_auth_failure(access_token, e)
            raise

        logger.info(f"Task {task_id} completed")
        self._completed.add(task_id)
        # Refetch under whichever credential is current so the marker is confirmed
        if self.session.authenticated:
            self.cache.invalidate(self.session.access_token)
