"""Per-practitioner session services.

A PractitionerSession owns everything the cache core keeps for one
logged-in user: the owner-scoped cache, the reference data snapshot, the
sync coordinator and the notifier. It is built once when the user first
shows up and disposed explicitly on logout.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from notion_cache.config import settings
from notion_cache.entities import Session
from notion_cache.policies import EdgeFunctionPolicy, resolve_cache_key, resolve_invalidations
from notion_cache.protocols import CacheStore, Notifier, RemoteSource

from .cache_service import CacheService
from .config_probe import ConfigProbe
from .fetch_executor import EdgeFunctionOptions, FetchExecutor, InFlightRegistry
from .notifier import RecordingNotifier
from .reference_data import ReferenceDataService, reference_data_options
from .sync_coordinator import SYNC_OPTIONS, SyncCoordinator

logger = logging.getLogger(__name__)


class SessionHolder:
    """SessionProvider holding the current session of one practitioner.

    The access token is refreshed on every request; ``clear()`` on logout
    makes every later ``execute`` fail the auth check.
    """

    def __init__(self, session: Session | None = None) -> None:
        self._session = session

    async def get_session(self) -> Session | None:
        return self._session

    def update(self, session: Session) -> None:
        self._session = session

    def clear(self) -> None:
        self._session = None

    @property
    def current(self) -> Session | None:
        return self._session


def options_for(policy: EdgeFunctionPolicy, payload: Any) -> EdgeFunctionOptions:
    """Executor options for one call under ``policy``.

    Raises:
        KeyError: If the policy's key template needs a missing payload field
    """
    return EdgeFunctionOptions(
        function_name=policy.function_name,
        requires_auth=policy.requires_auth,
        requires_config=policy.requires_config,
        cache_key=resolve_cache_key(policy, payload),
        cache_ttl=policy.ttl_minutes,
        timeout=settings.remote_deadline,
    )


class PractitionerSession:
    """Single owned instance of the cache core for one practitioner."""

    def __init__(
        self,
        session: Session,
        store: CacheStore,
        remote: RemoteSource,
        notifier: Notifier | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.sessions = SessionHolder(session)
        self.cache = CacheService.create(store, owner_id=session.user_id)
        self.notifier = notifier or RecordingNotifier()
        self.remote = remote
        self.config_probe = ConfigProbe(remote)
        self.in_flight = InFlightRegistry()
        self.disposed = False

        self.reference_data = ReferenceDataService(
            self.executor(reference_data_options()),
            clock=clock,
        )
        self.sync = SyncCoordinator(
            self.executor(SYNC_OPTIONS),
            cache=self.cache,
            sessions=self.sessions,
            notifier=self.notifier,
            on_sync_complete=self.reference_data.refetch_all,
            clock=clock,
        )

    @property
    def user_id(self) -> str:
        return self.cache.owner_id

    def executor(self, options: EdgeFunctionOptions, **callbacks: Any) -> FetchExecutor:
        """Build an executor wired to this session's collaborators."""
        return FetchExecutor(
            options,
            sessions=self.sessions,
            remote=self.remote,
            cache=self.cache,
            config_probe=self.config_probe,
            notifier=self.notifier,
            in_flight=self.in_flight,
            **callbacks,
        )

    async def start(self) -> None:
        """Session start: check reference caches, then load reference data."""
        await self.sync.check_and_sync()
        await self.reference_data.start()

    async def call(self, policy: EdgeFunctionPolicy, payload: Any | None = None) -> FetchExecutor:
        """Run one edge function under its policy.

        Reads go through the cache; successful writes invalidate the keys
        their policy names.

        Returns:
            The executor, whose ``state`` holds the outcome

        Raises:
            KeyError: If the policy's key template needs a missing payload field
        """
        executor = self.executor(options_for(policy, payload))
        await executor.execute(payload)

        if executor.state.error is None and not executor.state.needs_config and not executor.state.is_cached:
            keys, prefixes = resolve_invalidations(policy, payload)
            if keys:
                await self.cache.invalidate_many(keys)
            for prefix in prefixes:
                await self.cache.invalidate_by_prefix(prefix)
            if keys or prefixes:
                logger.info("Invalidated %s after %s", keys + [p + "*" for p in prefixes], policy.function_name)
        return executor

    def dispose(self) -> None:
        """Tear down on logout. Cached entries stay in the store."""
        self.reference_data.dispose()
        self.sessions.clear()
        self.disposed = True


class SessionRegistry:
    """PractitionerSession instances keyed by user id."""

    def __init__(
        self,
        store: CacheStore,
        remote: RemoteSource,
        notifier_factory: Callable[[], Notifier] = RecordingNotifier,
    ) -> None:
        self._store = store
        self._remote = remote
        self._notifier_factory = notifier_factory
        self._sessions: dict[str, PractitionerSession] = {}
        self._lock = asyncio.Lock()

    async def get_or_create(self, session: Session) -> PractitionerSession:
        """Return the user's session bundle, starting it on first use."""
        async with self._lock:
            practitioner = self._sessions.get(session.user_id)
            if practitioner is not None:
                practitioner.sessions.update(session)
                return practitioner

            practitioner = PractitionerSession(
                session,
                store=self._store,
                remote=self._remote,
                notifier=self._notifier_factory(),
            )
            self._sessions[session.user_id] = practitioner
            logger.info("Started session for user %s", session.user_id)

        await practitioner.start()
        return practitioner

    def get(self, user_id: str) -> PractitionerSession | None:
        return self._sessions.get(user_id)

    def dispose(self, user_id: str) -> bool:
        practitioner = self._sessions.pop(user_id, None)
        if practitioner is None:
            return False
        practitioner.dispose()
        logger.info("Disposed session for user %s", user_id)
        return True

    def dispose_all(self) -> None:
        for user_id in list(self._sessions):
            self.dispose(user_id)

    def __len__(self) -> int:
        return len(self._sessions)
