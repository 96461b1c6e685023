"""Sync and invalidation coordinator.

On session start it checks that every per-category reference key is
present in the cache. If any is missing it asks the remote to resync all
reference databases at once. After a successful resync it repopulates the
reference keys and deletes the caches that embed copies of reference
fields (client and appointment lists, page content, the combined
snapshot), since those would otherwise go stale silently.

State machine per session: IDLE -> CHECKING -> SYNCING -> SUCCESS | ERROR.
There is no automatic retry; a failed sync waits for ``handle_sync()``.
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from enum import Enum
from typing import Any

from notion_cache.config import settings
from notion_cache.keys import (
    DEPENDENT_CACHE_KEYS,
    PAGE_PREFIX,
    REFERENCE_CACHE_KEYS,
    REFERENCE_CATEGORY_KEYS,
)
from notion_cache.protocols import Notifier, SessionProvider
from notion_cache.utils import utc_now

from .cache_service import CacheService
from .fetch_executor import EdgeFunctionOptions, FetchExecutor, invoke_callback

logger = logging.getLogger(__name__)

SYNC_FUNCTION = "sync-notion-data"

SYNC_OPTIONS = EdgeFunctionOptions(
    function_name=SYNC_FUNCTION,
    requires_auth=True,
    cache_key=None,  # resync results are never cached
)


class SyncStatus(str, Enum):
    IDLE = "idle"
    CHECKING = "checking"
    SYNCING = "syncing"
    SUCCESS = "success"
    ERROR = "error"


class SyncCoordinator:
    """Checks reference cache freshness and runs the resync cascade.

    Example:
        ```python
        coordinator = SyncCoordinator(executor, cache, sessions, notifier,
                                      on_sync_complete=reference_data.refetch_all)
        await coordinator.check_and_sync()   # on session start
        await coordinator.handle_sync()      # user pressed "sync"
        ```
    """

    def __init__(
        self,
        executor: FetchExecutor,
        cache: CacheService,
        sessions: SessionProvider,
        notifier: Notifier | None = None,
        on_sync_complete: Callable[[], Awaitable[None] | None] | None = None,
        reference_keys: tuple[str, ...] = REFERENCE_CACHE_KEYS,
        dependent_keys: tuple[str, ...] = DEPENDENT_CACHE_KEYS,
        dependent_prefixes: tuple[str, ...] = (PAGE_PREFIX,),
        reference_ttl: float | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._executor = executor
        self._cache = cache
        self._sessions = sessions
        self._notifier = notifier
        self.on_sync_complete = on_sync_complete
        self._reference_keys = reference_keys
        self._dependent_keys = dependent_keys
        self._dependent_prefixes = dependent_prefixes
        self._reference_ttl = reference_ttl or settings.reference_collection_ttl
        self._clock = clock or utc_now

        self.status = SyncStatus.IDLE
        self.last_sync: datetime | None = None
        self.last_error: str | None = None
        self.synced: list[str] = []
        self._is_syncing = False

        executor.on_success = self._handle_sync_success
        executor.on_error = self._handle_sync_error

    @property
    def is_syncing(self) -> bool:
        return self._is_syncing

    async def check_and_sync(self) -> None:
        """Probe the reference keys and resync if any is missing."""
        if await self._sessions.get_session() is None:
            logger.debug("No session, skipping reference cache check")
            return
        if self._is_syncing:
            return

        self.status = SyncStatus.CHECKING
        latest: datetime | None = None
        for key in self._reference_keys:
            record = await self._cache.get_record(key)
            if record is None:
                if self._is_syncing:
                    # A manual sync started while the keys were being read
                    return
                logger.info("Cache miss for key: %s. Triggering background sync.", key)
                await self._run_sync()
                return
            if latest is None or record.updated_at > latest:
                latest = record.updated_at

        self.last_sync = latest
        self.status = SyncStatus.SUCCESS
        logger.debug("Reference caches present, last sync %s", latest)

    async def handle_sync(self, sync_type: str = "all") -> bool:
        """Manual sync, skipping the presence check.

        Args:
            sync_type: Databases to resync, passed to the remote as ``syncType``

        Returns:
            False if a sync was already in flight and this request was dropped
        """
        if self._is_syncing:
            logger.info("Sync already in progress, ignoring manual trigger")
            return False
        await self._run_sync(sync_type)
        return True

    async def _run_sync(self, sync_type: str = "all") -> None:
        self._is_syncing = True
        self.status = SyncStatus.SYNCING
        self.last_error = None
        try:
            await self._executor.execute({"syncType": sync_type})
        finally:
            self._is_syncing = False

        # The executor aborts without a callback when the session vanished
        if self.status is SyncStatus.SYNCING:
            self.status = SyncStatus.ERROR
            self.last_error = self._executor.state.error or "Sync did not complete"

    async def _handle_sync_success(self, data: Any) -> None:
        if await self._sessions.get_session() is None:
            logger.info("Session ended during sync, discarding the result")
            self.status = SyncStatus.IDLE
            return

        results = data.get("results") if isinstance(data, dict) else None
        synced = data.get("synced") if isinstance(data, dict) else None
        self.synced = list(synced or [])

        await self._repopulate_reference_keys(results)
        await self.invalidate_dependents()

        self.last_sync = self._clock()
        self.status = SyncStatus.SUCCESS
        if self._notifier:
            self._notifier.success(f"Synced {len(self.synced)} databases successfully!")
        await invoke_callback(self.on_sync_complete)

    def _handle_sync_error(self, message: str, error_code: str | None) -> None:
        self.status = SyncStatus.ERROR
        self.last_error = message
        if self._notifier:
            self._notifier.error(f"Sync failed: {message}")

    async def _repopulate_reference_keys(self, results: Any) -> None:
        if not isinstance(results, dict):
            return
        entries = {
            key: {category: results[category]}
            for category, key in REFERENCE_CATEGORY_KEYS.items()
            if key in self._reference_keys and results.get(category) is not None
        }
        if entries:
            await self._cache.set_many(entries, self._reference_ttl)
            logger.info("Repopulated reference caches: %s", sorted(entries))

    async def invalidate_dependents(self) -> None:
        """Delete every cache derived from reference data.

        Sequential, independent deletes: a failure part-way leaves the
        remaining keys in place.
        """
        await self._cache.invalidate_many(self._dependent_keys)
        for prefix in self._dependent_prefixes:
            await self._cache.invalidate_by_prefix(prefix)
        logger.info("Cleared relevant caches after successful sync")

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "is_syncing": self._is_syncing,
            "last_sync": self.last_sync,
            "last_error": self.last_error,
            "synced": self.synced,
        }
