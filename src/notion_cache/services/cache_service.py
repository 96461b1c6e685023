"""Cache service for one owner's cache entries.

This service scopes every key to its owner (``<ownerId>:<resourceKey>``)
and applies the failure policy of the cache core: caching is best-effort,
so store failures on the hot path are logged and turned into misses or
no-ops instead of failing the operation that asked for the cache.
"""

import logging
from typing import Any

from notion_cache.entities import CacheRecord
from notion_cache.errors import CacheStoreError
from notion_cache.keys import build_key, owner_prefix, strip_owner
from notion_cache.protocols import CacheStore

logger = logging.getLogger(__name__)


class CacheService:
    """Owner-scoped cache facade.

    This service depends on the CacheStore PROTOCOL, not a concrete
    implementation, so Redis and the in-memory store are interchangeable.

    Failure policy:
    - ``get``/``get_record`` fail open: a store error is a cache miss
    - ``set``/``set_many``/``invalidate*`` log and swallow store errors
    - ``list_entries``/``clear``/``purge_expired`` are operator actions and
      let ``CacheStoreError`` propagate

    Example:
        ```python
        cache = CacheService.create(store, owner_id=session.user_id)
        await cache.set("all-modes", {"modes": [...]}, ttl_minutes=120)
        modes = await cache.get("all-modes")
        ```
    """

    def __init__(self, store: CacheStore, owner_id: str) -> None:
        """Initialize the cache service.

        Args:
            store: Cache storage backend (required).
            owner_id: Owner every key is scoped to (required).
        """
        if not owner_id:
            raise ValueError("owner_id is required")
        self._store = store
        self._owner_id = owner_id

    @classmethod
    def create(cls, store: CacheStore, owner_id: str) -> "CacheService":
        """Factory method to create a CacheService for one owner."""
        return cls(store=store, owner_id=owner_id)

    def key(self, resource_key: str) -> str:
        """Full stored key for ``resource_key``."""
        return build_key(self._owner_id, resource_key)

    async def get(self, resource_key: str) -> Any | None:
        """Get a cached payload, or None on miss, expiry or store failure."""
        key = self.key(resource_key)
        try:
            return await self._store.get(key)
        except CacheStoreError as e:
            logger.warning("Cache get failed for %s, treating as miss: %s", key, e)
            return None

    async def get_record(self, resource_key: str) -> CacheRecord | None:
        """Get a cached record with its timestamps, or None."""
        key = self.key(resource_key)
        try:
            return await self._store.get_record(key)
        except CacheStoreError as e:
            logger.warning("Cache getRaw failed for %s, treating as miss: %s", key, e)
            return None

    async def set(self, resource_key: str, data: Any, ttl_minutes: float) -> bool:
        """Store a payload. Returns False if the store rejected the write."""
        key = self.key(resource_key)
        try:
            await self._store.set(key, data, ttl_minutes)
            return True
        except CacheStoreError as e:
            logger.warning("Cache set failed for %s: %s", key, e)
            return False

    async def set_many(self, entries: dict[str, Any], ttl_minutes: float) -> bool:
        """Store several payloads with one shared timestamp."""
        scoped = {self.key(resource_key): data for resource_key, data in entries.items()}
        try:
            await self._store.set_many(scoped, ttl_minutes)
            return True
        except CacheStoreError as e:
            logger.warning("Cache set_many failed for %s: %s", list(scoped), e)
            return False

    async def invalidate(self, resource_key: str) -> None:
        key = self.key(resource_key)
        try:
            await self._store.delete(key)
        except CacheStoreError as e:
            logger.warning("Cache invalidate failed for %s: %s", key, e)

    async def invalidate_many(self, resource_keys: list[str] | tuple[str, ...]) -> None:
        """Invalidate keys one by one; a failure does not stop the rest."""
        for resource_key in resource_keys:
            await self.invalidate(resource_key)

    async def invalidate_by_prefix(self, prefix: str) -> int:
        """Invalidate every resource key starting with ``prefix``.

        Returns:
            Number of entries deleted (0 if the store failed)
        """
        scoped_prefix = self.key(prefix)
        try:
            return await self._store.delete_by_prefix(scoped_prefix)
        except CacheStoreError as e:
            logger.warning("Cache invalidateByPattern failed for %s: %s", scoped_prefix, e)
            return 0

    async def list_entries(self) -> list[CacheRecord]:
        """List this owner's records, keys shown without the owner prefix."""
        prefix = owner_prefix(self._owner_id)
        return [
            CacheRecord(
                key=strip_owner(self._owner_id, record.key),
                data=record.data,
                expires_at=record.expires_at,
                created_at=record.created_at,
                updated_at=record.updated_at,
            )
            for record in await self._store.list_all()
            if record.key.startswith(prefix)
        ]

    async def clear(self) -> int:
        """Delete every entry owned by this owner."""
        return await self._store.delete_by_prefix(owner_prefix(self._owner_id))

    async def purge_expired(self) -> int:
        return await self._store.purge_expired()

    async def is_healthy(self) -> bool:
        return await self._store.health_check()

    @property
    def owner_id(self) -> str:
        return self._owner_id

    @property
    def store(self) -> CacheStore:
        """Get the underlying store (for testing)."""
        return self._store
