"""HTTP handlers for cache inspection and maintenance.

Handlers convert between DTOs (API contracts) and service calls.
They handle HTTP concerns like status codes, validation, and error handling.
"""

from fastapi import HTTPException, status

from notion_cache.dto import (
    CacheClearResponse,
    CacheEntriesResponse,
    CacheEntryItem,
    CacheStatsResponse,
    HealthCheckResponse,
)
from notion_cache.errors import CacheStoreError
from notion_cache.protocols import CacheStore
from notion_cache.services import CacheService
from notion_cache.utils import utc_now


class CacheHandler:
    """HTTP handlers for one owner's cache entries.

    Unlike the hot path, these are operator actions: a store failure is
    reported as 503 instead of being swallowed.

    Example:
        ```python
        handler = CacheHandler(cache_service=practitioner.cache)

        @app.get("/cache/entries", response_model=CacheEntriesResponse)
        async def list_entries():
            return await handler.list_entries()
        ```
    """

    def __init__(self, cache_service: CacheService) -> None:
        """Initialize the cache handler.

        Args:
            cache_service: Owner-scoped cache service (required).
        """
        self._cache = cache_service

    async def list_entries(self) -> CacheEntriesResponse:
        """Handle GET /cache/entries requests."""
        try:
            records = await self._cache.list_entries()
        except CacheStoreError as e:
            raise _unavailable("Failed to list cache entries", e) from e

        now = utc_now()
        items = [
            CacheEntryItem(
                key=record.key,
                data=record.data,
                expires_at=record.expires_at,
                created_at=record.created_at,
                updated_at=record.updated_at,
                is_expired=record.is_expired(now),
            )
            for record in records
        ]
        return CacheEntriesResponse(entries=items, total=len(items))

    async def delete_entry(self, resource_key: str) -> CacheClearResponse:
        """Handle DELETE /cache/entries/{resource_key} requests.

        Raises:
            HTTPException: 404 if the caller has no live entry under that key
        """
        try:
            exists = await self._cache.store.get_record(self._cache.key(resource_key)) is not None
            if exists:
                await self._cache.store.delete(self._cache.key(resource_key))
        except CacheStoreError as e:
            raise _unavailable(f"Failed to delete {resource_key}", e) from e

        if not exists:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"No cache entry for {resource_key}",
            )
        return CacheClearResponse(success=True, deleted_count=1, message=f"Deleted {resource_key}")

    async def clear_cache(self) -> CacheClearResponse:
        """Handle DELETE /cache requests (caller's entries only)."""
        try:
            count = await self._cache.clear()
        except CacheStoreError as e:
            raise _unavailable("Failed to clear cache", e) from e
        return CacheClearResponse(
            success=True,
            deleted_count=count,
            message="Cache cleared successfully",
        )

    async def purge_expired(self) -> CacheClearResponse:
        """Handle POST /cache/purge-expired requests."""
        try:
            count = await self._cache.purge_expired()
        except CacheStoreError as e:
            raise _unavailable("Failed to purge expired entries", e) from e
        return CacheClearResponse(
            success=True,
            deleted_count=count,
            message=f"Purged {count} expired entries",
        )

    async def get_stats(self) -> CacheStatsResponse:
        """Handle GET /cache/stats requests."""
        try:
            stats = await self._cache.store.get_stats()
            records = await self._cache.list_entries()
        except CacheStoreError as e:
            raise _unavailable("Failed to get stats", e) from e

        now = utc_now()
        return CacheStatsResponse(
            backend=stats.get("backend", "unknown"),
            total_entries=stats.get("total_entries", 0),
            owner_entries=len(records),
            expired_entries=sum(1 for record in records if record.is_expired(now)),
        )


async def health_check(store: CacheStore, backend: str) -> HealthCheckResponse:
    """Handle GET /health requests."""
    is_healthy = await store.health_check()
    return HealthCheckResponse(
        status="healthy" if is_healthy else "unhealthy",
        cache_healthy=is_healthy,
        backend=backend,
    )


def _unavailable(message: str, error: Exception) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"{message}: {error}",
    )
