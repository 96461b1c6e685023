"""Cache storage protocol.

Defines the interface for a durable key-value record store that maps an
opaque string key to a JSON payload plus an absolute expiry.

Implementations can include:
- Redis (default)
- In-process dictionary (tests, single-process runs)
- A relational table keyed by id
"""

from typing import Any, Protocol, runtime_checkable

from notion_cache.entities import CacheRecord


@runtime_checkable
class CacheStore(Protocol):
    """Protocol for cache storage backends.

    Expiry is lazy: records are only checked against the clock when read,
    and an expired record found on read is deleted and reported absent.
    There is no background eviction.

    Implementations raise ``CacheStoreError`` on backend failures; deciding
    whether to fail open is the caller's job.
    """

    async def get(self, key: str) -> Any | None:
        """Get the payload stored under ``key``.

        Args:
            key: The full storage key

        Returns:
            The payload, or None if absent or expired
        """
        ...

    async def get_record(self, key: str) -> CacheRecord | None:
        """Get the full record stored under ``key``, honouring expiry.

        Args:
            key: The full storage key

        Returns:
            The record, or None if absent or expired
        """
        ...

    async def set(self, key: str, data: Any, ttl_minutes: float) -> None:
        """Upsert a payload with ``expires_at = now + ttl_minutes``.

        Args:
            key: The full storage key
            data: JSON-serializable payload
            ttl_minutes: Time-to-live in minutes
        """
        ...

    async def set_many(self, entries: dict[str, Any], ttl_minutes: float) -> None:
        """Upsert several payloads sharing one write timestamp.

        Args:
            entries: Mapping of full storage key to payload
            ttl_minutes: Time-to-live in minutes for every entry
        """
        ...

    async def delete(self, key: str) -> None:
        """Delete ``key``. No error if it does not exist."""
        ...

    async def delete_by_prefix(self, prefix: str) -> int:
        """Delete every key starting with ``prefix``.

        Returns:
            Number of records deleted
        """
        ...

    async def list_all(self) -> list[CacheRecord]:
        """List every stored record, newest ``updated_at`` first.

        Expired records that were never read are included.
        """
        ...

    async def purge_expired(self) -> int:
        """Delete every expired record.

        Returns:
            Number of records deleted
        """
        ...

    async def health_check(self) -> bool:
        """Check if the store is accessible."""
        ...

    async def get_stats(self) -> dict:
        """Get store statistics (implementation-specific)."""
        ...
