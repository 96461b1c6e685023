"""In-memory implementation of CacheStore.

Dictionary-backed store with the same lazy-expiry semantics as the Redis
repository. Useful for tests and single-process runs (``CACHE_BACKEND=memory``).
"""

import copy
import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from notion_cache.entities import CacheRecord
from notion_cache.utils import utc_now

logger = logging.getLogger(__name__)


def _copy(record: CacheRecord) -> CacheRecord:
    return CacheRecord(
        key=record.key,
        data=copy.deepcopy(record.data),
        expires_at=record.expires_at,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


class InMemoryCacheRepository:
    """Dictionary implementation of the CacheStore protocol.

    Payloads are deep-copied on the way in and out so callers cannot
    mutate stored data behind the store's back.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        """Initialize the in-memory repository.

        Args:
            clock: Callable returning the current aware datetime. Defaults to UTC now.
        """
        self._clock = clock or utc_now
        self._records: dict[str, CacheRecord] = {}

    async def get(self, key: str) -> Any | None:
        record = await self.get_record(key)
        return record.data if record else None

    async def get_record(self, key: str) -> CacheRecord | None:
        record = self._records.get(key)
        if record is None:
            return None

        if record.is_expired(self._clock()):
            del self._records[key]
            logger.debug("Expired cache entry deleted: %s", key)
            return None

        return _copy(record)

    async def set(self, key: str, data: Any, ttl_minutes: float) -> None:
        self._write(key, data, ttl_minutes, self._clock())

    async def set_many(self, entries: dict[str, Any], ttl_minutes: float) -> None:
        now = self._clock()
        for key, data in entries.items():
            self._write(key, data, ttl_minutes, now)

    def _write(self, key: str, data: Any, ttl_minutes: float, now: datetime) -> None:
        existing = self._records.get(key)
        self._records[key] = CacheRecord(
            key=key,
            data=copy.deepcopy(data),
            expires_at=now + timedelta(minutes=ttl_minutes),
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )

    async def delete(self, key: str) -> None:
        self._records.pop(key, None)

    async def delete_by_prefix(self, prefix: str) -> int:
        keys = [key for key in self._records if key.startswith(prefix)]
        for key in keys:
            del self._records[key]
        return len(keys)

    async def list_all(self) -> list[CacheRecord]:
        records = sorted(self._records.values(), key=lambda r: r.updated_at, reverse=True)
        return [_copy(record) for record in records]

    async def purge_expired(self) -> int:
        now = self._clock()
        expired = [key for key, record in self._records.items() if record.is_expired(now)]
        for key in expired:
            del self._records[key]
        return len(expired)

    async def health_check(self) -> bool:
        return True

    async def get_stats(self) -> dict:
        return {
            "backend": "memory",
            "total_entries": len(self._records),
        }
