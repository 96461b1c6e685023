"""Redis implementation of CacheStore.

Each record is a Redis hash at ``<namespace>:<key>`` with the fields
``data`` (JSON), ``expires_at``, ``created_at`` and ``updated_at`` (epoch
seconds). No native Redis TTL is set: expiry is checked when a record is
read, and an expired record is deleted at that point.
"""

import json
import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import redis.asyncio as redis
from redis.exceptions import RedisError

from notion_cache.config import get_redis_client, settings
from notion_cache.entities import CacheRecord
from notion_cache.errors import CacheStoreError
from notion_cache.utils import utc_now

logger = logging.getLogger(__name__)


_GLOB_SPECIAL = "\\*?[]"
_DELETE_BATCH = 500

# Deletes the hash only while its updated_at still matches what was read
_DELETE_IF_UNCHANGED = """
if redis.call('HGET', KEYS[1], 'updated_at') == ARGV[1] then
    return redis.call('DEL', KEYS[1])
end
return 0
"""


def escape_glob(value: str) -> str:
    """Escape Redis glob metacharacters so ``value`` matches literally."""
    return "".join(f"\\{ch}" if ch in _GLOB_SPECIAL else ch for ch in value)


def _to_timestamp(value: datetime) -> str:
    return repr(value.timestamp())


def _from_timestamp(value: str | bytes) -> datetime:
    if isinstance(value, bytes):
        value = value.decode()
    return datetime.fromtimestamp(float(value), tz=timezone.utc)


class RedisCacheRepository:
    """Redis implementation of the CacheStore protocol.

    This class satisfies the CacheStore protocol through structural
    typing - no explicit inheritance needed.

    Every method is a round trip; nothing is mirrored in process.
    Backend failures are raised as ``CacheStoreError``.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        namespace: str | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the Redis cache repository.

        Args:
            redis_client: asyncio Redis client. If None, creates default.
            namespace: Prefix for every Redis key. Defaults to settings.
            clock: Callable returning the current aware datetime.
        """
        self._client = redis_client or get_redis_client()
        self._namespace = namespace or settings.cache_namespace
        self._clock = clock or utc_now

    @classmethod
    def create(cls, namespace: str | None = None) -> "RedisCacheRepository":
        """Factory method to create RedisCacheRepository with defaults.

        Args:
            namespace: Redis key prefix. If None, uses settings.

        Returns:
            Configured RedisCacheRepository
        """
        return cls(namespace=namespace)

    def _redis_key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    def _cache_key(self, redis_key: str | bytes) -> str:
        if isinstance(redis_key, bytes):
            redis_key = redis_key.decode()
        return redis_key[len(self._namespace) + 1:]

    def _parse(self, key: str, fields: dict) -> CacheRecord | None:
        if not fields:
            return None
        fields = {
            (k.decode() if isinstance(k, bytes) else k): v for k, v in fields.items()
        }
        try:
            raw_data = fields["data"]
            if isinstance(raw_data, bytes):
                raw_data = raw_data.decode()
            updated_at = _from_timestamp(fields["updated_at"])
            return CacheRecord(
                key=key,
                data=json.loads(raw_data),
                expires_at=_from_timestamp(fields["expires_at"]),
                created_at=_from_timestamp(fields.get("created_at") or fields["updated_at"]),
                updated_at=updated_at,
            )
        except (KeyError, ValueError) as e:
            # A half-written or foreign hash is treated as absent
            logger.warning("Ignoring malformed cache record %s: %s", key, e)
            return None

    async def get(self, key: str) -> Any | None:
        record = await self.get_record(key)
        return record.data if record else None

    async def get_record(self, key: str) -> CacheRecord | None:
        redis_key = self._redis_key(key)
        try:
            fields = await self._client.hgetall(redis_key)
        except RedisError as e:
            raise CacheStoreError(f"Failed to read cache entry {key}: {e}") from e

        record = self._parse(key, fields)
        if record is None:
            return None

        if record.is_expired(self._clock()):
            try:
                if await self._delete_if_unchanged(redis_key, fields):
                    logger.debug("Expired cache entry deleted: %s", key)
            except RedisError as e:
                logger.warning("Failed to delete expired cache entry %s: %s", key, e)
            return None

        return record

    async def _delete_if_unchanged(self, redis_key: str, fields: dict) -> int:
        stamp = fields.get("updated_at", fields.get(b"updated_at"))
        return await self._client.eval(_DELETE_IF_UNCHANGED, 1, redis_key, stamp)

    async def set(self, key: str, data: Any, ttl_minutes: float) -> None:
        await self.set_many({key: data}, ttl_minutes)

    async def set_many(self, entries: dict[str, Any], ttl_minutes: float) -> None:
        if not entries:
            return

        now = self._clock()
        expires_at = now + timedelta(minutes=ttl_minutes)

        pipe = self._client.pipeline()
        for key, data in entries.items():
            redis_key = self._redis_key(key)
            pipe.hsetnx(redis_key, "created_at", _to_timestamp(now))
            pipe.hset(
                redis_key,
                mapping={
                    "data": json.dumps(data),
                    "expires_at": _to_timestamp(expires_at),
                    "updated_at": _to_timestamp(now),
                },
            )
        try:
            await pipe.execute()
        except RedisError as e:
            raise CacheStoreError(f"Failed to write cache entries {list(entries)}: {e}") from e

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(self._redis_key(key))
        except RedisError as e:
            raise CacheStoreError(f"Failed to delete cache entry {key}: {e}") from e

    async def _scan(self, prefix: str = "") -> list[str]:
        pattern = escape_glob(self._redis_key(prefix)) + "*"
        return [key async for key in self._client.scan_iter(match=pattern)]

    async def _delete_redis_keys(self, redis_keys: list[str]) -> int:
        deleted = 0
        for start in range(0, len(redis_keys), _DELETE_BATCH):
            deleted += await self._client.delete(*redis_keys[start:start + _DELETE_BATCH])
        return deleted

    async def delete_by_prefix(self, prefix: str) -> int:
        try:
            return await self._delete_redis_keys(await self._scan(prefix))
        except RedisError as e:
            raise CacheStoreError(f"Failed to delete cache entries with prefix {prefix!r}: {e}") from e

    async def _load_all(self) -> list[tuple[str, dict, CacheRecord]]:
        redis_keys = await self._scan()
        if not redis_keys:
            return []

        pipe = self._client.pipeline()
        for redis_key in redis_keys:
            pipe.hgetall(redis_key)
        results = await pipe.execute()

        loaded = []
        for redis_key, fields in zip(redis_keys, results):
            record = self._parse(self._cache_key(redis_key), fields)
            if record is not None:
                loaded.append((redis_key, fields, record))
        return loaded

    async def list_all(self) -> list[CacheRecord]:
        try:
            records = [record for _, _, record in await self._load_all()]
        except RedisError as e:
            raise CacheStoreError(f"Failed to list cache entries: {e}") from e
        records.sort(key=lambda r: r.updated_at, reverse=True)
        return records

    async def purge_expired(self) -> int:
        try:
            now = self._clock()
            expired = [
                (redis_key, fields)
                for redis_key, fields, record in await self._load_all()
                if record.is_expired(now)
            ]
            if not expired:
                return 0
            pipe = self._client.pipeline()
            for redis_key, fields in expired:
                stamp = fields.get("updated_at", fields.get(b"updated_at"))
                pipe.eval(_DELETE_IF_UNCHANGED, 1, redis_key, stamp)
            return sum(await pipe.execute())
        except RedisError as e:
            raise CacheStoreError(f"Failed to purge expired cache entries: {e}") from e

    async def health_check(self) -> bool:
        """Check if Redis is accessible.

        Returns:
            True if healthy, False otherwise
        """
        try:
            return bool(await self._client.ping())
        except RedisError:
            return False

    async def get_stats(self) -> dict:
        try:
            total = len(await self._scan())
        except RedisError as e:
            raise CacheStoreError(f"Failed to count cache entries: {e}") from e
        return {
            "backend": "redis",
            "namespace": self._namespace,
            "total_entries": total,
        }

    async def close(self) -> None:
        await self._client.aclose()

    @property
    def client(self) -> redis.Redis:
        """Get the Redis client."""
        return self._client
