"""
Tests for the in-memory cache store.
"""

from datetime import timedelta

import pytest

from notion_cache.repositories import InMemoryCacheRepository


class TestExpiry:
    """Lazy expiry on read."""

    @pytest.mark.asyncio
    async def test_entry_valid_until_expiry(self, store, clock):
        await store.set("u:all-clients", [{"id": 1}], ttl_minutes=60)

        clock.advance(minutes=59, seconds=59)
        assert await store.get("u:all-clients") == [{"id": 1}]

    @pytest.mark.asyncio
    async def test_entry_absent_at_expiry(self, store, clock):
        await store.set("u:all-clients", [{"id": 1}], ttl_minutes=60)

        clock.advance(minutes=60)
        assert await store.get("u:all-clients") is None

    @pytest.mark.asyncio
    async def test_expired_read_deletes_record(self, store, clock):
        await store.set("u:k", "v", ttl_minutes=1)
        clock.advance(minutes=2)

        assert len(await store.list_all()) == 1
        assert await store.get_record("u:k") is None
        assert await store.list_all() == []

    @pytest.mark.asyncio
    async def test_expired_stays_expired(self, store, clock):
        await store.set("u:k", "v", ttl_minutes=1)
        clock.advance(minutes=1)

        assert await store.get("u:k") is None
        clock.advance(minutes=10)
        assert await store.get("u:k") is None

    @pytest.mark.asyncio
    async def test_unread_expired_records_are_listed(self, store, clock):
        await store.set("u:k", "v", ttl_minutes=1)
        clock.advance(minutes=5)

        records = await store.list_all()
        assert [r.key for r in records] == ["u:k"]
        assert records[0].is_expired(clock())

    @pytest.mark.asyncio
    async def test_purge_expired(self, store, clock):
        await store.set("u:old", 1, ttl_minutes=1)
        await store.set("u:new", 2, ttl_minutes=60)
        clock.advance(minutes=5)

        assert await store.purge_expired() == 1
        assert [r.key for r in await store.list_all()] == ["u:new"]


class TestWrites:
    """Upsert semantics."""

    @pytest.mark.asyncio
    async def test_set_is_idempotent(self, store, clock):
        await store.set("u:k", {"a": 1}, ttl_minutes=30)
        await store.set("u:k", {"a": 1}, ttl_minutes=30)

        records = await store.list_all()
        assert len(records) == 1
        assert records[0].data == {"a": 1}
        assert records[0].expires_at == clock() + timedelta(minutes=30)

    @pytest.mark.asyncio
    async def test_overwrite_keeps_created_at(self, store, clock):
        await store.set("u:k", "first", ttl_minutes=30)
        created = (await store.get_record("u:k")).created_at

        clock.advance(minutes=5)
        await store.set("u:k", "second", ttl_minutes=30)
        record = await store.get_record("u:k")

        assert record.data == "second"
        assert record.created_at == created
        assert record.updated_at == clock()

    @pytest.mark.asyncio
    async def test_set_many_shares_timestamp(self, store, clock):
        await store.set_many({"u:a": 1, "u:b": 2}, ttl_minutes=120)

        a = await store.get_record("u:a")
        b = await store.get_record("u:b")
        assert a.updated_at == b.updated_at == clock()
        assert a.expires_at == b.expires_at

    @pytest.mark.asyncio
    async def test_stored_data_is_copied(self, store):
        payload = {"items": [1, 2]}
        await store.set("u:k", payload, ttl_minutes=30)
        payload["items"].append(3)

        fetched = await store.get("u:k")
        fetched["items"].append(4)

        assert await store.get("u:k") == {"items": [1, 2]}

    @pytest.mark.asyncio
    async def test_listed_data_is_copied(self, store):
        await store.set("u:k", {"items": [1, 2]}, ttl_minutes=30)

        [listed] = await store.list_all()
        listed.data["items"].append(3)

        assert await store.get("u:k") == {"items": [1, 2]}

    @pytest.mark.asyncio
    async def test_delete_missing_key_is_noop(self, store):
        await store.delete("u:nothing")
        assert await store.list_all() == []


class TestPrefixDeletion:
    """delete_by_prefix removes exactly the matching keys."""

    @pytest.mark.asyncio
    async def test_page_prefix(self, store):
        for key in ("U:page:abc", "U:page:def", "U:pages-index", "V:page:abc"):
            await store.set(key, "x", ttl_minutes=60)

        assert await store.delete_by_prefix("U:page:") == 2

        remaining = sorted(r.key for r in await store.list_all())
        assert remaining == ["U:pages-index", "V:page:abc"]

    @pytest.mark.asyncio
    async def test_list_all_newest_first(self, store, clock):
        await store.set("u:first", 1, ttl_minutes=60)
        clock.advance(minutes=1)
        await store.set("u:second", 2, ttl_minutes=60)

        assert [r.key for r in await store.list_all()] == ["u:second", "u:first"]


@pytest.mark.asyncio
async def test_stats_and_health():
    store = InMemoryCacheRepository()
    await store.set("u:k", 1, ttl_minutes=1)

    assert await store.health_check() is True
    assert await store.get_stats() == {"backend": "memory", "total_entries": 1}
