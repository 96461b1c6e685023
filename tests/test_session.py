"""
Tests for the per-practitioner session bundle and its registry.
"""

import asyncio

import pytest

from conftest import reference_payload, sync_payload

from notion_cache.entities import Session
from notion_cache.errors import ErrorCode
from notion_cache.keys import REFERENCE_CACHE_KEYS
from notion_cache.policies import get_policy
from notion_cache.services import PractitionerSession, SessionRegistry, SyncStatus


@pytest.fixture
def practitioner(session, store, remote, notifier, clock):
    remote.responses["sync-notion-data"] = sync_payload()
    remote.responses["get-all-reference-data"] = reference_payload()
    return PractitionerSession(session, store=store, remote=remote, notifier=notifier, clock=clock)


class TestStart:
    """Session start runs the check, then the aggregator."""

    @pytest.mark.asyncio
    async def test_cold_start_syncs_then_loads(self, practitioner, remote):
        await practitioner.start()

        names = [name for name, _, _ in remote.calls if name != "get-notion-secrets"]
        # The sync's on_sync_complete refetches once, start() loads from cache
        assert names == ["sync-notion-data", "get-all-reference-data"]
        assert practitioner.sync.status is SyncStatus.SUCCESS
        assert practitioner.reference_data.data.counts["modes"] == 1
        assert practitioner.reference_data.is_cached is True

    @pytest.mark.asyncio
    async def test_warm_start_skips_sync(self, practitioner, remote, store):
        for key in REFERENCE_CACHE_KEYS:
            await store.set(f"user-1:{key}", {}, ttl_minutes=120)

        await practitioner.start()

        assert remote.count("sync-notion-data") == 0
        assert remote.count("get-all-reference-data") == 1


class TestCall:
    """Policy-driven calls."""

    @pytest.mark.asyncio
    async def test_read_through(self, practitioner, remote):
        remote.responses["get-single-appointment"] = {"id": "a1"}
        policy = get_policy("get-single-appointment")

        first = await practitioner.call(policy, {"appointmentId": "a1"})
        second = await practitioner.call(policy, {"appointmentId": "a1"})

        assert first.state.is_cached is False
        assert second.state.is_cached is True
        assert second.state.data == {"id": "a1"}
        assert remote.count("get-single-appointment") == 1

    @pytest.mark.asyncio
    async def test_write_invalidates_lists(self, practitioner, remote):
        remote.responses["get-all-clients"] = [{"id": "c1"}]
        remote.responses["create-client"] = {"id": "c2"}
        await practitioner.call(get_policy("get-all-clients"))

        await practitioner.call(get_policy("create-client"), {"name": "Ada"})

        assert await practitioner.cache.get("all-clients") is None
        await practitioner.call(get_policy("get-all-clients"))
        assert remote.count("get-all-clients") == 2

    @pytest.mark.asyncio
    async def test_failed_write_keeps_cache(self, practitioner, remote):
        remote.responses["get-all-clients"] = [{"id": "c1"}]
        await practitioner.call(get_policy("get-all-clients"))

        executor = await practitioner.call(get_policy("delete-client"), {"clientId": "c1"})

        assert executor.state.error is not None
        assert await practitioner.cache.get("all-clients") == [{"id": "c1"}]

    @pytest.mark.asyncio
    async def test_set_secrets_clears_owner_cache(self, practitioner, remote):
        remote.responses["get-all-clients"] = [{"id": "c1"}]
        remote.responses["set-notion-secrets"] = {"success": True}
        await practitioner.call(get_policy("get-all-clients"))

        await practitioner.call(get_policy("set-notion-secrets"), {"notionToken": "secret"})

        assert await practitioner.cache.list_entries() == []

    @pytest.mark.asyncio
    async def test_missing_key_field(self, practitioner):
        with pytest.raises(KeyError):
            await practitioner.call(get_policy("get-session-logs"), {})

    @pytest.mark.asyncio
    async def test_dispose_revokes_session(self, practitioner, remote):
        remote.responses["get-all-clients"] = [{"id": "c1"}]
        practitioner.dispose()

        executor = await practitioner.call(get_policy("get-all-clients"))

        assert practitioner.disposed is True
        assert executor.state.error_code == ErrorCode.AUTH_REQUIRED.value

    @pytest.mark.asyncio
    async def test_dispose_during_sync_discards_result(self, practitioner, remote, store):
        remote.gate = asyncio.Event()
        sync = asyncio.ensure_future(practitioner.sync.handle_sync())
        await asyncio.sleep(0)
        assert practitioner.sync.is_syncing is True

        practitioner.dispose()
        remote.gate.set()

        assert await sync is True
        assert practitioner.sync.status is SyncStatus.IDLE
        assert practitioner.sync.is_syncing is False
        assert remote.count("get-all-reference-data") == 0
        assert await store.list_all() == []


class TestRegistry:
    """One bundle per user."""

    @pytest.mark.asyncio
    async def test_get_or_create_reuses_bundle(self, store, remote, session):
        remote.responses["sync-notion-data"] = sync_payload()
        remote.responses["get-all-reference-data"] = reference_payload()
        registry = SessionRegistry(store=store, remote=remote)

        first = await registry.get_or_create(session)
        refreshed = Session(user_id=session.user_id, access_token="token-2")
        second = await registry.get_or_create(refreshed)

        assert first is second
        assert second.sessions.current.access_token == "token-2"
        assert len(registry) == 1
        assert remote.count("sync-notion-data") == 1

    @pytest.mark.asyncio
    async def test_dispose(self, store, remote, session):
        remote.responses["sync-notion-data"] = sync_payload()
        remote.responses["get-all-reference-data"] = reference_payload()
        registry = SessionRegistry(store=store, remote=remote)
        practitioner = await registry.get_or_create(session)

        assert registry.dispose(session.user_id) is True
        assert registry.dispose(session.user_id) is False
        assert practitioner.disposed is True
        assert registry.get(session.user_id) is None
        assert await store.get("user-1:all-modes") is not None
