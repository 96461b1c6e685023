"""
Tests for the reference-data aggregator.
"""

import pytest

from conftest import config_missing, reference_payload

from notion_cache.entities import ReferenceDataSet
from notion_cache.errors import RemoteCallError
from notion_cache.services import FetchExecutor, ReferenceDataService
from notion_cache.services.reference_data import REFERENCE_DATA_FUNCTION, reference_data_options


@pytest.fixture
def service(sessions, remote, cache, probe, notifier, clock):
    executor = FetchExecutor(
        reference_data_options(),
        sessions=sessions,
        remote=remote,
        cache=cache,
        config_probe=probe,
        notifier=notifier,
    )
    return ReferenceDataService(executor, clock=clock)


class TestSnapshot:
    """One payload, one snapshot."""

    @pytest.mark.asyncio
    async def test_start_builds_snapshot(self, service, remote, clock):
        remote.responses[REFERENCE_DATA_FUNCTION] = reference_payload()

        await service.start()

        data = service.data
        assert data.counts == {"modes": 1, "muscles": 1, "chakras": 1, "channels": 1, "acupoints": 1}
        assert data.fetched_at == clock()
        assert data.modes[0].action_note == "hold"
        assert data.acupoints[0].for_ == "cough"
        assert data.channels[0].sedate_points == ("LU5",)
        assert service.loading is False
        assert service.error is None

    @pytest.mark.asyncio
    async def test_second_load_comes_from_cache(self, service, remote, store):
        remote.responses[REFERENCE_DATA_FUNCTION] = reference_payload()

        await service.start()
        await service.refetch_all()

        assert remote.count(REFERENCE_DATA_FUNCTION) == 1
        assert service.is_cached is True
        assert await store.get("user-1:all-reference-data") == reference_payload()

    @pytest.mark.asyncio
    async def test_failed_refetch_keeps_previous_snapshot(self, service, remote, store):
        remote.responses[REFERENCE_DATA_FUNCTION] = reference_payload("-v1")
        await service.start()
        before = service.data

        await store.delete("user-1:all-reference-data")
        remote.responses[REFERENCE_DATA_FUNCTION] = RemoteCallError("Notion API down")
        await service.refetch_all()

        assert service.data is before
        assert service.error == "Notion API down"

    @pytest.mark.asyncio
    async def test_new_snapshot_replaces_every_collection(self, service, remote, store):
        remote.responses[REFERENCE_DATA_FUNCTION] = reference_payload("-v1")
        await service.start()

        await store.delete("user-1:all-reference-data")
        remote.responses[REFERENCE_DATA_FUNCTION] = reference_payload("-v2")
        await service.refetch_all()

        data = service.data
        names = [data.modes[0].name, data.muscles[0].name, data.chakras[0].name,
                 data.channels[0].name, data.acupoints[0].name]
        assert all(name.endswith("-v2") for name in names)

    @pytest.mark.asyncio
    async def test_malformed_payload_is_an_error(self, service, remote):
        remote.responses[REFERENCE_DATA_FUNCTION] = {"data": ["not", "a", "mapping"]}

        await service.start()

        assert service.data.is_empty
        assert "must be a JSON object" in service.error


class TestStates:
    """Config and lifecycle."""

    @pytest.mark.asyncio
    async def test_config_missing_clears_error(self, service, remote):
        remote.responses["get-notion-secrets"] = config_missing()

        await service.start()

        assert service.needs_config is True
        assert service.error is None
        assert service.data == ReferenceDataSet.empty()
        assert remote.count(REFERENCE_DATA_FUNCTION) == 0

    @pytest.mark.asyncio
    async def test_refetch_resets_needs_config(self, service, remote):
        remote.responses["get-notion-secrets"] = config_missing()
        await service.start()

        remote.responses["get-notion-secrets"] = {"configured": True}
        remote.responses[REFERENCE_DATA_FUNCTION] = reference_payload()
        await service.refetch_all()

        assert service.needs_config is False
        assert service.data.counts["modes"] == 1

    @pytest.mark.asyncio
    async def test_dispose(self, service, remote):
        remote.responses[REFERENCE_DATA_FUNCTION] = reference_payload()
        await service.start()

        service.dispose()

        assert service.disposed is True
        assert service.data.is_empty
        with pytest.raises(RuntimeError):
            await service.refetch_all()


def test_payload_without_data_wrapper(clock):
    snapshot = ReferenceDataSet.from_payload(reference_payload()["data"], fetched_at=clock())
    assert snapshot.counts["chakras"] == 1
    assert snapshot.chakras[0].color == "red"
