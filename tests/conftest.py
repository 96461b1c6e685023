"""
Shared fixtures: a controllable clock, a recording remote source and the
in-memory cache store.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from notion_cache.entities import Session
from notion_cache.errors import CacheStoreError, ErrorCode, RemoteCallError
from notion_cache.repositories import InMemoryCacheRepository
from notion_cache.services import CacheService, ConfigProbe, RecordingNotifier, SessionHolder

USER_ID = "user-1"


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float = 0, seconds: float = 0) -> None:
        self.now += timedelta(minutes=minutes, seconds=seconds)


class FakeRemote:
    """RemoteSource that records calls and answers from a table.

    A response may be a value, an exception instance (raised) or a
    callable taking the payload. ``gate`` holds every call until set.
    """

    def __init__(self, responses: dict[str, Any] | None = None) -> None:
        self.responses: dict[str, Any] = dict(responses or {})
        self.calls: list[tuple[str, Any, str | None]] = []
        self.gate: asyncio.Event | None = None

    async def invoke(self, function_name: str, payload: Any | None, access_token: str | None) -> Any:
        self.calls.append((function_name, payload, access_token))
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)

        if function_name not in self.responses:
            raise RemoteCallError(f"Failed to execute {function_name}", status_code=404)
        response = self.responses[function_name]
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(payload)
        return response

    def count(self, function_name: str) -> int:
        return sum(1 for name, _, _ in self.calls if name == function_name)


class BrokenStore(InMemoryCacheRepository):
    """Store whose every operation fails."""

    async def get_record(self, key):
        raise CacheStoreError("backend down")

    async def set(self, key, data, ttl_minutes):
        raise CacheStoreError("backend down")

    async def set_many(self, entries, ttl_minutes):
        raise CacheStoreError("backend down")

    async def delete(self, key):
        raise CacheStoreError("backend down")

    async def delete_by_prefix(self, prefix):
        raise CacheStoreError("backend down")

    async def list_all(self):
        raise CacheStoreError("backend down")


def config_missing() -> RemoteCallError:
    return RemoteCallError(
        "Notion configuration not found",
        error_code=ErrorCode.NOTION_CONFIG_NOT_FOUND.value,
        status_code=404,
    )


def reference_payload(suffix: str = "") -> dict[str, Any]:
    return {
        "data": {
            "modes": [{"id": "m1", "name": f"Mode{suffix}", "actionNote": "hold"}],
            "muscles": [{"id": "mu1", "name": f"Deltoid{suffix}", "meridian": "Lung"}],
            "chakras": [{"id": "c1", "name": f"Root{suffix}", "color": "red"}],
            "channels": [{"id": "ch1", "name": f"Lung{suffix}", "sedate1": "LU5"}],
            "acupoints": [{"id": "a1", "name": f"LU1{suffix}", "for": "cough"}],
        }
    }


def sync_payload() -> dict[str, Any]:
    return {
        "synced": ["modes", "muscles", "chakras", "channels", "acupoints"],
        "results": {
            "modes": [{"id": "m1", "name": "Mode"}],
            "muscles": [{"id": "mu1", "name": "Deltoid"}],
            "chakras": [{"id": "c1", "name": "Root"}],
            "channels": [{"id": "ch1", "name": "Lung"}],
            "acupoints": [{"id": "a1", "name": "LU1"}],
        },
    }


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> InMemoryCacheRepository:
    return InMemoryCacheRepository(clock=clock)


@pytest.fixture
def session() -> Session:
    return Session(user_id=USER_ID, access_token="token-1", email="pat@example.com")


@pytest.fixture
def sessions(session) -> SessionHolder:
    return SessionHolder(session)


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote({"get-notion-secrets": {"configured": True}})


@pytest.fixture
def cache(store) -> CacheService:
    return CacheService.create(store, owner_id=USER_ID)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def probe(remote) -> ConfigProbe:
    return ConfigProbe(remote)
