#!/usr/bin/env python3
"""
Demo script for the notion cache.

Runs the cache core against the in-memory store and a canned remote source:
a cold session start (sync cascade plus reference data load), read-through
hits and misses, TTL expiry and a write that invalidates list caches.
"""

import asyncio
import time
from datetime import datetime, timedelta, timezone

from notion_cache.entities import Session
from notion_cache.logging_config import configure_logging
from notion_cache.policies import get_policy
from notion_cache.repositories import InMemoryCacheRepository
from notion_cache.services import PractitionerSession

REFERENCE = {
    "modes": [{"id": "m1", "name": "Hold", "actionNote": "Hold 3 breaths"}],
    "muscles": [{"id": "mu1", "name": "Anterior Deltoid", "meridian": "Gall Bladder"}],
    "chakras": [{"id": "c1", "name": "Root", "color": "Red"}],
    "channels": [{"id": "ch1", "name": "Lung", "sedate1": "LU5", "tonify1": "LU9"}],
    "acupoints": [{"id": "a1", "name": "LU1", "for": "Cough"}],
}


class DemoRemote:
    """Canned edge functions with a little latency."""

    def __init__(self) -> None:
        self.calls = 0

    async def invoke(self, function_name, payload, access_token):
        self.calls += 1
        await asyncio.sleep(0.05)
        if function_name == "get-notion-secrets":
            return {"configured": True}
        if function_name == "sync-notion-data":
            return {"synced": list(REFERENCE), "results": REFERENCE}
        if function_name == "get-all-reference-data":
            return {"data": REFERENCE}
        if function_name == "get-all-clients":
            return [{"id": "cl1", "name": "Ada Lovelace"}]
        if function_name == "create-client":
            return {"id": "cl2", **(payload or {})}
        raise ValueError(f"Demo has no edge function {function_name}")


class DemoClock:
    def __init__(self) -> None:
        self.now = datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now


def print_section(title: str) -> None:
    """Print a section header."""
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70)


async def timed_call(practitioner: PractitionerSession, function_name: str, payload=None) -> None:
    start = time.time()
    executor = await practitioner.call(get_policy(function_name), payload)
    elapsed_ms = (time.time() - start) * 1000
    source = "cache" if executor.state.is_cached else "remote"
    print(f"  {function_name:<20} {source:<7} {elapsed_ms:6.1f} ms")


async def main() -> None:
    configure_logging("WARNING")
    clock = DemoClock()
    store = InMemoryCacheRepository(clock=clock)
    remote = DemoRemote()
    practitioner = PractitionerSession(
        Session(user_id="demo-user", access_token="demo-token"),
        store=store,
        remote=remote,
        clock=clock,
    )

    print_section("Session start (cold cache)")
    await practitioner.start()
    print(f"  Sync status: {practitioner.sync.status.value}")
    print(f"  Reference data: {practitioner.reference_data.data.counts}")
    print(f"  Remote calls so far: {remote.calls}")

    print_section("Read-through")
    await timed_call(practitioner, "get-all-clients")
    await timed_call(practitioner, "get-all-clients")

    print_section("TTL expiry (clock +61 minutes)")
    clock.now += timedelta(minutes=61)
    await timed_call(practitioner, "get-all-clients")

    print_section("Write invalidates list caches")
    await timed_call(practitioner, "create-client", {"name": "Grace Hopper"})
    await timed_call(practitioner, "get-all-clients")

    print_section("Cache contents")
    for record in await practitioner.cache.list_entries():
        print(f"  {record.key:<22} expires {record.expires_at:%H:%M}")

    practitioner.dispose()


if __name__ == "__main__":
    asyncio.run(main())
