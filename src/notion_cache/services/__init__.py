"""Service layer for business logic.

This layer contains the cache core: the owner-scoped cache facade, the
read-through fetch executor, the reference-data aggregator and the
sync/invalidation coordinator. Services depend on protocols (interfaces),
not concrete implementations, making them testable and flexible.

Architecture:
    Handler -> Service -> Repository
    (HTTP)  -> (Business) -> (Data Access)

Usage:
    ```python
    from notion_cache.services import SessionRegistry

    registry = SessionRegistry(store=RedisCacheRepository.create(),
                               remote=EdgeFunctionClient.create())
    practitioner = await registry.get_or_create(session)
    print(practitioner.reference_data.data.modes)
    ```
"""

from .cache_service import CacheService
from .config_probe import ConfigProbe
from .fetch_executor import EdgeFunctionOptions, FetchExecutor, InFlightRegistry
from .notifier import Notification, RecordingNotifier
from .reference_data import ReferenceDataService
from .session import PractitionerSession, SessionHolder, SessionRegistry
from .sync_coordinator import SyncCoordinator, SyncStatus

__all__ = [
    "CacheService",
    "ConfigProbe",
    "EdgeFunctionOptions",
    "FetchExecutor",
    "InFlightRegistry",
    "Notification",
    "RecordingNotifier",
    "ReferenceDataService",
    "PractitionerSession",
    "SessionHolder",
    "SessionRegistry",
    "SyncCoordinator",
    "SyncStatus",
]
