"""Notion Cache - read-through caching for Notion-backed edge functions.

This package provides a layered architecture for the practitioner cache core:

Layers:
    - protocols: Interface contracts (CacheStore, RemoteSource, SessionProvider, Notifier)
    - repositories: Data access implementations (Redis, in-memory, Supabase)
    - services: Business logic (fetch executor, reference data, sync)
    - handlers: HTTP endpoint handlers
    - dto: Data transfer objects (API contracts)
    - entities: Domain models (internal)

Usage:
    ```python
    from notion_cache.repositories import EdgeFunctionClient, RedisCacheRepository
    from notion_cache.services import SessionRegistry

    registry = SessionRegistry(store=RedisCacheRepository.create(),
                               remote=EdgeFunctionClient.create())
    practitioner = await registry.get_or_create(session)
    ```

For HTTP API:
    ```python
    from notion_cache.api.app import app
    ```
"""

from notion_cache.config import get_redis_client, settings
from notion_cache.entities import CacheRecord, FetchState, ReferenceDataSet, Session
from notion_cache.errors import (
    AuthenticationRequiredError,
    CacheStoreError,
    NotionCacheError,
    RateLimitedError,
    RemoteCallError,
)
from notion_cache.protocols import CacheStore, Notifier, RemoteSource, SessionProvider
from notion_cache.repositories import EdgeFunctionClient, InMemoryCacheRepository, RedisCacheRepository
from notion_cache.services import (
    CacheService,
    EdgeFunctionOptions,
    FetchExecutor,
    PractitionerSession,
    ReferenceDataService,
    SessionRegistry,
    SyncCoordinator,
)

__all__ = [
    # Configuration
    "settings",
    "get_redis_client",
    # Protocols (interfaces)
    "CacheStore",
    "RemoteSource",
    "SessionProvider",
    "Notifier",
    # Services (business logic)
    "CacheService",
    "EdgeFunctionOptions",
    "FetchExecutor",
    "ReferenceDataService",
    "SyncCoordinator",
    "PractitionerSession",
    "SessionRegistry",
    # Repositories (data access)
    "RedisCacheRepository",
    "InMemoryCacheRepository",
    "EdgeFunctionClient",
    # Entities (domain models)
    "CacheRecord",
    "FetchState",
    "ReferenceDataSet",
    "Session",
    # Errors
    "NotionCacheError",
    "AuthenticationRequiredError",
    "CacheStoreError",
    "RemoteCallError",
    "RateLimitedError",
]
