"""Protocol interfaces for swappable implementations.

This package contains protocol definitions using structural typing.
Protocols enable:
- Easy swapping of implementations (Redis -> in-memory, Supabase -> fakes)
- Unit testing with mock implementations
- Clear separation of concerns

Usage:
    ```python
    from notion_cache.protocols import CacheStore, RemoteSource

    store: CacheStore = RedisCacheRepository.create()
    store: CacheStore = InMemoryCacheRepository()
    ```
"""

from .cache_store import CacheStore
from .collaborators import Notifier, RemoteSource, SessionProvider

__all__ = [
    "CacheStore",
    "RemoteSource",
    "SessionProvider",
    "Notifier",
]
