"""Repository layer for data access.

This layer abstracts external dependencies (Redis, Supabase edge functions,
Supabase Auth) behind protocol-based interfaces. This enables:
- Easy swapping of implementations (Redis -> in-memory, HTTP -> fakes)
- Unit testing with mock implementations
- Clear separation of concerns

The repositories are protocol-based (structural typing), not inheritance-based.
Any class implementing the required methods will satisfy the protocol.
"""

from notion_cache.protocols import CacheStore, RemoteSource

from .edge_function_client import EdgeFunctionClient
from .memory_repository import InMemoryCacheRepository
from .redis_repository import RedisCacheRepository
from .supabase_auth import SupabaseAuthClient

__all__ = [
    "CacheStore",
    "RemoteSource",
    "EdgeFunctionClient",
    "InMemoryCacheRepository",
    "RedisCacheRepository",
    "SupabaseAuthClient",
]
