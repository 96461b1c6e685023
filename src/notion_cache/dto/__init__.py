"""Data Transfer Objects for API contracts.

These Pydantic models define the external API contract.
They are used for request/response validation and serialization.

Internal domain logic should use entities from the entities package.
"""

from .requests import FunctionCallRequest, SyncRequest
from .responses import (
    CacheClearResponse,
    CacheEntriesResponse,
    CacheEntryItem,
    CacheStatsResponse,
    ConfigStatusResponse,
    FunctionCallResponse,
    HealthCheckResponse,
    NotificationItem,
    ReferenceDataResponse,
    SyncResponse,
    SyncStatusResponse,
)

__all__ = [
    "FunctionCallRequest",
    "SyncRequest",
    "NotificationItem",
    "CacheEntryItem",
    "CacheEntriesResponse",
    "CacheStatsResponse",
    "CacheClearResponse",
    "FunctionCallResponse",
    "ReferenceDataResponse",
    "SyncStatusResponse",
    "SyncResponse",
    "ConfigStatusResponse",
    "HealthCheckResponse",
]
