"""Response DTOs for API endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class NotificationItem(BaseModel):
    """A toast or redirect produced while handling the request."""

    kind: str = Field(..., description="'success', 'error' or 'navigate'")
    message: str = Field(..., description="Toast text, or the redirect path for 'navigate'")
    at: datetime


class CacheEntryItem(BaseModel):
    """Single cache entry (owner prefix removed from the key)."""

    key: str = Field(..., description="Resource key, e.g. 'all-clients' or 'page:abc'")
    data: Any = Field(..., description="The cached JSON payload")
    expires_at: datetime
    created_at: datetime
    updated_at: datetime
    is_expired: bool = Field(..., description="Expired but not yet read (lazy expiry)")


class CacheEntriesResponse(BaseModel):
    """Response DTO for listing the caller's cache entries."""

    entries: list[CacheEntryItem] = Field(
        default_factory=list,
        description="Entries sorted by last update, newest first",
    )
    total: int = Field(..., ge=0)


class CacheStatsResponse(BaseModel):
    """Response DTO for cache statistics."""

    backend: str = Field(..., description="Store backend: 'redis' or 'memory'")
    total_entries: int = Field(..., description="Entries in the whole store", ge=0)
    owner_entries: int = Field(..., description="Entries owned by the caller", ge=0)
    expired_entries: int = Field(..., description="Caller's entries past expiry, not yet purged", ge=0)


class CacheClearResponse(BaseModel):
    """Response DTO for delete operations."""

    success: bool
    deleted_count: int = Field(..., ge=0)
    message: str


class FunctionCallResponse(BaseModel):
    """Response DTO for an edge function call.

    Mirrors the executor's state; a failed call is still a 200 with
    ``error`` set, the same way the caller's UI would see it.
    """

    function_name: str
    data: Any = None
    is_cached: bool = False
    error: str | None = None
    error_code: str | None = None
    needs_config: bool = False
    redirect: str | None = Field(None, description="Path the client should navigate to")
    notifications: list[NotificationItem] = Field(default_factory=list)


class ReferenceDataResponse(BaseModel):
    """Response DTO for the reference data snapshot."""

    data: dict[str, list[dict[str, Any]]] = Field(
        ...,
        description="modes, muscles, chakras, channels and acupoints",
    )
    counts: dict[str, int]
    fetched_at: datetime | None = None
    loading: bool = False
    error: str | None = None
    needs_config: bool = False
    is_cached: bool = False


class SyncStatusResponse(BaseModel):
    """Response DTO for the sync coordinator state."""

    status: str = Field(..., description="idle, checking, syncing, success or error")
    is_syncing: bool
    last_sync: datetime | None = None
    last_error: str | None = None
    synced: list[str] = Field(default_factory=list)


class SyncResponse(SyncStatusResponse):
    """Response DTO for a manual sync."""

    triggered: bool = Field(..., description="False if a sync was already running")
    notifications: list[NotificationItem] = Field(default_factory=list)


class ConfigStatusResponse(BaseModel):
    """Response DTO for the Notion configuration probe."""

    is_configured: bool
    error: str | None = None


class HealthCheckResponse(BaseModel):
    """Response DTO for health check."""

    status: str = Field(..., description="Health status: 'healthy' or 'unhealthy'")
    cache_healthy: bool = Field(..., description="Whether the cache backend is reachable")
    backend: str
