from typing import Any

from fastapi import Body, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from notion_cache.api.dependencies import (
    CacheHandlerDep,
    SessionHandlerDep,
    StoreDep,
    lifespan,
)
from notion_cache.config import settings
from notion_cache.dto import (
    CacheClearResponse,
    CacheEntriesResponse,
    CacheStatsResponse,
    ConfigStatusResponse,
    FunctionCallRequest,
    FunctionCallResponse,
    HealthCheckResponse,
    ReferenceDataResponse,
    SyncRequest,
    SyncResponse,
    SyncStatusResponse,
)
from notion_cache.handlers import health_check
from notion_cache.repositories import InMemoryCacheRepository

app = FastAPI(
    title="Notion Cache API",
    description="Read-through cache for Notion-backed Supabase edge functions",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,  # type: ignore[arg-type]
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root() -> dict[str, Any]:
    """Root endpoint with API information."""
    return {
        "name": "Notion Cache API",
        "version": "0.1.0",
        "description": "Read-through cache for Notion-backed Supabase edge functions",
        "endpoints": {
            "reference_data": "/reference-data",
            "sync": "/sync",
            "config": "/config/status",
            "functions": "/functions/{function_name}",
            "cache": "/cache/entries",
            "health": "/health",
            "docs": "/docs",
        },
    }


@app.get("/health", response_model=HealthCheckResponse)
async def health(store: StoreDep) -> HealthCheckResponse:
    """Health check endpoint."""
    backend = "memory" if isinstance(store, InMemoryCacheRepository) else "redis"
    return await health_check(store, backend)


@app.get("/reference-data", response_model=ReferenceDataResponse)
async def get_reference_data(handler: SessionHandlerDep) -> ReferenceDataResponse:
    """Current reference data snapshot of the caller's session."""
    return await handler.get_reference_data()


@app.post("/reference-data/refresh", response_model=ReferenceDataResponse)
async def refresh_reference_data(handler: SessionHandlerDep) -> ReferenceDataResponse:
    """Refetch the reference data (cache first) and return the new snapshot."""
    return await handler.refresh_reference_data()


@app.get("/sync/status", response_model=SyncStatusResponse)
async def get_sync_status(handler: SessionHandlerDep) -> SyncStatusResponse:
    return await handler.get_sync_status()


@app.post("/sync", response_model=SyncResponse)
async def sync(handler: SessionHandlerDep, request: SyncRequest | None = None) -> SyncResponse:
    """Resync every reference database and clear the caches derived from them."""
    return await handler.sync(request.sync_type if request else "all")


@app.get("/config/status", response_model=ConfigStatusResponse)
async def get_config_status(handler: SessionHandlerDep) -> ConfigStatusResponse:
    return await handler.get_config_status()


@app.post("/functions/{function_name}", response_model=FunctionCallResponse)
async def call_function(
    function_name: str,
    handler: SessionHandlerDep,
    payload: dict[str, Any] | None = Body(None),
) -> FunctionCallResponse:
    """
    Run an edge function through its cache policy.

    Args:
        function_name: Edge function name, e.g. ``get-all-clients``
        payload: JSON body passed to the edge function as-is

    Returns:
        The executor state after the call, with any toasts and redirect.
    """
    return await handler.call_function(function_name, FunctionCallRequest(payload=payload))


@app.get("/cache/entries", response_model=CacheEntriesResponse)
async def list_cache_entries(handler: CacheHandlerDep) -> CacheEntriesResponse:
    """List the caller's cache entries, newest first."""
    return await handler.list_entries()


@app.delete("/cache/entries/{resource_key:path}", response_model=CacheClearResponse)
async def delete_cache_entry(resource_key: str, handler: CacheHandlerDep) -> CacheClearResponse:
    return await handler.delete_entry(resource_key)


@app.delete("/cache", response_model=CacheClearResponse)
async def clear_cache(handler: CacheHandlerDep) -> CacheClearResponse:
    """Delete every cache entry owned by the caller."""
    return await handler.clear_cache()


@app.post("/cache/purge-expired", response_model=CacheClearResponse)
async def purge_expired(handler: CacheHandlerDep) -> CacheClearResponse:
    """Delete expired entries that were never read again."""
    return await handler.purge_expired()


@app.get("/cache/stats", response_model=CacheStatsResponse)
async def get_cache_stats(handler: CacheHandlerDep) -> CacheStatsResponse:
    return await handler.get_stats()


@app.post("/logout", response_model=dict[str, Any])
async def logout(handler: SessionHandlerDep) -> dict[str, Any]:
    """Dispose the caller's session services."""
    return await handler.logout()


def main() -> None:
    import uvicorn

    uvicorn.run(
        "notion_cache.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )


if __name__ == "__main__":
    main()
