"""Dependency injection configuration for FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - Store, remote clients and the session registry live in app.state,
      built during lifespan
    - Dependency functions retrieve them from request.app.state
    - Per-practitioner services are resolved from the bearer token on
      every request
"""

import logging
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status

from notion_cache.config import settings
from notion_cache.entities import Session
from notion_cache.errors import RemoteCallError
from notion_cache.handlers import CacheHandler, SessionHandler
from notion_cache.logging_config import configure_logging
from notion_cache.protocols import CacheStore
from notion_cache.repositories import (
    EdgeFunctionClient,
    InMemoryCacheRepository,
    RedisCacheRepository,
    SupabaseAuthClient,
)
from notion_cache.services import PractitionerSession, SessionRegistry

logger = logging.getLogger(__name__)


def _from_state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise RuntimeError(f"{name} not initialized. Check lifespan setup.")
    return value


def get_store(request: Request) -> CacheStore:
    """Dependency injection for the CacheStore from app.state.

    Raises:
        RuntimeError: If the store is not initialized
    """
    return _from_state(request, "store")


def get_registry(request: Request) -> SessionRegistry:
    """Dependency injection for the SessionRegistry from app.state.

    Raises:
        RuntimeError: If the registry is not initialized
    """
    return _from_state(request, "registry")


def get_auth_client(request: Request) -> SupabaseAuthClient:
    return _from_state(request, "auth_client")


async def get_current_session(
    auth_client: Annotated[SupabaseAuthClient, Depends(get_auth_client)],
    authorization: Annotated[str | None, Header()] = None,
) -> Session:
    """Resolve the bearer token into a Session.

    Raises:
        HTTPException: 401 without a valid token, 503 if auth is unreachable
    """
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication Required: Please log in to continue.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        session = await auth_client.resolve(token.strip())
    except RemoteCallError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=e.message,
        ) from e

    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session


async def get_practitioner(
    session: Annotated[Session, Depends(get_current_session)],
    registry: Annotated[SessionRegistry, Depends(get_registry)],
) -> PractitionerSession:
    """Session services for the caller, started on first use."""
    return await registry.get_or_create(session)


def get_cache_handler(
    practitioner: Annotated[PractitionerSession, Depends(get_practitioner)],
) -> CacheHandler:
    return CacheHandler(cache_service=practitioner.cache)


def get_session_handler(
    practitioner: Annotated[PractitionerSession, Depends(get_practitioner)],
    registry: Annotated[SessionRegistry, Depends(get_registry)],
) -> SessionHandler:
    return SessionHandler(practitioner, registry)


def build_store() -> CacheStore:
    """Create the cache store selected by CACHE_BACKEND."""
    if settings.uses_memory_backend:
        return InMemoryCacheRepository()
    return RedisCacheRepository.create()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI app.

    Initializes all layers and stores in app.state:
    1. Store (data access) - Redis or in-memory, per settings
    2. Remote clients - edge functions and Supabase Auth
    3. Session registry - per-practitioner services, created lazily

    Cleanup:
        Disposes every session, closes clients, removes state
    """
    configure_logging(settings.log_level)

    store = build_store()
    remote = EdgeFunctionClient.create()
    auth_client = SupabaseAuthClient()
    registry = SessionRegistry(store=store, remote=remote)

    app.state.store = store
    app.state.remote = remote
    app.state.auth_client = auth_client
    app.state.registry = registry

    logger.info("Cache backend: %s", settings.cache_backend)
    logger.info("Supabase URL: %s", settings.supabase_url)
    if not await store.health_check():
        logger.warning("Cache store is not reachable; reads will miss until it is")

    yield

    registry.dispose_all()
    await remote.aclose()
    await auth_client.aclose()
    if isinstance(store, RedisCacheRepository):
        await store.close()

    del app.state.registry
    del app.state.auth_client
    del app.state.remote
    del app.state.store
    logger.info("Notion cache service shut down")


# Type aliases for cleaner dependency injection
StoreDep = Annotated[CacheStore, Depends(get_store)]
RegistryDep = Annotated[SessionRegistry, Depends(get_registry)]
SessionDep = Annotated[Session, Depends(get_current_session)]
PractitionerDep = Annotated[PractitionerSession, Depends(get_practitioner)]
CacheHandlerDep = Annotated[CacheHandler, Depends(get_cache_handler)]
SessionHandlerDep = Annotated[SessionHandler, Depends(get_session_handler)]
