"""Read-through fetch executor.

Wraps one edge function call site with the cache-core pipeline. Each
``execute`` runs these steps strictly in order, stopping at the first one
that short-circuits:

1. auth check     - no session: redirect to login, cache untouched
2. config check   - Notion not configured: ``needs_config``, stop
3. cache read     - hit: return the cached payload, remote never called
4. remote call    - miss: invoke the edge function
5. cache write    - success: store the result under the call site's key

Overlapping ``execute`` calls for the same key race independently unless
``coalesce`` is enabled, in which case concurrent misses share one
in-flight remote call.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from notion_cache.config import settings
from notion_cache.entities import FetchState, Session
from notion_cache.errors import AuthenticationRequiredError, ErrorCode, RemoteCallError
from notion_cache.protocols import Notifier, RemoteSource, SessionProvider

from .cache_service import CacheService
from .config_probe import ConfigProbe

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"
PROFILE_SETUP_PATH = "/profile-setup"

SuccessCallback = Callable[[Any], Awaitable[None] | None]
ErrorCallback = Callable[[str, str | None], Awaitable[None] | None]
ConfigNeededCallback = Callable[[], Awaitable[None] | None]


@dataclass(frozen=True)
class EdgeFunctionOptions:
    """Static configuration of one call site.

    Attributes:
        function_name: Edge function to invoke
        requires_auth: Abort with a login redirect when no session exists
        requires_config: Probe the Notion configuration before anything else
        cache_key: Resource key to read through; None means never cached
        cache_ttl: Time-to-live in minutes for the stored result
        timeout: Deadline in seconds for the remote call; None waits forever
        coalesce: Share one in-flight remote call between concurrent misses
    """

    function_name: str
    requires_auth: bool = True
    requires_config: bool = False
    cache_key: str | None = None
    cache_ttl: float = settings.default_cache_ttl
    timeout: float | None = None
    coalesce: bool = False


class InFlightRegistry:
    """In-flight remote calls keyed by full cache key.

    Each entry is a task; joiners await it through ``asyncio.shield`` so a
    caller that gives up does not cancel the call for everyone else.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task] = {}

    async def run(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        task = self._tasks.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._tasks[key] = task
            task.add_done_callback(lambda done, key=key: self._forget(key, done))
        else:
            logger.debug("Joining in-flight fetch for %s", key)
        return await asyncio.shield(task)

    def _forget(self, key: str, task: asyncio.Task) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]

    def __len__(self) -> int:
        return len(self._tasks)


async def invoke_callback(callback: Callable[..., Any] | None, *args: Any) -> None:
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class FetchExecutor:
    """Read-through executor for one edge function call site.

    Callbacks are plain attributes and may be replaced at any time; the
    executor always calls whatever is currently assigned.

    Example:
        ```python
        executor = FetchExecutor(
            EdgeFunctionOptions("get-all-clients", requires_config=True,
                                cache_key="all-clients", cache_ttl=60),
            sessions=sessions,
            remote=EdgeFunctionClient.create(),
            cache=cache_service,
            config_probe=ConfigProbe(remote),
            notifier=RecordingNotifier(),
        )
        clients = await executor.execute()
        print(executor.state.is_cached)
        ```
    """

    def __init__(
        self,
        options: EdgeFunctionOptions,
        sessions: SessionProvider,
        remote: RemoteSource,
        cache: CacheService | None = None,
        config_probe: ConfigProbe | None = None,
        notifier: Notifier | None = None,
        in_flight: InFlightRegistry | None = None,
        on_success: SuccessCallback | None = None,
        on_error: ErrorCallback | None = None,
        on_config_needed: ConfigNeededCallback | None = None,
    ) -> None:
        if options.requires_config and config_probe is None:
            raise ValueError(f"{options.function_name} requires a config probe")
        if options.coalesce and in_flight is None:
            in_flight = InFlightRegistry()

        self.options = options
        self.state = FetchState()
        self.on_success = on_success
        self.on_error = on_error
        self.on_config_needed = on_config_needed

        self._sessions = sessions
        self._remote = remote
        self._cache = cache
        self._config_probe = config_probe
        self._notifier = notifier
        self._in_flight = in_flight

    @property
    def function_name(self) -> str:
        return self.options.function_name

    async def execute(self, payload: Any | None = None) -> Any | None:
        """Run the call site once.

        Args:
            payload: Optional JSON payload for the edge function

        Returns:
            The payload (cached or fresh), or None if the call was aborted
            or failed. The outcome is also reflected in ``state``.
        """
        name = self.function_name
        logger.debug("[%s] Executing with payload: %s", name, payload)
        self.state.begin()

        try:
            session: Session | None = None
            if self.options.requires_auth:
                session = await self._sessions.get_session()
                if session is None:
                    await self._handle_auth_required()
                    return None

            if self.options.requires_config and session is not None:
                if not await self._config_probe.check(session):
                    logger.info("[%s] Notion config missing", name)
                    self.state.needs_config = True
                    await invoke_callback(self.on_config_needed)
                    return None
                self.state.needs_config = False

            cache_key = self.options.cache_key if self._cache is not None else None
            if cache_key:
                cached = await self._cache.get(cache_key)
                if cached is not None:
                    logger.info("[%s] Cache hit for key: %s", name, cache_key)
                    self.state.data = cached
                    self.state.is_cached = True
                    await invoke_callback(self.on_success, cached)
                    return cached
                logger.debug("[%s] Cache miss for key: %s", name, cache_key)

            result = await self._fetch(payload, session, cache_key)
            self.state.data = result
            self.state.is_cached = False
            logger.info("[%s] Successfully fetched data", name)
            await invoke_callback(self.on_success, result)
            return result

        except RemoteCallError as e:
            await self._handle_remote_error(e)
            return None
        finally:
            self.state.loading = False

    async def _fetch(self, payload: Any | None, session: Session | None, cache_key: str | None) -> Any:
        def remote_then_store() -> Awaitable[Any]:
            return self._remote_then_store(payload, session, cache_key)

        if self._in_flight is not None and self.options.coalesce and cache_key:
            call = self._in_flight.run(self._cache.key(cache_key), remote_then_store)
        else:
            call = remote_then_store()

        if self.options.timeout is None:
            return await call

        try:
            return await asyncio.wait_for(call, timeout=self.options.timeout)
        except asyncio.TimeoutError as e:
            raise RemoteCallError(
                f"{self.function_name} did not respond within {self.options.timeout:g}s",
                error_code=ErrorCode.TIMEOUT.value,
            ) from e

    async def _remote_then_store(self, payload: Any | None, session: Session | None, cache_key: str | None) -> Any:
        access_token = session.access_token if session else None
        result = await self._remote.invoke(self.function_name, payload, access_token)

        if cache_key and result is not None:
            if await self._cache.set(cache_key, result, self.options.cache_ttl):
                logger.debug("[%s] Cached data with key: %s", self.function_name, cache_key)
        return result

    async def _handle_auth_required(self) -> None:
        error = AuthenticationRequiredError()
        logger.info("[%s] No session found, navigating to login", self.function_name)
        self.state.error = error.message
        self.state.error_code = error.code
        await invoke_callback(self.on_error, error.message, error.code)
        if self._notifier:
            self._notifier.error(error.message)
            self._notifier.navigate(LOGIN_PATH)

    async def _handle_remote_error(self, error: RemoteCallError) -> None:
        logger.error("[%s] Failed: %s", self.function_name, error.message)
        self.state.error = error.message
        self.state.error_code = error.error_code
        await invoke_callback(self.on_error, error.message, error.error_code)

        if error.is_profile_missing:
            if self._notifier:
                self._notifier.error(f"Profile Required: {error.message}")
                self._notifier.navigate(PROFILE_SETUP_PATH)
        elif error.is_config_missing:
            self.state.needs_config = True
            await invoke_callback(self.on_config_needed)
        elif self._notifier:
            self._notifier.error(f"Error: {error.message}")

    async def invalidate_cache(self) -> None:
        """Drop this call site's cache entry, if it has one."""
        if self.options.cache_key and self._cache is not None:
            await self._cache.invalidate(self.options.cache_key)
            logger.info("[%s] Invalidated cache with key: %s", self.function_name, self.options.cache_key)
