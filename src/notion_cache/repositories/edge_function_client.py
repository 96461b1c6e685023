"""Supabase edge function client.

Implements the RemoteSource protocol over HTTP. Each call goes to
``{SUPABASE_URL}/functions/v1/{function_name}``: POST with a JSON body when
a payload is given, GET otherwise.

Rate limiting (HTTP 429) is retried with exponential backoff: a fixed
retry budget and a doubling delay. Every other outcome is returned or
raised as-is; the cache layer only sees the final result.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from notion_cache.config import settings
from notion_cache.errors import ErrorCode, RateLimitedError, RemoteCallError

logger = logging.getLogger(__name__)


class EdgeFunctionClient:
    """HTTP implementation of the RemoteSource protocol.

    Example:
        ```python
        client = EdgeFunctionClient.create()
        modes = await client.invoke("get-notion-modes", None, session.access_token)
        ```
    """

    def __init__(
        self,
        base_url: str | None = None,
        anon_key: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the edge function client.

        Args:
            base_url: Supabase project URL. Defaults to settings.supabase_url.
            anon_key: Supabase anon key sent as ``apikey``. Defaults to settings.
            timeout: Request timeout in seconds. Defaults to settings.remote_timeout.
            max_retries: Attempts made while rate limited. Defaults to settings.
            retry_delay: First backoff delay in seconds, doubled per retry.
            client: Pre-built httpx.AsyncClient (tests inject a mock transport).
            sleep: Coroutine used to wait between retries.
        """
        self._base_url = (base_url or settings.supabase_url).rstrip("/")
        self._anon_key = anon_key if anon_key is not None else settings.supabase_anon_key
        self._timeout = timeout or settings.remote_timeout
        self._max_retries = max_retries or settings.remote_max_retries
        self._retry_delay = retry_delay or settings.remote_retry_delay
        self._client = client
        self._sleep = sleep

    @classmethod
    def create(cls, base_url: str | None = None) -> "EdgeFunctionClient":
        """Factory method to create EdgeFunctionClient with defaults.

        Args:
            base_url: Supabase project URL. If None, uses settings.

        Returns:
            Configured EdgeFunctionClient
        """
        return cls(base_url=base_url)

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
            )
        return self._client

    def function_url(self, function_name: str) -> str:
        return f"{self._base_url}/functions/v1/{function_name}"

    def _headers(self, access_token: str | None) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        if self._anon_key:
            headers["apikey"] = self._anon_key
        return headers

    async def invoke(
        self,
        function_name: str,
        payload: Any | None,
        access_token: str | None,
    ) -> Any:
        """Invoke an edge function, retrying while rate limited.

        Args:
            function_name: Name of the edge function
            payload: Optional JSON payload
            access_token: Bearer token of the current session

        Returns:
            The decoded JSON success body

        Raises:
            RateLimitedError: If every attempt was rate limited
            RemoteCallError: For any other failure
        """
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(RateLimitedError),
            wait=wait_exponential(multiplier=self._retry_delay, max=60),
            stop=stop_after_attempt(self._max_retries),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self._sleep,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._send(function_name, payload, access_token)

    async def _send(self, function_name: str, payload: Any | None, access_token: str | None) -> Any:
        url = self.function_url(function_name)
        logger.debug("Invoking edge function %s", function_name)

        try:
            if payload is not None:
                response = await self.client.post(url, json=payload, headers=self._headers(access_token))
            else:
                response = await self.client.get(url, headers=self._headers(access_token))
        except httpx.TimeoutException as e:
            raise RemoteCallError(
                f"Timed out calling {function_name}",
                error_code=ErrorCode.TIMEOUT.value,
                details=str(e),
            ) from e
        except httpx.HTTPError as e:
            raise RemoteCallError(f"Failed to reach {function_name}: {e}", details=str(e)) from e

        if response.status_code == 429:
            raise RateLimitedError(url, self._max_retries)

        if not response.is_success:
            try:
                body = response.json()
            except ValueError:
                body = response.text
            error = RemoteCallError.from_body(body, response.status_code, function_name)
            logger.error(
                "Edge function %s failed with %s: %s",
                function_name,
                response.status_code,
                error.message,
            )
            raise error

        try:
            return response.json()
        except ValueError as e:
            raise RemoteCallError(
                f"Invalid JSON returned by {function_name}",
                status_code=response.status_code,
            ) from e

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
