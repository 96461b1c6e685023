"""Protocols for the collaborators of the fetch executor.

The remote source, the session provider and the notifier are external to
the cache core; only the interface the core consumes is defined here.
"""

from typing import Any, Protocol, runtime_checkable

from notion_cache.entities import Session


@runtime_checkable
class RemoteSource(Protocol):
    """A named-operation call against the remote document database.

    Retrying transient failures (rate limiting) is the implementation's
    responsibility; callers only see the final success or failure.
    """

    async def invoke(
        self,
        function_name: str,
        payload: Any | None,
        access_token: str | None,
    ) -> Any:
        """Invoke an edge function.

        Args:
            function_name: Name of the edge function
            payload: Optional JSON payload (sent as POST body when present)
            access_token: Bearer token of the current session, if any

        Returns:
            The decoded JSON success body

        Raises:
            RemoteCallError: If the function returned an error body or could not be reached
        """
        ...


@runtime_checkable
class SessionProvider(Protocol):
    """Source of the current authenticated session."""

    async def get_session(self) -> Session | None:
        """Return the current session, or None if nobody is logged in."""
        ...


@runtime_checkable
class Notifier(Protocol):
    """User-facing side effects: toasts and navigation."""

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def navigate(self, path: str) -> None: ...
