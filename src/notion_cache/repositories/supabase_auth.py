"""Supabase Auth lookup.

Resolves a bearer access token into a Session by asking the Supabase Auth
API who the token belongs to (``GET /auth/v1/user``).
"""

import logging

import httpx

from notion_cache.config import settings
from notion_cache.entities import Session
from notion_cache.errors import RemoteCallError

logger = logging.getLogger(__name__)


class SupabaseAuthClient:
    """Resolve access tokens to sessions via the Supabase Auth API."""

    def __init__(
        self,
        base_url: str | None = None,
        anon_key: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = (base_url or settings.supabase_url).rstrip("/")
        self._anon_key = anon_key if anon_key is not None else settings.supabase_anon_key
        self._client = client or httpx.AsyncClient(timeout=settings.remote_timeout)

    async def resolve(self, access_token: str) -> Session | None:
        """Look up the user owning ``access_token``.

        Args:
            access_token: The bearer token from the request

        Returns:
            Session for the user, or None if the token is invalid or expired

        Raises:
            RemoteCallError: If the auth service could not be reached
        """
        if not access_token:
            return None

        headers = {"Authorization": f"Bearer {access_token}"}
        if self._anon_key:
            headers["apikey"] = self._anon_key

        try:
            response = await self._client.get(f"{self._base_url}/auth/v1/user", headers=headers)
        except httpx.HTTPError as e:
            raise RemoteCallError(f"Failed to reach auth service: {e}") from e

        if response.status_code in (401, 403):
            logger.info("Rejected access token (status %s)", response.status_code)
            return None
        if not response.is_success:
            raise RemoteCallError(
                "Auth service error",
                details=response.text,
                status_code=response.status_code,
            )

        user = response.json()
        user_id = user.get("id")
        if not user_id:
            return None
        return Session(user_id=user_id, access_token=access_token, email=user.get("email"))

    async def aclose(self) -> None:
        await self._client.aclose()
