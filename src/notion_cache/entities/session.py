"""Authenticated session entity."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Session:
    """An authenticated practitioner session.

    Attributes:
        user_id: Supabase user id, also the cache owner id
        access_token: Bearer token forwarded to edge functions
        email: Optional email reported by the auth service
    """

    user_id: str
    access_token: str
    email: str | None = None
