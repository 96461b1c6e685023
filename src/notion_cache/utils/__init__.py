"""Utility helpers for the notion cache."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


__all__ = ["utc_now"]
