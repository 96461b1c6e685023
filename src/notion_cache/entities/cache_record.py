"""Cache record domain entity."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class CacheRecord:
    """Domain entity for one stored payload.

    Attributes:
        key: Full stored key (``<ownerId>:<resourceKey>``)
        data: The cached JSON payload, shape chosen by the caller
        expires_at: Absolute expiry; the record is valid only while now < expires_at
        created_at: When the key was first written
        updated_at: When the key was last written
    """

    key: str
    data: Any
    expires_at: datetime
    created_at: datetime
    updated_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now
