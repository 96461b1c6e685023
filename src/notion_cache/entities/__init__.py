"""Domain entities for internal representation.

These are dataclasses used by services and repositories. They are NOT
used for API contracts - use DTOs from the dto package for that.
"""

from .cache_record import CacheRecord
from .fetch_state import FetchState
from .reference_data import (
    REFERENCE_CATEGORIES,
    Acupoint,
    Chakra,
    Channel,
    Mode,
    Muscle,
    ReferenceDataSet,
    RelatedPage,
)
from .session import Session

__all__ = [
    "CacheRecord",
    "FetchState",
    "Session",
    "ReferenceDataSet",
    "Mode",
    "Muscle",
    "Chakra",
    "Channel",
    "Acupoint",
    "RelatedPage",
    "REFERENCE_CATEGORIES",
]
