"""Reference-data aggregator.

Fetches the five reference collections as one payload under one cache key
and exposes them as a single ReferenceDataSet snapshot shared by every
consumer in the session. A new snapshot replaces the old one in a single
assignment, so the collections are always from the same fetch.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from notion_cache.config import settings
from notion_cache.entities import ReferenceDataSet
from notion_cache.keys import ALL_REFERENCE_DATA
from notion_cache.utils import utc_now

from .fetch_executor import EdgeFunctionOptions, FetchExecutor

logger = logging.getLogger(__name__)

REFERENCE_DATA_FUNCTION = "get-all-reference-data"


def reference_data_options(ttl_minutes: float | None = None) -> EdgeFunctionOptions:
    return EdgeFunctionOptions(
        function_name=REFERENCE_DATA_FUNCTION,
        requires_auth=True,
        requires_config=True,
        cache_key=ALL_REFERENCE_DATA,
        cache_ttl=ttl_minutes or settings.reference_snapshot_ttl,
    )


class ReferenceDataService:
    """Session-owned holder of the reference data snapshot.

    Construct once per session, call ``start()`` when the session begins and
    ``dispose()`` on logout. No interval refresh: the snapshot only changes
    on ``refetch_all()``.
    """

    def __init__(
        self,
        executor: FetchExecutor,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the aggregator.

        Args:
            executor: Executor configured for the combined reference function
            clock: Callable returning the current aware datetime
        """
        self._executor = executor
        self._clock = clock or utc_now
        self._data = ReferenceDataSet.empty()
        self._errors: list[str] = []
        self._needs_config = False
        self._loading = False
        self._disposed = False

        executor.on_success = self._handle_success
        executor.on_error = self._handle_error
        executor.on_config_needed = self._handle_config_needed

    async def start(self) -> None:
        """Initial fetch when the session begins."""
        await self.refetch_all()

    async def refetch_all(self) -> None:
        """Fetch the combined reference payload (cache first) and swap it in."""
        if self._disposed:
            raise RuntimeError("ReferenceDataService has been disposed")

        self._errors = []
        self._needs_config = False
        self._loading = True
        try:
            await self._executor.execute()
        finally:
            self._loading = False

    def _handle_success(self, payload: Any) -> None:
        try:
            snapshot = ReferenceDataSet.from_payload(payload, fetched_at=self._clock())
        except ValueError as e:
            logger.error("Discarding malformed reference data: %s", e)
            self._errors.append(str(e))
            return

        self._data = snapshot
        logger.info(
            "Reference data loaded (%s): %s",
            "cached" if self._executor.state.is_cached else "fresh",
            snapshot.counts,
        )

    def _handle_error(self, message: str, error_code: str | None) -> None:
        self._errors.append(message)

    def _handle_config_needed(self) -> None:
        self._needs_config = True
        self._errors = []

    def dispose(self) -> None:
        """Drop the snapshot; the service cannot be used afterwards."""
        self._data = ReferenceDataSet.empty()
        self._errors = []
        self._disposed = True

    @property
    def data(self) -> ReferenceDataSet:
        return self._data

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def error(self) -> str | None:
        return "; ".join(self._errors) if self._errors else None

    @property
    def needs_config(self) -> bool:
        return self._needs_config

    @property
    def is_cached(self) -> bool:
        return self._executor.state.is_cached

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def executor(self) -> FetchExecutor:
        return self._executor
