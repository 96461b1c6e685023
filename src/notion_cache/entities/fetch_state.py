"""Observable state of a fetch executor."""

from dataclasses import dataclass
from typing import Any


@dataclass
class FetchState:
    """Transient state of one executor, re-derived on every ``execute``.

    ``needs_config`` is sticky: it is only cleared by the next successful
    configuration probe.
    """

    data: Any = None
    loading: bool = False
    error: str | None = None
    error_code: str | None = None
    needs_config: bool = False
    is_cached: bool = False

    def begin(self) -> None:
        self.loading = True
        self.error = None
        self.error_code = None
        self.data = None
        self.is_cached = False
