"""Exception taxonomy for the cache core.

Only remote and authentication failures reach the user. Cache store errors
stop at the CacheService boundary and a missing Notion configuration is
turned into state (``needs_config``) rather than surfaced as an error.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes that change control flow."""

    AUTH_REQUIRED = "AUTH_REQUIRED"
    NOTION_CONFIG_NOT_FOUND = "NOTION_CONFIG_NOT_FOUND"
    PROFILE_NOT_FOUND = "PROFILE_NOT_FOUND"
    PRACTITIONER_NAME_MISSING = "PRACTITIONER_NAME_MISSING"
    RATE_LIMITED = "RATE_LIMITED"
    TIMEOUT = "TIMEOUT"


PROFILE_ERROR_CODES = frozenset(
    {ErrorCode.PROFILE_NOT_FOUND.value, ErrorCode.PRACTITIONER_NAME_MISSING.value}
)

# Some edge functions report a missing configuration only in the message text
CONFIG_NOT_FOUND_MESSAGE = "Notion configuration not found"


class NotionCacheError(Exception):
    """Base class for all errors raised by this package."""


class AuthenticationRequiredError(NotionCacheError):
    """No valid session exists for an operation that requires one."""

    code = ErrorCode.AUTH_REQUIRED.value

    def __init__(self, message: str = "Authentication Required: Please log in to continue.") -> None:
        super().__init__(message)
        self.message = message


class CacheStoreError(NotionCacheError):
    """The durable cache store could not complete an operation."""


class RemoteCallError(NotionCacheError):
    """An edge function returned an error body or could not be reached.

    Attributes:
        message: Human-readable error (``error`` field of the body)
        error_code: Optional machine-readable code (``errorCode`` field)
        details: Optional extra detail (``details`` field)
        status_code: HTTP status, if a response was received
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details
        self.status_code = status_code

    @classmethod
    def from_body(cls, body: Any, status_code: int, function_name: str) -> "RemoteCallError":
        """Build an error from an edge function's JSON error body.

        Args:
            body: Decoded JSON body (or raw text if it was not JSON)
            status_code: HTTP status of the response
            function_name: Name of the edge function, for the fallback message

        Returns:
            RemoteCallError carrying the body's fields
        """
        if not isinstance(body, dict):
            text = str(body or "").strip()
            return cls(
                text or f"Failed to execute {function_name}",
                status_code=status_code,
            )

        message = body.get("error") or body.get("details") or f"Failed to execute {function_name}"
        return cls(
            str(message),
            error_code=body.get("errorCode"),
            details=body.get("details"),
            status_code=status_code,
        )

    @property
    def is_profile_missing(self) -> bool:
        return self.error_code in PROFILE_ERROR_CODES

    @property
    def is_config_missing(self) -> bool:
        if self.error_code == ErrorCode.NOTION_CONFIG_NOT_FOUND.value:
            return True
        return CONFIG_NOT_FOUND_MESSAGE in self.message


class RateLimitedError(RemoteCallError):
    """Retries were exhausted while the remote kept answering HTTP 429."""

    def __init__(self, url: str, attempts: int) -> None:
        super().__init__(
            f"Failed to fetch {url} after {attempts} retries due to rate limiting.",
            error_code=ErrorCode.RATE_LIMITED.value,
            status_code=429,
        )
        self.url = url
        self.attempts = attempts
