"""Notifier that records user-facing messages.

The API has no toast or router, so notifications are logged and kept in a
short ring buffer that status endpoints return to the client.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    kind: str  # "success", "error" or "navigate"
    message: str
    at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class RecordingNotifier:
    """Notifier protocol implementation backed by logging and a ring buffer."""

    def __init__(self, max_events: int = 50) -> None:
        self._events: deque[Notification] = deque(maxlen=max_events)

    def success(self, message: str) -> None:
        logger.info("%s", message)
        self._events.append(Notification("success", message))

    def error(self, message: str) -> None:
        logger.error("%s", message)
        self._events.append(Notification("error", message))

    def navigate(self, path: str) -> None:
        logger.info("Redirect requested: %s", path)
        self._events.append(Notification("navigate", path))

    @property
    def events(self) -> list[Notification]:
        return list(self._events)

    @property
    def last_redirect(self) -> str | None:
        for event in reversed(self._events):
            if event.kind == "navigate":
                return event.message
        return None

    def clear(self) -> None:
        self._events.clear()
