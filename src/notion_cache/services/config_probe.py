"""Notion configuration probe.

Asks the ``get-notion-secrets`` edge function whether the practitioner has
stored a Notion integration token and database ids. The answer is never
cached: a practitioner who just finished the setup flow must be seen as
configured on the very next call.
"""

import logging

from notion_cache.entities import Session
from notion_cache.errors import RemoteCallError
from notion_cache.protocols import RemoteSource

logger = logging.getLogger(__name__)

SECRETS_FUNCTION = "get-notion-secrets"


class ConfigProbe:
    """Probe for the presence of the Notion configuration."""

    def __init__(self, remote: RemoteSource, function_name: str = SECRETS_FUNCTION) -> None:
        self._remote = remote
        self._function_name = function_name
        self.is_configured: bool | None = None
        self.error: str | None = None

    async def check(self, session: Session) -> bool:
        """Check whether the configuration exists.

        Args:
            session: The authenticated session to probe for

        Returns:
            True if configured, False if the remote reports it missing

        Raises:
            RemoteCallError: For any failure other than "not configured"
        """
        try:
            await self._remote.invoke(self._function_name, None, session.access_token)
        except RemoteCallError as e:
            if e.is_config_missing:
                logger.info("Notion config missing for user %s", session.user_id)
                self.is_configured = False
                self.error = None  # not configured is not an error
                return False
            self.is_configured = False
            self.error = e.message
            raise

        self.is_configured = True
        self.error = None
        return True
