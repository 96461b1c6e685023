"""Per-call-site cache policies.

Each edge function the application calls has a fixed caching policy: the
resource key it reads through (possibly templated from payload fields), the
TTL of that key, whether it needs the Notion configuration, and which keys
a successful call makes stale.
"""

import logging
import string
from dataclasses import dataclass
from typing import Any

from notion_cache.config import settings
from notion_cache.keys import (
    ALL_ACUPOINTS,
    ALL_APPOINTMENTS,
    ALL_CHAKRAS,
    ALL_CHANNELS,
    ALL_CLIENTS,
    ALL_MODES,
    ALL_MUSCLES,
    ALL_REFERENCE_DATA,
    APPOINTMENTS_ALL,
    CLIENTS_LIST,
    TODAYS_APPOINTMENTS,
    appointment_key,
    page_key,
    session_logs_key,
)

logger = logging.getLogger(__name__)

SHORT_TTL = 5  # lists and session logs
APPOINTMENT_TTL = 60
CLIENTS_TTL = 60
PAGE_CONTENT_TTL = 60

_CLIENT_LISTS = (ALL_CLIENTS, CLIENTS_LIST)
_APPOINTMENT_LISTS = (APPOINTMENTS_ALL, ALL_APPOINTMENTS, TODAYS_APPOINTMENTS)

# Key templates, filled from payload fields
APPOINTMENT_KEY = appointment_key("{appointmentId}")
SESSION_LOGS_KEY = session_logs_key("{appointmentId}")
PAGE_CONTENT_KEY = page_key("{pageId}")


@dataclass(frozen=True)
class EdgeFunctionPolicy:
    """Caching policy of one edge function.

    Attributes:
        function_name: Edge function name
        cache_key: Resource key template (``str.format`` fields come from the
            payload); None means the result is never cached
        ttl_minutes: Lifetime of the cached result
        requires_config: Whether the Notion configuration must exist
        requires_auth: Whether a session is required
        search: Search-style function; only the unfiltered listing is cached
        invalidates: Key templates deleted after a successful call
        invalidates_prefixes: Prefixes deleted after a successful call
    """

    function_name: str
    cache_key: str | None = None
    ttl_minutes: float = settings.default_cache_ttl
    requires_config: bool = True
    requires_auth: bool = True
    search: bool = False
    invalidates: tuple[str, ...] = ()
    invalidates_prefixes: tuple[str, ...] = ()

    @property
    def is_read(self) -> bool:
        return self.cache_key is not None


def _template_fields(template: str) -> list[str]:
    return [name for _, name, _, _ in string.Formatter().parse(template) if name]


def _format(template: str, payload: Any) -> str:
    fields = _template_fields(template)
    if not fields:
        return template
    values = payload if isinstance(payload, dict) else {}
    missing = [name for name in fields if values.get(name) in (None, "")]
    if missing:
        raise KeyError(f"Payload is missing {', '.join(missing)}")
    return template.format(**{name: values[name] for name in fields})


def resolve_cache_key(policy: EdgeFunctionPolicy, payload: Any) -> str | None:
    """Resource key for this call, or None if the call is not cached.

    Raises:
        KeyError: If the key template needs a payload field that is absent
    """
    if policy.cache_key is None:
        return None
    if policy.search and isinstance(payload, dict) and payload.get("searchTerm"):
        # Filtered searches are not the canonical listing
        return None
    return _format(policy.cache_key, payload)


def resolve_invalidations(policy: EdgeFunctionPolicy, payload: Any) -> tuple[list[str], list[str]]:
    """Keys and prefixes made stale by a successful call.

    Templates whose fields are missing from the payload are skipped.
    """
    keys = []
    for template in policy.invalidates:
        try:
            keys.append(_format(template, payload))
        except KeyError:
            logger.debug("Skipping invalidation %s for %s: payload lacks fields", template, policy.function_name)
    return keys, list(policy.invalidates_prefixes)


POLICIES: dict[str, EdgeFunctionPolicy] = {
    policy.function_name: policy
    for policy in (
        # Lists
        EdgeFunctionPolicy("get-all-clients", ALL_CLIENTS, CLIENTS_TTL),
        EdgeFunctionPolicy("get-clients-list", CLIENTS_LIST, SHORT_TTL),
        EdgeFunctionPolicy("get-all-appointments", APPOINTMENTS_ALL, SHORT_TTL),
        EdgeFunctionPolicy("get-todays-appointments", TODAYS_APPOINTMENTS, SHORT_TTL),
        # Per appointment
        EdgeFunctionPolicy("get-single-appointment", APPOINTMENT_KEY, APPOINTMENT_TTL),
        EdgeFunctionPolicy("get-session-logs", SESSION_LOGS_KEY, SHORT_TTL, requires_config=False),
        # Notion page content
        EdgeFunctionPolicy("get-notion-page-content", PAGE_CONTENT_KEY, PAGE_CONTENT_TTL),
        # Reference collections
        EdgeFunctionPolicy("get-notion-modes", ALL_MODES, settings.reference_collection_ttl),
        EdgeFunctionPolicy("get-muscles", ALL_MUSCLES, settings.reference_collection_ttl, search=True),
        EdgeFunctionPolicy("get-chakras", ALL_CHAKRAS, settings.reference_collection_ttl, search=True),
        EdgeFunctionPolicy("get-channels", ALL_CHANNELS, settings.reference_collection_ttl, search=True),
        EdgeFunctionPolicy("get-acupoints", ALL_ACUPOINTS, settings.reference_collection_ttl, search=True),
        EdgeFunctionPolicy("get-all-reference-data", ALL_REFERENCE_DATA, settings.reference_snapshot_ttl),
        # Never cached
        EdgeFunctionPolicy("migrate-notion-appointments", invalidates=_APPOINTMENT_LISTS),
        # Client writes
        EdgeFunctionPolicy("create-client", requires_config=False, invalidates=_CLIENT_LISTS),
        EdgeFunctionPolicy("update-client", requires_config=False, invalidates=_CLIENT_LISTS),
        EdgeFunctionPolicy("update-notion-client", invalidates=_CLIENT_LISTS),
        EdgeFunctionPolicy("delete-client", requires_config=False, invalidates=_CLIENT_LISTS),
        # Appointment writes
        EdgeFunctionPolicy("create-appointment", requires_config=False, invalidates=_APPOINTMENT_LISTS),
        EdgeFunctionPolicy("create-notion-appointment", invalidates=_APPOINTMENT_LISTS),
        EdgeFunctionPolicy(
            "update-appointment",
            requires_config=False,
            invalidates=_APPOINTMENT_LISTS + (APPOINTMENT_KEY,),
        ),
        EdgeFunctionPolicy(
            "update-notion-appointment",
            invalidates=_APPOINTMENT_LISTS + (APPOINTMENT_KEY,),
        ),
        EdgeFunctionPolicy(
            "delete-appointment",
            requires_config=False,
            invalidates=_APPOINTMENT_LISTS + (APPOINTMENT_KEY, SESSION_LOGS_KEY),
        ),
        # Session log writes
        EdgeFunctionPolicy("log-session-event", requires_config=False, invalidates=(SESSION_LOGS_KEY,)),
        EdgeFunctionPolicy("log-muscle-strength", requires_config=False, invalidates=(SESSION_LOGS_KEY,)),
        EdgeFunctionPolicy("clear-session-logs", requires_config=False, invalidates=(SESSION_LOGS_KEY,)),
        EdgeFunctionPolicy("delete-session-log", requires_config=False, invalidates=(SESSION_LOGS_KEY,)),
        # New credentials make every cached Notion payload suspect
        EdgeFunctionPolicy("set-notion-secrets", requires_config=False, invalidates_prefixes=("",)),
    )
}


def get_policy(function_name: str) -> EdgeFunctionPolicy | None:
    return POLICIES.get(function_name)
