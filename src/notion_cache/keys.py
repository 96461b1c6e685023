"""Cache key namespace.

Every stored key is ``<ownerId>:<resourceKey>``. Resource keys are plain
strings; the reserved forms are collected here so call sites and the
invalidation cascade agree on spelling.
"""

KEY_SEPARATOR = ":"

# Combined reference snapshot
ALL_REFERENCE_DATA = "all-reference-data"

# Per-category reference snapshots
ALL_MODES = "all-modes"
ALL_ACUPOINTS = "all-acupoints"
ALL_MUSCLES = "all-muscles"
ALL_CHAKRAS = "all-chakras"
ALL_CHANNELS = "all-channels"

REFERENCE_CACHE_KEYS: tuple[str, ...] = (
    ALL_MODES,
    ALL_ACUPOINTS,
    ALL_MUSCLES,
    ALL_CHAKRAS,
    ALL_CHANNELS,
)

# Reference category name -> per-category key
REFERENCE_CATEGORY_KEYS: dict[str, str] = {
    "modes": ALL_MODES,
    "acupoints": ALL_ACUPOINTS,
    "muscles": ALL_MUSCLES,
    "chakras": ALL_CHAKRAS,
    "channels": ALL_CHANNELS,
}

# List-level caches
ALL_CLIENTS = "all-clients"
CLIENTS_LIST = "clients:list"
APPOINTMENTS_ALL = "appointments:all"
ALL_APPOINTMENTS = "all-appointments"
TODAYS_APPOINTMENTS = "todays-appointments"

PAGE_PREFIX = "page:"

# Keys that embed denormalized reference fields and go stale after a resync
DEPENDENT_CACHE_KEYS: tuple[str, ...] = (
    ALL_CLIENTS,
    CLIENTS_LIST,
    APPOINTMENTS_ALL,
    ALL_APPOINTMENTS,
    TODAYS_APPOINTMENTS,
    ALL_REFERENCE_DATA,
)


def build_key(owner_id: str, resource_key: str) -> str:
    """Build the stored key for an owner's resource."""
    if not owner_id:
        raise ValueError("owner_id is required to build a cache key")
    return f"{owner_id}{KEY_SEPARATOR}{resource_key}"


def owner_prefix(owner_id: str) -> str:
    """Prefix matching every key that belongs to ``owner_id``."""
    return build_key(owner_id, "")


def strip_owner(owner_id: str, key: str) -> str:
    """Return the resource part of a stored key."""
    prefix = owner_prefix(owner_id)
    return key[len(prefix):] if key.startswith(prefix) else key


def appointment_key(appointment_id: str) -> str:
    return f"{appointment_id}:appt"


def session_logs_key(appointment_id: str) -> str:
    return f"{appointment_id}:logs"


def page_key(page_id: str) -> str:
    return f"{PAGE_PREFIX}{page_id}"
