"""Cache namespaces, TTL policy and the durations derived from it."""

from enum import Enum


class Namespace(str, Enum):
    """Key namespaces of the conversational-state cache."""

    CHAT_HISTORY = "chat"
    SESSION_STATE = "session"
    RESPECT_METER = "respect"
    MOOD_METER = "mood"
    SEARCH_CACHE = "search"
    JOKE_BANK = "jokes"
    REACTIONS = "reactions"
    PREFERENCES = "prefs"
    MODERATION = "moderation"
    LAST_SEEN = "lastseen"
    CALL_ATTEMPT = "call"


# Cache TTL constants (in seconds)
TTL_SHORT = 86400  # 24 hours - session-scoped state
TTL_MEDIUM = 604800  # 7 days - per-user meters
TTL_JOKES = 259200  # 3 days
TTL_SEARCH = 3600  # 1 hour - re-fetched after expiry, never refreshed
TTL_LONG = 2592000  # 30 days - settings

NAMESPACE_TTLS: dict[Namespace, int] = {
    Namespace.CHAT_HISTORY: TTL_SHORT,
    Namespace.SESSION_STATE: TTL_SHORT,
    Namespace.RESPECT_METER: TTL_MEDIUM,
    Namespace.MOOD_METER: TTL_MEDIUM,
    Namespace.SEARCH_CACHE: TTL_SEARCH,
    Namespace.JOKE_BANK: TTL_JOKES,
    Namespace.REACTIONS: TTL_MEDIUM,
    Namespace.PREFERENCES: TTL_LONG,
    Namespace.MODERATION: TTL_SHORT,
    Namespace.LAST_SEEN: TTL_MEDIUM,
    Namespace.CALL_ATTEMPT: TTL_MEDIUM,
}

# Key scopes - <namespace>:<scope>:<id>
SCOPE_SESSION = "session"
SCOPE_USER = "user"
SCOPE_QUERY = "query"
SCOPE_MESSAGE = "message"

NAMESPACE_SCOPES: dict[Namespace, str] = {
    Namespace.CHAT_HISTORY: SCOPE_SESSION,
    Namespace.SESSION_STATE: SCOPE_SESSION,
    Namespace.RESPECT_METER: SCOPE_USER,
    Namespace.MOOD_METER: SCOPE_USER,
    Namespace.SEARCH_CACHE: SCOPE_QUERY,
    Namespace.JOKE_BANK: SCOPE_USER,
    Namespace.REACTIONS: SCOPE_MESSAGE,
    Namespace.PREFERENCES: SCOPE_USER,
    Namespace.MODERATION: SCOPE_USER,
    Namespace.LAST_SEEN: SCOPE_USER,
    Namespace.CALL_ATTEMPT: SCOPE_USER,
}

# Durations used outside the cache that must stay in step with the table above
CALL_COOLDOWN_SECONDS = 3600  # 1 hour between phone calls
INACTIVITY_WINDOW_SECONDS = TTL_SHORT

# Domain limits
RESPECT_MIN = 0.0
RESPECT_MAX = 5.0
RESPECT_DEFAULT = 3.0
RESPECT_DISPLAY_FACTOR = 20  # [0,5] -> [0,100]
MAX_JOKES = 10
MAX_CHAT_MESSAGES = 100
MAX_MOOD_HISTORY = 20
MAX_RESPECT_HISTORY = 20


def ttl_for(namespace: Namespace) -> int:
    """Return the TTL in seconds for a namespace."""
    return NAMESPACE_TTLS[namespace]


def make_key(namespace: Namespace, identifier: str) -> str:
    """Build the ``<namespace>:<scope>:<id>`` key for an entity."""
    return f"{namespace.value}:{NAMESPACE_SCOPES[namespace]}:{identifier}"


def validate_policy() -> None:
    """Fail fast on an incomplete or non-positive TTL table."""
    for namespace in Namespace:
        ttl = NAMESPACE_TTLS.get(namespace)
        if ttl is None or ttl <= 0:
            raise ValueError(f"Namespace {namespace.value!r} has no positive TTL")
        if namespace not in NAMESPACE_SCOPES:
            raise ValueError(f"Namespace {namespace.value!r} has no key scope")
    if CALL_COOLDOWN_SECONDS > NAMESPACE_TTLS[Namespace.CALL_ATTEMPT]:
        raise ValueError("Call cooldown outlives the call-attempt TTL")
