"""Conversational-state cache over an HTTP key-value store.

Provides namespaced, TTL-bound state for the chat front end:
- Chat history and session state (session scope, 24h)
- Respect and mood meters (user scope, 7 days, refreshed on write)
- Joke bank, preferences, moderation flags, last seen, call attempts
- Search-result cache keyed by a query hash, reaction tallies per message

Features:
- One TTL policy table; no accessor hard-codes a duration
- Soft failures: store calls return results, never raise
- Local SQLite mirror used when the remote store is unreachable
- Documented defaults for every read
"""

from kyartu.services.cache.client import KeyValueStoreClient
from kyartu.services.cache.constants import (
    CALL_COOLDOWN_SECONDS,
    INACTIVITY_WINDOW_SECONDS,
    MAX_CHAT_MESSAGES,
    MAX_JOKES,
    NAMESPACE_TTLS,
    RESPECT_DEFAULT,
    RESPECT_DISPLAY_FACTOR,
    RESPECT_MAX,
    RESPECT_MIN,
    Namespace,
    make_key,
    ttl_for,
    validate_policy,
)
from kyartu.services.cache.fallback import FallbackCoordinator, LocalFallbackStore
from kyartu.services.cache.identifiers import (
    generate_message_id,
    generate_session_id,
    generate_user_id,
    search_query_hash,
)
from kyartu.services.cache.result import StoreResult
from kyartu.services.cache.service import CacheService, close_cache_service, get_cache_service

__all__ = [
    # Policy
    "Namespace",
    "NAMESPACE_TTLS",
    "CALL_COOLDOWN_SECONDS",
    "INACTIVITY_WINDOW_SECONDS",
    "MAX_CHAT_MESSAGES",
    "MAX_JOKES",
    "RESPECT_DEFAULT",
    "RESPECT_DISPLAY_FACTOR",
    "RESPECT_MAX",
    "RESPECT_MIN",
    "make_key",
    "ttl_for",
    "validate_policy",
    # Identifiers
    "generate_message_id",
    "generate_session_id",
    "generate_user_id",
    "search_query_hash",
    # Store
    "KeyValueStoreClient",
    "StoreResult",
    "FallbackCoordinator",
    "LocalFallbackStore",
    # Service
    "CacheService",
    "get_cache_service",
    "close_cache_service",
]
