"""Main CacheService combining all cache operations."""

from kyartu.services.cache.constants import validate_policy
from kyartu.services.cache.content import ContentCacheMixin
from kyartu.services.cache.conversation import ConversationCacheMixin
from kyartu.services.cache.user import ModerationCacheMixin, UserCacheMixin

validate_policy()


class CacheService(
    ConversationCacheMixin,
    UserCacheMixin,
    ModerationCacheMixin,
    ContentCacheMixin,
):
    """Conversational-state cache with local fallback.

    Combines all cache operations through multiple inheritance:
    - BaseCacheOperations: Namespaced reads/writes through the fallback coordinator
    - ConversationCacheMixin: Chat history and session state
    - UserCacheMixin: Respect/mood meters, jokes, preferences
    - ModerationCacheMixin: Moderation flags, last seen, call attempts
    - ContentCacheMixin: Search results and reactions
    """
    pass


# Global cache service instance
_cache_service: CacheService | None = None


def get_cache_service() -> CacheService:
    """Get or create the global cache service instance."""
    global _cache_service

    if _cache_service is None:
        _cache_service = CacheService()

    return _cache_service


async def close_cache_service() -> None:
    """Close the global cache service's HTTP client."""
    global _cache_service

    if _cache_service is not None:
        await _cache_service.close()
        _cache_service = None
