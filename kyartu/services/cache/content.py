"""Content cache operations: web-search results and message reactions."""

from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import ValidationError

from kyartu.core.logging import get_logger
from kyartu.services.cache.base import BaseCacheOperations
from kyartu.services.cache.constants import Namespace
from kyartu.services.cache.identifiers import normalize_query, search_query_hash
from kyartu.services.cache.models import ReactionTally, SearchCacheEntry

logger = get_logger(__name__)

SearchFetcher = Callable[[str], Awaitable[Any]]


class ContentCacheMixin(BaseCacheOperations):
    """Search result and reaction caching operations."""

    # ========== Search cache ==========

    async def cache_search_results(
        self,
        query: str,
        results: Any,
        source: str = "tavily",
    ) -> bool:
        """Cache search results under the hash of the normalized query."""
        entry = SearchCacheEntry(query=query, results=results, source=source)
        return await self._save(
            Namespace.SEARCH_CACHE, search_query_hash(query), entry.to_document()
        )

    async def get_cached_search_results(self, query: str) -> SearchCacheEntry | None:
        """Get cached results for ``query`` or None on a miss."""
        entry = await self._load_model(
            Namespace.SEARCH_CACHE, search_query_hash(query), SearchCacheEntry
        )
        if entry is None:
            return None
        if normalize_query(entry.query) != normalize_query(query):
            logger.debug("Search cache hash collision", query=query, cached_query=entry.query)
            return None
        return entry

    async def get_or_fetch_search(
        self,
        query: str,
        fetcher: SearchFetcher,
        source: str = "tavily",
    ) -> SearchCacheEntry:
        """Return cached results, calling ``fetcher`` only on a miss.

        Errors raised by ``fetcher`` propagate; the cache is not written.
        """
        cached = await self.get_cached_search_results(query)
        if cached is not None:
            logger.debug("Search cache hit", query=query)
            return cached

        results = await fetcher(query)
        entry = SearchCacheEntry(query=query, results=results, source=source)
        await self._save(Namespace.SEARCH_CACHE, search_query_hash(query), entry.to_document())
        return entry

    # ========== Reactions ==========

    async def store_reactions(
        self,
        message_id: str,
        tally: ReactionTally | dict[str, Any],
    ) -> bool:
        try:
            if not isinstance(tally, ReactionTally):
                tally = ReactionTally.from_document(tally)
        except (ValidationError, TypeError, ValueError) as e:
            logger.warning("Rejected malformed reaction tally", message_id=message_id, error=str(e))
            return False
        return await self._save(Namespace.REACTIONS, message_id, tally.to_document())

    async def get_reactions(self, message_id: str) -> ReactionTally:
        """Get the reaction tally, empty when nothing is cached."""
        document = await self._load(Namespace.REACTIONS, message_id)
        if not isinstance(document, dict):
            return ReactionTally()
        try:
            return ReactionTally.from_document(document)
        except (ValidationError, TypeError, ValueError):
            logger.debug("Cached reaction tally failed validation", message_id=message_id)
            return ReactionTally()

    async def add_reaction(self, message_id: str, emoji: str, user_id: str) -> ReactionTally:
        """Count a user's reaction once per emoji; repeats are no-ops."""
        tally = await self.get_reactions(message_id)
        if tally.add(emoji, user_id):
            await self.store_reactions(message_id, tally)
        return tally
