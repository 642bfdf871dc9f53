"""Tests for search-result caching and reaction tallies."""

from unittest.mock import AsyncMock

import pytest

from kyartu.services.cache import CacheService, search_query_hash
from kyartu.services.cache.models import ReactionTally

from tests.conftest import FakeKeyValueStore

RESULTS = {
    "answer": "Simmer the hooves overnight.",
    "results": [{"title": "Khash 101", "url": "https://example.com/khash"}],
}


class TestSearchCache:
    @pytest.mark.asyncio
    async def test_second_lookup_is_cache_hit(self, cache: CacheService):
        fetcher = AsyncMock(return_value=RESULTS)

        first = await cache.get_or_fetch_search("best khash recipe", fetcher)
        second = await cache.get_or_fetch_search("best khash recipe", fetcher)

        fetcher.assert_awaited_once_with("best khash recipe")
        assert first.results == second.results == RESULTS

    @pytest.mark.asyncio
    async def test_keyed_by_query_hash_with_search_ttl(
        self, cache: CacheService, kv_store: FakeKeyValueStore
    ):
        await cache.cache_search_results("best khash recipe", RESULTS)

        key = f"search:query:{search_query_hash('best khash recipe')}"
        assert kv_store.ttls[key] == 3600
        assert kv_store.document(key)["results"] == RESULTS
        assert kv_store.document(key)["source"] == "tavily"

    @pytest.mark.asyncio
    async def test_equivalent_query_hits(self, cache: CacheService):
        await cache.cache_search_results("best khash recipe", RESULTS)
        entry = await cache.get_cached_search_results("  Best KHASH  recipe")
        assert entry is not None
        assert entry.results == RESULTS

    @pytest.mark.asyncio
    async def test_miss_returns_none(self, cache: CacheService):
        assert await cache.get_cached_search_results("dolma") is None

    @pytest.mark.asyncio
    async def test_colliding_entry_is_ignored(
        self, cache: CacheService, kv_store: FakeKeyValueStore
    ):
        key = f"search:query:{search_query_hash('dolma')}"
        kv_store.values[key] = '{"query": "something else", "results": [], "source": "tavily", "cachedAt": 1}'
        assert await cache.get_cached_search_results("dolma") is None

    @pytest.mark.asyncio
    async def test_fetcher_error_propagates_and_nothing_cached(
        self, cache: CacheService, kv_store: FakeKeyValueStore
    ):
        fetcher = AsyncMock(side_effect=RuntimeError("search down"))

        with pytest.raises(RuntimeError, match="search down"):
            await cache.get_or_fetch_search("dolma", fetcher)

        assert not any(key.startswith("search:") for key in kv_store.values)

    @pytest.mark.asyncio
    async def test_lone_surrogate_query_never_raises(self, cache: CacheService):
        query = "khash \ud800"
        fetcher = AsyncMock(return_value=RESULTS)

        assert await cache.get_cached_search_results(query) is None
        assert await cache.cache_search_results(query, RESULTS) is False
        entry = await cache.get_or_fetch_search(query, fetcher)

        assert entry.results == RESULTS
        fetcher.assert_awaited_once_with(query)


class TestReactions:
    @pytest.mark.asyncio
    async def test_counts_per_emoji(self, cache: CacheService, kv_store: FakeKeyValueStore):
        await cache.add_reaction("m1", "🔥", "u1")
        await cache.add_reaction("m1", "🔥", "u2")
        tally = await cache.add_reaction("m1", "😂", "u1")

        assert tally.counts == {"🔥": 2, "😂": 1}
        stored = kv_store.document("reactions:message:m1")
        assert stored["🔥"] == 2
        assert stored["_users"]["🔥"] == ["u1", "u2"]
        assert kv_store.ttls["reactions:message:m1"] == 604800

    @pytest.mark.asyncio
    async def test_repeat_reaction_is_idempotent(
        self, cache: CacheService, kv_store: FakeKeyValueStore
    ):
        await cache.add_reaction("m1", "🔥", "u1")
        writes_before = len([r for r in kv_store.requests if r[0] == "POST"])

        tally = await cache.add_reaction("m1", "🔥", "u1")

        assert tally.counts == {"🔥": 1}
        assert len([r for r in kv_store.requests if r[0] == "POST"]) == writes_before

    @pytest.mark.asyncio
    async def test_voter_map_key_is_not_an_emoji(
        self, cache: CacheService, kv_store: FakeKeyValueStore
    ):
        tally = await cache.add_reaction("m1", "_users", "u1")
        assert tally.counts == {}

        await cache.add_reaction("m1", "🔥", "u2")

        stored = await cache.get_reactions("m1")
        assert stored.counts == {"🔥": 1}
        assert stored.users == {"🔥": ["u2"]}
        assert kv_store.document("reactions:message:m1") == {"🔥": 1, "_users": {"🔥": ["u2"]}}

    @pytest.mark.asyncio
    async def test_empty_by_default(self, cache: CacheService):
        assert await cache.get_reactions("m1") == ReactionTally()

    @pytest.mark.asyncio
    async def test_malformed_tally_rejected(self, cache: CacheService):
        assert await cache.store_reactions("m1", {"🔥": "many"}) is False
