"""
Tests for the result store and the search result cache.

All tests run against the memory backend or a mocked Redis client;
no Redis server is needed.

Usage:
    pytest tests/test_query_cache.py -v
"""

import json
from unittest.mock import MagicMock, Mock

import redis

from src.cache import RedisCache, SearchResultCache, cached_search
from src.config import CacheConfig
from src.search.models import Intent, SearchQuery, SearchResponse, SearchResult


def make_config(**overrides) -> CacheConfig:
    values = dict(
        verification_ttl_seconds=300.0,
        query_ttl_seconds=3600,
        redis_url=None,
        prefix="takeoff",
    )
    values.update(overrides)
    return CacheConfig(**values)


def make_response(query: SearchQuery, success: bool = True) -> SearchResponse:
    results = [
        SearchResult(
            id="c1",
            text="W18x106 (QTY:2)",
            project="Lake House",
            discipline="Structural",
            drawing_type="Plan",
            drawing_number="S-201",
            score=833.3,
            page_number=4,
        )
    ] if success else []
    return SearchResponse(
        query=query,
        results=results,
        intent=Intent.QUANTITY_TAKEOFF,
        success=success,
        error=None if success else "index unavailable",
    )


class FakeClock:

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


# ============================================================================
# REDIS CACHE
# ============================================================================

class TestRedisCacheMemoryBackend:

    def setup_method(self):
        self.clock = FakeClock()
        self.store = RedisCache(make_config(), memory_only=True, clock=self.clock)

    def test_backend_is_memory(self):
        assert self.store.backend == "memory"

    def test_set_get(self):
        self.store.set("query:abc", {"a": 1})
        assert self.store.get("query:abc") == {"a": 1}

    def test_ttl_expiry(self):
        self.store.set("query:abc", {"a": 1}, ttl_seconds=10)
        self.clock.now = 10
        assert self.store.get("query:abc") is None

    def test_clear_prefix(self):
        self.store.set("query:a", 1)
        self.store.set("query:b", 2)
        self.store.set("member_verified:W1", 3)
        assert self.store.clear_prefix("query:") == 2
        assert self.store.get("member_verified:W1") == 3

    def test_no_url_uses_memory(self):
        store = RedisCache(make_config(redis_url=None))
        assert store.backend == "memory"

    def test_expired_entries_purged_when_full(self):
        store = RedisCache(make_config(memory_max_entries=100), memory_only=True, clock=self.clock)
        for i in range(100):
            store.set(f"query:{i}", {"i": i}, ttl_seconds=3600)

        self.clock.now = 10 * 3600
        store.set("query:fresh", {"i": "fresh"}, ttl_seconds=3600)

        assert store.get_stats()["memory_keys"] == 1
        assert store.get("query:fresh") == {"i": "fresh"}

    def test_least_recently_used_evicted_at_cap(self):
        store = RedisCache(make_config(memory_max_entries=3), memory_only=True, clock=self.clock)
        store.set("query:a", 1, ttl_seconds=3600)
        store.set("query:b", 2, ttl_seconds=3600)
        store.set("query:c", 3, ttl_seconds=3600)
        assert store.get("query:a") == 1

        store.set("query:d", 4, ttl_seconds=3600)

        assert store.get("query:b") is None
        assert [store.get(k) for k in ("query:a", "query:c", "query:d")] == [1, 3, 4]
        assert store.get_stats()["memory_keys"] == 3

    def test_overwrite_does_not_evict(self):
        store = RedisCache(make_config(memory_max_entries=2), memory_only=True, clock=self.clock)
        store.set("query:a", 1)
        store.set("query:b", 2)
        store.set("query:a", 10)

        assert store.get("query:a") == 10
        assert store.get("query:b") == 2

    def test_compute_hash_stable(self):
        assert RedisCache.compute_hash({"b": 1, "a": 2}) == RedisCache.compute_hash({"a": 2, "b": 1})
        assert len(RedisCache.compute_hash("x")) == 16


class TestRedisCacheClient:

    def setup_method(self):
        self.client = MagicMock()
        self.store = RedisCache(make_config(), client=self.client)

    def test_prefixed_setex(self):
        self.store.set("query:abc", {"a": 1}, ttl_seconds=3600)
        self.client.setex.assert_called_once_with("takeoff:query:abc", 3600, json.dumps({"a": 1}))

    def test_get_decodes_json(self):
        self.client.get.return_value = '{"a": 1}'
        assert self.store.get("query:abc") == {"a": 1}
        self.client.get.assert_called_once_with("takeoff:query:abc")

    def test_redis_error_falls_back_to_memory(self):
        self.client.setex.side_effect = redis.ConnectionError("gone")
        self.client.get.side_effect = redis.ConnectionError("gone")

        assert self.store.set("query:abc", {"a": 1}, ttl_seconds=60) is True
        assert self.store.get("query:abc") == {"a": 1}


# ============================================================================
# SEARCH RESULT CACHE
# ============================================================================

class TestSearchResultCache:

    def setup_method(self):
        self.store = RedisCache(make_config(), memory_only=True)
        self.cache = SearchResultCache(self.store)
        self.query = SearchQuery("how many W18x106", discipline="Structural", top_k=5)

    def test_round_trip_flags_cached(self):
        self.cache.set(make_response(self.query))
        hit = self.cache.get(self.query)

        assert hit.cached is True
        assert hit.intent == Intent.QUANTITY_TAKEOFF
        assert hit.results[0].drawing_number == "S-201"
        assert hit.results[0].page_number == 4

    def test_key_normalizes_case_and_whitespace(self):
        self.cache.set(make_response(self.query))
        same = SearchQuery("  How Many W18x106 ", discipline="Structural", top_k=5)
        assert self.cache.get(same) is not None

    def test_filters_are_part_of_key(self):
        self.cache.set(make_response(self.query))
        other = SearchQuery("how many W18x106", discipline="Architectural", top_k=5)
        assert self.cache.get(other) is None

    def test_failures_not_stored(self):
        assert self.cache.set(make_response(self.query, success=False)) is False
        assert self.cache.get(self.query) is None

    def test_unreadable_payload_discarded(self):
        self.store.set(SearchResultCache.key_for(self.query), {"bogus": True})
        assert self.cache.get(self.query) is None

    def test_clear(self):
        self.cache.set(make_response(self.query))
        assert self.cache.clear() == 1


class TestCachedSearch:

    def test_second_call_served_from_cache(self):
        store = RedisCache(make_config(), memory_only=True)
        cache = SearchResultCache(store)
        query = SearchQuery("beam schedule")

        engine = Mock()
        engine.search_safe.return_value = make_response(query)

        first = cached_search(engine, cache, query)
        second = cached_search(engine, cache, query)

        assert first.cached is False
        assert second.cached is True
        assert engine.search_safe.call_count == 1

    def test_without_cache_calls_engine(self):
        query = SearchQuery("beam schedule")
        engine = Mock()
        engine.search_safe.return_value = make_response(query)

        cached_search(engine, None, query)
        cached_search(engine, None, query)
        assert engine.search_safe.call_count == 2
