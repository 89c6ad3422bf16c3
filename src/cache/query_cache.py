"""
Search Result Cache
===================

Memoizes successful search responses for an hour, keyed by the normalized
query and its filters. Failed responses are never stored.
"""

import logging
from typing import Optional, Dict, Any

from ..config import CacheConfig
from ..search.models import SearchQuery, SearchResponse, SearchResult, Intent
from .redis_cache import RedisCache

logger = logging.getLogger(__name__)

KEY_NAMESPACE = "query"


class SearchResultCache:

    def __init__(self, store: RedisCache, config: Optional[CacheConfig] = None):
        self.store = store
        self.ttl_seconds = (config or store.config).query_ttl_seconds

    @staticmethod
    def key_for(query: SearchQuery) -> str:
        return f"{KEY_NAMESPACE}:{RedisCache.compute_hash(query.cache_key_parts())}"

    def get(self, query: SearchQuery) -> Optional[SearchResponse]:
        payload = self.store.get(self.key_for(query))
        if payload is None:
            return None

        try:
            return self._from_payload(query, payload)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Discarding unreadable cached response for '{query.query_text[:50]}': {e}")
            self.store.delete(self.key_for(query))
            return None

    def set(self, response: SearchResponse) -> bool:
        if not response.success:
            return False
        payload: Dict[str, Any] = {
            "intent": response.intent.value,
            "reranked": response.reranked,
            "results": [r.to_dict() for r in response.results],
        }
        return self.store.set(self.key_for(response.query), payload, ttl_seconds=self.ttl_seconds)

    def clear(self) -> int:
        return self.store.clear_prefix(f"{KEY_NAMESPACE}:")

    @staticmethod
    def _from_payload(query: SearchQuery, payload: Dict[str, Any]) -> SearchResponse:
        return SearchResponse(
            query=query,
            results=[SearchResult.from_dict(r) for r in payload["results"]],
            intent=Intent(payload["intent"]),
            reranked=bool(payload.get("reranked", False)),
            cached=True,
        )


def cached_search(engine, cache: Optional[SearchResultCache], query: SearchQuery) -> SearchResponse:
    """search_safe() through the result cache when one is configured."""
    if cache is not None:
        hit = cache.get(query)
        if hit is not None:
            logger.debug(f"Query cache hit: '{query.query_text[:50]}'")
            return hit

    response = engine.search_safe(query)
    if cache is not None:
        cache.set(response)
    return response
