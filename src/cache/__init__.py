"""
Caching
=======

- RedisCache: shared JSON store (Redis, memory backend when unavailable)
- SearchResultCache: one-hour memo of successful search responses
- VerificationCache: five-minute in-process memo for vision verification

Usage:
    from src.cache import VerificationCache

    cache = VerificationCache(ttl_seconds=300)
    result = cache.get_or_set("member_verified:W18x106", expensive_call)
"""

from .redis_cache import RedisCache, get_cache
from .query_cache import SearchResultCache, cached_search
from .verification_cache import VerificationCache, CacheEntry

__all__ = [
    "RedisCache",
    "get_cache",
    "SearchResultCache",
    "cached_search",
    "VerificationCache",
    "CacheEntry",
]
