"""
Redis Result Store
==================

Shared key/value store for search responses and verification payloads.

Features:
- JSON values with per-key TTL
- Namespace prefixing ("takeoff:query:...", "takeoff:member_verified:...")
- In-process memory backend when Redis is unreachable or disabled,
  capped at CACHE_MEMORY_MAX_ENTRIES (expired, then least recently used, evicted first)

Usage:
    store = RedisCache()
    store.set("query:ab12cd34", {"results": []}, ttl_seconds=3600)
    payload = store.get("query:ab12cd34")

Environment variables:
    REDIS_URL - Full Redis URL (redis://host:port/db)
    CACHE_PREFIX - Key prefix (default: takeoff)
"""

import json
import logging
import hashlib
import time
from typing import Optional, Dict, Any, Tuple, Callable

import redis

from ..config import CacheConfig

logger = logging.getLogger(__name__)

# Global store instance (singleton)
_cache_instance: Optional["RedisCache"] = None


class RedisCache:
    """
    Redis-backed JSON store with a memory backend.

    The memory backend is used when no Redis URL is configured, when the
    initial ping fails, or when memory_only is requested (tests, CLI).
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        client: Optional[Any] = None,
        memory_only: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config if config is not None else CacheConfig()
        self.prefix = self.config.prefix
        self._clock = clock
        self._memory: Dict[str, Tuple[Optional[float], Any]] = {}
        self._redis: Optional[Any] = client

        if client is None and not memory_only:
            self._connect(self.config.redis_url)

    @property
    def backend(self) -> str:
        return "redis" if self._redis is not None else "memory"

    def _connect(self, redis_url: Optional[str]) -> None:
        if not redis_url:
            logger.info("REDIS_URL not set, using memory store")
            return

        try:
            client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_timeout=5,
                socket_connect_timeout=5,
            )
            client.ping()
        except redis.RedisError as e:
            logger.warning(f"Redis connection failed: {e}. Using memory store.")
            return

        self._redis = client
        logger.info(f"Redis store connected: {redis_url.split('@')[-1]}")

    def _make_key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    def get(self, key: str) -> Optional[Any]:
        """Stored value, or None when missing or expired."""
        full_key = self._make_key(key)

        if self._redis is None:
            return self._memory_get(full_key)

        try:
            raw = self._redis.get(full_key)
        except redis.RedisError as e:
            logger.warning(f"Redis get failed for {full_key}: {e}")
            return self._memory_get(full_key)

        if raw is None:
            return None
        return json.loads(raw)

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> bool:
        """
        Store a JSON-serializable value.

        Args:
            key: Key without prefix
            value: JSON-serializable payload
            ttl_seconds: Expiry; None keeps the key until deleted
        """
        full_key = self._make_key(key)

        if self._redis is None:
            return self._memory_set(full_key, value, ttl_seconds)

        serialized = json.dumps(value, default=str)
        try:
            if ttl_seconds:
                self._redis.setex(full_key, int(max(ttl_seconds, 1)), serialized)
            else:
                self._redis.set(full_key, serialized)
            return True
        except redis.RedisError as e:
            logger.warning(f"Redis set failed for {full_key}: {e}")
            return self._memory_set(full_key, value, ttl_seconds)

    def delete(self, key: str) -> bool:
        full_key = self._make_key(key)

        if self._redis is None:
            return self._memory.pop(full_key, None) is not None

        try:
            return self._redis.delete(full_key) > 0
        except redis.RedisError as e:
            logger.warning(f"Redis delete failed for {full_key}: {e}")
            return self._memory.pop(full_key, None) is not None

    def clear_prefix(self, prefix: str) -> int:
        """Delete every key under prefix. Returns the number removed."""
        full_prefix = self._make_key(prefix)

        if self._redis is None:
            doomed = [k for k in self._memory if k.startswith(full_prefix)]
            for k in doomed:
                del self._memory[k]
            return len(doomed)

        try:
            keys = list(self._redis.scan_iter(match=f"{full_prefix}*"))
            return self._redis.delete(*keys) if keys else 0
        except redis.RedisError as e:
            logger.warning(f"Redis clear_prefix failed for {full_prefix}: {e}")
            return 0

    def get_stats(self) -> Dict[str, Any]:
        stats: Dict[str, Any] = {"backend": self.backend, "prefix": self.prefix}

        if self._redis is None:
            stats["memory_keys"] = len(self._memory)
            stats["memory_max_entries"] = self.config.memory_max_entries
            return stats

        try:
            stats["redis_keys"] = self._redis.dbsize()
            stats["redis_memory_used"] = self._redis.info("memory").get("used_memory_human", "N/A")
        except redis.RedisError as e:
            logger.debug(f"Redis stats unavailable: {e}")
        return stats

    # =========================================================================
    # MEMORY BACKEND
    # =========================================================================

    def _memory_get(self, key: str) -> Optional[Any]:
        entry = self._memory.get(key)
        if entry is None:
            return None

        expires_at, value = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._memory[key]
            return None

        # Reinsert so dict order tracks recency
        del self._memory[key]
        self._memory[key] = entry
        return value

    def _memory_set(self, key: str, value: Any, ttl_seconds: Optional[float]) -> bool:
        expires_at = self._clock() + ttl_seconds if ttl_seconds else None
        if key in self._memory:
            del self._memory[key]
        elif len(self._memory) >= self.config.memory_max_entries:
            self._memory_evict()

        # Round-trip through JSON so both backends hand back equal copies
        self._memory[key] = (expires_at, json.loads(json.dumps(value, default=str)))
        return True

    def _memory_evict(self) -> None:
        """Drop expired entries, then least recently used ones, until there is room for one more."""
        now = self._clock()
        expired = [k for k, (expires_at, _) in self._memory.items() if expires_at is not None and now >= expires_at]
        for k in expired:
            del self._memory[k]

        while len(self._memory) >= self.config.memory_max_entries:
            oldest = next(iter(self._memory))
            del self._memory[oldest]

        logger.debug(f"Memory store evicted {len(expired)} expired entries, holding {len(self._memory)}")

    # =========================================================================
    # UTILITIES
    # =========================================================================

    @staticmethod
    def compute_hash(*args) -> str:
        """16-char SHA256 digest of the JSON-serialized arguments, for key building."""
        data = json.dumps(args, sort_keys=True, default=str)
        return hashlib.sha256(data.encode()).hexdigest()[:16]

    def close(self) -> None:
        if self._redis is not None:
            try:
                self._redis.close()
            except redis.RedisError as e:
                logger.debug(f"Redis close failed: {e}")
            self._redis = None


def get_cache(config: Optional[CacheConfig] = None, force_new: bool = False) -> RedisCache:
    """Process-wide store instance."""
    global _cache_instance

    if _cache_instance is None or force_new:
        _cache_instance = RedisCache(config=config)

    return _cache_instance
