"""
Verification Cache
==================

Short-lived memo for expensive verification calls (vision model checks).

An entry is served only while ``now - stored_at < ttl``. An expired entry is
evicted by the read that finds it and reported as a miss.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0


@dataclass
class CacheEntry:
    value: Any
    stored_at: float


class VerificationCache:
    """
    Key -> value memo with a fixed TTL.

    The clock is injectable so expiry can be tested without sleeping.
    A lock guards read-modify-write so one instance can be shared between
    request workers.
    """

    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[Any]:
        """Cached value, or None on miss or expiry."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None

            if self._clock() - entry.stored_at >= self.ttl_seconds:
                del self._entries[key]
                self.misses += 1
                logger.debug(f"Verification cache expired: {key}")
                return None

            self.hits += 1
            return entry.value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(value=value, stored_at=self._clock())

    def get_or_set(self, key: str, factory: Callable[[], Any]) -> Any:
        """
        Return the cached value or compute, store and return it.

        The factory runs outside the lock; two concurrent misses may both call it.
        """
        cached = self.get(key)
        if cached is not None:
            logger.debug(f"Verification cache hit: {key}")
            return cached

        value = factory()
        self.set(key, value)
        return value

    def invalidate(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "entries": len(self._entries),
            "ttl_seconds": self.ttl_seconds,
            "hits": self.hits,
            "misses": self.misses,
        }
