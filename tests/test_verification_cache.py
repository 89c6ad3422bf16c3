"""
Tests for the verification cache.

Tests TTL semantics with an injected clock:
- Entry served only while now - stored_at < ttl
- Expired entry evicted on read
- get_or_set skips the factory inside the window

Usage:
    pytest tests/test_verification_cache.py -v
"""

from unittest.mock import Mock

import pytest

from src.cache.verification_cache import VerificationCache


class FakeClock:

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class TestVerificationCache:

    def setup_method(self):
        self.clock = FakeClock()
        self.cache = VerificationCache(ttl_seconds=300, clock=self.clock)

    def test_miss_on_empty(self):
        assert self.cache.get("member_verified:W18X106") is None
        assert self.cache.misses == 1

    def test_hit_within_ttl(self):
        self.cache.set("k", {"verified": True})
        self.clock.advance(299.9)
        assert self.cache.get("k") == {"verified": True}

    def test_expires_at_ttl(self):
        """Read 5 min + 1 ms after the write is a miss."""
        self.cache.set("k", {"verified": True})
        self.clock.advance(300.001)
        assert self.cache.get("k") is None

    def test_exact_ttl_is_expired(self):
        self.cache.set("k", "v")
        self.clock.advance(300)
        assert self.cache.get("k") is None

    def test_expired_entry_evicted(self):
        self.cache.set("k", "v")
        self.clock.advance(301)
        self.cache.get("k")
        assert len(self.cache) == 0

    def test_set_refreshes_timestamp(self):
        self.cache.set("k", "old")
        self.clock.advance(200)
        self.cache.set("k", "new")
        self.clock.advance(200)
        assert self.cache.get("k") == "new"

    def test_get_or_set_calls_factory_once_in_window(self):
        factory = Mock(return_value={"verified": True})

        first = self.cache.get_or_set("k", factory)
        self.clock.advance(60)
        second = self.cache.get_or_set("k", factory)

        assert first == second
        assert factory.call_count == 1

    def test_get_or_set_recomputes_after_expiry(self):
        factory = Mock(side_effect=[{"n": 1}, {"n": 2}])

        self.cache.get_or_set("k", factory)
        self.clock.advance(301)
        assert self.cache.get_or_set("k", factory) == {"n": 2}
        assert factory.call_count == 2

    def test_factory_error_not_cached(self):
        factory = Mock(side_effect=RuntimeError("vision down"))
        with pytest.raises(RuntimeError):
            self.cache.get_or_set("k", factory)
        assert len(self.cache) == 0

    def test_invalidate_and_reset(self):
        self.cache.set("a", 1)
        self.cache.set("b", 2)
        assert self.cache.invalidate("a") is True
        assert self.cache.invalidate("a") is False
        self.cache.reset()
        assert len(self.cache) == 0
        assert self.cache.get_stats()["hits"] == 0

    def test_rejects_non_positive_ttl(self):
        with pytest.raises(ValueError):
            VerificationCache(ttl_seconds=0)
