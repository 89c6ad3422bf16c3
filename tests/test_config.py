"""
Tests for environment-driven configuration and logging setup.

Usage:
    pytest tests/test_config.py -v
"""

import json
import logging

import pytest

from src.config import BatchConfig, CacheConfig, EmbeddingConfig, SearchConfig, VisionConfig
from src.orchestrator.logging_config import JSONFormatter


class TestSettings:

    def test_search_defaults(self, monkeypatch):
        for key in ("SEARCH_TOP_K", "SEARCH_MIN_SCORE", "DEDUP_SIMILARITY_THRESHOLD"):
            monkeypatch.delenv(key, raising=False)
        config = SearchConfig()
        assert config.top_k == 10
        assert config.min_score == 300.0
        assert config.similarity_threshold == 0.8

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("SEARCH_TOP_K", "25")
        assert SearchConfig().top_k == 25

    def test_bad_integer(self, monkeypatch):
        monkeypatch.setenv("SEARCH_TOP_K", "many")
        with pytest.raises(ValueError, match="SEARCH_TOP_K"):
            SearchConfig()

    def test_threshold_range(self):
        with pytest.raises(ValueError):
            SearchConfig(similarity_threshold=1.5)

    def test_truncation_steps_list(self, monkeypatch):
        monkeypatch.setenv("EMBEDDING_TRUNCATION_STEPS", "500,2000,1000")
        assert EmbeddingConfig().truncation_steps == [2000, 1000, 500]

    def test_cache_ttls(self, monkeypatch):
        monkeypatch.delenv("VERIFICATION_TTL_SECONDS", raising=False)
        monkeypatch.delenv("QUERY_CACHE_TTL_SECONDS", raising=False)
        config = CacheConfig()
        assert config.verification_ttl_seconds == 300.0
        assert config.query_ttl_seconds == 3600

    def test_memory_store_cap(self, monkeypatch):
        monkeypatch.delenv("CACHE_MEMORY_MAX_ENTRIES", raising=False)
        assert CacheConfig().memory_max_entries == 1000
        with pytest.raises(ValueError):
            CacheConfig(memory_max_entries=0)

    def test_negative_delay_rejected(self):
        with pytest.raises(ValueError):
            BatchConfig(delay_seconds=-1)

    def test_vision_enabled_by_endpoint(self):
        assert VisionConfig(endpoint="https://vision.example.com", api_key=None, timeout=60).enabled
        assert not VisionConfig(endpoint=None, api_key=None, timeout=60).enabled


class TestJSONFormatter:

    def test_context_fields_included(self):
        record = logging.LogRecord("src.search.engine", logging.INFO, __file__, 1, "Search done", None, None)
        record.intent = "quantity_takeoff"
        record.drawing_number = "S-201"

        entry = json.loads(JSONFormatter().format(record))

        assert entry["msg"] == "Search done"
        assert entry["level"] == "INFO"
        assert entry["intent"] == "quantity_takeoff"
        assert entry["drawing_number"] == "S-201"
        assert "page_id" not in entry
