"""
Configuration Module
====================

Environment-driven settings for search, caching and batch enrichment.

Usage:
    from src.config import get_settings

    settings = get_settings()
    print(settings.search.top_k)
"""

from .settings import (
    Settings,
    EmbeddingConfig,
    IndexConfig,
    RerankConfig,
    SearchConfig,
    CacheConfig,
    BatchConfig,
    VisionConfig,
    LoggingConfig,
    load_settings,
    get_settings,
)

__all__ = [
    "Settings",
    "EmbeddingConfig",
    "IndexConfig",
    "RerankConfig",
    "SearchConfig",
    "CacheConfig",
    "BatchConfig",
    "VisionConfig",
    "LoggingConfig",
    "load_settings",
    "get_settings",
]
