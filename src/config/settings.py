"""
Takeoff Search Configuration
============================

Centralized configuration management using environment variables.
Supports both .env files and system environment variables.

Environment Variables:
    OPENAI_API_KEY: Embedding provider key (required for live search)
    EMBEDDING_MODEL: Embedding model (default: text-embedding-3-small)
    EMBEDDING_DIMENSIONS: Vector size (default: 1536)
    EMBEDDING_TRUNCATION_STEPS: Retry lengths after a context overflow (default: 1000,500)

    DATABASE_URL: PostgreSQL/pgvector connection URL (required for live search)
    INDEX_TABLE: Table holding indexed excerpts (default: construction_chunks)

    COHERE_API_KEY: Re-ranker key (optional, re-ranking disabled when unset)
    RERANK_MODEL: Re-rank model (default: rerank-english-v3.0)
    RERANK_TIMEOUT: HTTP timeout in seconds (default: 30)

    SEARCH_TOP_K: Default number of results (default: 10)
    SEARCH_OVERFETCH_FACTOR: Candidates requested per result (default: 5)
    SEARCH_MIN_SCORE: Confidence floor on the 0-1000 scale (default: 300)
    DEDUP_SIMILARITY_THRESHOLD: Jaccard cutoff for same-sheet duplicates (default: 0.8)
    CROSS_REFERENCE_LIMIT: References kept per result (default: 5)

    VERIFICATION_TTL_SECONDS: Verification memo window (default: 300)
    QUERY_CACHE_TTL_SECONDS: Search result cache window (default: 3600)
    REDIS_URL: Redis URL for the query cache (optional)
    CACHE_PREFIX: Key namespace (default: takeoff)
    CACHE_MEMORY_MAX_ENTRIES: Entry cap for the in-process store (default: 1000)

    BATCH_DELAY_SECONDS: Pause between external calls in batch runs (default: 0.1)
    CHECKPOINT_DIR: Directory for batch checkpoints (default: ./data)

    VISION_VERIFIER_URL: Vision verification endpoint (optional, verified lookups disabled when unset)
    VISION_VERIFIER_KEY: Bearer token for the vision endpoint (optional)
    VISION_VERIFIER_TIMEOUT: HTTP timeout in seconds (default: 60)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv


# Load environment variables from .env file if present
env_path = Path(__file__).parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


def get_env(key: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
    """
    Get environment variable with optional default and required validation.

    Args:
        key: Environment variable name
        default: Default value if not set
        required: If True, raises ValueError when not set

    Returns:
        Environment variable value or default

    Raises:
        ValueError: If required=True and variable is not set
    """
    value = os.getenv(key, default)
    if required and value is None:
        raise ValueError(f"Required environment variable '{key}' is not set")
    return value


def get_env_int(key: str, default: int) -> int:
    """Get environment variable as integer."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable '{key}' must be an integer, got: {value}")


def get_env_float(key: str, default: float) -> float:
    """Get environment variable as float."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Environment variable '{key}' must be a float, got: {value}")


def get_env_bool(key: str, default: bool) -> bool:
    """Get environment variable as boolean."""
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def get_env_int_list(key: str, default: List[int]) -> List[int]:
    """Get a comma-separated environment variable as a list of integers."""
    value = os.getenv(key)
    if value is None:
        return list(default)
    try:
        return [int(part) for part in value.split(",") if part.strip()]
    except ValueError:
        raise ValueError(f"Environment variable '{key}' must be a comma-separated list of integers, got: {value}")


@dataclass
class EmbeddingConfig:
    """Embedding provider configuration."""

    api_key: Optional[str] = field(default_factory=lambda: get_env("OPENAI_API_KEY"))
    model: str = field(default_factory=lambda: get_env("EMBEDDING_MODEL", "text-embedding-3-small"))
    dimensions: int = field(default_factory=lambda: get_env_int("EMBEDDING_DIMENSIONS", 1536))

    # Retried lengths after a context-length overflow, longest first
    truncation_steps: List[int] = field(
        default_factory=lambda: get_env_int_list("EMBEDDING_TRUNCATION_STEPS", [1000, 500])
    )

    def __post_init__(self):
        if self.dimensions <= 0:
            raise ValueError("EMBEDDING_DIMENSIONS must be positive")
        if any(step <= 0 for step in self.truncation_steps):
            raise ValueError("EMBEDDING_TRUNCATION_STEPS must be positive")
        self.truncation_steps = sorted(set(self.truncation_steps), reverse=True)


@dataclass
class IndexConfig:
    """Vector index (pgvector) configuration."""

    database_url: Optional[str] = field(default_factory=lambda: get_env("DATABASE_URL"))
    table: str = field(default_factory=lambda: get_env("INDEX_TABLE", "construction_chunks"))
    connect_timeout: int = field(default_factory=lambda: get_env_int("DATABASE_CONNECT_TIMEOUT", 10))

    def __post_init__(self):
        if not self.table.replace("_", "").isalnum():
            raise ValueError(f"INDEX_TABLE must be a plain identifier, got: {self.table}")


@dataclass
class RerankConfig:
    """Optional re-ranker configuration."""

    api_key: Optional[str] = field(default_factory=lambda: get_env("COHERE_API_KEY"))
    model: str = field(default_factory=lambda: get_env("RERANK_MODEL", "rerank-english-v3.0"))
    base_url: str = field(default_factory=lambda: get_env("RERANK_BASE_URL", "https://api.cohere.com/v1"))
    timeout: float = field(default_factory=lambda: get_env_float("RERANK_TIMEOUT", 30.0))

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)


@dataclass
class SearchConfig:
    """Ranking and de-duplication parameters."""

    top_k: int = field(default_factory=lambda: get_env_int("SEARCH_TOP_K", 10))
    overfetch_factor: int = field(default_factory=lambda: get_env_int("SEARCH_OVERFETCH_FACTOR", 5))
    min_score: float = field(default_factory=lambda: get_env_float("SEARCH_MIN_SCORE", 300.0))
    similarity_threshold: float = field(
        default_factory=lambda: get_env_float("DEDUP_SIMILARITY_THRESHOLD", 0.8)
    )
    cross_reference_limit: int = field(default_factory=lambda: get_env_int("CROSS_REFERENCE_LIMIT", 5))

    def __post_init__(self):
        if self.top_k <= 0:
            raise ValueError("SEARCH_TOP_K must be positive")
        if self.overfetch_factor < 1:
            raise ValueError("SEARCH_OVERFETCH_FACTOR must be at least 1")
        if not 0 < self.similarity_threshold <= 1:
            raise ValueError("DEDUP_SIMILARITY_THRESHOLD must be in (0, 1]")
        if self.cross_reference_limit < 0:
            raise ValueError("CROSS_REFERENCE_LIMIT cannot be negative")


@dataclass
class CacheConfig:
    """Verification memo and query cache configuration."""

    verification_ttl_seconds: float = field(
        default_factory=lambda: get_env_float("VERIFICATION_TTL_SECONDS", 300.0)
    )
    query_ttl_seconds: int = field(default_factory=lambda: get_env_int("QUERY_CACHE_TTL_SECONDS", 3600))
    redis_url: Optional[str] = field(default_factory=lambda: get_env("REDIS_URL"))
    prefix: str = field(default_factory=lambda: get_env("CACHE_PREFIX", "takeoff"))
    memory_max_entries: int = field(default_factory=lambda: get_env_int("CACHE_MEMORY_MAX_ENTRIES", 1000))

    def __post_init__(self):
        if self.verification_ttl_seconds <= 0:
            raise ValueError("VERIFICATION_TTL_SECONDS must be positive")
        if self.query_ttl_seconds <= 0:
            raise ValueError("QUERY_CACHE_TTL_SECONDS must be positive")
        if self.memory_max_entries <= 0:
            raise ValueError("CACHE_MEMORY_MAX_ENTRIES must be positive")


@dataclass
class BatchConfig:
    """Sequential batch enrichment configuration."""

    delay_seconds: float = field(default_factory=lambda: get_env_float("BATCH_DELAY_SECONDS", 0.1))
    checkpoint_dir: str = field(default_factory=lambda: get_env("CHECKPOINT_DIR", "./data"))

    def __post_init__(self):
        if self.delay_seconds < 0:
            raise ValueError("BATCH_DELAY_SECONDS cannot be negative")


@dataclass
class VisionConfig:
    """External vision verification service."""

    endpoint: Optional[str] = field(default_factory=lambda: get_env("VISION_VERIFIER_URL"))
    api_key: Optional[str] = field(default_factory=lambda: get_env("VISION_VERIFIER_KEY"))
    timeout: int = field(default_factory=lambda: get_env_int("VISION_VERIFIER_TIMEOUT", 60))

    @property
    def enabled(self) -> bool:
        return bool(self.endpoint)


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = field(default_factory=lambda: get_env("LOG_LEVEL", "INFO"))
    log_file: Optional[str] = field(default_factory=lambda: get_env("LOG_FILE"))

    # Structured logging
    json_logs: bool = field(default_factory=lambda: get_env_bool("LOG_JSON", False))


@dataclass
class Settings:
    """Main application settings container."""

    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    index: IndexConfig = field(default_factory=IndexConfig)
    rerank: RerankConfig = field(default_factory=RerankConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    vision: VisionConfig = field(default_factory=VisionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    app_name: str = "takeoff-search"
    app_version: str = "1.0.0"
    environment: str = field(default_factory=lambda: get_env("ENVIRONMENT", "development"))


def load_settings() -> Settings:
    """
    Load and validate all application settings.

    Raises:
        ValueError: If configuration is invalid
    """
    return Settings()


# Global settings instance (lazy-loaded)
_settings: Optional[Settings] = None


def get_settings(force_reload: bool = False) -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None or force_reload:
        _settings = load_settings()
    return _settings
