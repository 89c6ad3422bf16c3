"""
Orchestrator Module
===================

Process-level wiring for the search stack.

Components:
    - build_services: engine, caches and verified lookups from Settings
    - BatchEnrichmentRunner: sequential, checkpointed page indexing
    - setup_logging: text / JSON logging configuration
    - CLI: python -m src.orchestrator.cli

Usage:
    from src.orchestrator import build_services
    from src.config import get_settings

    services = build_services(get_settings())
"""

from .batch import BatchEnrichmentRunner, BatchReport, PageRecord, read_pages
from .checkpoint import CheckpointStore
from .logging_config import setup_logging, JSONFormatter
from .services import Services, build_services, build_engine

__all__ = [
    # Batch
    "BatchEnrichmentRunner",
    "BatchReport",
    "PageRecord",
    "read_pages",
    "CheckpointStore",
    # Logging
    "setup_logging",
    "JSONFormatter",
    # Wiring
    "Services",
    "build_services",
    "build_engine",
]
