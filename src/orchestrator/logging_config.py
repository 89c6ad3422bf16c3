"""
Takeoff Search Logging Configuration
====================================

Configures logging for search, batch and API processes:
- JSON lines (log aggregation) or human-readable output
- Optional rotating log file
- Search context fields (query, intent, drawing_number ...) lifted from
  ``extra=`` into the JSON record

Usage:
    from src.orchestrator.logging_config import setup_logging

    setup_logging(level="DEBUG", json_output=True, log_file="logs/search.log")
"""

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from typing import Optional

from ..config import LoggingConfig

# Attributes passed via extra= that make it into JSON output
CONTEXT_FIELDS = ("query", "intent", "stage", "drawing_number", "page_id", "duration", "score")

NOISY_LOGGERS = ("urllib3", "httpx", "openai", "httpcore")


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record:
        {"ts": "2026-...", "level": "INFO", "logger": "src.search.engine", "msg": "...", "intent": "..."}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        for key in CONTEXT_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                entry[key] = val

        return json.dumps(entry, default=str)


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    Configure the root logger.

    Args:
        level: DEBUG, INFO, WARNING or ERROR
        json_output: Emit JSON lines instead of text
        log_file: Also write to this file, rotated at max_bytes
        backup_count: Rotated files kept
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    if json_output:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)-8s] %(name)-28s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    # stderr keeps stdout clean for --json CLI output
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root.debug("Logging configured: level=%s json=%s file=%s", level, json_output, log_file or "none")


def setup_logging_from_config(config: LoggingConfig, level_override: Optional[str] = None) -> None:
    setup_logging(
        level=level_override or config.level,
        json_output=config.json_logs,
        log_file=config.log_file,
    )
