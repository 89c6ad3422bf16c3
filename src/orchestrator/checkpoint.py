"""
Batch Checkpoint Persistence
============================

Records which source pages a batch run has finished so a restarted run
skips them.

File format: JSON at CHECKPOINT_DIR/<name>_checkpoint.json

    {"version": 1, "completed": ["page-1", ...], "failed": {"page-9": "error"}, "updated_at": "..."}

A page can be redone if the process dies between its upsert and the next
save; upserts are keyed by page id so repeating one is harmless.

Usage:
    store = CheckpointStore(Path("data"), name="enrichment")
    if not store.is_completed(page_id):
        ...
        store.mark_completed(page_id)
        store.save()
"""

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)

DEFAULT_NAME = "enrichment"


class CheckpointStore:
    """Completed page ids for one named batch, persisted to disk."""

    def __init__(self, checkpoint_dir: Path, name: str = DEFAULT_NAME):
        self._dir = Path(checkpoint_dir)
        self._file = self._dir / f"{name}_checkpoint.json"
        self._completed = set()
        self._order = []
        self._failed: Dict[str, str] = {}
        self._load()

    @property
    def path(self) -> Path:
        return self._file

    def _load(self) -> None:
        if not self._file.exists():
            return
        try:
            with open(self._file, "r") as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Failed to load checkpoint {self._file}, starting fresh: {e}")
            return

        for page_id in data.get("completed", []):
            if page_id not in self._completed:
                self._completed.add(page_id)
                self._order.append(page_id)
        self._failed = dict(data.get("failed", {}))
        logger.info(f"Resuming from checkpoint {self._file}: {len(self._completed)} pages completed")

    def save(self) -> None:
        """Write atomically: temp file then rename."""
        self._dir.mkdir(parents=True, exist_ok=True)
        payload: Dict[str, Any] = {
            "version": 1,
            "completed": self._order,
            "failed": self._failed,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        tmp = self._file.with_suffix(".json.tmp")
        with open(tmp, "w") as f:
            json.dump(payload, f, indent=2)
        os.replace(tmp, self._file)

    def is_completed(self, page_id: str) -> bool:
        return page_id in self._completed

    def mark_completed(self, page_id: str) -> None:
        if page_id not in self._completed:
            self._completed.add(page_id)
            self._order.append(page_id)
        self._failed.pop(page_id, None)

    def mark_failed(self, page_id: str, error: str) -> None:
        self._failed[page_id] = error[:500]

    def reset(self) -> None:
        """Forget all progress and remove the file."""
        self._completed.clear()
        self._order.clear()
        self._failed.clear()
        if self._file.exists():
            self._file.unlink()
        logger.info(f"Checkpoint reset: {self._file}")

    @property
    def completed_count(self) -> int:
        return len(self._completed)

    @property
    def failed(self) -> Dict[str, str]:
        return dict(self._failed)


def default_store(checkpoint_dir: Optional[str], name: str = DEFAULT_NAME) -> CheckpointStore:
    return CheckpointStore(Path(checkpoint_dir or "./data"), name=name)
