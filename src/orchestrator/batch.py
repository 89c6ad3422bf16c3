"""
Batch Enrichment Runner
=======================

Embeds extracted page text and upserts it into the vector index, one page
at a time, with a fixed pause between provider calls and a checkpoint
written after every page.

Input is JSON lines, one page per line:

    {"id": "A-101-p1", "text": "...", "project": "Lake House", "discipline": "Architectural",
     "drawing_type": "Plan", "drawing_number": "A-101", "page_number": 1}
"""

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

from ..config import BatchConfig
from ..search.embedder import EmbeddingProvider
from ..search.vector_index import VectorIndex, METADATA_COLUMNS
from .checkpoint import CheckpointStore

logger = logging.getLogger(__name__)


@dataclass
class PageRecord:
    """One extracted page ready for indexing."""
    id: str
    text: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PageRecord":
        if not data.get("id"):
            raise ValueError("page record missing 'id'")
        metadata = dict(data.get("metadata") or {})
        for column in METADATA_COLUMNS:
            if column in data and column not in metadata:
                metadata[column] = data[column]
        return cls(id=str(data["id"]), text=data.get("text") or "", metadata=metadata)


@dataclass
class BatchReport:
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    truncated: int = 0
    duration_seconds: float = 0.0
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return self.processed + self.skipped + self.failed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "processed": self.processed,
            "skipped": self.skipped,
            "failed": self.failed,
            "truncated": self.truncated,
            "duration_seconds": round(self.duration_seconds, 1),
            "errors": dict(self.errors),
        }


def read_pages(path: Path) -> Iterator[PageRecord]:
    """Parse a JSONL page file. Blank lines are skipped; bad lines raise ValueError."""
    with open(path, "r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                yield PageRecord.from_dict(json.loads(line))
            except ValueError as e:
                raise ValueError(f"{path}:{line_no}: {e}") from e


class BatchEnrichmentRunner:
    """
    Sequential page indexing with resumable progress.

    Pages are processed strictly in input order. A failed page is logged,
    counted and left out of the checkpoint so the next run retries it.
    """

    def __init__(
        self,
        embedder: EmbeddingProvider,
        index: VectorIndex,
        checkpoint: CheckpointStore,
        config: Optional[BatchConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.embedder = embedder
        self.index = index
        self.checkpoint = checkpoint
        self.config = config if config is not None else BatchConfig()
        self._sleep = sleep

    def run(self, pages: Iterable[PageRecord], limit: Optional[int] = None) -> BatchReport:
        started = time.time()
        report = BatchReport()
        calls_made = 0

        for page in pages:
            if self.checkpoint.is_completed(page.id):
                report.skipped += 1
                continue

            if limit is not None and report.processed + report.failed >= limit:
                break

            if not page.text.strip():
                logger.warning(f"Page {page.id} has no text, skipping", extra={"page_id": page.id})
                report.skipped += 1
                continue

            if calls_made and self.config.delay_seconds > 0:
                self._sleep(self.config.delay_seconds)
            calls_made += 1

            try:
                result = self.embedder.embed_with_truncation(page.text)
                self.index.upsert(page.id, page.text, page.metadata, result.embedding)
            except Exception as e:
                logger.error(f"Failed to index page {page.id}: {e}", extra={"page_id": page.id, "stage": "batch"})
                report.failed += 1
                report.errors[page.id] = str(e)
                self.checkpoint.mark_failed(page.id, str(e))
                self.checkpoint.save()
                continue

            if result.truncated_to is not None:
                report.truncated += 1

            self.checkpoint.mark_completed(page.id)
            self.checkpoint.save()
            report.processed += 1

            logger.debug(
                f"Indexed page {page.id}",
                extra={"page_id": page.id, "drawing_number": page.metadata.get("drawing_number")},
            )

        report.duration_seconds = time.time() - started
        logger.info(
            f"Batch complete: {report.processed} processed, {report.skipped} skipped, "
            f"{report.failed} failed, {report.truncated} truncated",
            extra={"stage": "batch", "duration": round(report.duration_seconds, 2)},
        )
        return report

    def run_file(self, path: Path, limit: Optional[int] = None) -> BatchReport:
        return self.run(read_pages(path), limit=limit)

    def pending(self, pages: List[PageRecord]) -> List[PageRecord]:
        return [p for p in pages if not self.checkpoint.is_completed(p.id)]
