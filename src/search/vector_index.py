"""
Vector Index
============

Similarity index over pre-indexed construction excerpts.

The production index lives in PostgreSQL with pgvector; equality filters
(discipline, drawing type, project) are pushed down into the WHERE clause.
Callers over-fetch because the index gives no exact top-N guarantee once
post-filtering and re-ranking run.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Dict, Any, Sequence

import psycopg2
from psycopg2.extras import RealDictCursor, Json

from ..config import IndexConfig
from .models import Candidate

logger = logging.getLogger(__name__)


# Filter name -> column. Anything else is rejected.
FILTER_COLUMNS = {
    "discipline": "discipline",
    "drawing_type": "drawing_type",
    "project": "project",
}

METADATA_COLUMNS = ("project", "discipline", "drawing_type", "drawing_number", "page_number")


class VectorIndexError(Exception):
    """Index connection or query failure."""
    pass


class VectorIndex(ABC):
    """Similarity search over excerpt embeddings."""

    @abstractmethod
    def query(
        self,
        vector: Sequence[float],
        filters: Optional[Dict[str, str]] = None,
        limit: int = 50,
    ) -> List[Candidate]:
        """Return up to `limit` candidates, closest first."""

    @abstractmethod
    def upsert(self, record_id: str, text: str, metadata: Dict[str, Any], vector: Sequence[float]) -> None:
        """Insert or replace one excerpt. Safe to repeat."""


class PgVectorIndex(VectorIndex):
    """pgvector-backed index using cosine distance."""

    def __init__(self, config: Optional[IndexConfig] = None):
        self.config = config if config is not None else IndexConfig()
        if not self.config.database_url:
            raise ValueError("DATABASE_URL required for vector index")
        self.table = self.config.table

    def _get_connection(self):
        """Get database connection."""
        try:
            return psycopg2.connect(self.config.database_url, connect_timeout=self.config.connect_timeout)
        except psycopg2.OperationalError as e:
            raise VectorIndexError(f"Cannot connect to vector index: {e}") from e

    @staticmethod
    def _vector_literal(vector: Sequence[float]) -> str:
        return "[" + ",".join(f"{float(v):.8f}" for v in vector) + "]"

    def ensure_schema(self, dimensions: int) -> None:
        """Create the excerpt table if missing."""
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("CREATE EXTENSION IF NOT EXISTS vector")
                cur.execute(f"""
                    CREATE TABLE IF NOT EXISTS {self.table} (
                        id TEXT PRIMARY KEY,
                        text TEXT NOT NULL,
                        project TEXT,
                        discipline TEXT,
                        drawing_type TEXT,
                        drawing_number TEXT,
                        page_number INTEGER,
                        metadata JSONB DEFAULT '{{}}'::jsonb,
                        embedding vector({int(dimensions)}),
                        updated_at TIMESTAMPTZ DEFAULT NOW()
                    )
                """)
                conn.commit()
        logger.info(f"Vector index schema ready: {self.table}")

    def query(
        self,
        vector: Sequence[float],
        filters: Optional[Dict[str, str]] = None,
        limit: int = 50,
    ) -> List[Candidate]:
        conditions = []
        params: List[Any] = [self._vector_literal(vector)]

        for name, value in (filters or {}).items():
            column = FILTER_COLUMNS.get(name)
            if column is None:
                raise ValueError(f"Unsupported filter: {name}")
            conditions.append(f"{column} = %s")
            params.append(value)

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        params.append(int(limit))

        sql = f"""
            SELECT id, text, project, discipline, drawing_type, drawing_number,
                   page_number, metadata,
                   embedding <=> %s::vector AS distance
            FROM {self.table}
            {where}
            ORDER BY distance ASC
            LIMIT %s
        """
        try:
            with self._get_connection() as conn:
                with conn.cursor(cursor_factory=RealDictCursor) as cur:
                    cur.execute(sql, params)
                    rows = cur.fetchall()
        except psycopg2.Error as e:
            raise VectorIndexError(f"Vector query failed: {e}") from e

        candidates = []
        for row in rows:
            metadata = dict(row.get("metadata") or {})
            for column in METADATA_COLUMNS:
                metadata[column] = row.get(column)
            candidates.append(Candidate(
                id=str(row["id"]),
                text=row["text"] or "",
                distance=float(row["distance"]),
                metadata=metadata,
            ))

        logger.debug(f"Vector query returned {len(candidates)} candidates (limit {limit})")
        return candidates

    def upsert(self, record_id: str, text: str, metadata: Dict[str, Any], vector: Sequence[float]) -> None:
        extra = {k: v for k, v in metadata.items() if k not in METADATA_COLUMNS}
        try:
            with self._get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(f"""
                        INSERT INTO {self.table} (
                            id, text, project, discipline, drawing_type,
                            drawing_number, page_number, metadata, embedding
                        ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s::vector)
                        ON CONFLICT (id) DO UPDATE SET
                            text = EXCLUDED.text,
                            project = EXCLUDED.project,
                            discipline = EXCLUDED.discipline,
                            drawing_type = EXCLUDED.drawing_type,
                            drawing_number = EXCLUDED.drawing_number,
                            page_number = EXCLUDED.page_number,
                            metadata = EXCLUDED.metadata,
                            embedding = EXCLUDED.embedding,
                            updated_at = NOW()
                    """, (
                        record_id,
                        text,
                        metadata.get("project"),
                        metadata.get("discipline"),
                        metadata.get("drawing_type"),
                        metadata.get("drawing_number"),
                        metadata.get("page_number"),
                        Json(extra),
                        self._vector_literal(vector),
                    ))
                    conn.commit()
        except psycopg2.Error as e:
            raise VectorIndexError(f"Upsert of {record_id} failed: {e}") from e
