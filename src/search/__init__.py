"""
Construction Document Search
============================

Retrieval and ranking of excerpts from pre-indexed construction documents.

Pipeline:
    intent -> expanded query -> embedding -> over-fetched candidates
    -> sheet filter -> (re-rank | boost + sort) -> top-K -> enrich -> dedup

Architecture:
- pgvector for vector storage
- OpenAI text-embedding-3-small for embeddings
- Cohere rerank (optional) for second-stage ordering
"""

from .models import (
    Intent,
    SearchQuery,
    Candidate,
    RerankedDocument,
    SearchResult,
    SearchResponse,
    SCORE_SCALE,
)
from .intent import QueryIntentDetector
from .embedder import (
    EmbeddingProvider,
    OpenAIEmbedder,
    EmbeddingError,
    EmbeddingContextLengthError,
)
from .vector_index import VectorIndex, PgVectorIndex, VectorIndexError
from .reranker import Reranker, CohereReranker, RerankError
from .enricher import ResultEnricher
from .deduplicator import ResultDeduplicator, text_similarity
from .engine import ConstructionSearchEngine, filter_by_sheet_numbers, distance_to_score

__all__ = [
    "Intent",
    "SearchQuery",
    "Candidate",
    "RerankedDocument",
    "SearchResult",
    "SearchResponse",
    "SCORE_SCALE",
    "QueryIntentDetector",
    "EmbeddingProvider",
    "OpenAIEmbedder",
    "EmbeddingError",
    "EmbeddingContextLengthError",
    "VectorIndex",
    "PgVectorIndex",
    "VectorIndexError",
    "Reranker",
    "CohereReranker",
    "RerankError",
    "ResultEnricher",
    "ResultDeduplicator",
    "text_similarity",
    "ConstructionSearchEngine",
    "filter_by_sheet_numbers",
    "distance_to_score",
]
