"""
Construction Search Engine
==========================

Similarity search over construction documents:

1. Classify intent, expand query text
2. Embed the expanded query
3. Over-fetch top_k x 5 candidates with equality filters pushed down
4. Keep candidates matching requested sheet numbers (fall back to the
   unfiltered set if none match)
5. Re-rank through the external re-ranker when configured, otherwise divide
   each distance by the intent's drawing-type boost and sort ascending
6. Truncate to top_k, enrich, de-duplicate

Scores leave this module as a higher-is-better confidence on a 0-1000 scale.
"""

import logging
import time
from typing import List, Optional, Dict, Tuple

from ..config import SearchConfig
from .deduplicator import ResultDeduplicator
from .embedder import EmbeddingProvider
from .enricher import ResultEnricher
from .intent import QueryIntentDetector
from .models import SearchQuery, SearchResult, SearchResponse, Candidate, Intent, SCORE_SCALE
from .reranker import Reranker, RerankError
from .vector_index import VectorIndex

logger = logging.getLogger(__name__)


def distance_to_score(adjusted_distance: float) -> float:
    """Map an adjusted distance (lower is better) onto the 0-1000 confidence scale."""
    return SCORE_SCALE / (1.0 + max(adjusted_distance, 0.0))


def filter_by_sheet_numbers(candidates: List[Candidate], sheet_numbers) -> List[Candidate]:
    """
    Keep candidates whose drawing number equals or contains a requested sheet.

    Matching is case-insensitive. An empty match set returns the input
    unchanged so a bad sheet number degrades to an unfiltered search.
    """
    wanted = [s.strip().lower() for s in sheet_numbers if s and s.strip()]
    if not wanted:
        return candidates

    matched = []
    for candidate in candidates:
        drawing = candidate.drawing_number.lower()
        if not drawing:
            continue
        if any(drawing == sheet or sheet in drawing for sheet in wanted):
            matched.append(candidate)

    if not matched:
        logger.warning(
            f"No candidates match sheet numbers {list(sheet_numbers)}; using unfiltered candidates"
        )
        return candidates
    return matched


class ConstructionSearchEngine:
    """
    Multi-stage retrieval over the construction document index.

    Collaborators are injected; only the embedder and index are required.
    """

    def __init__(
        self,
        embedder: EmbeddingProvider,
        index: VectorIndex,
        reranker: Optional[Reranker] = None,
        intent_detector: Optional[QueryIntentDetector] = None,
        enricher: Optional[ResultEnricher] = None,
        deduplicator: Optional[ResultDeduplicator] = None,
        config: Optional[SearchConfig] = None,
    ):
        self.config = config if config is not None else SearchConfig()
        self.embedder = embedder
        self.index = index
        self.reranker = reranker
        self.intent_detector = intent_detector if intent_detector is not None else QueryIntentDetector()
        self.enricher = enricher if enricher is not None else ResultEnricher()
        if deduplicator is None:
            deduplicator = ResultDeduplicator(self.config.similarity_threshold)
        self.deduplicator = deduplicator

    def search(self, query: SearchQuery) -> List[SearchResult]:
        """
        Run the full pipeline for one query.

        Raises:
            EmbeddingError: If the query cannot be embedded
            VectorIndexError: If the index is unreachable or the query fails
        """
        results, _ = self._search(query)
        return results

    def _search(self, query: SearchQuery) -> Tuple[List[SearchResult], bool]:
        """Pipeline body; also reports whether the re-ranker ordered the results."""
        started = time.time()

        intent = self.intent_detector.detect(query.query_text)
        expanded = self.intent_detector.expand_query(query.query_text)

        vector = self.embedder.embed_with_truncation(expanded).embedding

        candidates = self.index.query(
            vector,
            filters=query.equality_filters(),
            limit=query.top_k * self.config.overfetch_factor,
        )

        if query.sheet_numbers:
            candidates = filter_by_sheet_numbers(candidates, query.sheet_numbers)

        ranked = None
        if self.reranker is not None and candidates:
            ranked = self._rerank(query, candidates)
        reranked = ranked is not None
        if ranked is None:
            ranked = self._boost_and_sort(intent, candidates, query.top_k)

        results = self.enricher.enrich(ranked)
        results = self.deduplicator.deduplicate(results, min_score=self.config.min_score)

        logger.info(
            f"Search '{query.query_text[:50]}' intent={intent.value} "
            f"candidates={len(candidates)} returned={len(results)} "
            f"({time.time() - started:.2f}s)",
            extra={"query": query.query_text[:100], "intent": intent.value, "stage": "search"},
        )
        return results, reranked

    def search_safe(self, query: SearchQuery) -> SearchResponse:
        """Search without raising: failures come back as success=False with no results."""
        intent = self.intent_detector.detect(query.query_text)
        try:
            results, reranked = self._search(query)
        except Exception as e:
            logger.error(f"Search failed for '{query.query_text[:50]}': {e}", exc_info=True)
            return SearchResponse(query=query, results=[], intent=intent, success=False, error=str(e))
        return SearchResponse(query=query, results=results, intent=intent, reranked=reranked)

    def rank_candidates(self, intent: Intent, candidates: List[Candidate], top_k: int) -> List[SearchResult]:
        """Public entry to the boost-and-sort ranking, used for diagnostics and tests."""
        return self._boost_and_sort(intent, candidates, top_k)

    def _boost_and_sort(self, intent: Intent, candidates: List[Candidate], top_k: int) -> List[SearchResult]:
        boosts = self.intent_detector.get_boost_factors(intent)

        adjusted = []
        for candidate in candidates:
            boost = self.intent_detector.boost_for(boosts, candidate.drawing_type)
            adjusted.append((candidate.distance / boost, candidate))

        # sorted() is stable: equal adjusted distances keep index order
        adjusted.sort(key=lambda pair: pair[0])

        return [
            SearchResult.from_candidate(candidate, distance_to_score(distance))
            for distance, candidate in adjusted[:top_k]
        ]

    def _rerank(self, query: SearchQuery, candidates: List[Candidate]) -> Optional[List[SearchResult]]:
        """Delegate ordering to the re-ranker; None means fall back to boosting."""
        documents = [{"id": c.id, "text": c.text} for c in candidates]
        try:
            reranked = self.reranker.rerank(query.query_text, documents, query.top_k)
        except RerankError as e:
            logger.warning(f"Re-ranker failed, falling back to boosted ranking: {e}")
            return None

        by_id: Dict[str, Candidate] = {c.id: c for c in candidates}
        results = []
        seen = set()
        for row in reranked:
            candidate = by_id.get(row.id)
            if candidate is None or row.id in seen:
                logger.debug(f"Ignoring re-ranked id {row.id} not in candidate set")
                continue
            seen.add(row.id)
            results.append(SearchResult.from_candidate(candidate, row.relevance * SCORE_SCALE))
            if len(results) >= query.top_k:
                break

        return results
