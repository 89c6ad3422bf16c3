"""
Service Wiring
==============

Builds the search engine and its consumers from Settings. Shared by the
CLI and the API so both run the same stack.

Usage:
    services = build_services(get_settings())
    response = services.search(SearchQuery("beam schedule"))
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ..cache import RedisCache, SearchResultCache, VerificationCache, cached_search
from ..config import Settings
from ..extraction import DimensionExtractor, CrossReferenceDetector
from ..search import (
    ConstructionSearchEngine,
    CohereReranker,
    OpenAIEmbedder,
    PgVectorIndex,
    ResultEnricher,
    ResultDeduplicator,
    SearchQuery,
    SearchResponse,
)
from ..takeoff import TakeoffSynthesizer
from ..verification import HttpVisionVerifier, VerifiedLookupService

logger = logging.getLogger(__name__)


@dataclass
class Services:
    engine: ConstructionSearchEngine
    synthesizer: TakeoffSynthesizer
    store: RedisCache
    query_cache: Optional[SearchResultCache] = None
    lookups: Optional[VerifiedLookupService] = None

    def search(self, query: SearchQuery) -> SearchResponse:
        return cached_search(self.engine, self.query_cache, query)

    def close(self) -> None:
        self.store.close()


def build_engine(settings: Settings) -> ConstructionSearchEngine:
    reranker = None
    if settings.rerank.enabled:
        reranker = CohereReranker(settings.rerank)
    else:
        logger.info("COHERE_API_KEY not set, using boosted ranking only")

    embedder = OpenAIEmbedder(settings.embedding)

    return ConstructionSearchEngine(
        embedder=embedder,
        index=PgVectorIndex(settings.index),
        reranker=reranker,
        enricher=ResultEnricher(
            DimensionExtractor(),
            CrossReferenceDetector(limit=settings.search.cross_reference_limit),
        ),
        deduplicator=ResultDeduplicator(settings.search.similarity_threshold),
        config=settings.search,
    )


def build_services(settings: Settings, use_query_cache: bool = True) -> Services:
    engine = build_engine(settings)
    store = RedisCache(settings.cache)

    lookups = None
    if settings.vision.enabled:
        lookups = VerifiedLookupService(
            engine=engine,
            verifier=HttpVisionVerifier(settings.vision),
            cache=VerificationCache(ttl_seconds=settings.cache.verification_ttl_seconds),
        )
    else:
        logger.info("VISION_VERIFIER_URL not set, verified lookups disabled")

    return Services(
        engine=engine,
        synthesizer=TakeoffSynthesizer(),
        store=store,
        query_cache=SearchResultCache(store, settings.cache) if use_query_cache else None,
        lookups=lookups,
    )
