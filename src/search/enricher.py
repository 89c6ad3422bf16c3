"""
Result Enricher
===============

Attaches extracted dimensions, calculated areas and cross-references to
each surviving result. Never reorders or drops results.
"""

from typing import List, Optional

from ..extraction import DimensionExtractor, CrossReferenceDetector
from .models import SearchResult, MAX_CROSS_REFERENCES


class ResultEnricher:

    def __init__(
        self,
        dimension_extractor: Optional[DimensionExtractor] = None,
        reference_detector: Optional[CrossReferenceDetector] = None,
    ):
        self.dimension_extractor = dimension_extractor if dimension_extractor is not None else DimensionExtractor()
        if reference_detector is None:
            reference_detector = CrossReferenceDetector(limit=MAX_CROSS_REFERENCES)
        self.reference_detector = reference_detector

    def enrich(self, results: List[SearchResult]) -> List[SearchResult]:
        for result in results:
            result.dimensions = self.dimension_extractor.extract_dimensions(result.text)
            result.calculated_areas = self.dimension_extractor.calculate_areas(result.text)
            result.cross_references = self.reference_detector.detect(result.text)[:MAX_CROSS_REFERENCES]
        return results
