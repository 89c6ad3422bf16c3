"""
Extraction Module
=================

Pure, side-effect-free text extractors used to enrich search results:

- DimensionExtractor: feet/inches tokens, element tags, rectangular areas
- CrossReferenceDetector: sheet/schedule/detail/material references
"""

from .models import ExtractedDimension, AreaCalculation, CrossReference
from .dimensions import DimensionExtractor
from .cross_references import CrossReferenceDetector

__all__ = [
    "ExtractedDimension",
    "AreaCalculation",
    "CrossReference",
    "DimensionExtractor",
    "CrossReferenceDetector",
]
