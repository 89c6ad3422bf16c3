"""
Dimension Extractor (Deterministic)
===================================

Finds feet/inches dimension tokens in drawing text and derives rectangular
areas from consecutive pairs. Pure functions, no I/O.

Recognised forms:
    82'-0"   25'-6"   12'6"   14'   B1: 24'-0"  (element tag "B1")

Usage:
    extractor = DimensionExtractor()
    dims = extractor.extract_dimensions(text)
    areas = extractor.calculate_areas(text)
"""

import math
import re
from typing import List, Dict, Optional

from .models import ExtractedDimension, AreaCalculation


# Feet mark required, inches optional but must carry an inch mark.
DIMENSION_PATTERN = re.compile(
    r"(\d+)\s*['’′](?:\s*-?\s*(\d{1,2})\s*[\"”″])?"
)

# Mark directly before a dimension: "B1 ", "W-3:", "F2 = "
ELEMENT_TAG_PATTERN = re.compile(r"\b([A-Z]{1,3}-?\d{1,3}[A-Z]?)\s*[:=]?\s*$")

# How far back to look for an element tag
ELEMENT_LOOKBEHIND = 16


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class DimensionExtractor:
    """Extracts dimensions and rectangular areas from plain text."""

    def extract_dimensions(self, text: str) -> List[ExtractedDimension]:
        dimensions = []
        if not text:
            return dimensions

        for match in DIMENSION_PATTERN.finditer(text):
            feet = int(match.group(1))
            inches = int(match.group(2)) if match.group(2) else 0

            dimensions.append(ExtractedDimension(
                feet=feet,
                inches=inches,
                total_inches=feet * 12 + inches,
                original=match.group(0).strip(),
                element=self._element_tag(text, match.start()),
            ))

        return dimensions

    def calculate_areas(self, text: str) -> List[AreaCalculation]:
        """
        Pair consecutive dimensions into areas.

        Pairs with identical magnitude are skipped, as they are most likely
        the same dimension called out twice.
        """
        dimensions = self.extract_dimensions(text)
        areas = []

        for first, second in zip(dimensions, dimensions[1:]):
            if first.total_inches == second.total_inches:
                continue

            square_feet = (first.total_inches / 12) * (second.total_inches / 12)
            areas.append(AreaCalculation(
                length=first,
                width=second,
                square_feet=_round_half_up(square_feet),
            ))

        return areas

    def find_building_dimensions(self, text: str) -> Dict[str, float]:
        """Largest two dimensions, taken as the building envelope."""
        dimensions = sorted(
            self.extract_dimensions(text),
            key=lambda d: d.total_inches,
            reverse=True,
        )
        if len(dimensions) < 2:
            return {}

        length = dimensions[0].total_inches / 12
        width = dimensions[1].total_inches / 12
        return {
            "length": length,
            "width": width,
            "area": _round_half_up(length * width),
        }

    @staticmethod
    def _element_tag(text: str, start: int) -> Optional[str]:
        window = text[max(0, start - ELEMENT_LOOKBEHIND):start]
        match = ELEMENT_TAG_PATTERN.search(window)
        return match.group(1) if match else None
