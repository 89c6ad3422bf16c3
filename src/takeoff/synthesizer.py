"""
Takeoff Synthesizer
===================

Aggregates a search result set into a structured material list.

Two passes run per result and feed one keyed accumulator:

1. Member pass: coded structural members (W18x106, HSS6x6x3/8, 2x10 ...)
   with nearby quantity annotations and length tokens.
2. Material pass: a fixed material vocabulary, expanded to a short phrase,
   with specification / area / installation attached from the result.

Merging is keyed, additive for quantity, union-with-cap for list fields and
first-non-null for scalar fields. A given excerpt contributes to a member's
quantity at most once.
"""

import logging
import re
from typing import List, Dict, Optional, Tuple

from ..extraction.dimensions import DIMENSION_PATTERN
from ..search.models import SearchResult
from .mappings import (
    MATERIAL_KEYWORDS,
    PHRASE_STOPWORDS,
    MEMBER_PATTERNS,
    QUANTITY_AFTER_PATTERNS,
    QUANTITY_BEFORE_PATTERNS,
    INSTALLATION_PATTERNS,
    CONTEXT_BEFORE_CHARS,
    CONTEXT_AFTER_CHARS,
    MEMBER_UNIT,
    AREA_UNIT,
    MAX_DIMENSIONS,
    DIMENSIONS_PER_RESULT,
    SPECIFICATION_MAX_CHARS,
    INSTALLATION_MAX_CHARS,
    SCHEDULE_TYPE,
    DETAIL_TYPE,
    ASSEMBLY_FLAG,
    categorize,
)
from .models import MaterialTakeoff

logger = logging.getLogger(__name__)


def _phrase_pattern(keyword: str) -> re.Pattern:
    escaped = re.escape(keyword).replace(r"\ ", r"\s+")
    return re.compile(rf"\b(?:[\w/.-]+[ \t]+){{0,2}}{escaped}[\w-]*", re.IGNORECASE)


MATERIAL_PATTERNS: List[Tuple[str, re.Pattern]] = [
    (keyword, _phrase_pattern(keyword)) for keyword in MATERIAL_KEYWORDS
]


def normalize_member(kind: str, match: re.Match) -> Tuple[str, Optional[float]]:
    """Canonical member code and, for rolled shapes, weight in lb/ft."""
    g = match.groups()
    if kind == "wide_flange":
        return f"W{g[0]}x{g[1]}", float(g[1])
    if kind == "hss":
        code = f"HSS{g[0]}x{g[1]}"
        return (f"{code}x{g[2]}" if g[2] else code), None
    if kind == "channel":
        return f"{g[0]}{g[1]}x{g[2]}", float(g[2])
    if kind == "angle":
        return f"L{g[0]}x{g[1]}x{g[2]}", None
    if kind == "tji":
        return f'{g[0]}" TJI {g[1]}', None
    if kind == "lumber":
        return f"{g[0]}x{g[1]}", None
    return match.group(0).strip(), None


def clean_phrase(phrase: str) -> str:
    words = phrase.split()
    while len(words) > 1 and words[0].lower().strip(".,") in PHRASE_STOPWORDS:
        words.pop(0)
    return " ".join(words)


def _excerpt_id(result: SearchResult) -> str:
    return result.id or f"{result.drawing_number}:{hash(result.text)}"


def _source_of(result: SearchResult) -> str:
    return result.drawing_number or result.id


class TakeoffSynthesizer:
    """
    Builds MaterialTakeoff lines from search results.

    Stateless between calls: every synthesize() starts from an empty
    accumulator, so repeated runs over the same input give the same totals.
    """

    def synthesize(self, results: List[SearchResult]) -> List[MaterialTakeoff]:
        takeoffs: Dict[str, MaterialTakeoff] = {}

        for result in results:
            if not result.text:
                continue
            self._member_pass(result, takeoffs)
            self._material_pass(result, takeoffs)

        logger.debug(f"Synthesized {len(takeoffs)} takeoff lines from {len(results)} results")
        return list(takeoffs.values())

    # ------------------------------------------------------------------
    # Member pass
    # ------------------------------------------------------------------

    def find_members(self, text: str) -> List[Tuple[str, re.Match, str]]:
        """All member matches, leftmost first, without overlaps."""
        found = []
        for kind, pattern, category in MEMBER_PATTERNS:
            for match in pattern.finditer(text):
                found.append((kind, match, category))

        found.sort(key=lambda item: (item[1].start(), -(item[1].end() - item[1].start())))

        accepted = []
        last_end = -1
        for item in found:
            if item[1].start() < last_end:
                continue
            accepted.append(item)
            last_end = item[1].end()
        return accepted

    def _member_pass(self, result: SearchResult, takeoffs: Dict[str, MaterialTakeoff]) -> None:
        text = result.text
        members = self.find_members(text)
        if not members:
            return

        excerpt = _excerpt_id(result)
        source = _source_of(result)
        per_excerpt: Dict[str, float] = {}

        for i, (kind, match, category) in enumerate(members):
            prev_end = members[i - 1][1].end() if i > 0 else 0
            next_start = members[i + 1][1].start() if i + 1 < len(members) else len(text)

            before = text[max(match.start() - CONTEXT_BEFORE_CHARS, prev_end):match.start()]
            after = text[match.end():min(match.end() + CONTEXT_AFTER_CHARS, next_start)]

            code, weight = normalize_member(kind, match)
            key = code.lower()

            takeoff = takeoffs.get(key)
            if takeoff is None:
                takeoff = MaterialTakeoff(
                    key=key,
                    material=code,
                    category=category,
                    unit=MEMBER_UNIT,
                    weight=weight,
                )
                takeoffs[key] = takeoff

            takeoff.add_source(source)

            quantity = self._quantity_near(before, after)
            if quantity is not None:
                per_excerpt[key] = per_excerpt.get(key, 0) + quantity

            length = DIMENSION_PATTERN.search(after)
            if length:
                takeoff.add_dimension(length.group(0).strip(), MAX_DIMENSIONS)

        for key, quantity in per_excerpt.items():
            takeoff = takeoffs[key]
            if excerpt in takeoff.source_excerpts:
                continue
            takeoff.source_excerpts.add(excerpt)
            takeoff.add_quantity(quantity)

    @staticmethod
    def _quantity_near(before: str, after: str) -> Optional[int]:
        for pattern in QUANTITY_AFTER_PATTERNS:
            match = pattern.search(after)
            if match:
                return int(match.group(1))
        for pattern in QUANTITY_BEFORE_PATTERNS:
            match = pattern.search(before)
            if match:
                return int(match.group(1))
        return None

    # ------------------------------------------------------------------
    # Material pass
    # ------------------------------------------------------------------

    def _material_pass(self, result: SearchResult, takeoffs: Dict[str, MaterialTakeoff]) -> None:
        text = result.text
        source = _source_of(result)
        seen_in_result = set()

        is_spec_source = result.drawing_type == SCHEDULE_TYPE or ASSEMBLY_FLAG in text.upper()
        is_detail = result.drawing_type == DETAIL_TYPE

        largest_area = None
        if result.calculated_areas:
            largest_area = max(a.square_feet for a in result.calculated_areas)

        for _keyword, pattern in MATERIAL_PATTERNS:
            for match in pattern.finditer(text):
                material = clean_phrase(match.group(0))
                key = material.lower()
                if key in seen_in_result:
                    continue
                seen_in_result.add(key)

                takeoff = takeoffs.get(key)
                if takeoff is None:
                    takeoff = MaterialTakeoff(key=key, material=material, category=categorize(material))
                    takeoffs[key] = takeoff

                takeoff.add_source(source)

                if takeoff.specification is None and is_spec_source:
                    takeoff.specification = self._specification_at(text, match.start())

                for dim in result.dimensions[:DIMENSIONS_PER_RESULT]:
                    takeoff.add_dimension(dim.original, MAX_DIMENSIONS)

                if largest_area is not None:
                    if takeoff.area is None or largest_area > takeoff.area:
                        takeoff.area = largest_area
                    if takeoff.unit is None:
                        takeoff.unit = AREA_UNIT

                if takeoff.installation is None and is_detail:
                    takeoff.installation = self._installation_in(text)

    @staticmethod
    def _specification_at(text: str, position: int) -> str:
        lines = text.split("\n")
        index = text.count("\n", 0, position)
        return "\n".join(lines[index:index + 3]).strip()[:SPECIFICATION_MAX_CHARS]

    @staticmethod
    def _installation_in(text: str) -> Optional[str]:
        for pattern in INSTALLATION_PATTERNS:
            match = pattern.search(text)
            if match:
                return match.group(0).strip()[:INSTALLATION_MAX_CHARS]
        return None


def group_by_category(takeoffs: List[MaterialTakeoff]) -> Dict[str, List[MaterialTakeoff]]:
    """Bucket takeoff lines by category, keeping input order inside each bucket."""
    grouped: Dict[str, List[MaterialTakeoff]] = {}
    for takeoff in takeoffs:
        grouped.setdefault(takeoff.category, []).append(takeoff)
    return grouped
