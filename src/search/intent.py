"""
Query Intent Detector
=====================

Classifies a free-text query into one of a fixed set of intents, expands it
with domain synonyms, and exposes the per-intent drawing-type boost tables
used when ranking.
"""

import logging
import re
from typing import Dict, List, Tuple

from .models import Intent

logger = logging.getLogger(__name__)


# Ordered: first match wins
INTENT_PATTERNS: List[Tuple[Intent, re.Pattern]] = [
    (
        Intent.QUANTITY_TAKEOFF,
        re.compile(r"\b(materials?|quantities?|takeoff|how much|how many|supply|order|count)\b", re.IGNORECASE),
    ),
    (
        Intent.SPECIFICATIONS,
        re.compile(r"\b(spec|specification|type|grade|model|manufacturer|product)\b", re.IGNORECASE),
    ),
    (
        Intent.DETAILS,
        re.compile(r"\b(detail|connection|fastener|installation|method|how to)\b", re.IGNORECASE),
    ),
    (
        Intent.DIMENSIONS,
        re.compile(r"\b(dimension|size|area|length|width|height|square feet|sq ft)\b", re.IGNORECASE),
    ),
]

# Drawing type -> multiplier. Multiplier divides the raw distance.
BOOST_FACTORS: Dict[Intent, Dict[str, float]] = {
    Intent.QUANTITY_TAKEOFF: {
        "Plan": 1.5,
        "Schedule": 1.3,
        "Detail": 0.8,
        "Specification": 0.9,
        "Section": 0.7,
    },
    Intent.SPECIFICATIONS: {
        "Schedule": 1.5,
        "Specification": 1.4,
        "Plan": 0.9,
        "Detail": 1.0,
        "Section": 0.8,
    },
    Intent.DETAILS: {
        "Detail": 1.5,
        "Section": 1.2,
        "Plan": 0.8,
        "Schedule": 0.7,
        "Specification": 0.9,
    },
    Intent.DIMENSIONS: {
        "Plan": 1.5,
        "Section": 1.2,
        "Detail": 0.9,
        "Schedule": 0.6,
        "Specification": 0.5,
    },
    Intent.GENERAL: {
        "Plan": 1.0,
        "Schedule": 1.0,
        "Detail": 1.0,
        "Specification": 1.0,
        "Section": 1.0,
    },
}

DEFAULT_BOOST = 1.0

# Term found in the query -> hints appended to improve recall
SYNONYM_HINTS: Dict[str, List[str]] = {
    "sheathing": ["plywood", "osb", "decking"],
    "subfloor": ["sheathing", "plywood", "warmboard"],
    "beam": ["girder", "header", "joist"],
    "joist": ["tji", "framing"],
    "footing": ["foundation", "pad", "spread footing"],
    "foundation": ["footing", "slab", "stem wall"],
    "rebar": ["reinforcing", "reinforcement", "bar"],
    "concrete": ["slab", "cast-in-place", "psi"],
    "steel": ["w-shape", "hss", "structural steel"],
    "door": ["opening", "frame", "hardware"],
    "window": ["glazing", "opening", "fenestration"],
    "roof": ["roofing", "rafter", "truss"],
    "wall": ["stud", "partition", "framing"],
    "insulation": ["batt", "rigid insulation", "r-value"],
    "drywall": ["gypsum", "gypsum board", "gwb"],
    "fastener": ["screw", "nail", "bolt", "anchor"],
    "connection": ["hanger", "fastener", "bolt"],
}


class QueryIntentDetector:
    """Detects query intent and provides ranking boost tables."""

    def detect(self, query: str) -> Intent:
        for intent, pattern in INTENT_PATTERNS:
            if pattern.search(query or ""):
                return intent
        return Intent.GENERAL

    def expand_query(self, query: str) -> str:
        """Append synonym hints for domain terms present in the query."""
        lowered = (query or "").lower()
        words = set(re.findall(r"[\w-]+", lowered))

        hints: List[str] = []
        for term, synonyms in SYNONYM_HINTS.items():
            if term not in words and f"{term}s" not in words:
                continue
            for synonym in synonyms:
                if synonym not in lowered and synonym not in hints:
                    hints.append(synonym)

        if not hints:
            return query
        return f"{query} {' '.join(hints)}"

    def get_boost_factors(self, intent: Intent) -> Dict[str, float]:
        """Boost table for an intent; unknown intents use the general table."""
        table = BOOST_FACTORS.get(intent, BOOST_FACTORS[Intent.GENERAL])
        return dict(table)

    @staticmethod
    def boost_for(table: Dict[str, float], drawing_type: str) -> float:
        """Multiplier for a drawing type; unseen types default to 1.0."""
        return table.get(drawing_type, DEFAULT_BOOST)
