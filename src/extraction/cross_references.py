"""
Cross-Reference Detector
========================

Finds references from one excerpt to other sheets, schedules, details and
material tags. Pure function, no I/O.
"""

import re
from typing import List, Tuple

from .models import CrossReference


# (pattern, reference type) - evaluated in order, first occurrence wins
REFERENCE_PATTERNS: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"SEE\s+(SCH-\d+|[A-Z]\d+)", re.IGNORECASE), "sheet"),
    (re.compile(r"\b(SCH-\d+)\b", re.IGNORECASE), "schedule"),
    (re.compile(r"\b([A-Z]\d{3})\b"), "sheet"),
    (re.compile(r"\b(WD-\d+|MT-\d+|FN-\d+)\b", re.IGNORECASE), "material"),
    (re.compile(r"PER\s+(STRUCT|ARCHITECTURAL|MECH)", re.IGNORECASE), "structural"),
    (re.compile(r"SEE\s+DETAIL\s+(\d+)", re.IGNORECASE), "detail"),
]

CONTEXT_CHARS = 30
DEFAULT_LIMIT = 5


class CrossReferenceDetector:
    """Detects de-duplicated cross-references with a short context window."""

    def __init__(self, limit: int = DEFAULT_LIMIT):
        self.limit = limit

    def detect(self, text: str) -> List[CrossReference]:
        references: List[CrossReference] = []
        seen = set()
        if not text:
            return references

        for pattern, ref_type in REFERENCE_PATTERNS:
            for match in pattern.finditer(text):
                reference = (match.group(1) or match.group(0)).upper()
                key = f"{ref_type}:{reference}"
                if key in seen:
                    continue
                seen.add(key)

                start = max(0, match.start() - CONTEXT_CHARS)
                end = min(len(text), match.end() + CONTEXT_CHARS)
                references.append(CrossReference(
                    type=ref_type,
                    reference=reference,
                    context=text[start:end].strip(),
                ))

        return references[:self.limit]
