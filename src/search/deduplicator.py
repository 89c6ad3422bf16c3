"""
Result Deduplicator
===================

Drops low-confidence results and near-duplicate excerpts.

Two results are duplicates when, in priority order:
1. they share a drawing number and their word sets overlap (Jaccard) > 0.8
2. they come from different drawings but carry byte-identical text
3. they come from different drawings and one text is contained in the other

The first-seen result wins; later duplicates are discarded, not merged.
"""

import logging
import re
from typing import List, FrozenSet

from .models import SearchResult

logger = logging.getLogger(__name__)

DEFAULT_MIN_SCORE = 300.0
DEFAULT_SIMILARITY_THRESHOLD = 0.8


def word_set(text: str) -> FrozenSet[str]:
    return frozenset(w for w in re.split(r"\s+", text.lower()) if w)


def text_similarity(text1: str, text2: str) -> float:
    """Token-set Jaccard similarity."""
    words1 = word_set(text1)
    words2 = word_set(text2)
    union = words1 | words2
    if not union:
        return 1.0
    return len(words1 & words2) / len(union)


class ResultDeduplicator:

    def __init__(self, similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD):
        self.similarity_threshold = similarity_threshold

    def deduplicate(self, results: List[SearchResult], min_score: float = DEFAULT_MIN_SCORE) -> List[SearchResult]:
        filtered = [r for r in results if r.score >= min_score]

        unique: List[SearchResult] = []
        for result in filtered:
            if any(self.are_duplicates(existing, result) for existing in unique):
                continue
            unique.append(result)

        dropped = len(results) - len(unique)
        if dropped:
            logger.debug(
                f"Deduplicator dropped {len(results) - len(filtered)} below score {min_score}, "
                f"{len(filtered) - len(unique)} duplicates"
            )
        return unique

    def are_duplicates(self, a: SearchResult, b: SearchResult) -> bool:
        if a.drawing_number == b.drawing_number:
            return text_similarity(a.text, b.text) > self.similarity_threshold

        if a.text == b.text:
            return True
        # Nested content across sheets, e.g. a general note repeated inside a larger excerpt
        return a.text in b.text or b.text in a.text
