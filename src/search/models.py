"""
Search Data Models
==================

Records flowing through the search pipeline:
SearchQuery -> Candidate (from the index) -> SearchResult (ranked, enriched).

Scores are a higher-is-better confidence on a 0-1000 scale on every path
(boosted distance and re-ranker relevance alike).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Dict, Any, Tuple

from ..extraction.models import ExtractedDimension, AreaCalculation, CrossReference


SCORE_SCALE = 1000.0
MAX_CROSS_REFERENCES = 5


class Intent(str, Enum):
    """Coarse purpose of a query, used to pick a boost table."""
    QUANTITY_TAKEOFF = "quantity_takeoff"
    SPECIFICATIONS = "specifications"
    DETAILS = "details"
    DIMENSIONS = "dimensions"
    GENERAL = "general"


@dataclass(frozen=True)
class SearchQuery:
    """Immutable search request."""
    query_text: str
    discipline: Optional[str] = None
    drawing_type: Optional[str] = None
    project: Optional[str] = None
    sheet_numbers: Tuple[str, ...] = ()
    top_k: int = 10

    def __post_init__(self):
        if not self.query_text or not self.query_text.strip():
            raise ValueError("query_text cannot be empty")
        if self.top_k <= 0:
            raise ValueError("top_k must be positive")
        # Accept lists from callers, store a tuple
        if not isinstance(self.sheet_numbers, tuple):
            object.__setattr__(self, "sheet_numbers", tuple(self.sheet_numbers or ()))

    def equality_filters(self) -> Dict[str, str]:
        """Filters pushed down to the index."""
        filters = {}
        if self.discipline:
            filters["discipline"] = self.discipline
        if self.drawing_type:
            filters["drawing_type"] = self.drawing_type
        if self.project:
            filters["project"] = self.project
        return filters

    def cache_key_parts(self) -> Dict[str, Any]:
        return {
            "query": self.query_text.strip().lower(),
            "discipline": self.discipline,
            "drawing_type": self.drawing_type,
            "project": self.project,
            "sheet_numbers": list(self.sheet_numbers),
            "top_k": self.top_k,
        }


@dataclass
class Candidate:
    """A raw hit from the vector index."""
    id: str
    text: str
    distance: float  # lower is closer
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def drawing_type(self) -> str:
        return str(self.metadata.get("drawing_type") or "")

    @property
    def drawing_number(self) -> str:
        return str(self.metadata.get("drawing_number") or "")


@dataclass
class RerankedDocument:
    """Re-ranker output row, remapped onto candidates by id."""
    id: str
    relevance: float  # provider score in [0, 1]


@dataclass
class SearchResult:
    """A ranked, enriched excerpt."""
    id: str
    text: str
    project: str
    discipline: str
    drawing_type: str
    drawing_number: str
    score: float
    page_number: Optional[int] = None
    dimensions: List[ExtractedDimension] = field(default_factory=list)
    calculated_areas: List[AreaCalculation] = field(default_factory=list)
    cross_references: List[CrossReference] = field(default_factory=list)

    def __post_init__(self):
        if len(self.cross_references) > MAX_CROSS_REFERENCES:
            self.cross_references = self.cross_references[:MAX_CROSS_REFERENCES]

    @classmethod
    def from_candidate(cls, candidate: Candidate, score: float) -> "SearchResult":
        meta = candidate.metadata
        page = meta.get("page_number")
        return cls(
            id=candidate.id,
            text=candidate.text,
            project=str(meta.get("project") or ""),
            discipline=str(meta.get("discipline") or ""),
            drawing_type=candidate.drawing_type,
            drawing_number=candidate.drawing_number,
            score=score,
            page_number=int(page) if page is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict for JSON storage / API output."""
        return {
            "id": self.id,
            "text": self.text,
            "project": self.project,
            "discipline": self.discipline,
            "drawing_type": self.drawing_type,
            "drawing_number": self.drawing_number,
            "score": self.score,
            "page_number": self.page_number,
            "dimensions": [d.to_dict() for d in self.dimensions],
            "calculated_areas": [a.to_dict() for a in self.calculated_areas],
            "cross_references": [r.to_dict() for r in self.cross_references],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SearchResult":
        return cls(
            id=data["id"],
            text=data["text"],
            project=data.get("project", ""),
            discipline=data.get("discipline", ""),
            drawing_type=data.get("drawing_type", ""),
            drawing_number=data.get("drawing_number", ""),
            score=float(data["score"]),
            page_number=data.get("page_number"),
            dimensions=[ExtractedDimension.from_dict(d) for d in data.get("dimensions", [])],
            calculated_areas=[AreaCalculation.from_dict(a) for a in data.get("calculated_areas", [])],
            cross_references=[CrossReference.from_dict(r) for r in data.get("cross_references", [])],
        )


@dataclass
class SearchResponse:
    """Search outcome with an explicit failure indicator."""
    query: SearchQuery
    results: List[SearchResult] = field(default_factory=list)
    intent: Intent = Intent.GENERAL
    success: bool = True
    error: Optional[str] = None
    cached: bool = False
    reranked: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query.query_text,
            "intent": self.intent.value,
            "success": self.success,
            "error": self.error,
            "cached": self.cached,
            "reranked": self.reranked,
            "results": [r.to_dict() for r in self.results],
        }
