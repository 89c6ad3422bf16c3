"""
Takeoff Search API Models
=========================

Pydantic models for API request/response serialization.
"""

from pydantic import BaseModel, Field
from typing import List, Dict, Optional, Any


class SearchRequest(BaseModel):
    """Search request. Mirrors SearchQuery plus output flags."""
    query: str = Field(..., min_length=1, description="Search text")
    discipline: Optional[str] = Field(None, description="e.g. Structural, Architectural")
    drawing_type: Optional[str] = Field(None, description="e.g. Plan, Schedule, Detail")
    project: Optional[str] = None
    sheet_numbers: List[str] = Field(default_factory=list, description="Drawing numbers to keep")
    top_k: Optional[int] = Field(None, ge=1, le=100, description="Results to return")
    synthesize: bool = Field(False, description="Return a material takeoff instead of excerpts")
    summary: bool = Field(False, description="Trim excerpt text in the response")


class DimensionModel(BaseModel):
    feet: int
    inches: int
    total_inches: int
    original: str
    element: Optional[str] = None


class AreaModel(BaseModel):
    length: DimensionModel
    width: DimensionModel
    square_feet: int


class CrossReferenceModel(BaseModel):
    type: str
    reference: str
    context: str


class SearchResultModel(BaseModel):
    id: str
    text: str
    project: str
    discipline: str
    drawing_type: str
    drawing_number: str
    score: float
    page_number: Optional[int] = None
    dimensions: List[DimensionModel] = Field(default_factory=list)
    calculated_areas: List[AreaModel] = Field(default_factory=list)
    cross_references: List[CrossReferenceModel] = Field(default_factory=list)


class TakeoffLineModel(BaseModel):
    key: str
    material: str
    category: str
    specification: Optional[str] = None
    quantity: Optional[float] = None
    unit: Optional[str] = None
    area: Optional[int] = None
    weight: Optional[float] = None
    installation: Optional[str] = None
    dimensions: List[str] = Field(default_factory=list)
    sources: List[str] = Field(default_factory=list)


class SearchResponseModel(BaseModel):
    query: str
    intent: str
    success: bool
    error: Optional[str] = None
    cached: bool = False
    reranked: bool = False
    count: int
    results: List[SearchResultModel] = Field(default_factory=list)
    takeoff: Optional[List[TakeoffLineModel]] = None


class TakeoffResponseModel(BaseModel):
    query: str
    success: bool
    error: Optional[str] = None
    cached: bool = False
    result_count: int
    categories: Dict[str, int] = Field(default_factory=dict)
    takeoff: List[TakeoffLineModel] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str
    version: str
    store: str
    reranker: str
    vision: str


class VerificationResponse(BaseModel):
    """Verified lookup payload, passed through as produced."""
    result: Dict[str, Any]
