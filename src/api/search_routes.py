"""
Search API Routes
=================

Search, takeoff and verified-lookup endpoints.
"""

import logging
from collections import Counter

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from ..orchestrator.services import Services
from ..search import SearchQuery, SearchResult, EmbeddingError, VectorIndexError
from .models import (
    SearchRequest,
    SearchResponseModel,
    TakeoffResponseModel,
    VerificationResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Search"])

SUMMARY_CHARS = 200


def get_services(request: Request) -> Services:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Search services not initialized")
    return services


def _to_query(body: SearchRequest, services: Services) -> SearchQuery:
    try:
        return SearchQuery(
            query_text=body.query,
            discipline=body.discipline,
            drawing_type=body.drawing_type,
            project=body.project,
            sheet_numbers=tuple(body.sheet_numbers),
            top_k=body.top_k or services.engine.config.top_k,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


def _result_payload(result: SearchResult, summary: bool) -> dict:
    payload = result.to_dict()
    if summary and len(result.text) > SUMMARY_CHARS:
        payload["text"] = result.text[:SUMMARY_CHARS].rstrip() + "..."
    return payload


# =============================================================================
# SEARCH
# =============================================================================

@router.post("/search", response_model=SearchResponseModel)
def search(body: SearchRequest, services: Services = Depends(get_services)):
    """
    Ranked excerpts for a query.

    Failures come back with success=false and no results rather than an
    HTTP error, so clients never mistake stale data for an answer.
    """
    query = _to_query(body, services)
    response = services.search(query)

    takeoff = None
    if body.synthesize and response.success:
        takeoff = [t.to_dict() for t in services.synthesizer.synthesize(response.results)]

    return SearchResponseModel(
        query=query.query_text,
        intent=response.intent.value,
        success=response.success,
        error=response.error,
        cached=response.cached,
        reranked=response.reranked,
        count=len(response.results),
        results=[] if body.synthesize else [_result_payload(r, body.summary) for r in response.results],
        takeoff=takeoff,
    )


@router.post("/takeoff", response_model=TakeoffResponseModel)
def takeoff(body: SearchRequest, services: Services = Depends(get_services)):
    """Search, then aggregate the results into material lines."""
    query = _to_query(body, services)
    response = services.search(query)

    if not response.success:
        return TakeoffResponseModel(
            query=query.query_text,
            success=False,
            error=response.error,
            result_count=0,
        )

    lines = services.synthesizer.synthesize(response.results)
    return TakeoffResponseModel(
        query=query.query_text,
        success=True,
        cached=response.cached,
        result_count=len(response.results),
        categories=dict(Counter(t.category for t in lines)),
        takeoff=[t.to_dict() for t in lines],
    )


@router.get("/results/{drawing_number}")
def result_for_drawing(
    drawing_number: str,
    query: str = Query(..., min_length=1, description="Search text to re-run"),
    project: str = Query(None),
    services: Services = Depends(get_services),
):
    """Re-run a query restricted to one drawing and return its best excerpt."""
    try:
        search_query = SearchQuery(
            query_text=query,
            project=project,
            sheet_numbers=(drawing_number,),
            top_k=services.engine.config.top_k,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    response = services.search(search_query)
    if not response.success:
        raise HTTPException(status_code=502, detail=response.error)

    wanted = drawing_number.lower()
    for result in response.results:
        if result.drawing_number.lower() == wanted:
            return result.to_dict()

    raise HTTPException(status_code=404, detail=f"No result for drawing {drawing_number}")


# =============================================================================
# VERIFIED LOOKUPS
# =============================================================================

def _require_lookups(services: Services):
    if services.lookups is None:
        raise HTTPException(status_code=503, detail="Vision verifier not configured")
    return services.lookups


@router.post("/verify/member/{designation}", response_model=VerificationResponse)
def verify_member(designation: str, services: Services = Depends(get_services)):
    lookups = _require_lookups(services)
    try:
        return VerificationResponse(result=lookups.verify_member(designation))
    except (EmbeddingError, VectorIndexError) as e:
        logger.error(f"Member verification failed for {designation}: {e}")
        raise HTTPException(status_code=502, detail=str(e))


@router.post("/verify/sheet/{sheet}", response_model=VerificationResponse)
def verify_sheet(
    sheet: str,
    spot_checks: int = Query(3, ge=0, le=10),
    services: Services = Depends(get_services),
):
    lookups = _require_lookups(services)
    try:
        return VerificationResponse(result=lookups.verify_sheet_inventory(sheet, spot_checks=spot_checks))
    except (EmbeddingError, VectorIndexError) as e:
        logger.error(f"Sheet verification failed for {sheet}: {e}")
        raise HTTPException(status_code=502, detail=str(e))
