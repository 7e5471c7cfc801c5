"""Analysis endpoints."""

import json
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sse_starlette.sse import EventSourceResponse

from crisisfeed.api.schemas.request import CompanyImpactRequest, FinancialAnalysisRequest
from crisisfeed.api.schemas.response import ErrorResponse
from crisisfeed.api.services.analysis_service import AnalysisService
from crisisfeed.errors import UnsupportedAnalysisKind
from crisisfeed.logger import get_logger
from crisisfeed.services.pipeline import PipelineResult

logger = get_logger(__name__)
router = APIRouter()

CRISIS_ERROR = "Analysis temporarily unavailable"
FINANCIAL_ERROR = "Financial analysis temporarily unavailable"
COMPANY_ERROR = "Company analysis temporarily unavailable"

ERROR_RESPONSES = {400: {"model": ErrorResponse}, 429: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


def get_analysis_service(request: Request) -> AnalysisService:
    """Dependency returning the process-wide AnalysisService."""
    return request.app.state.analysis_service


def _respond(result: PipelineResult, error: str) -> JSONResponse:
    """Live, cached and stale data answer 200; fallback data answers 500."""
    body = result.value.model_dump(by_alias=True, mode="json")
    if result.is_fallback:
        return JSONResponse(status_code=500, content={"error": error, "fallback": body})
    return JSONResponse(content=body)


@router.post("/analyze-crisis", responses=ERROR_RESPONSES)
async def analyze_crisis(refresh: bool = False, service: AnalysisService = Depends(get_analysis_service)):
    """
    Generate the crisis feed.

    - **refresh**: drop the cached feed and generate a new one
    """
    logger.info(f"Received crisis analysis request (refresh={refresh})")
    result = await service.analyze_crisis(force_refresh=refresh)
    return _respond(result, CRISIS_ERROR)


@router.post("/analyze-crisis/stream")
async def analyze_crisis_stream(refresh: bool = False, service: AnalysisService = Depends(get_analysis_service)):
    """
    Generate the crisis feed with progress updates via SSE.

    Returns Server-Sent Events (SSE):
    - **started**: request accepted
    - **cached**: served from cache, no model call made
    - **joined**: waiting on a scan another request already started
    - **requesting**: model call in progress
    - **sanitizing**: extracting JSON from the model output
    - **coercing**: building typed events
    - **complete**: final event with the feed
    - **fallback**: final event with static data after a failure
    """
    logger.info("Received streaming crisis analysis request")

    async def event_generator():
        try:
            async for event in service.analyze_crisis_stream(force_refresh=refresh):
                yield {"event": event["type"], "data": json.dumps(event["data"])}
        except Exception as e:
            logger.error(f"Error in streaming: {e}", exc_info=True)
            yield {"event": "error", "data": json.dumps({"message": CRISIS_ERROR})}

    return EventSourceResponse(event_generator())


@router.post("/analyze-financial", responses=ERROR_RESPONSES)
async def analyze_financial(
    request: Optional[FinancialAnalysisRequest] = None,
    service: AnalysisService = Depends(get_analysis_service),
):
    """
    Generate profit opportunities or trading signals for a crisis feed.

    - **crisisData**: feed with an `events` list
    - **analysisType**: `profit-opportunities` or `trading-signals`
    """
    if request is None or request.crisis_data is None or not request.analysis_type:
        raise HTTPException(status_code=400, detail="Missing required parameters")

    try:
        result = await service.analyze_financial(request.crisis_data.events, request.analysis_type)
    except UnsupportedAnalysisKind as e:
        logger.warning(f"Validation error: {e}")
        raise HTTPException(status_code=400, detail="Unsupported analysis type")

    return _respond(result, FINANCIAL_ERROR)


@router.post("/analyze-company", responses=ERROR_RESPONSES)
async def analyze_company(
    request: Optional[CompanyImpactRequest] = None,
    service: AnalysisService = Depends(get_analysis_service),
):
    """
    Assess how a crisis affects one ticker.

    - **symbol**: ticker symbol
    - **eventContext**: crisis description to condition on
    """
    if request is None or not request.symbol or not request.symbol.strip():
        raise HTTPException(status_code=400, detail="Missing required parameters")

    result = await service.analyze_company(request.symbol.strip(), request.event_context)
    return _respond(result, COMPANY_ERROR)


@router.post("/events/{event_id}/refresh", responses={404: {"model": ErrorResponse}})
async def refresh_event(event_id: int, service: AnalysisService = Depends(get_analysis_service)):
    """Re-generate one event of the cached crisis feed."""
    logger.info(f"Received refresh request for event {event_id}")
    result = await service.refresh_event(event_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Event not found")
    # A failed refresh returns the unchanged event, which is still valid data
    return JSONResponse(content=result.value.model_dump(by_alias=True, mode="json"))
