"""
Diagnostic endpoints: what the aggregator sees for one farmer.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from app.config import settings
from app.di import get_aggregator, get_logger
from app.schemas import DebugUserResponse, ErrorResponse
from core.models.domain import AggregationMode, FetchOptions, utcnow
from core.services.aggregator import FarmerDataAggregator

router = APIRouter(tags=["debug"], prefix="/api")


def _error(status_code: int, body: ErrorResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", exclude_none=True))


def _missing_user_id() -> JSONResponse:
    return _error(400, ErrorResponse(error="UserId parameter is required"))


def _server_error(message: str, exc: Exception) -> JSONResponse:
    return _error(500, ErrorResponse(error=message, details=str(exc), timestamp=utcnow()))


ERROR_RESPONSES = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


@router.get("/debug-user", response_model=DebugUserResponse, responses=ERROR_RESPONSES)
async def debug_user(
    user_id: Optional[str] = Query(None, alias="userId"),
    field_id: Optional[str] = Query(None, alias="fieldId"),
    aggregator: FarmerDataAggregator = Depends(get_aggregator),
    logger: logging.Logger = Depends(get_logger),
):
    """
    Aggregate a farmer's data over the last week and report which sources
    answered, how much each returned, and a small sample of the values.
    `fieldId` picks the field to read NDVI, soil and UV for (first field
    by default).
    """
    if not user_id or not user_id.strip():
        return _missing_user_id()

    try:
        options = FetchOptions(
            include_historical_data=True,
            max_history_days=settings.DEBUG_HISTORY_DAYS,
            mode=AggregationMode.BEST_EFFORT,
            field_id=field_id,
        )
        data = await aggregator.get_farmer_data(user_id, options)
        body = DebugUserResponse.from_farmer_data(data, timestamp=utcnow())
        return body.model_dump(mode="json", by_alias=True)
    except Exception as e:
        logger.error("Debug user data fetch failed for %s: %s", user_id, e)
        return _server_error("Failed to fetch user data", e)


@router.get("/data-completeness", responses=ERROR_RESPONSES)
async def data_completeness(
    user_id: Optional[str] = Query(None, alias="userId"),
    aggregator: FarmerDataAggregator = Depends(get_aggregator),
    logger: logging.Logger = Depends(get_logger),
):
    if not user_id or not user_id.strip():
        return _missing_user_id()

    try:
        summary = await aggregator.completeness_summary(user_id)
        return summary.model_dump(mode="json", by_alias=True)
    except Exception as e:
        logger.error("Completeness summary failed for %s: %s", user_id, e)
        return _server_error("Failed to compute data completeness", e)
