"""
Farmer profile creation, fed by the onboarding flow.
"""
import logging
from typing import Optional, Dict, Any

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from app.di import get_insights_service, get_logger, get_profile_store
from app.schemas import ErrorResponse
from app.tools import agromonitoring as agro
from app.tools.agromonitoring_cached import current_weather_cached
from app.tools.geo import polygon_points
from app.tools.geocode import geocode_pincode
from core.models.domain import ProfileRecord, WeatherSnapshot
from core.models.io import ComprehensiveProfileIn, LatLng, ProfileCreated
from core.services.insights import InsightsService
from core.services.profiles import ProfileStore
from core.utils.exceptions import ProfileExistsError, ProfileNotFoundError

router = APIRouter(tags=["profile"], prefix="/api")


def _error(status_code: int, error: str, details: Optional[str] = None) -> JSONResponse:
    body = ErrorResponse(error=error, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", exclude_none=True))


async def _resolve_coordinates(payload: ComprehensiveProfileIn, logger: logging.Logger) -> ComprehensiveProfileIn:
    """Fill pincodeLocation from geocoding when the form sent no coordinates."""
    if payload.coordinates() is not None:
        return payload
    try:
        geo = await geocode_pincode(payload.pincode)
    except Exception as e:
        logger.warning("Geocoding failed for pincode %s: %s", payload.pincode, e)
        return payload
    if not geo:
        return payload
    return payload.model_copy(update={"pincode_location": LatLng(lat=geo["lat"], lng=geo["lng"])})


async def _register_polygons(record: ProfileRecord, store: ProfileStore, logger: logging.Logger) -> int:
    created = 0
    owner = record.user.name or record.user.id
    for farm in record.farms:
        for field in farm.fields:
            points = polygon_points(field.coordinates)
            if len(points) < 3:
                logger.warning("Skipping polygon for field %s: no usable outline", field.id)
                continue
            try:
                poly = await agro.create_polygon(f"{owner} - {field.name}", points)
                store.set_polygon_id(record.user.id, field.id, poly["id"])
                created += 1
            except Exception as e:
                logger.warning("Polygon creation failed for field %s: %s", field.name, e)
    return created


async def _weather_snapshot(coords: Optional[LatLng], logger: logging.Logger) -> Optional[WeatherSnapshot]:
    if coords is None:
        return None
    try:
        raw = await current_weather_cached(coords.lat, coords.lng)
        return agro.process_weather(raw) if raw else None
    except Exception as e:
        logger.warning("Weather snapshot failed: %s", e)
        return None


@router.post(
    "/comprehensive-profile",
    response_model=ProfileCreated,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def create_comprehensive_profile(
    payload: ComprehensiveProfileIn,
    store: ProfileStore = Depends(get_profile_store),
    insights: InsightsService = Depends(get_insights_service),
    logger: logging.Logger = Depends(get_logger),
):
    """
    Store user, farmer profile, farm and fields in one go. Polygon
    registration, weather and AI insights are extras: their failures are
    logged and the profile is still created.
    """
    if store.exists(payload.user_id):
        return _error(409, "Profile already exists for this user")

    try:
        payload = await _resolve_coordinates(payload, logger)
        record = store.create(payload)
    except ProfileExistsError as e:
        return _error(409, str(e))
    except Exception as e:
        logger.error("Profile creation failed for %s: %s", payload.user_id, e)
        return _error(500, "Failed to create profile", str(e))

    polygons = await _register_polygons(record, store, logger)
    if polygons:
        record = store.get(payload.user_id)

    weather = await _weather_snapshot(payload.coordinates(), logger)
    ai = await insights.crop_insights(record.farmer_profile, payload.pincode, weather)

    logger.info(
        "Onboarded %s: fields=%d polygons=%d weather=%s insights=%s",
        payload.user_id, sum(len(f.fields) for f in record.farms),
        polygons, weather is not None, ai is not None,
    )

    profile: Dict[str, Any] = {
        "user": record.user.model_dump(mode="json", by_alias=True),
        "farmerProfile": record.farmer_profile.model_dump(mode="json", by_alias=True),
        "farm": record.farms[0].model_dump(mode="json", by_alias=True, exclude={"fields"}),
        "farmFields": [f.model_dump(mode="json", by_alias=True) for f in record.farms[0].fields],
        "weatherData": weather.model_dump(mode="json", by_alias=True) if weather else None,
        "aiInsights": ai,
    }
    return ProfileCreated(profile=profile, recommendations=ai["text"] if ai else None).model_dump(by_alias=True)


@router.get("/comprehensive-profile", responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}})
async def get_comprehensive_profile(
    user_id: Optional[str] = Query(None, alias="userId"),
    store: ProfileStore = Depends(get_profile_store),
):
    if not user_id or not user_id.strip():
        return _error(400, "User ID is required")
    try:
        record = store.get(user_id)
    except ProfileNotFoundError as e:
        return _error(404, str(e))
    return {"profile": record.model_dump(mode="json", by_alias=True)}
