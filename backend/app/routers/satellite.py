"""
Mock satellite NDVI feed for the dashboard.
"""
from fastapi import APIRouter

from app.schemas import SatelliteNDVIRequest
from app.tools.satellite_mock import realtime_ndvi_snapshot, simulate_ndvi_trend

router = APIRouter(tags=["satellite"], prefix="/api/satellite")


@router.post("/ndvi")
async def satellite_ndvi(req: SatelliteNDVIRequest):
    if req.realtime:
        return {"data": realtime_ndvi_snapshot()}
    return {"data": await simulate_ndvi_trend(req.coordinates)}
