# app/tools/agromonitoring_cached.py
import datetime as dt
import logging
from time import perf_counter
from typing import Dict, Any, List

from app.utils.cache import get_json, set_json
from app.tools import agromonitoring as agro
from core.utils.exceptions import SourceError

logger = logging.getLogger(__name__)

def t(): return perf_counter()

def _today() -> str:
    return dt.datetime.now(dt.timezone.utc).date().isoformat()

def _cell(lat: float, lon: float) -> str:
    # round to ~1km cell to increase hit-rate
    return f"{round(lat, 2)}:{round(lon, 2)}"


async def current_weather_cached(lat: float, lon: float) -> Dict[str, Any]:
    key = f"agro:wx:{_cell(lat, lon)}"
    hit = await get_json(key, "weather")
    if hit is not None:
        return hit
    start = t()
    fresh = await agro.get_current_weather(lat, lon)
    await set_json(key, fresh, "weather")
    logger.info("⏱️  Current weather: %dms (fresh)", round((t() - start) * 1000))
    return fresh


async def forecast_cached(lat: float, lon: float) -> List[Dict[str, Any]]:
    key = f"agro:fc:{_cell(lat, lon)}"
    hit = await get_json(key, "forecast")
    if hit is not None:
        return hit
    start = t()
    fresh = await agro.get_weather_forecast(lat, lon)
    await set_json(key, fresh, "forecast")
    logger.info("⏱️  Forecast: %dms (fresh, %d items)", round((t() - start) * 1000), len(fresh or []))
    return fresh


async def ndvi_history_cached(polygon_id: str, days: int) -> List[Dict[str, Any]]:
    """
    NDVI scenes for the last `days` days.
    Keyed per UTC day so the window slides once a day at most.
    """
    key = f"agro:ndvi:{polygon_id}:d{days}:{_today()}"
    hit = await get_json(key, "ndvi")
    if hit is not None:
        return hit
    start = t()
    lo, hi = agro.history_window(days)
    fresh = await agro.get_ndvi_history(polygon_id, lo, hi)
    await set_json(key, fresh, "ndvi")
    logger.info("⏱️  NDVI history %s/%dd: %dms (fresh, %d scenes)",
                polygon_id, days, round((t() - start) * 1000), len(fresh or []))
    return fresh


async def soil_history_cached(polygon_id: str, days: int) -> List[Dict[str, Any]]:
    """
    Soil readings for the last `days` days. Accounts without the history
    plan (401/403) get the current reading as a one-item series.
    """
    key = f"agro:soil:{polygon_id}:d{days}:{_today()}"
    hit = await get_json(key, "soil")
    if hit is not None:
        return hit
    start = t()
    lo, hi = agro.history_window(days)
    try:
        fresh = await agro.get_soil_history(polygon_id, lo, hi)
    except SourceError as e:
        if e.status_code not in (401, 403):
            raise
        logger.info("Soil history unavailable on this plan, using current reading")
        fresh = [await agro.get_current_soil(polygon_id)]
    await set_json(key, fresh, "soil")
    logger.info("⏱️  Soil %s/%dd: %dms (fresh, %d readings)",
                polygon_id, days, round((t() - start) * 1000), len(fresh or []))
    return fresh


async def current_uvi_cached(polygon_id: str) -> Dict[str, Any]:
    key = f"agro:uvi:{polygon_id}"
    hit = await get_json(key, "uvi")
    if hit is not None:
        return hit
    fresh = await agro.get_current_uvi(polygon_id)
    await set_json(key, fresh, "uvi")
    return fresh
