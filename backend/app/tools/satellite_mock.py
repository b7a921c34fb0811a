# backend/app/tools/satellite_mock.py
"""
Stand-in for a satellite NDVI feed (Sentinel Hub / Planet / Earth Engine)
used by the dashboard until a real provider is wired in. Values are random
but the reported trend always agrees with the series it ships with.
"""
import asyncio
import datetime as dt
import time
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from app.config import settings

SATELLITES = ["Sentinel-2", "Landsat 8", "Landsat 9"]
NDVI_LOW, NDVI_HIGH = 0.4, 0.8
TREND_EPS = 0.005  # NDVI units per week


def trend_label(values: Sequence[float]) -> str:
    """Least-squares slope of the weekly series -> increasing/decreasing/stable."""
    if len(values) < 2:
        return "stable"
    slope = float(np.polyfit(np.arange(len(values)), np.asarray(values, dtype="float64"), 1)[0])
    if slope > TREND_EPS:
        return "increasing"
    if slope < -TREND_EPS:
        return "decreasing"
    return "stable"


def mock_ndvi_series(
    weeks: int,
    rng: np.random.Generator,
    today: Optional[dt.date] = None,
) -> List[Dict[str, Any]]:
    """`weeks` weekly observations, oldest first."""
    today = today or dt.date.today()
    ndvi = rng.uniform(NDVI_LOW, NDVI_HIGH, size=weeks)
    clouds = rng.uniform(0, 30, size=weeks)
    sats = rng.integers(0, len(SATELLITES), size=weeks)
    series = []
    for i in range(weeks):
        day = today - dt.timedelta(weeks=weeks - 1 - i)
        series.append({
            "ndvi": round(float(ndvi[i]), 4),
            "date": day.isoformat(),
            "cloudCover": round(float(clouds[i]), 1),
            "satellite": SATELLITES[int(sats[i])],
        })
    return series


async def simulate_ndvi_trend(
    coordinates: Optional[Sequence[Any]],
    rng: Optional[np.random.Generator] = None,
    delay: Optional[float] = None,
) -> Optional[Dict[str, Any]]:
    """
    Mock NDVI trend for a field outline. Returns None without coordinates,
    otherwise waits `delay` seconds to mimic provider latency.
    """
    if not coordinates:
        return None

    rng = rng or np.random.default_rng()
    wait = settings.SATELLITE_MOCK_DELAY_SEC if delay is None else delay
    if wait > 0:
        await asyncio.sleep(wait)

    series = mock_ndvi_series(settings.SATELLITE_MOCK_WEEKS, rng)
    return {
        "fieldId": f"field-{int(time.time() * 1000)}",
        "currentNDVI": series[-1]["ndvi"],
        "historicalData": series,
        "trend": trend_label([p["ndvi"] for p in series]),
    }


def realtime_ndvi_snapshot(rng: Optional[np.random.Generator] = None) -> Dict[str, Any]:
    """Single mock acquisition for a bounding box."""
    rng = rng or np.random.default_rng()
    return {
        "ndvi": round(float(rng.uniform(NDVI_LOW, NDVI_HIGH)), 4),
        "acquisitionDate": dt.datetime.now(dt.timezone.utc).isoformat(),
        "cloudCover": round(float(rng.uniform(0, 20)), 1),
        "resolution": "10m",
        "satellite": "Sentinel-2",
    }
