# backend/app/tools/agromonitoring.py
"""
Agromonitoring Agro API 1.0 client.

Raw fetchers return the provider JSON untouched; the ``process_*`` helpers
turn it into domain models (Celsius, km/h, percentages, most recent first).
"""
import time
import logging
import datetime as dt
from typing import Dict, Any, List, Optional, Sequence, Tuple

import httpx

from app.config import settings
from app.http import get_http_client
from core.models.domain import WeatherSnapshot, ForecastEntry, NDVIEntry, SoilEntry
from core.utils.exceptions import ConfigurationError, SourceError

logger = logging.getLogger(__name__)

def t(): return time.perf_counter()

KELVIN = 273.15
SATELLITES = {"l8": "Landsat-8", "s2": "Sentinel-2"}


def _api_key() -> str:
    if not settings.AGROMONITORING_API_KEY:
        raise ConfigurationError("AGROMONITORING_API_KEY not set in .env file")
    return settings.AGROMONITORING_API_KEY


def _status_message(endpoint: str, r: httpx.Response) -> str:
    if r.status_code == 401:
        return "Invalid Agromonitoring API key"
    if r.status_code == 403:
        return f"Access forbidden for {endpoint}; the endpoint may require a higher subscription plan"
    if r.status_code == 404:
        return f"Endpoint not found: {endpoint}"
    if r.status_code == 429:
        return "Agromonitoring rate limit exceeded"

    detail = r.text
    try:
        body = r.json()
        if isinstance(body, dict) and body.get("message"):
            detail = body["message"]
    except ValueError:
        pass
    note = ""
    if endpoint.startswith("/soil") or endpoint.startswith("/uvi"):
        note = " (may require a paid subscription plan)"
    return f"API request failed for {endpoint}: {detail or r.status_code}{note}"


async def _request(
    endpoint: str,
    params: Optional[Dict[str, Any]] = None,
    method: str = "GET",
    json_body: Optional[Dict[str, Any]] = None,
) -> Any:
    q = {k: v for k, v in (params or {}).items() if v is not None}
    q["appid"] = _api_key()
    url = f"{settings.AGROMONITORING_BASE_URL}{endpoint}"

    start = t()
    client = get_http_client()
    try:
        r = await client.request(method, url, params=q, json=json_body)
    except httpx.HTTPError as e:
        raise SourceError(f"Request failed for {endpoint}: {e}", endpoint=endpoint) from e

    if r.status_code >= 400:
        raise SourceError(_status_message(endpoint, r), endpoint=endpoint, status_code=r.status_code)

    data = r.json()
    size = f"{len(data)} items" if isinstance(data, list) else "OK"
    logger.debug("⏱️  Agromonitoring %s %s: %dms (%s)", method, endpoint, round((t() - start) * 1000), size)
    return data


def to_unix(d: dt.datetime) -> int:
    return int(d.timestamp())


def history_window(days: int, now: Optional[dt.datetime] = None) -> Tuple[int, int]:
    """(start, end) unix timestamps covering the last `days` days."""
    end = now or dt.datetime.now(dt.timezone.utc)
    start = end - dt.timedelta(days=days)
    return to_unix(start), to_unix(end)


# -------------------------------
# Raw fetchers
# -------------------------------

async def get_current_weather(lat: float, lon: float, units: str = "metric") -> Dict[str, Any]:
    return await _request("/weather", {"lat": lat, "lon": lon, "units": units})

async def get_weather_forecast(lat: float, lon: float, units: str = "metric") -> List[Dict[str, Any]]:
    return await _request("/weather/forecast", {"lat": lat, "lon": lon, "units": units})

async def get_ndvi_history(
    polygon_id: str,
    start: int,
    end: int,
    satellite: Optional[str] = None,
    clouds_max: Optional[float] = None,
) -> List[Dict[str, Any]]:
    """NDVI statistics per scene; `satellite` is 'l8' or 's2'."""
    return await _request("/ndvi/history", {
        "polyid": polygon_id,
        "start": start,
        "end": end,
        "type": satellite,
        "clouds_max": clouds_max,
    })

async def get_current_soil(polygon_id: str) -> Dict[str, Any]:
    return await _request("/soil", {"polyid": polygon_id})

async def get_soil_history(polygon_id: str, start: int, end: int) -> List[Dict[str, Any]]:
    if not polygon_id or not polygon_id.strip():
        raise ValueError("Polygon ID is required for soil history")
    if start >= end:
        raise ValueError("Start date must be before end date")
    return await _request("/soil/history", {"polyid": polygon_id, "start": start, "end": end})

async def get_current_uvi(polygon_id: str) -> Dict[str, Any]:
    return await _request("/uvi", {"polyid": polygon_id})

async def get_polygons() -> List[Dict[str, Any]]:
    return await _request("/polygons")

async def create_polygon(name: str, points: Sequence[Tuple[float, float]]) -> Dict[str, Any]:
    """
    Register a field boundary. `points` are (lat, lng) pairs; the ring is
    closed automatically and sent in GeoJSON [lon, lat] order.
    """
    ring = [[lng, lat] for lat, lng in points]
    if ring and ring[0] != ring[-1]:
        ring.append(list(ring[0]))
    body = {
        "name": name,
        "geo_json": {
            "type": "Feature",
            "properties": {},
            "geometry": {"type": "Polygon", "coordinates": [ring]},
        },
    }
    return await _request("/polygons", method="POST", json_body=body)


# -------------------------------
# Classifiers
# -------------------------------

def ndvi_status(ndvi_mean: float) -> Tuple[str, str]:
    if ndvi_mean >= 0.7:
        return "Excellent", "Very healthy vegetation with dense canopy"
    if ndvi_mean >= 0.5:
        return "Good", "Healthy vegetation with good canopy coverage"
    if ndvi_mean >= 0.3:
        return "Fair", "Moderate vegetation health, may need attention"
    if ndvi_mean >= 0.1:
        return "Poor", "Stressed vegetation, requires immediate attention"
    return "Very Poor", "Severely stressed or sparse vegetation"

def soil_moisture_status(moisture_pct: float) -> str:
    if moisture_pct >= 40:
        return "Optimal"
    if moisture_pct >= 25:
        return "Good"
    if moisture_pct >= 15:
        return "Moderate"
    if moisture_pct >= 10:
        return "Low"
    return "Critical"


# -------------------------------
# Processing
# -------------------------------

def _iso_day(ts: int) -> str:
    return dt.datetime.fromtimestamp(ts, dt.timezone.utc).date().isoformat()

def process_weather(raw: Dict[str, Any]) -> WeatherSnapshot:
    main = raw.get("main") or {}
    wind = raw.get("wind") or {}
    wx = (raw.get("weather") or [{}])[0]
    return WeatherSnapshot(
        temp=round(main["temp"]),
        humidity=main.get("humidity", 0),
        wind_speed=round(wind.get("speed", 0.0) * 3.6),  # m/s -> km/h
        description=wx.get("description") or "Unknown",
        icon=wx.get("icon") or "01d",
        pressure=main.get("pressure", 0),
        cloud_cover=(raw.get("clouds") or {}).get("all", 0),
        feels_like=round(main.get("feels_like", main["temp"])),
    )

def process_forecast(raw: List[Dict[str, Any]], limit: Optional[int] = None) -> List[ForecastEntry]:
    out: List[ForecastEntry] = []
    for item in sorted(raw or [], key=lambda i: i["dt"]):
        main = item.get("main") or {}
        wx = (item.get("weather") or [{}])[0]
        precip = (item.get("rain") or {}).get("3h") or (item.get("snow") or {}).get("3h") or 0.0
        out.append(ForecastEntry(
            date=dt.datetime.fromtimestamp(item["dt"], dt.timezone.utc).isoformat(),
            timestamp=item["dt"],
            high=round(main.get("temp_max", main.get("temp", 0.0))),
            low=round(main.get("temp_min", main.get("temp", 0.0))),
            description=wx.get("description") or "Unknown",
            precipitation=float(precip),
        ))
    return out[:limit] if limit else out

def process_ndvi(raw: List[Dict[str, Any]]) -> List[NDVIEntry]:
    out: List[NDVIEntry] = []
    for item in raw or []:
        d = item.get("data") or {}
        if d.get("mean") is None:
            continue
        mean = round(float(d["mean"]), 4)
        status, desc = ndvi_status(mean)
        out.append(NDVIEntry(
            date=_iso_day(item["dt"]),
            timestamp=item["dt"],
            satellite=SATELLITES.get(item.get("source"), item.get("source") or "unknown"),
            ndvi_mean=mean,
            ndvi_median=None if d.get("median") is None else round(float(d["median"]), 4),
            ndvi_min=None if d.get("min") is None else round(float(d["min"]), 4),
            ndvi_max=None if d.get("max") is None else round(float(d["max"]), 4),
            cloud_cover=None if item.get("cl") is None else round(float(item["cl"]) * 100, 1),
            data_coverage=None if item.get("dc") is None else round(float(item["dc"]), 1),
            ndvi_status=status,
            description=desc,
        ))
    out.sort(key=lambda e: e.timestamp, reverse=True)
    return out

def process_soil(raw: List[Dict[str, Any]]) -> List[SoilEntry]:
    out: List[SoilEntry] = []
    for item in raw or []:
        moisture = round(float(item["moisture"]) * 100, 1)
        out.append(SoilEntry(
            date=_iso_day(item["dt"]),
            timestamp=item["dt"],
            surface_temp=round(float(item["t0"]) - KELVIN, 1),
            soil_temp=round(float(item["t10"]) - KELVIN, 1),
            moisture=moisture,
            moisture_status=soil_moisture_status(moisture),
        ))
    out.sort(key=lambda e: e.timestamp, reverse=True)
    return out
