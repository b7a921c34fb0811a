import logging
from typing import Optional, List

from app.config import settings
from app.tools import agromonitoring as agro
from app.tools.agromonitoring_cached import (
    current_weather_cached, forecast_cached, ndvi_history_cached,
    soil_history_cached, current_uvi_cached,
)
from app.tools.geo import parse_location, polygon_centroid, polygon_points
from .base import FieldLocation
from ..models.domain import FarmField, ProfileRecord, WeatherSnapshot, ForecastEntry, NDVIEntry, SoilEntry
from ..services.profiles import ProfileStore


class AgromonitoringSources:
    """FarmDataSources backed by the cached Agromonitoring tools."""

    def __init__(self, store: ProfileStore, logger: Optional[logging.Logger] = None):
        self.store = store
        self.logger = logger or logging.getLogger(__name__)

    # ---------- location ----------

    async def locate(self, record: ProfileRecord, field_id: Optional[str] = None) -> FieldLocation:
        field = record.find_field(field_id)
        if field is None and field_id:
            self.logger.warning("Field %s not found for user %s, using first field", field_id, record.user.id)
            field = record.first_field()

        coords = None
        try:
            coords = parse_location(record.user.location)
            if coords is None and field is not None:
                coords = polygon_centroid(field.coordinates)
                if coords:
                    self.logger.debug("Using field centre %s for user %s", coords, record.user.id)
        except Exception as e:
            self.logger.warning("Could not read coordinates for user %s: %s", record.user.id, e)
            coords = None
        if coords is None:
            self.logger.warning("No coordinates for user %s (location or fields)", record.user.id)

        polygon_id = await self._resolve_polygon(record, field)
        lat, lon = coords if coords else (None, None)
        return FieldLocation(lat=lat, lon=lon, polygon_id=polygon_id)

    async def _resolve_polygon(self, record: ProfileRecord, field: Optional[FarmField]) -> Optional[str]:
        if field is None:
            self.logger.warning("No fields registered for user %s", record.user.id)
            return None
        if field.polygon_id:
            return field.polygon_id

        try:
            polygons = await agro.get_polygons()
            owner = record.user.name or "Farm"
            for p in polygons or []:
                name = p.get("name") or ""
                if field.name in name or owner in name:
                    self._remember(record, field.id, p["id"])
                    return p["id"]

            points = polygon_points(field.coordinates)
            if len(points) < 3:
                self.logger.warning("Field %s has no usable outline", field.id)
                return None
            created = await agro.create_polygon(field.name, points)
            self.logger.info("Created polygon %s for field %s", created.get("id"), field.name)
            self._remember(record, field.id, created["id"])
            return created["id"]
        except Exception as e:
            self.logger.warning("Polygon lookup failed for user %s: %s", record.user.id, e)
            return None

    def _remember(self, record: ProfileRecord, field_id: str, polygon_id: str) -> None:
        try:
            self.store.set_polygon_id(record.user.id, field_id, polygon_id)
        except KeyError:
            pass

    # ---------- sources ----------

    async def current_weather(self, lat: float, lon: float) -> Optional[WeatherSnapshot]:
        raw = await current_weather_cached(lat, lon)
        return agro.process_weather(raw) if raw else None

    async def forecast(self, lat: float, lon: float) -> List[ForecastEntry]:
        raw = await forecast_cached(lat, lon)
        return agro.process_forecast(raw, limit=settings.FORECAST_MAX_ENTRIES)

    async def ndvi_history(self, polygon_id: str, days: int) -> List[NDVIEntry]:
        return agro.process_ndvi(await ndvi_history_cached(polygon_id, days))

    async def soil_history(self, polygon_id: str, days: int) -> List[SoilEntry]:
        return agro.process_soil(await soil_history_cached(polygon_id, days))

    async def uv_index(self, polygon_id: str) -> Optional[float]:
        raw = await current_uvi_cached(polygon_id)
        uvi = (raw or {}).get("uvi")
        return None if uvi is None else round(float(uvi), 1)
