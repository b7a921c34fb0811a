from datetime import date, datetime
from typing import Optional, List, Any

from pydantic import Field

from core.models.domain import (
    CamelModel, FarmerData, ForecastEntry, IrrigationMethod, NDVIEntry, SoilEntry, WeatherSnapshot,
)


# ---------- Request models ----------

class SatelliteNDVIRequest(CamelModel):
    coordinates: Optional[List[Any]] = Field(None, description="Field outline; GeoJSON ring or list of points")
    realtime: bool = Field(False, description="Return one mock acquisition instead of a 12-week trend")


# ---------- Response models ----------

class ErrorResponse(CamelModel):
    error: str
    details: Optional[Any] = None
    timestamp: Optional[datetime] = None


class DebugProfile(CamelModel):
    crop_name: str
    soil_type: str
    sowing_date: date
    irrigation_method: IrrigationMethod
    farm_size: Optional[float] = None


class DataAvailability(CamelModel):
    weather: bool
    ndvi: bool
    soil: bool
    uv: bool
    forecast: bool


class DataCounts(CamelModel):
    ndvi_entries: int = 0
    soil_entries: int = 0
    forecast_entries: int = 0


class ActualData(CamelModel):
    current_weather: Optional[WeatherSnapshot] = None
    latest_ndvi: Optional[NDVIEntry] = Field(None, alias="latestNDVI")
    latest_soil: Optional[SoilEntry] = None
    uv_index: Optional[float] = None
    upcoming_forecast: Optional[List[ForecastEntry]] = Field(None, max_length=2)


class DebugUserResponse(CamelModel):
    user_id: str
    timestamp: datetime
    profile: DebugProfile
    data_availability: DataAvailability
    data_counts: DataCounts
    actual_data: ActualData
    data_completeness: float
    last_updated: datetime

    @classmethod
    def from_farmer_data(cls, data: FarmerData, timestamp: datetime) -> "DebugUserResponse":
        p = data.profile
        return cls(
            user_id=data.user_id,
            timestamp=timestamp,
            profile=DebugProfile(
                crop_name=p.crop_name,
                soil_type=p.soil_type,
                sowing_date=p.sowing_date,
                irrigation_method=p.irrigation_method,
                farm_size=p.farm_size,
            ),
            data_availability=DataAvailability(
                weather=data.current_weather is not None,
                ndvi=bool(data.ndvi_data),
                soil=bool(data.soil_data),
                uv=data.uv_index is not None,
                forecast=bool(data.forecast),
            ),
            data_counts=DataCounts(
                ndvi_entries=len(data.ndvi_data or []),
                soil_entries=len(data.soil_data or []),
                forecast_entries=len(data.forecast or []),
            ),
            actual_data=ActualData(
                current_weather=data.current_weather,
                latest_ndvi=data.ndvi_data[0] if data.ndvi_data else None,
                latest_soil=data.soil_data[0] if data.soil_data else None,
                uv_index=data.uv_index,
                upcoming_forecast=data.forecast[:2] if data.forecast is not None else None,
            ),
            data_completeness=data.data_completeness,
            last_updated=data.last_updated,
        )

