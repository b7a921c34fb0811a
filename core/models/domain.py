from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any, List

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------- enums ----------

class IrrigationMethod(str, Enum):
    DRIP = "DRIP"
    SPRINKLER = "SPRINKLER"
    FLOOD = "FLOOD"
    FURROW = "FURROW"
    MANUAL = "MANUAL"
    RAINFED = "RAINFED"

    @classmethod
    def _missing_(cls, value):
        # onboarding form sends "drip", "Sprinkler", "rain fed", ...
        if isinstance(value, str):
            return cls.__members__.get(value.strip().upper().replace(" ", "").replace("-", ""))
        return None


class DataSource(str, Enum):
    WEATHER = "weather"
    FORECAST = "forecast"
    NDVI = "ndvi"
    SOIL = "soil"
    UV = "uv"


class AggregationMode(str, Enum):
    BEST_EFFORT = "best_effort"
    REQUIRE_ALL = "require_all"


class AggregationStatus(str, Enum):
    COMPLETE = "complete"
    PARTIAL = "partial"
    FAILED = "failed"


# ---------- stored records ----------

class UserRecord(CamelModel):
    id: str
    name: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class FarmerProfile(CamelModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    crop_name: str
    soil_type: str
    sowing_date: date
    irrigation_method: IrrigationMethod
    farm_size: Optional[float] = None
    has_storage_capacity: bool = False
    storage_capacity: Optional[float] = None
    farming_experience: Optional[int] = None
    previous_yield: Optional[float] = None
    preferred_language: str = "en"
    is_onboarding_complete: bool = True
    created_at: datetime = Field(default_factory=utcnow)


class FarmField(CamelModel):
    id: str
    name: str
    coordinates: str                 # GeoJSON Polygon, [lon, lat] order
    area: float
    crop_type: Optional[str] = None
    polygon_id: Optional[str] = None  # Agromonitoring polygon, once registered


class FarmRecord(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    location: Optional[str] = None
    area: float = 0.0
    fields: List[FarmField] = Field(default_factory=list)


class ProfileRecord(CamelModel):
    """Everything onboarding stores for one user."""
    user: UserRecord
    farmer_profile: Optional[FarmerProfile] = None
    farms: List[FarmRecord] = Field(default_factory=list)

    def first_field(self) -> Optional[FarmField]:
        for farm in self.farms:
            if farm.fields:
                return farm.fields[0]
        return None

    def find_field(self, field_id: Optional[str]) -> Optional[FarmField]:
        """The field with `field_id`, or the first field when no id is given."""
        if not field_id:
            return self.first_field()
        for farm in self.farms:
            for field in farm.fields:
                if field.id == field_id:
                    return field
        return None


# ---------- per-source payloads ----------

class WeatherSnapshot(CamelModel):
    temp: float
    humidity: float
    wind_speed: float          # km/h
    description: str
    icon: str
    pressure: float
    cloud_cover: float
    feels_like: float


class ForecastEntry(CamelModel):
    date: str
    timestamp: int
    high: float
    low: float
    description: str
    precipitation: float = 0.0


class NDVIEntry(CamelModel):
    date: str
    timestamp: int
    satellite: str
    ndvi_mean: float
    ndvi_median: Optional[float] = None
    ndvi_min: Optional[float] = None
    ndvi_max: Optional[float] = None
    cloud_cover: Optional[float] = None
    data_coverage: Optional[float] = None
    ndvi_status: Optional[str] = None
    description: Optional[str] = None


class SoilEntry(CamelModel):
    date: str
    timestamp: int
    surface_temp: float   # Celsius
    soil_temp: float      # Celsius, 10cm depth
    moisture: float       # percentage
    moisture_status: Optional[str] = None


# ---------- aggregation ----------

class FetchOptions(CamelModel):
    include_historical_data: bool = True
    max_history_days: int = 30
    mode: AggregationMode = AggregationMode.BEST_EFFORT
    field_id: Optional[str] = None   # which field to read NDVI/soil/UV for; first field when unset

    @model_validator(mode="before")
    @classmethod
    def _map_require_all(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        values = dict(values)
        for key in ("requireAllData", "require_all_data"):
            if key in values:
                flag = values.pop(key)
                values.setdefault("mode", AggregationMode.REQUIRE_ALL if flag else AggregationMode.BEST_EFFORT)
        return values

    @property
    def require_all_data(self) -> bool:
        return self.mode is AggregationMode.REQUIRE_ALL


class FarmerData(CamelModel):
    user_id: str
    profile: FarmerProfile
    name: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None

    current_weather: Optional[WeatherSnapshot] = None
    ndvi_data: Optional[List[NDVIEntry]] = None       # most recent first
    soil_data: Optional[List[SoilEntry]] = None       # most recent first
    uv_index: Optional[float] = None
    forecast: Optional[List[ForecastEntry]] = None    # chronological

    expected_sources: List[DataSource] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=utcnow)

    def availability(self) -> Dict[DataSource, bool]:
        return {
            DataSource.WEATHER: self.current_weather is not None,
            DataSource.FORECAST: bool(self.forecast),
            DataSource.NDVI: bool(self.ndvi_data),
            DataSource.SOIL: bool(self.soil_data),
            DataSource.UV: self.uv_index is not None,
        }

    def missing_sources(self) -> List[DataSource]:
        avail = self.availability()
        return [s for s in self.expected_sources if not avail[s]]

    @computed_field(alias="dataCompleteness")
    @property
    def data_completeness(self) -> float:
        """Fraction of expected sources that returned data."""
        if not self.expected_sources:
            return 0.0
        avail = self.availability()
        got = sum(1 for s in self.expected_sources if avail[s])
        return round(got / len(self.expected_sources), 2)


class AggregationResult(BaseModel):
    status: AggregationStatus
    data: Optional[FarmerData] = None
    missing: List[DataSource] = Field(default_factory=list)
    error: Optional[str] = None
    timings_ms: Dict[str, int] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status is not AggregationStatus.FAILED


class DataCompletenessSummary(CamelModel):
    percentage: int
    details: Dict[str, bool]
    missing_data: List[str]
    last_updated: datetime
