from dataclasses import dataclass
from typing import Protocol, Optional, List

from ..models.domain import ProfileRecord, WeatherSnapshot, ForecastEntry, NDVIEntry, SoilEntry


@dataclass(frozen=True)
class FieldLocation:
    """Where to point the providers for one farmer."""
    lat: Optional[float] = None
    lon: Optional[float] = None
    polygon_id: Optional[str] = None

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lon is not None


class FarmDataSources(Protocol):
    """External providers the aggregator fans out to."""

    async def locate(self, record: ProfileRecord, field_id: Optional[str] = None) -> FieldLocation:
        """
        Resolve coordinates and the provider polygon for a farmer, using the
        field `field_id` when given and the first field otherwise. Never
        raises: anything unresolvable is left as None.
        """
        ...

    async def current_weather(self, lat: float, lon: float) -> Optional[WeatherSnapshot]:
        ...

    async def forecast(self, lat: float, lon: float) -> List[ForecastEntry]:
        """Chronological forecast entries."""
        ...

    async def ndvi_history(self, polygon_id: str, days: int) -> List[NDVIEntry]:
        """Most recent first, covering at most `days` days."""
        ...

    async def soil_history(self, polygon_id: str, days: int) -> List[SoilEntry]:
        """Most recent first, covering at most `days` days."""
        ...

    async def uv_index(self, polygon_id: str) -> Optional[float]:
        ...
