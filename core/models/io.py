from datetime import date
from typing import Optional, List, Dict, Any

from pydantic import Field, field_validator

from app.tools.geo import distinct_vertices
from .domain import CamelModel, IrrigationMethod


class LatLng(CamelModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class FarmFieldIn(CamelModel):
    id: str
    name: str = Field(..., min_length=1)
    coordinates: str = Field(..., description="GeoJSON Polygon string, [lon, lat] order")
    area: float = Field(..., ge=0, description="Field area in hectares")
    crop_type: Optional[str] = None

    @field_validator("coordinates")
    @classmethod
    def _polygon_outline(cls, v: str) -> str:
        if distinct_vertices(v) < 3:
            raise ValueError("coordinates must be a GeoJSON Polygon with at least 3 numeric vertices")
        return v


class ComprehensiveProfileIn(CamelModel):
    """Onboarding payload posted to /api/comprehensive-profile."""

    user_id: str = Field(..., min_length=1)

    # Personal information
    full_name: str = Field(..., min_length=2)
    mobile: str = Field(..., min_length=10)
    pincode: str = Field(..., pattern=r"^\d{6}$")
    location: Optional[LatLng] = None
    pincode_location: Optional[LatLng] = None

    # Farm mapping
    farm_fields: List[FarmFieldIn] = Field(..., min_length=1)

    # Crop details
    primary_crop: str = Field(..., min_length=1)
    soil_type: str = Field(..., min_length=1)
    sowing_date: date

    # Infrastructure
    has_storage_capacity: bool = False
    storage_capacity: Optional[float] = None
    irrigation_method: IrrigationMethod

    # Experience & scale
    farming_experience: Optional[int] = None
    total_farm_size: Optional[float] = None
    previous_yield: Optional[float] = None

    preferred_language: str = "en"

    @field_validator("sowing_date", mode="before")
    @classmethod
    def _strip_time(cls, v: Any) -> Any:
        # the form serialises a JS Date, e.g. "2025-06-15T00:00:00.000Z"
        if isinstance(v, str) and "T" in v:
            return v.split("T", 1)[0]
        return v

    @field_validator("storage_capacity", "total_farm_size", "previous_yield", "farming_experience", mode="before")
    @classmethod
    def _blank_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def farm_area(self) -> float:
        if self.total_farm_size is not None:
            return self.total_farm_size
        return sum(f.area for f in self.farm_fields)

    def coordinates(self) -> Optional[LatLng]:
        """Device location wins over the pincode centroid."""
        return self.location or self.pincode_location


class ProfileCreated(CamelModel):
    success: bool = True
    profile: Dict[str, Any]
    message: str = "Complete farmer profile created successfully"
    recommendations: Optional[str] = None
