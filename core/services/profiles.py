# core/services/profiles.py
import logging
import threading
import uuid
from typing import Dict, Optional

from app.tools.geo import format_location
from ..models.domain import FarmerProfile, FarmField, FarmRecord, ProfileRecord, UserRecord
from ..models.io import ComprehensiveProfileIn
from ..utils.exceptions import ProfileExistsError, ProfileNotFoundError


class ProfileStore:
    """
    In-process record of onboarded farmers.

    A farmer profile is written once; later reads get deep copies so callers
    can't mutate what other requests see. Only a field's Agromonitoring
    polygon id may be filled in after creation.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._records: Dict[str, ProfileRecord] = {}
        self._lock = threading.Lock()
        self.logger = logger or logging.getLogger(__name__)

    def create(self, payload: ComprehensiveProfileIn) -> ProfileRecord:
        coords = payload.coordinates()
        location = format_location(
            payload.pincode,
            coords.lat if coords else None,
            coords.lng if coords else None,
        )

        user = UserRecord(id=payload.user_id, name=payload.full_name, phone=payload.mobile, location=location)
        profile = FarmerProfile(
            user_id=payload.user_id,
            crop_name=payload.primary_crop,
            soil_type=payload.soil_type,
            sowing_date=payload.sowing_date,
            irrigation_method=payload.irrigation_method,
            farm_size=payload.farm_area(),
            has_storage_capacity=payload.has_storage_capacity,
            storage_capacity=payload.storage_capacity if payload.has_storage_capacity else None,
            farming_experience=payload.farming_experience,
            previous_yield=payload.previous_yield,
            preferred_language=payload.preferred_language,
        )
        fields = [
            FarmField(id=f.id, name=f.name, coordinates=f.coordinates, area=f.area,
                      crop_type=f.crop_type or payload.primary_crop)
            for f in payload.farm_fields
        ]
        farm = FarmRecord(
            id=str(uuid.uuid4()),
            name=f"{payload.full_name}'s Farm",
            description=f"Farm with {len(fields)} field(s) growing {payload.primary_crop}",
            location=location,
            area=sum(f.area for f in fields),
            fields=fields,
        )
        record = ProfileRecord(user=user, farmer_profile=profile, farms=[farm])

        with self._lock:
            existing = self._records.get(payload.user_id)
            if existing is not None and existing.farmer_profile is not None:
                raise ProfileExistsError(payload.user_id)
            self._records[payload.user_id] = record

        self.logger.info("Profile created for user %s (%d field(s))", payload.user_id, len(fields))
        return record.model_copy(deep=True)

    def get(self, user_id: str) -> ProfileRecord:
        with self._lock:
            record = self._records.get(user_id)
            if record is None:
                raise ProfileNotFoundError(user_id)
            return record.model_copy(deep=True)

    def exists(self, user_id: str) -> bool:
        with self._lock:
            return user_id in self._records

    def is_onboarding_complete(self, user_id: str) -> bool:
        with self._lock:
            record = self._records.get(user_id)
        return bool(record and record.farmer_profile and record.farmer_profile.is_onboarding_complete)

    def set_polygon_id(self, user_id: str, field_id: str, polygon_id: str) -> None:
        with self._lock:
            record = self._records.get(user_id)
            if record is None:
                raise ProfileNotFoundError(user_id)
            for farm in record.farms:
                for field in farm.fields:
                    if field.id == field_id:
                        field.polygon_id = polygon_id
                        return
        raise KeyError(f"field {field_id} not found for user {user_id}")

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
