# core/services/aggregator.py
"""
Farmer data aggregation.

One call gathers the farmer's profile and every external source
(current weather, forecast, NDVI history, soil history, UV index) into a
single FarmerData record. Sources are fetched concurrently, each under its
own timeout, and a failing source only blanks its own field. In REQUIRE_ALL
mode any missing source turns the whole aggregation into a failure.
"""
import asyncio
import datetime as dt
import logging
import time
from typing import Any, Awaitable, Dict, List, Optional, Tuple

from ..adapters.base import FarmDataSources, FieldLocation
from ..models.domain import (
    AggregationMode, AggregationResult, AggregationStatus, DataCompletenessSummary,
    DataSource, FarmerData, FetchOptions, utcnow,
)
from ..utils.exceptions import AggregationError, OnboardingIncompleteError
from .profiles import ProfileStore


def t():
    return time.perf_counter()


def expected_sources(options: FetchOptions) -> List[DataSource]:
    """Sources a request asks for; snapshot-only requests skip the time series."""
    out = [DataSource.WEATHER, DataSource.FORECAST]
    if options.include_historical_data:
        out += [DataSource.NDVI, DataSource.SOIL]
    out.append(DataSource.UV)
    return out


class FarmerDataAggregator:
    def __init__(
        self,
        store: ProfileStore,
        sources: FarmDataSources,
        logger: Optional[logging.Logger] = None,
        source_timeout: float = 10.0,
        history_cap_days: int = 365,
    ):
        self.store = store
        self.sources = sources
        self.logger = logger or logging.getLogger(__name__)
        self.source_timeout = source_timeout
        self.history_cap_days = history_cap_days

    def clip_days(self, requested: int) -> int:
        return max(1, min(int(requested), self.history_cap_days))

    async def _fetch(self, source: DataSource, job: Awaitable[Any]) -> Tuple[DataSource, Any, int]:
        start = t()
        try:
            value = await asyncio.wait_for(job, timeout=self.source_timeout)
        except asyncio.TimeoutError:
            self.logger.warning("%s fetch timed out after %.1fs", source.value, self.source_timeout)
            value = None
        except Exception as e:
            self.logger.warning("%s fetch failed: %s", source.value, e)
            value = None
        return source, value, round((t() - start) * 1000)

    async def aggregate(self, user_id: str, options: Optional[FetchOptions] = None) -> AggregationResult:
        """
        Collect everything known about `user_id`.

        Raises ProfileNotFoundError / OnboardingIncompleteError when there is
        no profile to aggregate around; source failures never raise here and
        are reported through the result status instead.
        """
        if not user_id or not user_id.strip():
            raise ValueError("userId must be a non-empty string")
        options = options or FetchOptions()

        record = self.store.get(user_id)
        if record.farmer_profile is None or not record.farmer_profile.is_onboarding_complete:
            raise OnboardingIncompleteError("Farmer onboarding not completed. Please complete your profile first.")

        started_at = utcnow()
        started = t()
        days = self.clip_days(options.max_history_days)
        expected = expected_sources(options)

        try:
            location = await self.sources.locate(record, options.field_id)
        except Exception as e:
            self.logger.warning("Locating user %s failed: %s", user_id, e)
            location = FieldLocation()

        jobs: Dict[DataSource, Awaitable[Any]] = {}
        if location.has_coordinates:
            jobs[DataSource.WEATHER] = self.sources.current_weather(location.lat, location.lon)
            jobs[DataSource.FORECAST] = self.sources.forecast(location.lat, location.lon)
        if location.polygon_id:
            if options.include_historical_data:
                jobs[DataSource.NDVI] = self.sources.ndvi_history(location.polygon_id, days)
                jobs[DataSource.SOIL] = self.sources.soil_history(location.polygon_id, days)
            jobs[DataSource.UV] = self.sources.uv_index(location.polygon_id)

        fetched = await asyncio.gather(*(self._fetch(src, job) for src, job in jobs.items()))

        data = FarmerData(
            user_id=user_id,
            profile=record.farmer_profile,
            name=record.user.name,
            phone=record.user.phone,
            location=record.user.location,
            expected_sources=expected,
            last_updated=started_at,
        )
        timings: Dict[str, int] = {}
        horizon = int((started_at + dt.timedelta(days=days)).timestamp())
        for source, value, ms in fetched:
            timings[source.value] = ms
            if value is None:
                continue
            if source is DataSource.WEATHER:
                data.current_weather = value
            elif source is DataSource.FORECAST:
                data.forecast = [f for f in value if f.timestamp <= horizon]
            elif source is DataSource.NDVI:
                data.ndvi_data = list(value)
            elif source is DataSource.SOIL:
                data.soil_data = list(value)
            elif source is DataSource.UV:
                data.uv_index = value
        timings["total"] = round((t() - started) * 1000)

        missing = data.missing_sources()
        self.logger.info(
            "Aggregated user %s: completeness=%.2f weather=%s ndvi=%d soil=%d uv=%s forecast=%d missing=%s timings=%s",
            user_id, data.data_completeness, data.current_weather is not None,
            len(data.ndvi_data or []), len(data.soil_data or []), data.uv_index,
            len(data.forecast or []), [m.value for m in missing], timings,
        )

        if missing and options.mode is AggregationMode.REQUIRE_ALL:
            reason = f"Required data unavailable: {', '.join(m.value for m in missing)}"
            if not location.has_coordinates:
                reason = f"Location coordinates are required for environmental data. {reason}"
            return AggregationResult(status=AggregationStatus.FAILED, missing=missing, error=reason, timings_ms=timings)

        status = AggregationStatus.PARTIAL if missing else AggregationStatus.COMPLETE
        return AggregationResult(status=status, data=data, missing=missing, timings_ms=timings)

    async def get_farmer_data(self, user_id: str, options: Optional[FetchOptions] = None) -> FarmerData:
        """FarmerData for `user_id`; raises AggregationError when a strict request comes up short."""
        result = await self.aggregate(user_id, options)
        if result.status is AggregationStatus.FAILED:
            raise AggregationError(result.error or "Aggregation failed", missing=[m.value for m in result.missing])
        return result.data

    async def completeness_summary(self, user_id: str) -> DataCompletenessSummary:
        data = await self.get_farmer_data(user_id, FetchOptions(mode=AggregationMode.BEST_EFFORT))
        avail = data.availability()
        details = {s.value: avail[s] for s in data.expected_sources}
        return DataCompletenessSummary(
            percentage=round(data.data_completeness * 100),
            details=details,
            missing_data=[s.value for s in data.missing_sources()],
            last_updated=data.last_updated,
        )
