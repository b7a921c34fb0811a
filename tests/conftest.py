"""
Pytest configuration and shared fixtures for testing.

Provides a seeded profile store, scripted data sources for the aggregator,
and a FastAPI test client with the singletons swapped out.
"""

import asyncio
import datetime as dt
import json
from typing import Any, Dict, Iterable, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from app import di
from app.config import settings
from app.http import set_http_client
from app.main import app
from app.utils.cache import flush_all
from core.adapters.base import FieldLocation
from core.models.domain import ForecastEntry, NDVIEntry, SoilEntry, WeatherSnapshot
from core.models.io import ComprehensiveProfileIn
from core.services.aggregator import FarmerDataAggregator
from core.services.profiles import ProfileStore
from core.utils.exceptions import SourceError

FIELD_GEOJSON = json.dumps({
    "type": "Polygon",
    "coordinates": [[
        [77.590, 12.970], [77.600, 12.970], [77.600, 12.980], [77.590, 12.980], [77.590, 12.970],
    ]],
})


def profile_payload(user_id: str = "farmer-42", **overrides) -> Dict[str, Any]:
    """Onboarding form body as the browser posts it."""
    body = {
        "userId": user_id,
        "fullName": "Ramesh Kumar",
        "mobile": "9876543210",
        "pincode": "560001",
        "location": {"lat": 12.97, "lng": 77.59},
        "farmFields": [
            {"id": "field-1", "name": "North Plot", "coordinates": FIELD_GEOJSON, "area": 1.5, "cropType": "Rice"},
        ],
        "primaryCrop": "Rice",
        "soilType": "Clay",
        "sowingDate": "2025-06-15T00:00:00.000Z",
        "hasStorageCapacity": False,
        "irrigationMethod": "drip",
        "farmingExperience": 12,
        "preferredLanguage": "hi",
    }
    body.update(overrides)
    return body


# ---------- source payload factories ----------

def _ts(d: dt.datetime) -> int:
    return int(d.timestamp())


def make_weather(temp: float = 29.0) -> WeatherSnapshot:
    return WeatherSnapshot(
        temp=temp, humidity=70, wind_speed=11, description="scattered clouds",
        icon="03d", pressure=1008, cloud_cover=40, feels_like=temp + 2,
    )


def make_forecast(n: int, step_hours: int = 3) -> List[ForecastEntry]:
    now = dt.datetime.now(dt.timezone.utc)
    out = []
    for i in range(n):
        at = now + dt.timedelta(hours=1 + i * step_hours)
        out.append(ForecastEntry(
            date=at.isoformat(), timestamp=_ts(at), high=31, low=24, description="light rain", precipitation=0.4,
        ))
    return out


def make_ndvi(n: int) -> List[NDVIEntry]:
    now = dt.datetime.now(dt.timezone.utc)
    out = []
    for i in range(n):
        at = now - dt.timedelta(days=i * 3)
        out.append(NDVIEntry(
            date=at.date().isoformat(), timestamp=_ts(at), satellite="Sentinel-2",
            ndvi_mean=round(0.62 - i * 0.01, 4), ndvi_status="Good",
        ))
    return out


def make_soil(n: int) -> List[SoilEntry]:
    now = dt.datetime.now(dt.timezone.utc)
    return [
        SoilEntry(
            date=(now - dt.timedelta(days=i)).date().isoformat(),
            timestamp=_ts(now - dt.timedelta(days=i)),
            surface_temp=27.4, soil_temp=25.1, moisture=31.0, moisture_status="Good",
        )
        for i in range(n)
    ]


class FakeSources:
    """Scripted FarmDataSources: fixed answers, optional failures and stalls."""

    def __init__(
        self,
        weather: Optional[WeatherSnapshot] = None,
        forecast: Optional[List[ForecastEntry]] = None,
        ndvi: Optional[List[NDVIEntry]] = None,
        soil: Optional[List[SoilEntry]] = None,
        uv: Optional[float] = 3.2,
        location: FieldLocation = FieldLocation(lat=12.97, lon=77.59, polygon_id="poly-1"),
        fail: Iterable[str] = (),
        slow: Iterable[str] = (),
        delay: float = 0.0,
        locate_error: Optional[Exception] = None,
    ):
        self.weather = weather if weather is not None else make_weather()
        self.forecast_entries = forecast if forecast is not None else make_forecast(4)
        self.ndvi = ndvi if ndvi is not None else make_ndvi(5)
        self.soil = soil if soil is not None else make_soil(3)
        self.uv = uv
        self.location = location
        self.fail = set(fail)
        self.slow = set(slow)
        self.delay = delay
        self.locate_error = locate_error
        self.located_fields: List[Optional[str]] = []
        self.calls: List[str] = []
        self.history_days: Dict[str, List[int]] = {"ndvi": [], "soil": []}

    async def _answer(self, source: str, value: Any) -> Any:
        self.calls.append(source)
        if source in self.slow:
            await asyncio.sleep(self.delay)
        if source in self.fail:
            raise SourceError(f"{source} provider down", endpoint=f"/{source}", status_code=503)
        return value

    async def locate(self, record, field_id=None) -> FieldLocation:
        self.located_fields.append(field_id)
        if self.locate_error is not None:
            raise self.locate_error
        return self.location

    async def current_weather(self, lat, lon):
        return await self._answer("weather", self.weather)

    async def forecast(self, lat, lon):
        return await self._answer("forecast", self.forecast_entries)

    async def ndvi_history(self, polygon_id, days):
        self.history_days["ndvi"].append(days)
        return await self._answer("ndvi", self.ndvi)

    async def soil_history(self, polygon_id, days):
        self.history_days["soil"].append(days)
        return await self._answer("soil", self.soil)

    async def uv_index(self, polygon_id):
        return await self._answer("uv", self.uv)


class StubInsights:
    def __init__(self, text: Optional[str] = "Irrigate every 5 days until tillering."):
        self.text = text
        self.calls = 0

    async def crop_insights(self, profile, pincode=None, weather=None):
        self.calls += 1
        return {"text": self.text, "model": "stub"} if self.text else None


# ---------- fixtures ----------

@pytest.fixture(autouse=True)
def clean_cache():
    flush_all()
    yield
    flush_all()


@pytest.fixture
def store():
    s = ProfileStore()
    s.create(ComprehensiveProfileIn.model_validate(profile_payload()))
    return s


@pytest.fixture
def sources():
    return FakeSources()


@pytest.fixture
def aggregator(store, sources):
    return FarmerDataAggregator(store, sources, source_timeout=1.0, history_cap_days=365)


@pytest.fixture
def insights():
    return StubInsights()


@pytest.fixture
def mock_http(monkeypatch):
    """
    Install a MockTransport-backed client as the shared HTTP client.
    Tests register handlers by path: ``mock_http.routes["/weather"] = fn``.
    """
    class Router:
        def __init__(self):
            self.routes: Dict[str, Any] = {}
            self.requests: List[httpx.Request] = []

        def __call__(self, request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            path = request.url.path.replace("/agro/1.0", "")
            key = f"{request.method} {path}"
            handler = self.routes.get(key) or self.routes.get(path)
            if handler is None:
                return httpx.Response(404, json={"message": "not mocked"})
            return handler(request)

    router = Router()
    monkeypatch.setattr(settings, "AGROMONITORING_API_KEY", "test-key")
    set_http_client(httpx.AsyncClient(transport=httpx.MockTransport(router)))
    yield router
    set_http_client(None)


@pytest.fixture
def client(store, aggregator, insights):
    app.dependency_overrides[di.get_profile_store] = lambda: store
    app.dependency_overrides[di.get_aggregator] = lambda: aggregator
    app.dependency_overrides[di.get_insights_service] = lambda: insights
    yield TestClient(app)
    app.dependency_overrides.clear()
