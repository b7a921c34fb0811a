"""
Tests for the Agromonitoring-backed data sources: coordinate resolution,
polygon lookup/registration and per-source conversion.
"""

import json

import httpx
import pytest

from core.adapters import agromonitoring as adapter_module
from core.adapters.agromonitoring import AgromonitoringSources
from core.models.domain import FarmField, FarmRecord, ProfileRecord, UserRecord
from core.models.io import ComprehensiveProfileIn
from core.services.profiles import ProfileStore

from conftest import FIELD_GEOJSON, profile_payload

T0 = 1718409600


@pytest.fixture
def adapter(store):
    return AgromonitoringSources(store)


def two_field_record(location="560001 (12.97,77.59)", first_outline=FIELD_GEOJSON):
    """A stored-shape record built directly, skipping payload validation."""
    return ProfileRecord(
        user=UserRecord(id="farmer-9", name="Sita Devi", location=location),
        farms=[FarmRecord(id="farm-9", name="Home", fields=[
            FarmField(id="field-1", name="East", coordinates=first_outline, area=1, polygon_id="poly-1"),
            FarmField(id="field-2", name="West", coordinates=FIELD_GEOJSON, area=2, polygon_id="poly-2"),
        ])],
    )


class TestLocate:

    async def test_coordinates_from_location_and_new_polygon(self, store, adapter, mock_http):
        mock_http.routes["GET /polygons"] = lambda r: httpx.Response(200, json=[])
        mock_http.routes["POST /polygons"] = lambda r: httpx.Response(201, json={"id": "poly-new"})

        loc = await adapter.locate(store.get("farmer-42"))

        assert (loc.lat, loc.lon) == (12.97, 77.59)
        assert loc.polygon_id == "poly-new"
        assert store.get("farmer-42").first_field().polygon_id == "poly-new"

        # the remembered polygon skips the provider next time
        seen = len(mock_http.requests)
        again = await adapter.locate(store.get("farmer-42"))
        assert again.polygon_id == "poly-new"
        assert len(mock_http.requests) == seen

    async def test_matches_existing_polygon_by_name(self, store, adapter, mock_http):
        mock_http.routes["GET /polygons"] = lambda r: httpx.Response(200, json=[
            {"id": "poly-other", "name": "Someone Else"},
            {"id": "poly-old", "name": "Ramesh Kumar - North Plot"},
        ])

        loc = await adapter.locate(store.get("farmer-42"))

        assert loc.polygon_id == "poly-old"
        assert not [r for r in mock_http.requests if r.method == "POST"]

    async def test_polygon_failure_keeps_coordinates(self, store, adapter, mock_http):
        mock_http.routes["GET /polygons"] = lambda r: httpx.Response(401, json={})

        loc = await adapter.locate(store.get("farmer-42"))

        assert loc.has_coordinates
        assert loc.polygon_id is None

    async def test_field_centre_when_location_has_no_coordinates(self, mock_http):
        store = ProfileStore()
        body = profile_payload(user_id="farmer-5")
        body.pop("location")
        store.create(ComprehensiveProfileIn.model_validate(body))
        mock_http.routes["GET /polygons"] = lambda r: httpx.Response(200, json=[{"id": "p", "name": "North Plot"}])

        loc = await AgromonitoringSources(store).locate(store.get("farmer-5"))

        assert loc.lat == pytest.approx(12.975)
        assert loc.lon == pytest.approx(77.595)


class TestFieldSelection:

    async def test_selected_field_polygon(self, adapter, mock_http):
        record = two_field_record()

        assert (await adapter.locate(record, "field-2")).polygon_id == "poly-2"
        assert (await adapter.locate(record)).polygon_id == "poly-1"
        assert mock_http.requests == []

    async def test_unknown_field_falls_back_to_first(self, adapter, mock_http, caplog):
        loc = await adapter.locate(two_field_record(), "field-404")

        assert loc.polygon_id == "poly-1"
        assert "field-404" in caplog.text

    async def test_selected_field_centre(self, adapter, mock_http):
        west = json.dumps({"type": "Polygon", "coordinates": [[[78.0, 13.0], [78.2, 13.0], [78.2, 13.2], [78.0, 13.0]]]})
        record = two_field_record(location="560001")
        record.farms[0].fields[1].coordinates = west

        loc = await adapter.locate(record, "field-2")

        assert loc.lat == pytest.approx(13.0667, abs=1e-3)
        assert loc.lon == pytest.approx(78.1333, abs=1e-3)


class TestLocateNeverRaises:

    def _unreadable(self):
        record = two_field_record(
            location="560001",
            first_outline='{"type":"Polygon","coordinates":[[[null,null],[1,2],[3,4]]]}',
        )
        record.farms[0].fields[0].polygon_id = None
        return record

    async def test_unreadable_outline(self, adapter, mock_http):
        mock_http.routes["GET /polygons"] = lambda r: httpx.Response(401, json={})

        loc = await adapter.locate(self._unreadable())

        assert not loc.has_coordinates
        assert loc.polygon_id is None

    async def test_centroid_error_is_contained(self, adapter, mock_http, monkeypatch, caplog):
        def broken(geojson):
            raise ValueError("could not convert string to float: 'a'")
        monkeypatch.setattr(adapter_module, "polygon_centroid", broken)
        mock_http.routes["GET /polygons"] = lambda r: httpx.Response(401, json={})

        loc = await adapter.locate(self._unreadable())

        assert not loc.has_coordinates
        assert loc.polygon_id is None
        assert "could not convert" in caplog.text


class TestSourceCalls:

    async def test_weather(self, adapter, mock_http):
        mock_http.routes["/weather"] = lambda r: httpx.Response(200, json={
            "main": {"temp": 24.4, "humidity": 90, "pressure": 1001}, "wind": {"speed": 1.0},
            "weather": [{"description": "mist", "icon": "50n"}],
        })

        snap = await adapter.current_weather(12.97, 77.59)

        assert snap.temp == 24
        assert snap.wind_speed == 4

    async def test_forecast_capped(self, adapter, mock_http):
        mock_http.routes["/weather/forecast"] = lambda r: httpx.Response(200, json=[
            {"dt": T0 + i * 10800, "main": {"temp": 25}} for i in range(40)
        ])

        out = await adapter.forecast(12.97, 77.59)

        assert len(out) == 7
        assert out[0].timestamp == T0

    async def test_uv_rounded(self, adapter, mock_http):
        mock_http.routes["/uvi"] = lambda r: httpx.Response(200, json={"uvi": 3.249})

        assert await adapter.uv_index("poly-1") == 3.2

    async def test_uv_missing_value(self, adapter, mock_http):
        mock_http.routes["/uvi"] = lambda r: httpx.Response(200, json={})

        assert await adapter.uv_index("poly-1") is None
