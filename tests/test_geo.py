"""Tests for location strings, GeoJSON helpers and pincode geocoding."""

import json

import httpx
import pytest

from app.tools.geo import distinct_vertices, format_location, parse_location, polygon_centroid, polygon_points
from app.tools.geocode import geocode_pincode

from conftest import FIELD_GEOJSON


class TestLocationStrings:

    def test_format_with_and_without_coordinates(self):
        assert format_location("560001", 12.97, 77.59) == "560001 (12.97,77.59)"
        assert format_location("560001") == "560001"

    @pytest.mark.parametrize("text,expected", [
        ("560001 (12.97,77.59)", (12.97, 77.59)),
        ("110001 (-33.5, 151.25)", (-33.5, 151.25)),
        ("560001", None),
        ("", None),
        (None, None),
    ])
    def test_parse(self, text, expected):
        assert parse_location(text) == expected


class TestPolygons:

    def test_points_are_lat_lng(self):
        pts = polygon_points(FIELD_GEOJSON)

        assert pts[0] == (12.97, 77.59)
        assert len(pts) == 5

    def test_feature_wrapper(self):
        feature = json.dumps({"type": "Feature", "geometry": json.loads(FIELD_GEOJSON)})

        assert polygon_points(feature) == polygon_points(FIELD_GEOJSON)

    @pytest.mark.parametrize("bad", [
        "not json",
        "{}",
        json.dumps({"type": "Point", "coordinates": [1, 2]}),
        None,
        json.dumps({"type": "Polygon", "coordinates": [[["a", "b"], [1, 2], [3, 4]]]}),
        json.dumps({"type": "Polygon", "coordinates": [[[None, None], [1, 2], [3, 4]]]}),
        json.dumps({"type": "Polygon", "coordinates": [[[1], [1, 2], [3, 4]]]}),
        json.dumps({"type": "Polygon", "coordinates": [[[True, False], [1, 2], [3, 4]]]}),
        json.dumps({"type": "Polygon", "coordinates": "[[1, 2]]"}),
    ])
    def test_unusable_input(self, bad):
        assert polygon_points(bad) == []
        assert polygon_centroid(bad) is None
        assert distinct_vertices(bad) == 0

    def test_distinct_vertices_ignore_closing_vertex(self):
        assert distinct_vertices(FIELD_GEOJSON) == 4
        two = json.dumps({"type": "Polygon", "coordinates": [[[1, 2], [3, 4], [1, 2]]]})
        assert distinct_vertices(two) == 2

    def test_centroid_ignores_closing_vertex(self):
        lat, lon = polygon_centroid(FIELD_GEOJSON)

        assert lat == pytest.approx(12.975)
        assert lon == pytest.approx(77.595)


class TestGeocode:

    async def test_rejects_bad_pincode(self):
        with pytest.raises(ValueError):
            await geocode_pincode("12ab56")

    async def test_resolves_and_caches(self, mock_http):
        mock_http.routes["/search"] = lambda r: httpx.Response(
            200, json=[{"lat": "28.6139", "lon": "77.2090", "display_name": "New Delhi"}]
        )

        first = await geocode_pincode("110001")
        second = await geocode_pincode("110001")

        assert first == {"lat": 28.6139, "lng": 77.209, "formatted_address": "New Delhi"}
        assert second == first
        assert len(mock_http.requests) == 1
        assert mock_http.requests[0].url.params["postalcode"] == "110001"

    async def test_no_match(self, mock_http):
        mock_http.routes["/search"] = lambda r: httpx.Response(200, json=[])

        assert await geocode_pincode("999999") is None
