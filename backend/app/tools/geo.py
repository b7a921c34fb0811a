# backend/app/tools/geo.py
import re
import json
import logging
from typing import Optional, List, Tuple

logger = logging.getLogger(__name__)

# "560001 (12.97,77.59)" as written by profile creation
_COORD_RE = re.compile(r"\((-?\d+(?:\.\d+)?),\s*(-?\d+(?:\.\d+)?)\)")


def format_location(pincode: str, lat: Optional[float] = None, lng: Optional[float] = None) -> str:
    if lat is None or lng is None:
        return pincode
    return f"{pincode} ({lat},{lng})"


def parse_location(location: Optional[str]) -> Optional[Tuple[float, float]]:
    """(lat, lon) embedded in a stored location string, if any."""
    if not location:
        return None
    m = _COORD_RE.search(location)
    if not m:
        return None
    return float(m.group(1)), float(m.group(2))


def polygon_points(geojson: str) -> List[Tuple[float, float]]:
    """
    Outer ring of a GeoJSON Polygon as (lat, lng) pairs.
    Accepts a bare geometry or a Feature wrapping one.
    """
    try:
        data = json.loads(geojson)
    except (TypeError, ValueError):
        return []
    if isinstance(data, dict) and data.get("type") == "Feature":
        data = data.get("geometry") or {}
    if not isinstance(data, dict) or data.get("type") != "Polygon":
        return []
    rings = data.get("coordinates")
    if not isinstance(rings, list) or not rings or not isinstance(rings[0], list):
        return []
    points = []
    for c in rings[0]:
        if not isinstance(c, (list, tuple)) or len(c) < 2:
            return []
        # GeoJSON is [lon, lat]
        lon, lat = c[0], c[1]
        if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in (lon, lat)):
            return []
        points.append((float(lat), float(lon)))
    return points


def distinct_vertices(geojson: str) -> int:
    """Number of distinct vertices in the outer ring (0 when unusable)."""
    return len(set(polygon_points(geojson)))


def polygon_centroid(geojson: str) -> Optional[Tuple[float, float]]:
    """Vertex average of the outer ring; good enough for a field-sized polygon."""
    pts = polygon_points(geojson)
    if not pts:
        return None
    # closed rings repeat the first vertex
    if len(pts) > 1 and pts[0] == pts[-1]:
        pts = pts[:-1]
    lat = sum(p[0] for p in pts) / len(pts)
    lon = sum(p[1] for p in pts) / len(pts)
    return lat, lon
