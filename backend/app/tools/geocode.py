# backend/app/tools/geocode.py
import time
import logging
from typing import Optional, Dict, Any

from app.config import settings
from app.http import get_http_client
from app.utils.cache import get_json, set_json

logger = logging.getLogger(__name__)

def t(): return time.perf_counter()

USER_AGENT = "KisanMitr/1.0 (contact: support@kisanmitr.example)"


async def geocode_pincode(pincode: str) -> Optional[Dict[str, Any]]:
    """
    Indian 6-digit pincode -> {'lat', 'lng', 'formatted_address'} via Nominatim.
    Returns None when nothing matches.
    """
    if not pincode or len(pincode) != 6 or not pincode.isdigit():
        raise ValueError("Invalid pincode format. Please enter a 6-digit pincode")

    key = f"geo:pin:{pincode}"
    cached = await get_json(key, "geo")
    if cached:
        return cached

    start = t()
    params = {"postalcode": pincode, "countrycodes": "in", "format": "json", "limit": 1}
    headers = {"User-Agent": USER_AGENT, "Accept-Language": "en-IN"}
    client = get_http_client()
    r = await client.get(settings.NOMINATIM_URL, params=params, headers=headers)
    r.raise_for_status()
    arr = r.json()
    result = None
    if arr:
        result = {
            "lat": float(arr[0]["lat"]),
            "lng": float(arr[0]["lon"]),
            "formatted_address": arr[0].get("display_name", pincode),
        }
        await set_json(key, result, "geo")
    logger.info("⏱️  Geocoding pincode %s: %dms -> %s", pincode, round((t() - start) * 1000), result)
    return result
