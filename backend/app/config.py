# backend/app/config.py
import os
from dotenv import load_dotenv
from pathlib import Path

dotenv_path = Path(__file__).parents[2] / '.env'
load_dotenv(dotenv_path)


class Settings:
    # --- Agromonitoring (weather / NDVI / soil / UVI) ---
    AGROMONITORING_API_KEY: str = os.getenv("AGROMONITORING_API_KEY", "")
    AGROMONITORING_BASE_URL: str = os.getenv("AGROMONITORING_BASE_URL", "https://api.agromonitoring.com/agro/1.0")

    # --- Geocoding (pincode -> lat/lng) ---
    NOMINATIM_URL: str = os.getenv("NOMINATIM_URL", "https://nominatim.openstreetmap.org/search")

    # --- OpenAI (crop insights, optional) ---
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    OPENAI_MODEL: str   = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

    # --- Aggregation knobs ---
    SOURCE_TIMEOUT_SEC: float = float(os.getenv("SOURCE_TIMEOUT_SEC", "10"))
    MAX_HISTORY_DAYS: int     = int(os.getenv("MAX_HISTORY_DAYS", "365"))
    DEBUG_HISTORY_DAYS: int   = 7
    FORECAST_MAX_ENTRIES: int = 7

    # Satellite mock
    SATELLITE_MOCK_DELAY_SEC: float = float(os.getenv("SATELLITE_MOCK_DELAY_SEC", "1.5"))
    SATELLITE_MOCK_WEEKS: int = 12

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
