"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

from geodata.core.errors import ConfigError
from geodata.models import BoundingBox

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    google_api_key: str = ""
    denue_api_token: str = ""
    output_dir: str = "data"
    google_zone_delay: float = 0.25
    denue_zone_delay: float = 0.1
    denue_batch_size: int = 3
    google_details_batch_size: int = 3
    google_max_results: int = 20
    google_timeout: float = 30.0
    denue_timeout: float = 10.0
    bbox: BoundingBox = BoundingBox(lat_min=19.2, lat_max=19.6, lng_min=-99.35, lng_max=-99.0)
    google_grid_step: float = 0.04
    denue_grid_step: float = 0.08
    cache_ttl_seconds: float = 3600.0
    cache_max_entries: int = 2048
    worker_port: int = 9000


def _get_number(name: str, default: str, cast):
    raw = os.getenv(name, default)
    try:
        return cast(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be numeric, got {raw!r}") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    google_api_key = os.getenv("GOOGLE_API_KEY", "").strip()
    denue_api_token = os.getenv("DENUE_API_TOKEN", "").strip()
    output_dir = os.getenv("OUTPUT_DIR", "data")

    bbox = BoundingBox(
        lat_min=_get_number("GRID_LAT_MIN", "19.2", float),
        lat_max=_get_number("GRID_LAT_MAX", "19.6", float),
        lng_min=_get_number("GRID_LNG_MIN", "-99.35", float),
        lng_max=_get_number("GRID_LNG_MAX", "-99.0", float),
    )

    if not google_api_key:
        logger.warning("GOOGLE_API_KEY is not configured; Google Places scans will fail.")
    if not denue_api_token:
        logger.warning("DENUE_API_TOKEN is not configured; INEGI/DENUE scans will fail.")

    return Settings(
        google_api_key=google_api_key,
        denue_api_token=denue_api_token,
        output_dir=output_dir,
        google_zone_delay=_get_number("GOOGLE_ZONE_DELAY_MS", "250", int) / 1000,
        denue_zone_delay=_get_number("DENUE_ZONE_DELAY_MS", "100", int) / 1000,
        denue_batch_size=_get_number("DENUE_BATCH_SIZE", "3", int),
        google_details_batch_size=_get_number("GOOGLE_DETAILS_BATCH_SIZE", "3", int),
        google_max_results=_get_number("GOOGLE_MAX_RESULTS", "20", int),
        google_timeout=_get_number("GOOGLE_TIMEOUT_SECONDS", "30", float),
        denue_timeout=_get_number("DENUE_TIMEOUT_SECONDS", "10", float),
        bbox=bbox,
        google_grid_step=_get_number("GOOGLE_GRID_STEP", "0.04", float),
        denue_grid_step=_get_number("DENUE_GRID_STEP", "0.08", float),
        cache_ttl_seconds=_get_number("CACHE_TTL_SECONDS", "3600", float),
        cache_max_entries=_get_number("CACHE_MAX_ENTRIES", "2048", int),
        worker_port=_get_number("WORKER_PORT", "9000", int),
    )
