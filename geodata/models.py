"""Core data models shared by the Google Places and DENUE scanners."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple

NOT_AVAILABLE = "N/A"


class LocationType(str, Enum):
    FOOD = "food"
    SHOP = "shop"
    CULTURAL = "cultural"
    STADIUM = "stadium"
    ENTERTAINMENT = "entertainment"
    SOUVENIRS = "souvenirs"
    OTHERS = "others"


class Source(str, Enum):
    GOOGLE = "GOOGLE"
    INEGI = "INEGI"


@dataclass(frozen=True, slots=True)
class BoundingBox:
    lat_min: float
    lat_max: float
    lng_min: float
    lng_max: float


@dataclass(frozen=True, slots=True)
class Zone:
    """Circle scanned in one pass: a center plus a search radius in meters."""

    latitude: float
    longitude: float
    name: str
    radius_meters: float = 3000.0


@dataclass(frozen=True, slots=True)
class BusinessRecord:
    """Unified row written to the CSV datasets, whatever the provider.

    Field order is the CSV column order. ``rating`` and ``user_ratings_total``
    are ``None`` when the provider has no value; the codec renders them as
    ``N/A``.
    """

    source: str
    primary_type: str
    name: str
    types: str = ""
    rating: Optional[float] = None
    user_ratings_total: Optional[int] = None
    price_level: str = ""
    price_range_min: str = ""
    price_range_max: str = ""
    latitude: float = 0.0
    longitude: float = 0.0
    photo_uri: str = ""
    opening_hours: str = ""
    website: str = ""
    phone_national: str = ""
    phone_international: str = ""
    google_maps_uri: str = ""
    formatted_address: str = ""
    business_category: str = ""
    external_id: str = ""


@dataclass(slots=True)
class FetchOutcome:
    """Result of one request inside a fan-out: success, empty or error."""

    key: str
    records: Tuple[BusinessRecord, ...] = ()
    error: Optional[BaseException] = field(default=None, repr=False)

    @property
    def status(self) -> str:
        if self.error is not None:
            return "error"
        return "success" if self.records else "empty"


@dataclass(slots=True)
class ZoneResult:
    zone: Zone
    records: Tuple[BusinessRecord, ...] = ()
    outcomes: Tuple[FetchOutcome, ...] = ()

    @property
    def failed_requests(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == "error")


@dataclass(slots=True)
class ScanProgress:
    zones_total: int
    zones_completed: int = 0
    unique_record_count: int = 0
    elapsed_seconds: float = 0.0
    failed_requests: int = 0

    @property
    def percent(self) -> float:
        if not self.zones_total:
            return 100.0
        return self.zones_completed / self.zones_total * 100

    def message(self, index: int, zone_name: str) -> str:
        """Progress line shown to the UI before zone ``index`` (1-based) is scanned."""
        pct = index / self.zones_total * 100 if self.zones_total else 100.0
        return f"[{index}/{self.zones_total}] [{pct:.1f}%] {zone_name}"


class ScanState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(slots=True)
class ScanOutcome:
    state: ScanState
    message: str
    path: Optional[Path] = None
    progress: Optional[ScanProgress] = None
