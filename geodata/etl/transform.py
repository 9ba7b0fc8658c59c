"""Utilities for turning Google Places and DENUE payloads into business records."""

import logging
import math
import string
from typing import Any, Callable, Dict, Iterable, List, Optional

from geodata.etl.categories import (
    DENUE_CATEGORY_MATCHER,
    IGNORED_PLACE_TYPES,
    RELEVANT_PLACE_TYPES,
    STADIUM_NAME_KEYWORDS,
    CategoryMatcher,
)
from geodata.models import NOT_AVAILABLE, BusinessRecord, LocationType, Source

logger = logging.getLogger(__name__)

MIN_RATING = 2.0
MIN_RATINGS_TOTAL = 20

_STADIUM = LocationType.STADIUM.value


def _is_transport(primary_type: str) -> bool:
    return "station" in primary_type or "airport" in primary_type


def should_include_place(primary_type: str, types: Iterable[str]) -> bool:
    types = list(types or [])
    if primary_type in IGNORED_PLACE_TYPES:
        return False
    if primary_type == _STADIUM or _STADIUM in types:
        return True
    if primary_type in RELEVANT_PLACE_TYPES:
        return True
    return any(t in RELEVANT_PLACE_TYPES and t not in IGNORED_PLACE_TYPES for t in types)


def passes_relevance_floor(place: Dict[str, Any]) -> bool:
    """Stadiums and transit always pass; anything else needs a minimum of reputation."""
    primary_type = place.get("primaryType") or ""
    types = place.get("types") or []
    if primary_type == _STADIUM or _STADIUM in types or _is_transport(primary_type):
        return True
    rating = _safe_float(place.get("rating")) or 0.0
    ratings_total = _safe_int(place.get("userRatingCount")) or 0
    return rating >= MIN_RATING or ratings_total >= MIN_RATINGS_TOTAL


def accept_place(place: Dict[str, Any]) -> bool:
    primary_type = place.get("primaryType")
    if not primary_type:
        return False
    return should_include_place(primary_type, place.get("types") or []) and passes_relevance_floor(place)


def correct_primary_type(primary_type: str, types: Iterable[str], name: str) -> str:
    """Relabel stadiums that Google files under another category.

    Upstream categories are noisy ("Estadio Azteca" comes back as a tourist
    attraction), so a stadium type or a stadium word in the name overrides them.
    """
    if primary_type == _STADIUM:
        return primary_type
    if _STADIUM in (types or []):
        return _STADIUM
    lowered = (name or "").lower()
    if any(keyword in lowered for keyword in STADIUM_NAME_KEYWORDS):
        return _STADIUM
    return primary_type


def google_details_to_record(
    details: Dict[str, Any],
    place_id: str,
    photo_uri_builder: Optional[Callable[[str], str]] = None,
) -> Optional[BusinessRecord]:
    location = details.get("location") or {}
    latitude = _safe_float(location.get("latitude"))
    longitude = _safe_float(location.get("longitude"))
    if latitude is None or longitude is None:
        logger.debug("Skipping place %s without location", place_id)
        return None

    name = (details.get("displayName") or {}).get("text") or "Sin nombre"
    types = [t for t in details.get("types") or [] if isinstance(t, str)]
    primary_type = details.get("primaryType") or (types[0] if types else "unknown")
    primary_type = correct_primary_type(primary_type, types, name)

    price_range = details.get("priceRange") or {}
    price_min = (price_range.get("startPrice") or {}).get("units") or ""
    price_max = (price_range.get("endPrice") or {}).get("units") or ""

    photo_uri = ""
    photos = details.get("photos") or []
    if photos and photo_uri_builder is not None and photos[0].get("name"):
        photo_uri = photo_uri_builder(photos[0]["name"])

    weekday_descriptions = (details.get("regularOpeningHours") or {}).get("weekdayDescriptions") or []

    return BusinessRecord(
        source=Source.GOOGLE.value,
        primary_type=primary_type,
        name=name,
        types="|".join(types),
        rating=_safe_float(details.get("rating")),
        user_ratings_total=_safe_int(details.get("userRatingCount")),
        price_level=details.get("priceLevel") or "",
        price_range_min=str(price_min),
        price_range_max=str(price_max),
        latitude=latitude,
        longitude=longitude,
        photo_uri=photo_uri,
        opening_hours="; ".join(weekday_descriptions),
        website=details.get("websiteUri") or "",
        phone_national=details.get("nationalPhoneNumber") or "",
        phone_international=details.get("internationalPhoneNumber") or "",
        google_maps_uri=details.get("googleMapsUri") or "",
        formatted_address=details.get("formattedAddress") or "",
        business_category=primary_type,
        external_id=place_id,
    )


def denue_to_record(raw: Dict[str, Any], matcher: CategoryMatcher = DENUE_CATEGORY_MATCHER) -> Optional[BusinessRecord]:
    business_id = _strip_or_none(raw.get("Id"))
    latitude = _parse_coordinate(raw.get("Latitud"))
    longitude = _parse_coordinate(raw.get("Longitud"))
    if not business_id or latitude is None or longitude is None:
        logger.debug("Skipping DENUE item %r due to missing id or invalid coordinates", raw.get("Nombre"))
        return None

    category = _strip_or_none(raw.get("Clase_actividad")) or ""
    return BusinessRecord(
        source=Source.INEGI.value,
        primary_type=matcher.match(category).value,
        name=string.capwords((raw.get("Nombre") or "").lower()),
        types=category,
        rating=None,
        user_ratings_total=None,
        price_level=NOT_AVAILABLE,
        latitude=latitude,
        longitude=longitude,
        opening_hours=NOT_AVAILABLE,
        website=_strip_or_none(raw.get("Sitio_internet")) or "",
        phone_national=_strip_or_none(raw.get("Telefono")) or "",
        formatted_address=_strip_or_none(raw.get("Ubicacion")) or "",
        business_category=category,
        external_id=business_id,
    )


def denue_items_to_records(raw_items: Iterable[Any], matcher: CategoryMatcher = DENUE_CATEGORY_MATCHER) -> List[BusinessRecord]:
    records = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            continue
        record = denue_to_record(raw, matcher)
        if record is not None:
            records.append(record)
    return records


def _parse_coordinate(value: Any) -> Optional[float]:
    parsed = _safe_float(value.strip() if isinstance(value, str) else value)
    if parsed is None or not math.isfinite(parsed):
        return None
    return parsed


def _strip_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    value_str = str(value).strip()
    return value_str or None


def _safe_float(value: Any) -> Optional[float]:
    try:
        if value is None or value == "":
            return None
        return float(value)
    except (TypeError, ValueError):
        return None


def _safe_int(value: Any) -> Optional[int]:
    try:
        if value is None or value == "":
            return None
        return int(value)
    except (TypeError, ValueError):
        return None
