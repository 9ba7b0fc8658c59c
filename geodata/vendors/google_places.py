"""Client for the Google Places API (New): nearby search and place details."""

import logging
from typing import Any, Dict, List

from geodata.core.errors import DecodingError
from geodata.core.http_client import HTTPClient

logger = logging.getLogger(__name__)
_BASE_URL = "https://places.googleapis.com/v1"

NEARBY_FIELD_MASK = (
    "places.id,places.displayName,places.types,places.primaryType,places.rating,places.userRatingCount"
)
DETAILS_FIELD_MASK = (
    "displayName,types,primaryType,rating,userRatingCount,priceLevel,priceRange,location,photos,"
    "regularOpeningHours,websiteUri,nationalPhoneNumber,internationalPhoneNumber,googleMapsUri,formattedAddress"
)


class GooglePlacesClient:
    def __init__(self, http: HTTPClient, api_key: str, max_results: int = 20, timeout: float = 30) -> None:
        self._http = http
        self._api_key = api_key
        self._max_results = max_results
        self._timeout = timeout

    def _headers(self, field_mask: str) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "X-Goog-Api-Key": self._api_key,
            "X-Goog-FieldMask": field_mask,
        }

    async def search_nearby(self, latitude: float, longitude: float, radius_meters: float) -> List[Dict[str, Any]]:
        body = {
            "maxResultCount": self._max_results,
            "locationRestriction": {
                "circle": {
                    "center": {"latitude": latitude, "longitude": longitude},
                    "radius": radius_meters,
                }
            },
            "languageCode": "es",
        }
        payload = await self._http.post_json(
            f"{_BASE_URL}/places:searchNearby",
            payload=body,
            headers=self._headers(NEARBY_FIELD_MASK),
            timeout=self._timeout,
        )
        if not isinstance(payload, dict):
            raise DecodingError("searchNearby returned a non-object payload")
        places = payload.get("places", [])
        if not isinstance(places, list):
            raise DecodingError("searchNearby 'places' is not a list")
        logger.debug("searchNearby at %.4f,%.4f r=%s returned %d places", latitude, longitude, radius_meters, len(places))
        return places

    async def place_details(self, place_id: str) -> Dict[str, Any]:
        payload = await self._http.get_json(
            f"{_BASE_URL}/places/{place_id}",
            headers=self._headers(DETAILS_FIELD_MASK),
            timeout=self._timeout,
        )
        if not isinstance(payload, dict):
            raise DecodingError(f"place details for {place_id} is not an object")
        return payload

    def photo_uri(self, photo_name: str) -> str:
        return f"{_BASE_URL}/{photo_name}/media?maxWidthPx=800&maxHeightPx=800&key={self._api_key}"
