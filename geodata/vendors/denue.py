"""Client for the INEGI DENUE business directory search endpoint."""

import logging
from typing import Any, Dict, List
from urllib.parse import quote

from geodata.core.errors import DecodingError
from geodata.core.http_client import HTTPClient

logger = logging.getLogger(__name__)
_BASE_URL = "https://www.inegi.org.mx/app/api/denue/v1/consulta"


class DenueClient:
    def __init__(self, http: HTTPClient, token: str, timeout: float = 10) -> None:
        self._http = http
        self._token = token
        self._timeout = timeout

    def build_search_url(self, keyword: str, latitude: float, longitude: float, radius_meters: float) -> str:
        return (
            f"{_BASE_URL}/buscar/{quote(keyword, safe='')}/"
            f"{latitude},{longitude}/{int(radius_meters)}/{quote(self._token, safe='')}"
        )

    async def search(self, keyword: str, latitude: float, longitude: float, radius_meters: float) -> List[Dict[str, Any]]:
        url = self.build_search_url(keyword, latitude, longitude, radius_meters)
        shown = url.rsplit("/", 1)[0] + "/<token>"
        payload = await self._http.get_json(url, timeout=self._timeout, display_url=shown)
        if not isinstance(payload, list):
            raise DecodingError(f"DENUE search for {keyword!r} did not return a list")
        logger.debug("DENUE %r at %s,%s returned %d items", keyword, latitude, longitude, len(payload))
        return payload
