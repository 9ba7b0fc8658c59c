"""DENUE businesses around a map position, cached per grid cell and category."""

import logging
from typing import Iterable, List

from geodata.core.aggregator import deduplicate
from geodata.core.fetcher import ZoneFetcher
from geodata.etl.categories import DENUE_LOOKUP_KEYWORDS, keyword_categories
from geodata.etl.transform import denue_items_to_records
from geodata.models import BusinessRecord, LocationType, Zone
from geodata.vendors.denue import DenueClient

logger = logging.getLogger(__name__)


class NearbyLookup:
    def __init__(self, client: DenueClient, fetcher: ZoneFetcher) -> None:
        self._client = client
        self._fetcher = fetcher

    async def fetch_businesses(
        self,
        categories: Iterable[LocationType],
        latitude: float,
        longitude: float,
        radius_meters: int = 2000,
    ) -> List[BusinessRecord]:
        keywords = keyword_categories(DENUE_LOOKUP_KEYWORDS, categories)
        if not keywords:
            return []

        zone = Zone(latitude, longitude, f"lookup {latitude:.4f},{longitude:.4f}", radius_meters)
        result = await self._fetcher.fetch_zone(
            zone,
            keywords,
            lambda keyword: keywords[keyword].value,
            self._search,
        )
        unique = deduplicate(result.records)
        logger.info(
            "Lookup at %.4f,%.4f: %d raw records, %d unique, %d failed requests",
            latitude,
            longitude,
            len(result.records),
            len(unique),
            result.failed_requests,
        )
        return unique

    async def _search(self, zone: Zone, keyword: str) -> List[BusinessRecord]:
        raw_items = await self._client.search(keyword, zone.latitude, zone.longitude, zone.radius_meters)
        return denue_items_to_records(raw_items)
