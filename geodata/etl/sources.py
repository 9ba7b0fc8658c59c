"""Source adapters: scan one zone against a provider and return unified records."""

import logging
from typing import Collection, Dict, List, Sequence

from geodata.core.fetcher import ZoneFetcher
from geodata.etl.categories import DENUE_SCAN_CATEGORIES, DENUE_SEARCH_KEYWORDS, keyword_categories
from geodata.etl.transform import accept_place, denue_items_to_records, google_details_to_record
from geodata.models import BusinessRecord, LocationType, Source, Zone, ZoneResult
from geodata.vendors.denue import DenueClient
from geodata.vendors.google_places import GooglePlacesClient

logger = logging.getLogger(__name__)


class GooglePlacesSource:
    """One nearby search per zone, then one details request per accepted place."""

    source = Source.GOOGLE
    credential = "GOOGLE_API_KEY"

    def __init__(self, client: GooglePlacesClient, fetcher: ZoneFetcher) -> None:
        self._client = client
        self._fetcher = fetcher

    async def scan_zone(self, zone: Zone, seen: Collection[str] = ()) -> ZoneResult:
        places = await self._client.search_nearby(zone.latitude, zone.longitude, zone.radius_meters)

        accepted: List[Dict] = []
        queued = set()
        for place in places:
            place_id = place.get("id")
            if not place_id or place_id in seen or place_id in queued:
                continue
            if accept_place(place):
                accepted.append(place)
                queued.add(place_id)

        logger.debug("%s: %d places, %d accepted", zone.name, len(places), len(accepted))
        outcomes = await self._fetcher.gather_batches(accepted, self._details, key=lambda place: place["id"])
        records = tuple(record for outcome in outcomes for record in outcome.records)
        return ZoneResult(zone=zone, records=records, outcomes=tuple(outcomes))

    async def _details(self, place: Dict) -> Sequence[BusinessRecord]:
        place_id = place["id"]
        details = await self._client.place_details(place_id)
        record = google_details_to_record(details, place_id, self._client.photo_uri)
        return [record] if record is not None else []


class DenueSource:
    """One DENUE search per Spanish keyword of every scanned category."""

    source = Source.INEGI
    credential = "DENUE_API_TOKEN"

    def __init__(
        self,
        client: DenueClient,
        fetcher: ZoneFetcher,
        categories: Sequence[LocationType] = DENUE_SCAN_CATEGORIES,
    ) -> None:
        self._client = client
        self._fetcher = fetcher
        self._keywords = keyword_categories(DENUE_SEARCH_KEYWORDS, categories)

    @property
    def keywords(self) -> List[str]:
        return list(self._keywords)

    async def scan_zone(self, zone: Zone, seen: Collection[str] = ()) -> ZoneResult:
        return await self._fetcher.fetch_zone(
            zone,
            self._keywords,
            lambda keyword: self._keywords[keyword].value,
            self._search,
        )

    async def _search(self, zone: Zone, keyword: str) -> Sequence[BusinessRecord]:
        raw_items = await self._client.search(keyword, zone.latitude, zone.longitude, zone.radius_meters)
        return denue_items_to_records(raw_items)
