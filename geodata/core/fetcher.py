"""Bounded-concurrency fan-out of per-zone requests."""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from geodata.core.cache import ZoneCache
from geodata.core.zones import grid_key
from geodata.models import BusinessRecord, FetchOutcome, Zone, ZoneResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

KeywordFetch = Callable[[Zone, str], Awaitable[Sequence[BusinessRecord]]]


class ZoneFetcher:
    """Runs requests in fixed-size batches: fan out, join, continue.

    A failing request never aborts its batch; it is reported as an ``error``
    outcome and counts as zero records.
    """

    def __init__(self, batch_size: int = 3, cache: Optional[ZoneCache] = None) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.batch_size = batch_size
        self.cache = cache

    async def gather_batches(
        self,
        items: Sequence[T],
        task: Callable[[T], Awaitable[Sequence[BusinessRecord]]],
        key: Callable[[T], str] = str,
    ) -> List[FetchOutcome]:
        outcomes: List[FetchOutcome] = []
        for start in range(0, len(items), self.batch_size):
            batch = items[start:start + self.batch_size]
            outcomes.extend(await asyncio.gather(*(self._run(item, task, key(item)) for item in batch)))
        return outcomes

    @staticmethod
    async def _run(item, task, item_key: str) -> FetchOutcome:
        try:
            records = await task(item)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Request %r failed: %s", item_key, exc)
            return FetchOutcome(key=item_key, error=exc)
        return FetchOutcome(key=item_key, records=tuple(records))

    async def fetch_zone(
        self,
        zone: Zone,
        keywords: Iterable[str],
        category_of: Callable[[str], str],
        fetch_keyword: KeywordFetch,
    ) -> ZoneResult:
        """Issue one request per keyword around ``zone``, reusing cached categories."""
        keywords = list(keywords)
        cell = grid_key(zone.latitude, zone.longitude)

        by_category: Dict[str, List[str]] = {}
        for keyword in keywords:
            by_category.setdefault(category_of(keyword), []).append(keyword)

        records: List[BusinessRecord] = []
        pending: List[str] = []
        for category, category_keywords in by_category.items():
            cached = self._cache_get(cell, zone, category)
            if cached is not None:
                logger.debug("Cache hit for %s/%s in %s", cell, category, zone.name)
                records.extend(cached)
            else:
                pending.extend(category_keywords)

        outcomes = await self.gather_batches(pending, lambda keyword: fetch_keyword(zone, keyword))

        fetched: Dict[str, List[BusinessRecord]] = {}
        failed_categories = set()
        for outcome in outcomes:
            category = category_of(outcome.key)
            if outcome.error is not None:
                failed_categories.add(category)
            fetched.setdefault(category, []).extend(outcome.records)
            records.extend(outcome.records)

        if self.cache is not None:
            for category in {category_of(keyword) for keyword in pending} - failed_categories:
                self.cache.set(ZoneCache.make_key(cell, zone.radius_meters, category), fetched.get(category, []))

        return ZoneResult(zone=zone, records=tuple(records), outcomes=tuple(outcomes))

    def _cache_get(self, cell: str, zone: Zone, category: str):
        if self.cache is None:
            return None
        return self.cache.get(ZoneCache.make_key(cell, zone.radius_meters, category))
