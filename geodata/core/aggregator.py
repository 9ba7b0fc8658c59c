"""Deduplication of business records by provider-assigned ID."""

import logging
from typing import Iterable, List, Set

from geodata.models import BusinessRecord, ZoneResult

logger = logging.getLogger(__name__)


def deduplicate(records: Iterable[BusinessRecord]) -> List[BusinessRecord]:
    """Drop repeated ``external_id`` values; the first record seen wins."""
    seen: Set[str] = set()
    unique: List[BusinessRecord] = []
    for record in records:
        if record.external_id in seen:
            continue
        seen.add(record.external_id)
        unique.append(record)
    return unique


class Aggregator:
    """Accumulates records across the zones of one scan.

    Owned by a single scan; it holds no lock.
    """

    def __init__(self) -> None:
        self._seen: Set[str] = set()
        self._records: List[BusinessRecord] = []
        self.failed_requests = 0

    def add(self, records: Iterable[BusinessRecord]) -> int:
        added = 0
        for record in records:
            if record.external_id in self._seen:
                continue
            self._seen.add(record.external_id)
            self._records.append(record)
            added += 1
        return added

    def add_zone(self, result: ZoneResult) -> int:
        self.failed_requests += result.failed_requests
        added = self.add(result.records)
        logger.debug("%s: %d records, %d new, %d unique total", result.zone.name, len(result.records), added, len(self))
        return added

    @property
    def records(self) -> List[BusinessRecord]:
        return list(self._records)

    def __contains__(self, external_id: object) -> bool:
        return external_id in self._seen

    def __len__(self) -> int:
        return len(self._records)
