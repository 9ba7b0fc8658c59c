"""In-memory cache of zone results keyed by grid cell, radius and category."""

import logging
import threading
import time
from collections import OrderedDict
from typing import Callable, Optional, Tuple

from geodata.models import BusinessRecord

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, int, str]


class ZoneCache:
    """Thread-safe TTL cache with least-recently-used eviction.

    A repeated scan of the same cell and category within ``ttl_seconds`` is
    served from memory; older entries are treated as stale and refetched.
    """

    def __init__(
        self,
        ttl_seconds: float = 3600.0,
        max_entries: int = 2048,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[CacheKey, Tuple[float, Tuple[BusinessRecord, ...]]]" = OrderedDict()
        self._lock = threading.Lock()

    @staticmethod
    def make_key(cell: str, radius_meters: float, category: str) -> CacheKey:
        return cell, int(radius_meters), category

    def get(self, key: CacheKey) -> Optional[Tuple[BusinessRecord, ...]]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, records = entry
            if self._clock() - stored_at > self._ttl:
                del self._entries[key]
                logger.debug("Cache entry expired: %s", key)
                return None
            self._entries.move_to_end(key)
            return records

    def set(self, key: CacheKey, records) -> None:
        with self._lock:
            self._entries[key] = (self._clock(), tuple(records))
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Cache full, evicted %s", evicted)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
