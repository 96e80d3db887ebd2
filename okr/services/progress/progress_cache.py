"""
Time-bounded memoization of computed key result progress.

Entries are keyed by (key result id, latest check-in timestamp). Each entry
also carries the fingerprint of the snapshot it was computed from, so a
posted snapshot with a changed definition or history misses. Recording a
check-in through a data source must still be followed by invalidate().
"""

import logging
import time
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Dict, Optional, Tuple

from okr.schemas.progress import ProgressResult

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, Optional[datetime]]


@dataclass
class CachedProgress:
    """Cached progress with the context it was computed for."""
    result: ProgressResult
    year: int
    as_of_day: date
    cached_at: float
    fingerprint: Optional[str] = None


class ProgressCache:
    """
    Process-local cache of ProgressResult records.

    An entry is only returned for the same year, as-of day and snapshot
    fingerprint it was computed for, and only within the TTL.
    """

    def __init__(
        self,
        ttl_seconds: int = 300,
        max_entries: int = 10_000,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize ProgressCache.

        Args:
            ttl_seconds: Entry lifetime in seconds (0 disables caching)
            max_entries: Oldest entries are evicted past this size
            clock: Time source, seconds since the epoch
        """
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: Dict[CacheKey, CachedProgress] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _is_valid(self, cached: CachedProgress) -> bool:
        return (self._clock() - cached.cached_at) < self._ttl

    def get(
        self,
        key_result_id: str,
        latest_check_in_at: Optional[datetime],
        year: int,
        as_of_day: date,
        fingerprint: Optional[str] = None,
    ) -> Optional[ProgressResult]:
        """Return a cached result, or None on a miss."""
        key = (key_result_id, latest_check_in_at)
        cached = self._entries.get(key)

        if cached is None:
            logger.debug(f"Progress cache miss for {key_result_id}")
            return None

        if not self._is_valid(cached):
            del self._entries[key]
            logger.debug(f"Progress cache entry expired for {key_result_id}")
            return None

        if cached.year != year or cached.as_of_day != as_of_day:
            logger.debug(f"Progress cache entry for {key_result_id} is for another day")
            return None

        if cached.fingerprint != fingerprint:
            logger.debug(f"Progress cache entry for {key_result_id} is for another snapshot")
            return None

        logger.debug(f"Progress cache hit for {key_result_id}")
        return cached.result

    def set(
        self,
        key_result_id: str,
        latest_check_in_at: Optional[datetime],
        year: int,
        as_of_day: date,
        result: ProgressResult,
        fingerprint: Optional[str] = None,
    ) -> None:
        """Store a computed result."""
        if self._ttl <= 0:
            return

        key = (key_result_id, latest_check_in_at)
        self._entries.pop(key, None)

        while len(self._entries) >= self._max_entries:
            oldest = next(iter(self._entries))
            del self._entries[oldest]

        self._entries[key] = CachedProgress(
            result=result,
            year=year,
            as_of_day=as_of_day,
            cached_at=self._clock(),
            fingerprint=fingerprint,
        )

    def invalidate(self, key_result_id: str) -> int:
        """
        Drop every entry of a key result.

        Returns:
            Number of entries removed
        """
        keys = [key for key in self._entries if key[0] == key_result_id]
        for key in keys:
            del self._entries[key]

        logger.info(f"Invalidated {len(keys)} cached progress entries for {key_result_id}")
        return len(keys)

    def clear(self) -> None:
        self._entries.clear()
