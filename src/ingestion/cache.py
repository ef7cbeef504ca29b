"""
Time-bounded cache for month queries.

Entries are keyed by ``route|year|month`` and expire after a fixed TTL.
Expired entries behave as absent; the next put overwrites them.
"""

import threading
import time
from typing import Callable, NamedTuple

from src.utils import logger
from src.ingestion.config import settings
from src.ingestion.db.models import FlightSchedule


class CacheEntry(NamedTuple):
    data: list[FlightSchedule]
    stored_at: float


def cache_key(route: str, year: int, month: int) -> str:
    return f"{route}|{year}|{month}"


class QueryCache:
    """
    Thread-safe TTL cache of month query results.

    The clock is injectable so expiry can be tested without sleeping.
    """

    def __init__(
        self,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] | None = None,
    ):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.cache.ttl_seconds
        self._clock = clock or time.monotonic
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, route: str, year: int, month: int) -> list[FlightSchedule] | None:
        """Return the cached list, or None on a miss or an expired entry."""
        key = cache_key(route, year, month)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.stored_at >= self.ttl_seconds:
                del self._entries[key]
                logger.debug(f"Cache entry expired: {key}")
                return None
            return list(entry.data)

    def put(self, route: str, year: int, month: int, data: list[FlightSchedule]) -> None:
        key = cache_key(route, year, month)
        with self._lock:
            self._entries[key] = CacheEntry(data=list(data), stored_at=self._clock())

    def invalidate(self, route: str | None = None) -> int:
        """
        Drop entries for one route, or every entry when route is None.

        Returns:
            Number of entries dropped
        """
        with self._lock:
            if route is None:
                dropped = len(self._entries)
                self._entries.clear()
            else:
                prefix = f"{route}|"
                keys = [key for key in self._entries if key.startswith(prefix)]
                for key in keys:
                    del self._entries[key]
                dropped = len(keys)

        if dropped:
            logger.debug(f"Invalidated {dropped} cache entries for {route or 'all routes'}")
        return dropped

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["QueryCache", "CacheEntry", "cache_key"]
