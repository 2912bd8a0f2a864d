"""Per-(source, window) cache of resolved event lists."""

import logging
import time
from collections.abc import Iterable
from datetime import datetime
from typing import Any, Callable, Optional

from ..timezone import ensure_utc
from .models import CacheEntry, CacheKey

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL = 15 * 60


class EventCache:
    """Process-wide mapping of cache keys to event lists with a fixed TTL.

    Keys match exactly: a window that merely overlaps a cached one is a miss.
    Writes replace the entry for a key (last write wins) and are never merged.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_CACHE_TTL,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        """Initialize event cache.

        Args:
            ttl_seconds: Age at which an entry becomes stale
            clock: Monotonic seconds source (``time.monotonic`` by default)
        """
        self.ttl_seconds = ttl_seconds
        self._clock = clock or time.monotonic
        self._entries: dict[CacheKey, CacheEntry] = {}
        self.hits = 0
        self.misses = 0

        logger.debug("Event cache initialized (ttl %ss)", ttl_seconds)

    @classmethod
    def from_settings(cls, settings: Any, clock: Optional[Callable[[], float]] = None) -> "EventCache":
        """Create a cache using the configured TTL."""
        return cls(getattr(settings, "cache_ttl", DEFAULT_CACHE_TTL), clock=clock)

    @staticmethod
    def make_key(source_id: str, start: datetime, end: datetime) -> CacheKey:
        """Build the key for a source and a query window."""
        return CacheKey(source_id, ensure_utc(start), ensure_utc(end))

    def get(self, key: CacheKey) -> Optional[list[Any]]:
        """Cached events for ``key`` if present and fresh, else None."""
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None

        if not entry.is_fresh(self._clock(), self.ttl_seconds):
            logger.debug("Cache entry for %s expired", key.source_id)
            del self._entries[key]
            self.misses += 1
            return None

        self.hits += 1
        return list(entry.events)

    def set(self, key: CacheKey, events: Iterable[Any]) -> CacheEntry:
        """Store (replacing any previous entry) the events for ``key``."""
        entry = CacheEntry(key=key, events=tuple(events), fetched_at=self._clock())
        self._entries[key] = entry
        return entry

    def clear(self) -> None:
        """Drop every entry regardless of key."""
        count = len(self._entries)
        self._entries.clear()
        logger.info("Cleared calendar event cache (%d entries)", count)

    def get_stats(self) -> dict[str, Any]:
        """Cache statistics for diagnostics."""
        return {
            "entries": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "ttl_seconds": self.ttl_seconds,
        }

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
