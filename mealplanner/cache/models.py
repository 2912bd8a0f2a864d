"""Data models for the in-memory event cache."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, NamedTuple


class CacheKey(NamedTuple):
    """Exact (source, window) a cached event list was fetched for."""

    source_id: str
    start: datetime
    end: datetime


@dataclass(frozen=True)
class CacheEntry:
    """Events resolved for one key, with the clock reading they were fetched at."""

    key: CacheKey
    events: tuple[Any, ...]
    fetched_at: float

    def age(self, now: float) -> float:
        """Seconds since the entry was fetched."""
        return now - self.fetched_at

    def is_fresh(self, now: float, ttl_seconds: float) -> bool:
        """Whether the entry is younger than ``ttl_seconds``."""
        return self.age(now) < ttl_seconds
