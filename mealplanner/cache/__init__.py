"""In-memory caching of resolved calendar events."""

from .manager import DEFAULT_CACHE_TTL, EventCache
from .models import CacheEntry, CacheKey

__all__ = ["DEFAULT_CACHE_TTL", "CacheEntry", "CacheKey", "EventCache"]
