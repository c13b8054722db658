"""
Core cache data structures.
"""
from dataclasses import dataclass
from typing import Any


@dataclass
class CacheEntry:
    """
    A cached result with the monotonic timestamp it was stored at.

    Expiry is not a property of the entry: every reader brings its own
    TTL window, so two orchestrators sharing a key may disagree on freshness.
    """
    key: str
    value: Any
    stored_at: float

    def age_seconds(self, now: float) -> float:
        """Seconds since the entry was stored."""
        return now - self.stored_at

    def is_expired(self, ttl_seconds: float, now: float) -> bool:
        """An entry is still readable at exactly ``ttl_seconds`` of age."""
        return self.age_seconds(now) > ttl_seconds
