"""
In-memory keyed result store with per-reader TTL windows.
"""
import threading
import time
import logging
from typing import Dict, Optional, Callable, Any

from .core import CacheEntry

logger = logging.getLogger("fetchstate.cache")


class CacheStore:
    """
    Keyed store of computed results shared by every orchestrator it is
    handed to.

    - Last writer for a key wins, no versioning
    - Readers pass their own TTL; expired entries are evicted on read
    - Thread-safe via a single re-entrant lock

    Usage:
        store = CacheStore()
        store.set("user:1", {"name": "Ada"})
        store.get("user:1", ttl=60.0)
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """
        Initialize the store.

        Args:
            clock: Source of "now" in seconds; monotonic by default
        """
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self._clock = clock

        self._stats = {
            "hits": 0,
            "misses": 0,
            "expirations": 0,
            "writes": 0,
        }

    def now(self) -> float:
        """Current time according to the store clock."""
        return self._clock()

    def get(self, key: str, ttl: float) -> Optional[Any]:
        """
        Read a value if it is present and within ``ttl`` seconds of age.

        Args:
            key: Cache key
            ttl: Expiry window chosen by the caller

        Returns:
            The cached value, or None when absent or expired
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._stats["misses"] += 1
                logger.debug(f"CACHE MISS: {key}")
                return None

            now = self._clock()
            if entry.is_expired(ttl, now):
                del self._entries[key]
                self._stats["expirations"] += 1
                self._stats["misses"] += 1
                logger.debug(
                    f"CACHE EXPIRED: {key} [age={entry.age_seconds(now):.1f}s, ttl={ttl}s]"
                )
                return None

            self._stats["hits"] += 1
            logger.debug(f"CACHE HIT: {key} [age={entry.age_seconds(now):.1f}s]")
            return entry.value

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        """Raw entry lookup without TTL checks or stats."""
        with self._lock:
            return self._entries.get(key)

    def set(self, key: str, value: Any, now: Optional[float] = None) -> None:
        """
        Store a value, overwriting any previous entry for the key.

        Args:
            key: Cache key
            value: Value to store
            now: Timestamp to record; defaults to the store clock
        """
        stored_at = self._clock() if now is None else now
        with self._lock:
            self._entries[key] = CacheEntry(key=key, value=value, stored_at=stored_at)
            self._stats["writes"] += 1
        logger.debug(f"CACHE SET: {key}")

    def invalidate(self, key: str) -> bool:
        """
        Drop the entry for ``key`` whatever its age.

        Every orchestrator sharing the key misses on its next read, regardless
        of the TTL window it reads with.

        Returns:
            False when there was nothing stored under the key
        """
        with self._lock:
            entry = self._entries.pop(key, None)
        if entry is None:
            return False
        logger.info(f"CACHE INVALIDATE: {key}")
        return True

    def invalidate_pattern(self, pattern: str) -> int:
        """
        Drop every entry whose key contains ``pattern``.

        Useful for key families such as ``"user:"`` after a bulk change
        upstream; fresh and not-yet-evicted stale entries go alike.

        Returns:
            How many keys were dropped
        """
        with self._lock:
            matched = [key for key in self._entries if pattern in key]
            for key in matched:
                self._entries.pop(key)
        if matched:
            logger.info(f"CACHE INVALIDATE: {len(matched)} keys containing '{pattern}'")
        return len(matched)

    def clear(self) -> int:
        """
        Empty the store. Stats counters are kept.

        Returns:
            How many entries were held, expired ones included
        """
        with self._lock:
            dropped = len(self._entries)
            self._entries.clear()
        logger.info(f"CACHE CLEAR: dropped {dropped} entries")
        return dropped

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            total_requests = self._stats["hits"] + self._stats["misses"]
            hit_rate = (self._stats["hits"] / total_requests * 100) if total_requests > 0 else 0

            return {
                "entries": len(self._entries),
                "hits": self._stats["hits"],
                "misses": self._stats["misses"],
                "expirations": self._stats["expirations"],
                "writes": self._stats["writes"],
                "hit_rate_percent": round(hit_rate, 1),
            }


# Process-wide default store, used only when a host injects none
_cache_store: Optional[CacheStore] = None
_cache_store_lock = threading.Lock()


def get_cache_store() -> CacheStore:
    """Get or create the process-wide cache store."""
    global _cache_store
    with _cache_store_lock:
        if _cache_store is None:
            _cache_store = CacheStore()
        return _cache_store
