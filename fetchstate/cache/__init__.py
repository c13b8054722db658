"""
Time-bounded result cache shared between orchestrators.
"""
from .core import CacheEntry
from .store import CacheStore, get_cache_store

__all__ = [
    # Core types
    "CacheEntry",
    # Store
    "CacheStore",
    "get_cache_store",
]
