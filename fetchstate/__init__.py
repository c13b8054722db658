"""
Async fetch orchestration with lifecycle state, TTL caching and retries.
"""
from .cache import CacheEntry, CacheStore, get_cache_store
from .log import configure_logging
from .models import RequestOptions, RequestState, RequestStatus
from .orchestrator import RequestOrchestrator
from .retry import RetryPolicy, default_retry_delay, should_retry
from .trigger import DependencyTrigger, deps_changed

__all__ = [
    # Cache
    "CacheEntry",
    "CacheStore",
    "get_cache_store",
    # Retry
    "RetryPolicy",
    "default_retry_delay",
    "should_retry",
    # Orchestration
    "RequestOptions",
    "RequestState",
    "RequestStatus",
    "RequestOrchestrator",
    # Triggering
    "DependencyTrigger",
    "deps_changed",
    # Logging
    "configure_logging",
]
