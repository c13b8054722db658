"""
State and configuration types for a tracked fetch.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Tuple

from pydantic import BaseModel, Field, model_validator

from config.settings import settings


class RequestStatus(Enum):
    """Lifecycle of one tracked fetch."""
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class RequestState:
    """
    Observable state of one orchestrator.

    ``attempt`` counts retries of the current invocation, ``fetched`` turns
    true once any attempt has settled.
    """
    status: RequestStatus = RequestStatus.IDLE
    data: Any = None
    error: Optional[BaseException] = None
    attempt: int = 0
    fetched: bool = False

    @property
    def loading(self) -> bool:
        return self.status is RequestStatus.LOADING


class RequestOptions(BaseModel):
    """Per-orchestrator configuration, immutable once built."""

    manual: bool = False
    deps: Tuple[Any, ...] = ()
    initial_data: Any = None

    on_success: Optional[Callable[[Any], Any]] = None
    on_error: Optional[Callable[[BaseException], Any]] = None

    # Seconds to wait before every uncached attempt
    start_delay: float = Field(default=0.0, ge=0)

    cache_enabled: bool = False
    cache_key: Optional[str] = None
    cache_ttl: float = Field(default_factory=lambda: settings.cache_ttl_seconds, ge=0)

    auto_retry: bool = False
    max_retries: int = Field(default_factory=lambda: settings.max_retries, ge=0)
    retry_delay: Optional[Callable[[int], float]] = None

    class Config:
        frozen = True
        arbitrary_types_allowed = True

    @model_validator(mode="after")
    def _require_cache_key(self) -> "RequestOptions":
        if self.cache_enabled and not self.cache_key:
            raise ValueError("cache_key is required when cache_enabled is set")
        return self
