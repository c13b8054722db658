"""
Retry eligibility and backoff for failed fetch attempts.

The two pure functions below are the whole policy; ``RetryPolicy.retrying``
turns them into the tenacity controller that runs the orchestrator's
attempt loop.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception

from config.settings import settings

logger = logging.getLogger("fetchstate.retry")

SleepFn = Callable[[float], Awaitable[Any]]


def should_retry(attempt: int, max_retries: int, auto_retry: bool) -> bool:
    """True when another attempt may follow failed attempt number ``attempt`` (0-based)."""
    return auto_retry and attempt < max_retries


def default_retry_delay(attempt: int) -> float:
    """Capped exponential backoff: 1s, 2s, 4s, ... up to 30s."""
    return min(
        settings.retry_base_delay_seconds * 2 ** attempt,
        settings.retry_max_delay_seconds,
    )


@dataclass(frozen=True)
class RetryPolicy:
    """Retry configuration of one orchestrator."""
    auto_retry: bool = False
    max_retries: int = 3
    delay: Callable[[int], float] = field(default=default_retry_delay)

    def should_retry(self, attempt: int) -> bool:
        return should_retry(attempt, self.max_retries, self.auto_retry)

    def delay_for(self, attempt: int) -> float:
        return self.delay(attempt)

    def retrying(
        self,
        retry_on: Callable[[BaseException], bool],
        before_sleep: Optional[Callable[[RetryCallState], None]] = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> AsyncRetrying:
        """
        Build the attempt loop controller.

        Args:
            retry_on: Predicate deciding whether a failure is eligible at all
                (e.g. the invocation is still current)
            before_sleep: Hook run once a retry is decided, before backing off
            sleep: Awaitable sleep used for the backoff

        Returns:
            AsyncRetrying that re-raises the original exception when it stops
        """
        return AsyncRetrying(
            # tenacity counts attempts from 1, the policy from 0
            stop=lambda state: not self.should_retry(state.attempt_number - 1),
            wait=lambda state: self.delay_for(state.attempt_number - 1),
            retry=retry_if_exception(retry_on),
            before_sleep=before_sleep,
            sleep=sleep,
            reraise=True,
        )
