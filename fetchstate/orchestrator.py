"""
Lifecycle orchestration for one logical asynchronous fetch.

Each ``invoke()`` is tagged with a generation number. Whatever an attempt
produces (state, cache writes, callbacks) is applied only while its
generation is still the orchestrator's current one, so the most recently
started invocation wins regardless of which one resolves last.
"""
import asyncio
import inspect
import logging
from dataclasses import replace
from typing import Any, Awaitable, Callable, List, Optional, Union

from tenacity import RetryCallState

from .cache import CacheStore, get_cache_store
from .models import RequestOptions, RequestState, RequestStatus
from .retry import RetryPolicy, SleepFn, default_retry_delay

logger = logging.getLogger("fetchstate.orchestrator")

Operation = Callable[[], Union[Awaitable[Any], Any]]
Listener = Callable[[RequestState], Any]


class RequestOrchestrator:
    """
    State machine behind a single tracked fetch.

    States: idle -> loading -> success | error. Data from the last success
    stays visible while a new fetch is in flight.

    Usage:
        orchestrator = RequestOrchestrator(
            lambda: client.get_user(user_id),
            cache_enabled=True,
            cache_key=f"user-{user_id}",
        )
        user = await orchestrator.refetch()
    """

    def __init__(
        self,
        operation: Operation,
        options: Optional[RequestOptions] = None,
        *,
        cache_store: Optional[CacheStore] = None,
        sleep: SleepFn = asyncio.sleep,
        **option_overrides: Any,
    ):
        """
        Args:
            operation: Zero-argument callable returning the data or an awaitable of it
            options: Prebuilt options; mutually exclusive with keyword overrides
            cache_store: Store to share results through; the process-wide
                store is used when caching is enabled and none is given
            sleep: Awaitable sleep used for start delays and retry backoff
            **option_overrides: RequestOptions fields
        """
        if options is not None and option_overrides:
            raise TypeError("pass either options or keyword options, not both")
        self._options = options if options is not None else RequestOptions(**option_overrides)
        self._operation = operation
        self._sleep = sleep

        if cache_store is None and self._options.cache_enabled:
            cache_store = get_cache_store()
        self._cache = cache_store

        self._retry = RetryPolicy(
            auto_retry=self._options.auto_retry,
            max_retries=self._options.max_retries,
            delay=self._options.retry_delay or default_retry_delay,
        )

        self._generation = 0
        self._listeners: List[Listener] = []

        cached = self._read_cache()
        self._state = RequestState(
            status=RequestStatus.IDLE if self._options.manual else RequestStatus.LOADING,
            data=cached if cached is not None else self._options.initial_data,
        )

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def options(self) -> RequestOptions:
        return self._options

    @property
    def state(self) -> RequestState:
        """Snapshot of the current state."""
        return replace(self._state)

    @property
    def data(self) -> Any:
        return self._state.data

    @property
    def status(self) -> RequestStatus:
        return self._state.status

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def error(self) -> Optional[BaseException]:
        return self._state.error

    @property
    def is_fetched(self) -> bool:
        return self._state.fetched

    @property
    def attempt(self) -> int:
        return self._state.attempt

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def operation(self) -> Operation:
        return self._operation

    @operation.setter
    def operation(self, operation: Operation) -> None:
        # Read once per invoke(); in-flight invocations keep the old one
        self._operation = operation

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener called with a state snapshot after every change.

        Returns:
            Function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Control surface
    # ------------------------------------------------------------------

    async def invoke(self) -> Any:
        """
        Run the fetch: cache lookup, operation, retries.

        Returns:
            The cached or fetched data

        Raises:
            Exception: The operation's original error once retries are exhausted
        """
        self._generation += 1
        generation = self._generation
        operation = self._operation
        failures: List[Exception] = []
        previous_status = self._state.status

        self._update(status=RequestStatus.LOADING)
        logger.debug(f"Invoke #{generation} for {self._label(operation)}")

        retrying = self._retry.retrying(
            retry_on=lambda exc: isinstance(exc, Exception) and self._is_current(generation),
            before_sleep=lambda retry_state: self._before_retry(operation, generation, retry_state),
            sleep=self._sleep,
        )
        try:
            return await retrying(self._attempt, operation, generation, failures)
        except Exception as exc:
            if self._is_current(generation):
                self._update(status=RequestStatus.ERROR, fetched=True)
                logger.error(
                    f"Fetch failed for {self._label(operation)} after "
                    f"{len(failures)} attempt(s): {exc}"
                )
            raise
        except BaseException:
            # Cancelled: nothing is in flight any more, nothing failed either
            if self._is_current(generation):
                if previous_status is RequestStatus.LOADING:
                    previous_status = RequestStatus.IDLE
                self._update(status=previous_status)
                logger.debug(f"Invoke #{generation} cancelled")
            raise

    async def refetch(self) -> Any:
        """Same as invoke(); the name hosts wire to a manual trigger."""
        return await self.invoke()

    def set_data(self, value: Any) -> None:
        """
        Overwrite data directly.

        A non-None value also marks the request successful and is written
        through to the cache. Error and attempt are left alone.
        """
        if value is None:
            self._update(data=None)
            return
        self._write_cache(value)
        self._update(data=value, status=RequestStatus.SUCCESS)

    def reset(self) -> None:
        """
        Restore initial data and clear error, attempt and fetched flag.

        In-flight invocations are not cancelled but their results are ignored.
        """
        self._generation += 1
        self._update(
            data=self._options.initial_data,
            status=RequestStatus.IDLE,
            error=None,
            attempt=0,
            fetched=False,
        )

    # ------------------------------------------------------------------
    # Attempt loop
    # ------------------------------------------------------------------

    async def _attempt(
        self,
        operation: Operation,
        generation: int,
        failures: List[Exception],
    ) -> Any:
        """One pass: cache lookup, optional start delay, operation call."""
        if failures and not self._is_current(generation):
            # Superseded while backing off, stop without calling again
            raise failures[-1]

        cached = self._read_cache()
        if cached is not None:
            if self._is_current(generation):
                self._settle_success(cached)
            return cached

        if self._options.start_delay > 0:
            await self._sleep(self._options.start_delay)
            if not self._is_current(generation):
                # Superseded while waiting to start, skip the operation
                logger.debug(f"Skipping superseded invoke #{generation} after start delay")
                if failures:
                    raise failures[-1]
                return self._state.data

        try:
            result = operation()
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            failures.append(exc)
            if self._is_current(generation):
                self._update(error=exc)
                self._notify_callback(self._options.on_error, exc, "on_error")
            else:
                logger.debug(f"Discarding failure of superseded invoke #{generation}: {exc}")
            raise

        if self._is_current(generation):
            if result is not None:
                self._write_cache(result)
            self._settle_success(result)
        else:
            logger.debug(f"Discarding result of superseded invoke #{generation}")
        return result

    def _before_retry(self, operation: Operation, generation: int, retry_state: RetryCallState) -> None:
        if not self._is_current(generation):
            return
        failed_attempt = retry_state.attempt_number - 1
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        self._update(attempt=retry_state.attempt_number)
        logger.warning(
            f"Attempt {retry_state.attempt_number} failed for {self._label(operation)}, "
            f"retrying in {self._retry.delay_for(failed_attempt):.1f}s: {exc}"
        )

    def _settle_success(self, value: Any) -> None:
        self._update(
            data=value,
            status=RequestStatus.SUCCESS,
            attempt=0,
            fetched=True,
        )
        self._notify_callback(self._options.on_success, value, "on_success")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _read_cache(self) -> Any:
        if not self._options.cache_enabled or self._cache is None:
            return None
        return self._cache.get(self._options.cache_key, self._options.cache_ttl)

    def _write_cache(self, value: Any) -> None:
        if self._options.cache_enabled and self._cache is not None:
            self._cache.set(self._options.cache_key, value)

    def _update(self, **changes: Any) -> None:
        for name, value in changes.items():
            setattr(self._state, name, value)
        snapshot = self.state
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("State listener raised")

    def _notify_callback(self, callback: Optional[Callable[[Any], Any]], arg: Any, name: str) -> None:
        if callback is None:
            return
        try:
            callback(arg)
        except Exception:
            logger.exception(f"{name} callback raised")

    def _label(self, operation: Operation) -> str:
        if self._options.cache_key:
            return self._options.cache_key
        return getattr(operation, "__name__", repr(operation))

    def __repr__(self) -> str:
        return (
            f"RequestOrchestrator(status={self._state.status.value}, "
            f"generation={self._generation}, fetched={self._state.fetched})"
        )
