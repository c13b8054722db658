"""
Decides when an orchestrator should be invoked.

Hosts call ``update(deps)`` on every re-evaluation (render, poll, config
reload...). An invoke is scheduled on the first call and whenever the
dependency sequence changes under shallow positional comparison. Manual
orchestrators are only ever invoked through ``fire()``.
"""
import asyncio
import logging
from typing import Any, Optional, Sequence

from .orchestrator import RequestOrchestrator

logger = logging.getLogger("fetchstate.trigger")


def deps_changed(prev: Optional[Sequence[Any]], nxt: Sequence[Any]) -> bool:
    """Shallow comparison: length or any element at the same index differs."""
    if prev is None:
        return True
    if len(prev) != len(nxt):
        return True
    # Identity first so NaN and other non-reflexive values count as unchanged
    return any(a is not b and a != b for a, b in zip(prev, nxt))


class DependencyTrigger:
    """Schedules ``invoke()`` on attach and on dependency changes."""

    def __init__(self, orchestrator: RequestOrchestrator):
        self._orchestrator = orchestrator
        self._deps: Optional[tuple] = None
        self._tasks: "set[asyncio.Task]" = set()

    @property
    def deps(self) -> Optional[tuple]:
        """Dependencies seen on the last update, None before attach."""
        return self._deps

    @property
    def pending(self) -> int:
        """Number of scheduled invocations that have not finished."""
        return len(self._tasks)

    def update(self, deps: Optional[Sequence[Any]] = None) -> Optional["asyncio.Task"]:
        """
        Record the host's current dependencies.

        Args:
            deps: Dependency values; defaults to the orchestrator's configured deps

        Returns:
            The scheduled invoke task, or None when nothing was triggered
        """
        nxt = tuple(self._orchestrator.options.deps if deps is None else deps)
        changed = deps_changed(self._deps, nxt)
        self._deps = nxt

        if not changed or self._orchestrator.options.manual:
            return None

        logger.debug(f"Dependencies changed to {nxt!r}, invoking")
        return self._schedule()

    def fire(self) -> "asyncio.Task":
        """Explicit host trigger, honoured in manual and automatic mode alike."""
        return self._schedule()

    async def drain(self) -> None:
        """Wait for every scheduled invocation to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _schedule(self) -> "asyncio.Task":
        task = asyncio.get_running_loop().create_task(self._orchestrator.invoke())
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: "asyncio.Task") -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            # Already recorded in orchestrator state
            logger.debug(f"Triggered invoke failed: {exc}")
