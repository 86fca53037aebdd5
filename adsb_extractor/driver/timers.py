"""Repeating timers owned by the scheduler.

A timer is armed when the scheduler enters Running and cancelled on every
transition back to Stopped. Cancelling only prevents the next tick: a tick
whose callback is already executing runs to completion, even when the
callback itself is what cancels the timer (auto-stop on the extraction
limit).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

logger = logging.getLogger(__name__)

TickCallback = Callable[[], Awaitable[None]]


class IntervalTimer(Protocol):
    """A cancellable repeating timer."""

    @property
    def armed(self) -> bool: ...

    def arm(self) -> None:
        """Start firing the callback every interval."""
        ...

    def cancel(self) -> None:
        """Stop firing. Idempotent."""
        ...


TimerFactory = Callable[[float, TickCallback], IntervalTimer]


class AsyncioIntervalTimer:
    """IntervalTimer running as a single asyncio task.

    The task sleeps for the interval, awaits the callback, and repeats.
    Because the callback is awaited before the next sleep starts, ticks
    never overlap and a slow callback delays, rather than stacks, the
    following tick.

    Args:
        interval_seconds: Seconds between ticks.
        callback: Coroutine function invoked on every tick.
    """

    def __init__(self, interval_seconds: float, callback: TickCallback) -> None:
        self.interval_seconds = interval_seconds
        self.callback = callback
        self._task: asyncio.Task[None] | None = None
        self._cancelled = False
        self._in_callback = False

    @property
    def armed(self) -> bool:
        return (
            self._task is not None
            and not self._task.done()
            and not self._cancelled
        )

    def arm(self) -> None:
        if self.armed:
            return
        self._cancelled = False
        self._task = asyncio.create_task(self._run())

    def cancel(self) -> None:
        self._cancelled = True
        if self._task is None or self._task.done():
            return
        # Only interrupt the sleep; a running callback finishes and _run
        # exits when it sees the flag.
        if not self._in_callback:
            self._task.cancel()

    async def _run(self) -> None:
        while not self._cancelled:
            await asyncio.sleep(self.interval_seconds)
            if self._cancelled:
                break
            self._in_callback = True
            try:
                await self.callback()
            except Exception:
                logger.exception("Timer callback raised; timer keeps running")
            finally:
                self._in_callback = False


def asyncio_timer_factory(
    interval_seconds: float, callback: TickCallback
) -> AsyncioIntervalTimer:
    return AsyncioIntervalTimer(interval_seconds, callback)
