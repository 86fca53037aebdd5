"""Test utilities for the scheduler tests.

Collecting sinks and callbacks, a manually fired timer, and a clock that
advances one second per reading.
"""

from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone

from adsb_extractor.data_types import ProgressEvent
from adsb_extractor.driver.sinks import ExportReceipt
from adsb_extractor.driver.timers import TickCallback


def collect_events() -> tuple[
    Callable[[ProgressEvent], Awaitable[None]], list[ProgressEvent]
]:
    """Create an async on_progress callback that collects events in a list.

    Returns:
        A tuple of (async_callback_function, events_list).

    Example:
        callback, events = collect_events()
        scheduler = ExtractionScheduler(provider, on_progress=callback)
        await scheduler.start()
        assert events[0].event_type == "started"
    """
    events: list[ProgressEvent] = []

    async def callback(event: ProgressEvent) -> None:
        events.append(event)

    return callback, events


def event_types(events: list[ProgressEvent]) -> list[str]:
    return [e.event_type for e in events]


class CollectingSink:
    """Sink keeping every export in memory."""

    def __init__(self) -> None:
        self.saved: list[tuple[str, str, bytes]] = []

    async def save(
        self, content: bytes, filename: str, mime_type: str
    ) -> ExportReceipt:
        self.saved.append((filename, mime_type, content))
        return ExportReceipt(filename, mime_type, len(content))

    @property
    def filenames(self) -> list[str]:
        return [filename for filename, _, _ in self.saved]

    def by_extension(self, ext: str) -> list[tuple[str, str, bytes]]:
        return [s for s in self.saved if s[0].endswith(f".{ext}")]


class FailingSink:
    """Sink that always raises OSError."""

    def __init__(self) -> None:
        self.attempts = 0

    async def save(
        self, content: bytes, filename: str, mime_type: str
    ) -> ExportReceipt:
        self.attempts += 1
        raise OSError("disk full")


class ManualTimer:
    """IntervalTimer fired explicitly by the test with fire()."""

    def __init__(self, interval_seconds: float, callback: TickCallback) -> None:
        self.interval_seconds = interval_seconds
        self.callback = callback
        self._armed = False
        self.cancelled = False

    @property
    def armed(self) -> bool:
        return self._armed

    def arm(self) -> None:
        self._armed = True

    def cancel(self) -> None:
        self._armed = False
        self.cancelled = True

    async def fire(self) -> bool:
        """Run one tick if the timer is armed.

        Returns:
            True if the callback ran.
        """
        if not self._armed:
            return False
        await self.callback()
        return True


class ManualTimerFactory:
    """TimerFactory recording every timer it builds."""

    def __init__(self) -> None:
        self.timers: list[ManualTimer] = []

    def __call__(
        self, interval_seconds: float, callback: TickCallback
    ) -> ManualTimer:
        timer = ManualTimer(interval_seconds, callback)
        self.timers.append(timer)
        return timer

    @property
    def armed(self) -> list[ManualTimer]:
        return [t for t in self.timers if t.armed]

    @property
    def latest(self) -> ManualTimer:
        return self.timers[-1]


class SteppingClock:
    """Clock returning a new instant, one second later, on every call."""

    def __init__(
        self,
        start: datetime = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc),
    ) -> None:
        self._next = start

    def __call__(self) -> datetime:
        now = self._next
        self._next = now + timedelta(seconds=1)
        return now
