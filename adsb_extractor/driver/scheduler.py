"""ExtractionScheduler: the Stopped/Running state machine.

The scheduler ties the pieces together. Each extraction cycle:

1. captures the table from the provider,
2. normalizes it into records,
3. stores a Snapshot in the history buffer,
4. dispatches CSV/JSON exports to the sink without waiting for them,
5. stops the scheduler once the extraction limit is reached.

Cycles run on the event loop one at a time; the repeating timer is the
only source of re-entrance and a tick waits for any cycle in progress.
Manual extractions (start's immediate cycle, extract_now) always export
both files; scheduled ticks follow the configured export mode unless
force_scheduled_export is set.

Example::

    async with PlaywrightTableProvider.open(url) as provider:
        async with ExtractionScheduler(
            provider, DirectorySink(Path("exports"))
        ) as scheduler:
            scheduler.on_progress = print_event
            await scheduler.start()
            await scheduler.wait_until_stopped()
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

from adsb_extractor.common.exceptions import (
    EmptyExtractionException,
    ExportFailureException,
    ExtractorException,
    TransientException,
)
from adsb_extractor.config import ExtractorConfig
from adsb_extractor.data_types import (
    ProgressEvent,
    SchedulerState,
    SchedulerStatus,
    Snapshot,
)
from adsb_extractor.driver.page_sources import TableProvider
from adsb_extractor.driver.sinks import (
    CSV_MIME,
    JSON_MIME,
    DirectorySink,
    ExportReceipt,
    ExportSink,
    data_filename,
    history_filename,
)
from adsb_extractor.driver.timers import (
    IntervalTimer,
    TimerFactory,
    asyncio_timer_factory,
)
from adsb_extractor.history import HistoryBuffer
from adsb_extractor.normalizer import normalize_table
from adsb_extractor.serializers import history_to_json, to_csv, to_json

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ExtractionScheduler:
    """Periodic extraction driver with a Stopped/Running state machine.

    The extraction counter only counts successful cycles and lives as long
    as the scheduler: stop() and start() never reset it.

    Args:
        provider: Where each cycle captures the table from.
        sink: Where exports are sent. Defaults to a DirectorySink in the
            system temp directory.
        config: Initial configuration (defaults to ExtractorConfig()).
        history: History buffer to use. Defaults to an empty buffer with
            the configured capacity.
        timer_factory: Builds the repeating timer armed on start().
        on_progress: Optional async callback receiving a ProgressEvent for
            every state change, cycle outcome and export.
        clock: Returns the current instant (timezone-aware).
    """

    def __init__(
        self,
        provider: TableProvider,
        sink: ExportSink | None = None,
        config: ExtractorConfig | None = None,
        *,
        history: HistoryBuffer | None = None,
        timer_factory: TimerFactory | None = None,
        on_progress: Callable[[ProgressEvent], Awaitable[None]] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.provider = provider
        self.sink: ExportSink = sink or DirectorySink()
        self.config = config or ExtractorConfig()
        self.history = (
            history
            if history is not None
            else HistoryBuffer(self.config.history_capacity)
        )
        self.timer_factory = timer_factory or asyncio_timer_factory
        self.on_progress = on_progress
        self.clock = clock or utc_now

        self._state = SchedulerState.STOPPED
        self._extraction_count = 0
        self._timer: IntervalTimer | None = None
        # Serializes extraction cycles.
        self._cycle_lock = asyncio.Lock()
        # Serializes start/stop transitions.
        self._state_lock = asyncio.Lock()
        self._stopped = asyncio.Event()
        self._stopped.set()
        self._export_tasks: set[asyncio.Task[ExportReceipt | None]] = set()

    # --- Status ---

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def extraction_count(self) -> int:
        return self._extraction_count

    def get_status(self) -> SchedulerStatus:
        return SchedulerStatus(
            state=self._state,
            extraction_count=self._extraction_count,
            history_count=len(self.history),
        )

    async def _emit_progress(
        self, event_type: str, data: dict[str, Any] | None = None
    ) -> None:
        """Emit a progress event if a callback is registered.

        Every event carries the current status counters so a UI can refresh
        its display from any event.
        """
        if self.on_progress:
            payload = {
                "state": self._state.value,
                "extraction_count": self._extraction_count,
                "history_count": len(self.history),
            }
            payload.update(data or {})
            await self.on_progress(
                ProgressEvent(
                    event_type=event_type,
                    timestamp=self.clock(),
                    data=payload,
                )
            )

    # --- Lifecycle ---

    async def start(self) -> bool:
        """Start periodic extraction.

        Performs one immediate extraction (exporting both files), then arms
        the repeating timer. If the immediate extraction already reaches
        the extraction limit, the scheduler ends up Stopped and no timer is
        armed.

        Returns:
            True if the scheduler was started, False if it was already
            running.

        Raises:
            Exception: Any unexpected error from the immediate extraction.
                The scheduler is back in Stopped when it propagates.
        """
        if self._state is SchedulerState.RUNNING:
            await self._reject_start()
            return False

        async with self._state_lock:
            if self._state is SchedulerState.RUNNING:
                await self._reject_start()
                return False

            self._state = SchedulerState.RUNNING
            self._stopped.clear()
            logger.info(
                f"Automated extraction started. Interval: "
                f"{self.config.interval_minutes} minutes"
            )
            await self._emit_progress(
                "started", {"interval_minutes": self.config.interval_minutes}
            )

            try:
                await self._run_cycle(forced=True, trigger="initial")
            except BaseException:
                await self._halt(reason="error")
                raise

            if self._state is SchedulerState.RUNNING:
                self._timer = self.timer_factory(
                    self.config.interval_seconds, self._on_tick
                )
                self._timer.arm()
        return True

    async def _reject_start(self) -> None:
        logger.warning("Automated extraction already running.")
        await self._emit_progress("already_running")

    async def stop(self) -> bool:
        """Stop periodic extraction.

        Cancels the timer so no further tick fires. A cycle already in
        progress completes. The extraction counter is kept.

        Returns:
            True if the scheduler was running, False if it was already
            stopped.
        """
        async with self._state_lock:
            return await self._halt()

    async def _halt(self, reason: str = "stopped") -> bool:
        """Transition to Stopped without taking the state lock."""
        if self._state is SchedulerState.STOPPED:
            return False
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._state = SchedulerState.STOPPED
        self._stopped.set()
        logger.info("Automated extraction stopped.")
        await self._emit_progress("stopped", {"reason": reason})
        return True

    async def wait_until_stopped(self) -> None:
        """Wait until the scheduler is (or returns to) Stopped."""
        await self._stopped.wait()

    async def wait_for_idle(self) -> None:
        """Wait for an extraction cycle in progress to finish.

        stop() does not interrupt a running cycle, so call this after
        stopping to be sure its snapshot is in the history and its exports
        have been dispatched.
        """
        async with self._cycle_lock:
            pass

    async def close(self) -> None:
        """Stop the scheduler and wait for the current cycle and exports."""
        await self.stop()
        await self.wait_for_idle()
        await self.wait_for_exports()

    async def __aenter__(self) -> ExtractionScheduler:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # --- Configuration ---

    async def configure(self, **changes: Any) -> ExtractorConfig:
        """Apply configuration changes at runtime.

        Values are validated first; a rejected change raises and leaves the
        current configuration untouched. A new history capacity trims the
        history to the newest snapshots. A new interval while running
        restarts the scheduler, which performs one immediate extraction so
        the new interval takes effect right away.

        Args:
            **changes: ExtractorConfig field values.

        Returns:
            The configuration now in effect.

        Raises:
            InvalidConfigurationException: If any value is rejected.
        """
        new_config = self.config.updated(**changes)
        old_config = self.config
        self.config = new_config

        if new_config.history_capacity != old_config.history_capacity:
            self.history.resize(new_config.history_capacity)

        logger.info(
            "Configuration updated",
            extra={"changes": {k: str(v) for k, v in changes.items()}},
        )
        await self._emit_progress(
            "configured", {"config": new_config.model_dump(mode="json")}
        )

        if (
            new_config.interval_minutes != old_config.interval_minutes
            and self._state is SchedulerState.RUNNING
        ):
            await self.stop()
            await self.start()

        return new_config

    # --- Commands ---

    async def extract_now(self) -> Snapshot | None:
        """Perform one extraction immediately, exporting both files.

        Neither the state nor the timer is affected (apart from the usual
        auto-stop when the extraction limit is reached).

        Returns:
            The new Snapshot, or None if no aircraft could be extracted.
        """
        return await self._run_cycle(forced=True, trigger="manual")

    def get_history(self) -> tuple[Snapshot, ...]:
        return self.history.all()

    def clear_history(self) -> None:
        """Empty the history. The extraction counter is not touched."""
        self.history.clear()
        logger.info("Extraction history cleared")

    async def download_history(self) -> str:
        """Export the whole history as one JSON document.

        Returns:
            The filename the history was dispatched under.
        """
        generated_at = self.clock()
        filename = history_filename(generated_at)
        content = history_to_json(
            self.history.all(), self._extraction_count, generated_at
        )
        self._dispatch_export(content.encode("utf-8"), filename, JSON_MIME)
        logger.info("History data downloaded")
        return filename

    async def wait_for_exports(self) -> list[ExportReceipt | None]:
        """Wait for every dispatched export to finish.

        Returns:
            One entry per export: its receipt, or None if it failed.
        """
        if not self._export_tasks:
            return []
        return list(await asyncio.gather(*self._export_tasks))

    # --- Extraction cycle ---

    async def _on_tick(self) -> None:
        if self._state is not SchedulerState.RUNNING:
            return
        logger.info(
            f"Running scheduled extraction #{self._extraction_count + 1}"
        )
        await self._run_cycle(
            forced=self.config.force_scheduled_export, trigger="scheduled"
        )

    async def _run_cycle(self, forced: bool, trigger: str) -> Snapshot | None:
        async with self._cycle_lock:
            snapshot = await self._extract(forced, trigger)

        if (
            snapshot is not None
            and self.config.max_extractions > 0
            and self._extraction_count >= self.config.max_extractions
            and self._state is SchedulerState.RUNNING
        ):
            await self._halt(reason="limit_reached")
            logger.info(
                f"Reached maximum of {self.config.max_extractions} "
                f"extractions. Automation stopped."
            )
            await self._emit_progress(
                "limit_reached",
                {"max_extractions": self.config.max_extractions},
            )
        return snapshot

    async def _extract(self, forced: bool, trigger: str) -> Snapshot | None:
        captured_at = self.clock()
        try:
            source = await self.provider.capture()
            records = normalize_table(
                source, captured_at, table_id=self.config.table_id
            )
            if not records:
                raise EmptyExtractionException(
                    row_count=len(source.body_rows()) if source else 0
                )
        except (ExtractorException, TransientException) as e:
            logger.error(
                "Failed to extract aircraft data or no aircraft found.",
                extra={
                    "trigger": trigger,
                    "error_type": type(e).__name__,
                    "error": str(e),
                },
            )
            await self._emit_progress(
                "extraction_failed",
                {
                    "trigger": trigger,
                    "error_type": type(e).__name__,
                    "error": str(e),
                },
            )
            return None
        except Exception as e:
            logger.exception(
                "Unexpected error during extraction",
                extra={"trigger": trigger, "error_type": type(e).__name__},
            )
            await self._emit_progress(
                "extraction_failed",
                {
                    "trigger": trigger,
                    "error_type": type(e).__name__,
                    "error": str(e),
                },
            )
            raise

        self._extraction_count += 1
        snapshot = Snapshot.create(self._extraction_count, captured_at, records)
        self.history.append(snapshot)

        mode = self.config.export_mode
        if forced or mode.wants_csv:
            self._dispatch_export(
                to_csv(snapshot.records).encode("utf-8"),
                data_filename(captured_at, snapshot.sequence, "csv"),
                CSV_MIME,
            )
        if forced or mode.wants_json:
            self._dispatch_export(
                to_json(snapshot).encode("utf-8"),
                data_filename(captured_at, snapshot.sequence, "json"),
                JSON_MIME,
            )

        logger.info(
            f"Extraction #{snapshot.sequence} complete: "
            f"{snapshot.record_count} aircraft",
            extra={"trigger": trigger, "forced": forced},
        )
        await self._emit_progress(
            "extraction_completed",
            {
                "trigger": trigger,
                "extraction_number": snapshot.sequence,
                "record_count": snapshot.record_count,
            },
        )
        return snapshot

    # --- Exports ---

    def _dispatch_export(
        self, content: bytes, filename: str, mime_type: str
    ) -> None:
        task = asyncio.create_task(self._deliver(content, filename, mime_type))
        self._export_tasks.add(task)
        task.add_done_callback(self._export_tasks.discard)

    async def _deliver(
        self, content: bytes, filename: str, mime_type: str
    ) -> ExportReceipt | None:
        try:
            receipt = await self.sink.save(content, filename, mime_type)
        except Exception as e:
            failure = ExportFailureException(filename, mime_type, e)
            logger.error(
                failure.message,
                extra={"filename": filename, "mime_type": mime_type},
            )
            await self._emit_progress(
                "export_failed", {"filename": filename, "error": str(e)}
            )
            return None

        await self._emit_progress(
            "file_exported",
            {"filename": receipt.filename, "size": receipt.size},
        )
        return receipt
