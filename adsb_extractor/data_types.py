"""Core data types shared by the normalizer, serializers and scheduler.

- Record: one aircraft row as an ordered field-name to string mapping.
- Snapshot: the immutable result of one successful extraction cycle.
- ExportMode / SchedulerState: the enums of the configuration and state
  machine.
- SchedulerStatus / ProgressEvent: what the scheduler reports to whoever
  renders its state.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any

Record = Mapping[str, str]


class ExportMode(Enum):
    """Which files a mode-governed extraction exports.

    Values are "both", "csv", "json" or "none" (memory only).
    """

    BOTH = "both"
    CSV = "csv"
    JSON = "json"
    NONE = "none"

    @property
    def wants_csv(self) -> bool:
        return self in (ExportMode.BOTH, ExportMode.CSV)

    @property
    def wants_json(self) -> bool:
        return self in (ExportMode.BOTH, ExportMode.JSON)


class SchedulerState(Enum):
    STOPPED = "stopped"
    RUNNING = "running"


@dataclass(frozen=True)
class Snapshot:
    """Immutable capture of one extraction cycle.

    Attributes:
        sequence: 1-based extraction number, monotonically increasing for
            the lifetime of the scheduler.
        captured_at: The capture instant (timezone-aware).
        records: The normalized records, each a read-only mapping. Every
            record has the same keys in the same order.
    """

    sequence: int
    captured_at: datetime
    records: tuple[Record, ...] = field(default_factory=tuple)

    @classmethod
    def create(
        cls,
        sequence: int,
        captured_at: datetime,
        records: Iterable[Mapping[str, str]],
    ) -> Snapshot:
        """Build a snapshot, freezing each record.

        Args:
            sequence: Extraction number.
            captured_at: Capture instant.
            records: Records produced by the normalizer.

        Returns:
            A Snapshot whose records cannot be mutated.
        """
        return cls(
            sequence=sequence,
            captured_at=captured_at,
            records=tuple(MappingProxyType(dict(r)) for r in records),
        )

    @property
    def record_count(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class SchedulerStatus:
    """Status counters surfaced to a UI.

    Attributes:
        state: Current scheduler state.
        extraction_count: Successful extractions so far (never reset).
        history_count: Snapshots currently held in the history buffer.
    """

    state: SchedulerState
    extraction_count: int
    history_count: int

    @property
    def running(self) -> bool:
        return self.state is SchedulerState.RUNNING


@dataclass
class ProgressEvent:
    """Event emitted by the scheduler for real-time status updates.

    Attributes:
        event_type: Type of event (extraction_completed, limit_reached, etc.)
        timestamp: When the event occurred.
        data: Event-specific data.
    """

    event_type: str
    timestamp: datetime
    data: dict[str, Any]

    def to_json(self) -> str:
        """Serialize to JSON for transport to a UI."""
        return json.dumps(
            {
                "event_type": self.event_type,
                "timestamp": self.timestamp.isoformat(),
                "data": self.data,
            }
        )
