"""Bounded in-memory history of extraction snapshots."""

from __future__ import annotations

import logging
from collections.abc import Iterator

from adsb_extractor.common.exceptions import InvalidConfigurationException
from adsb_extractor.data_types import Snapshot

logger = logging.getLogger(__name__)


def _check_capacity(capacity: int) -> None:
    if capacity < 0:
        raise InvalidConfigurationException(
            [
                {
                    "loc": ("history_capacity",),
                    "msg": "Input should be greater than or equal to 0",
                }
            ],
            {"history_capacity": capacity},
        )


class HistoryBuffer:
    """FIFO store of snapshots with an optional capacity.

    With capacity 0 the buffer is unbounded. With capacity N > 0, appending
    to a full buffer first evicts the single oldest snapshot, so the buffer
    never holds more than N entries and keeps insertion order.

    resize() changes the bound in place, so anyone holding the buffer keeps
    seeing the live history.

    Example::

        history = HistoryBuffer(capacity=3)
        for snapshot in snapshots:
            history.append(snapshot)
        latest = history.all()[-1]
    """

    def __init__(self, capacity: int = 0) -> None:
        """Initialize an empty buffer.

        Args:
            capacity: Maximum number of snapshots kept (0 = unlimited).

        Raises:
            InvalidConfigurationException: If capacity is negative.
        """
        _check_capacity(capacity)
        self._capacity = capacity
        self._snapshots: list[Snapshot] = []

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, snapshot: Snapshot) -> None:
        if self._capacity and len(self._snapshots) >= self._capacity:
            evicted = self._snapshots.pop(0)
            logger.debug(
                f"History full, evicted extraction #{evicted.sequence}",
                extra={"capacity": self._capacity},
            )
        self._snapshots.append(snapshot)

    def all(self) -> tuple[Snapshot, ...]:
        """Return the snapshots, oldest first, as a read-only sequence."""
        return tuple(self._snapshots)

    def clear(self) -> None:
        self._snapshots.clear()

    def resize(self, capacity: int) -> None:
        """Change the capacity, dropping the oldest snapshots that no longer fit.

        Args:
            capacity: The new capacity (0 = unlimited).

        Raises:
            InvalidConfigurationException: If capacity is negative.
        """
        _check_capacity(capacity)
        self._capacity = capacity
        if capacity and len(self._snapshots) > capacity:
            del self._snapshots[:-capacity]

    def __len__(self) -> int:
        return len(self._snapshots)

    def __iter__(self) -> Iterator[Snapshot]:
        return iter(self.all())
