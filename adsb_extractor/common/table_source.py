"""TableSource protocol for reading the aircraft table.

The normalizer never touches a DOM directly. It reads a TableSource: an
ordered list of header cells and an ordered list of body rows, each row
exposing its identifier and its data cells. The HTML-backed implementation
lives in lxml_table_source; the frozen dataclasses below are the in-memory
implementation used by tests and by callers that already hold the data.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol


class HeaderCell(Protocol):
    """A header cell of the table."""

    def identifier(self) -> str:
        """Return the raw identifier used as field name.

        May still contain ``&nbsp;`` markup or surrounding whitespace; the
        normalizer cleans it.
        """
        ...


class DataCell(Protocol):
    """A data cell of a body row."""

    def text_content(self) -> str:
        """Return the visible text of the cell (untrimmed)."""
        ...

    def image_title(self) -> str | None:
        """Return the title of the embedded image.

        Returns:
            The ``title`` attribute of the first image in the cell, ``""``
            when the image has no title, or None when the cell has no image.
        """
        ...


class BodyRow(Protocol):
    """A body row of the table."""

    def identifier(self) -> str:
        """Return the row's own identifier (the aircraft's ICAO hex)."""
        ...

    def cells(self) -> Sequence[DataCell]:
        """Return the data cells in column order."""
        ...


class TableSource(Protocol):
    """Protocol for driver-agnostic access to one table.

    Implementations are snapshots: they are read once per extraction cycle
    and are not expected to change while being read.
    """

    def header_cells(self) -> Sequence[HeaderCell]:
        """Return the header cells in column order."""
        ...

    def body_rows(self) -> Sequence[BodyRow]:
        """Return the body rows in display order."""
        ...


@dataclass(frozen=True)
class StaticHeaderCell:
    name: str

    def identifier(self) -> str:
        return self.name


@dataclass(frozen=True)
class StaticDataCell:
    """In-memory data cell.

    Attributes:
        text: Visible text of the cell.
        img_title: Title of an embedded image, or None for no image.
    """

    text: str = ""
    img_title: str | None = None

    def text_content(self) -> str:
        return self.text

    def image_title(self) -> str | None:
        return self.img_title


@dataclass(frozen=True)
class StaticRow:
    row_id: str
    data: tuple[StaticDataCell, ...] = ()

    def identifier(self) -> str:
        return self.row_id

    def cells(self) -> Sequence[StaticDataCell]:
        return self.data


@dataclass(frozen=True)
class StaticTable:
    """In-memory TableSource.

    Example::

        table = StaticTable.from_rows(
            ["icao", "flag", "callsign"],
            [("3c6444", ["3c6444", StaticDataCell(img_title="Germany"), "DLH4AB"])],
        )
    """

    headers: tuple[StaticHeaderCell, ...] = ()
    rows: tuple[StaticRow, ...] = field(default_factory=tuple)

    def header_cells(self) -> Sequence[StaticHeaderCell]:
        return self.headers

    def body_rows(self) -> Sequence[StaticRow]:
        return self.rows

    @classmethod
    def from_rows(
        cls,
        headers: Sequence[str],
        rows: Sequence[tuple[str, Sequence[str | StaticDataCell]]],
    ) -> StaticTable:
        """Build a table from plain header names and row tuples.

        Args:
            headers: Header identifiers in column order.
            rows: ``(row_id, cells)`` pairs; plain strings become text cells.

        Returns:
            The assembled StaticTable.
        """
        return cls(
            headers=tuple(StaticHeaderCell(name) for name in headers),
            rows=tuple(
                StaticRow(
                    row_id,
                    tuple(
                        c
                        if isinstance(c, StaticDataCell)
                        else StaticDataCell(text=c)
                        for c in cells
                    ),
                )
                for row_id, cells in rows
            ),
        )
