"""Record normalizer: turns a TableSource into flat aircraft records.

Every record produced by one call shares the same key set, in the same
order:

1. the row identifier (``icao``),
2. three capture-time fields (``timestamp``, ``extraction_time_local``,
   ``extraction_time_utc``), all derived from the same instant,
3. one field per header cell, in header order, except that the flag column
   is stored under ``country`` and takes its value from the flag image's
   title.

Rows with fewer cells than there are headers are skipped silently.
"""

from __future__ import annotations

import logging
from datetime import datetime

from adsb_extractor.common.exceptions import SourceNotFoundException
from adsb_extractor.common.table_source import TableSource
from adsb_extractor.serializers import iso_timestamp, local_timestamp

logger = logging.getLogger(__name__)

ID_FIELD = "icao"
FLAG_COLUMN = "flag"
FLAG_FIELD = "country"


def clean_header_name(raw: str) -> str:
    """Strip non-breaking-space markup and surrounding whitespace.

    Args:
        raw: The header cell identifier as found on the page.

    Returns:
        The field name.
    """
    return raw.replace("&nbsp;", " ").replace("\xa0", " ").strip()


def normalize_table(
    source: TableSource | None,
    captured_at: datetime,
    *,
    id_field: str = ID_FIELD,
    flag_column: str = FLAG_COLUMN,
    flag_field: str = FLAG_FIELD,
    table_id: str = "",
) -> list[dict[str, str]]:
    """Read a table and produce one record per complete row.

    Args:
        source: The table to read, or None if it could not be located.
        captured_at: The capture instant stamped on every record.
        id_field: Field name for the row identifier.
        flag_column: Header name of the column holding the flag image.
        flag_field: Field name the flag column's value is stored under.
        table_id: Table id, only used for error context.

    Returns:
        Records in row order. Empty if the table has no complete rows.

    Raises:
        SourceNotFoundException: If ``source`` is None.
    """
    if source is None:
        raise SourceNotFoundException(table_id=table_id)

    headers = [clean_header_name(c.identifier()) for c in source.header_cells()]
    iso = iso_timestamp(captured_at)
    local = local_timestamp(captured_at)

    records: list[dict[str, str]] = []
    skipped = 0
    for row in source.body_rows():
        cells = row.cells()
        if len(cells) < len(headers):
            skipped += 1
            continue

        record = {
            id_field: row.identifier(),
            "timestamp": iso,
            "extraction_time_local": local,
            "extraction_time_utc": iso,
        }
        for header, cell in zip(headers, cells):
            if header == flag_column:
                record[flag_field] = cell.image_title() or ""
            else:
                record[header] = cell.text_content().strip()
        records.append(record)

    if skipped:
        logger.debug(
            f"Skipped {skipped} incomplete rows",
            extra={"skipped": skipped, "header_count": len(headers)},
        )
    logger.info(f"Extracted data for {len(records)} aircraft")
    return records
