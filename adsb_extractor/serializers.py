"""Pure encoders for records, snapshots and history.

Nothing here touches the DOM or the filesystem. An empty record
list encodes to an empty string rather than a header-only CSV document.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from adsb_extractor.data_types import Snapshot

SOURCE_NAME = "ADS-B Exchange"
EXPORTER_NAME = "Browser Automated Extractor"

CRLF = "\r\n"


def iso_timestamp(moment: datetime) -> str:
    """Render an instant as UTC ISO-8601 with milliseconds and a ``Z``.

    Matches JavaScript's ``Date.prototype.toISOString()``, e.g.
    ``2024-05-01T12:30:05.123Z``. Naive datetimes are taken as UTC.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    utc = moment.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def file_timestamp(moment: datetime) -> str:
    """ISO timestamp safe for filenames (``:`` and ``.`` become ``-``)."""
    return re.sub(r"[:.]", "-", iso_timestamp(moment))


def local_timestamp(moment: datetime) -> str:
    """Human-readable rendering of an instant in the local timezone."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    local = moment.astimezone()
    return local.strftime("%a %b %d %Y %H:%M:%S GMT%z") + (
        f" ({local.tzname()})" if local.tzname() else ""
    )


def _csv_field(value: Any) -> str:
    if value is None:
        return ""
    text = str(value).replace('"', '""')
    if "," in text or '"' in text or "\n" in text:
        text = f'"{text}"'
    return text


def to_csv(records: Sequence[Mapping[str, Any]]) -> str:
    """Encode uniform records as comma-separated text.

    The header line is taken from the first record's keys. Each value is
    converted to text, double quotes are doubled, and values containing a
    comma, a double quote or a newline are wrapped in double quotes.
    Missing or None values become empty fields. Every line, the header
    included, ends with CRLF.

    Args:
        records: Records sharing the same keys.

    Returns:
        The CSV document, or ``""`` when there are no records.
    """
    if not records:
        return ""

    headers = list(records[0].keys())
    lines = [",".join(headers)]
    for record in records:
        lines.append(",".join(_csv_field(record.get(h)) for h in headers))
    return CRLF.join(lines) + CRLF


def snapshot_document(snapshot: Snapshot) -> dict[str, Any]:
    """Build the JSON-ready document for one snapshot.

    The envelope keys are always emitted in the same order; each record
    keeps the key order the normalizer produced.
    """
    timestamp = iso_timestamp(snapshot.captured_at)
    return {
        "meta": {
            "timestamp": timestamp,
            "extraction_time": timestamp,
            "record_count": snapshot.record_count,
            "extraction_number": snapshot.sequence,
            "source": SOURCE_NAME,
            "exported_by": EXPORTER_NAME,
        },
        "aircraft": [dict(record) for record in snapshot.records],
    }


def to_json(snapshot: Snapshot) -> str:
    """Encode one snapshot as a pretty-printed JSON document."""
    return json.dumps(snapshot_document(snapshot), indent=2, ensure_ascii=False)


def history_document(
    snapshots: Iterable[Snapshot],
    extraction_count: int,
    generated_at: datetime,
) -> dict[str, Any]:
    """Build the JSON-ready document for the whole history.

    Args:
        snapshots: Snapshots in history order.
        extraction_count: The scheduler's extraction counter.
        generated_at: When the history export was requested.
    """
    extractions = [snapshot_document(s) for s in snapshots]
    return {
        "meta": {
            "timestamp": iso_timestamp(generated_at),
            "extraction_count": extraction_count,
            "history_count": len(extractions),
        },
        "extractions": extractions,
    }


def history_to_json(
    snapshots: Iterable[Snapshot],
    extraction_count: int,
    generated_at: datetime,
) -> str:
    """Encode the history as a pretty-printed JSON document."""
    return json.dumps(
        history_document(snapshots, extraction_count, generated_at),
        indent=2,
        ensure_ascii=False,
    )
