"""Export sinks: where serialized snapshots end up.

A sink receives bytes, a filename and a MIME type and persists them
somehow. The scheduler dispatches to its sink without waiting for the
result, so a slow or failing sink never holds up extraction.

Example::

    from adsb_extractor.driver.sinks import DirectorySink, combine_sinks

    sink = combine_sinks(DirectorySink(Path("exports")), my_upload_sink)
    scheduler = ExtractionScheduler(provider, sink)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from tempfile import gettempdir
from typing import Protocol

from adsb_extractor.serializers import file_timestamp

logger = logging.getLogger(__name__)

CSV_MIME = "text/csv"
JSON_MIME = "application/json"


@dataclass(frozen=True)
class ExportReceipt:
    """Acknowledgement returned by a sink.

    Attributes:
        filename: Name the content was saved under.
        mime_type: MIME type of the content.
        size: Number of bytes written.
        location: Where the file ended up (path, URL...), if known.
    """

    filename: str
    mime_type: str
    size: int
    location: str | None = None


class ExportSink(Protocol):
    async def save(
        self, content: bytes, filename: str, mime_type: str
    ) -> ExportReceipt:
        """Persist content under filename.

        Raises:
            Exception: Any failure; the scheduler wraps it in
                ExportFailureException and reports it.
        """
        ...


def data_filename(captured_at: datetime, extraction_number: int, ext: str) -> str:
    """Filename for a per-extraction export.

    Example: ``adsb_data_2024-05-01T12-30-05-123Z_7.csv``
    """
    return f"adsb_data_{file_timestamp(captured_at)}_{extraction_number}.{ext}"


def history_filename(generated_at: datetime) -> str:
    """Filename for a history export.

    Example: ``adsb_history_2024-05-01T12-30-05-123Z.json``
    """
    return f"adsb_history_{file_timestamp(generated_at)}.json"


def default_storage_dir() -> Path:
    return Path(gettempdir()) / "adsb_extractor_files"


class DirectorySink:
    """Sink that writes each export as a file in a directory.

    Args:
        storage_dir: Target directory, created if missing. Defaults to
            ``<tmp>/adsb_extractor_files``.
    """

    def __init__(self, storage_dir: Path | None = None) -> None:
        self.storage_dir = storage_dir or default_storage_dir()
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    async def save(
        self, content: bytes, filename: str, mime_type: str
    ) -> ExportReceipt:
        file_path = self.storage_dir / Path(filename).name
        file_path.write_bytes(content)
        logger.info(f"File downloaded: {file_path.name}")
        return ExportReceipt(
            filename=file_path.name,
            mime_type=mime_type,
            size=len(content),
            location=str(file_path),
        )


class CombinedSink:
    """Sink that forwards every export to several sinks in order.

    The receipt of the first sink is returned. A failing sink stops the
    chain and its exception propagates.
    """

    def __init__(self, *sinks: ExportSink) -> None:
        if not sinks:
            raise ValueError("CombinedSink needs at least one sink")
        self.sinks = sinks

    async def save(
        self, content: bytes, filename: str, mime_type: str
    ) -> ExportReceipt:
        receipts = [
            await sink.save(content, filename, mime_type) for sink in self.sinks
        ]
        return receipts[0]


def combine_sinks(*sinks: ExportSink) -> ExportSink:
    """Combine several sinks into one.

    Returns the sink itself when only one is given.
    """
    if len(sinks) == 1:
        return sinks[0]
    return CombinedSink(*sinks)
