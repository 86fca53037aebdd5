"""Table providers: where each extraction cycle gets its table from.

A provider captures a fresh snapshot of the page on every call and returns
the aircraft table as a TableSource, or None when the page has no such
table. The scheduler never sees live DOM or network objects.

- StaticTableProvider: hands out a fixed in-memory table.
- HtmlFileProvider: re-reads a saved HTML page from disk.
- HttpTableProvider: fetches a static page with httpx.

The rendered-page provider backed by a browser lives in playwright_source.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Protocol

import httpx

from adsb_extractor.common.exceptions import PageFetchException
from adsb_extractor.common.lxml_table_source import (
    DEFAULT_TABLE_ID,
    parse_table,
)
from adsb_extractor.common.table_source import TableSource

logger = logging.getLogger(__name__)


class TableProvider(Protocol):
    async def capture(self) -> TableSource | None:
        """Capture the table as it is right now.

        Returns:
            The table, or None if it is not on the page.

        Raises:
            PageFetchException: If the page itself could not be obtained.
        """
        ...


class StaticTableProvider:
    """Provider returning the same in-memory table on every capture.

    Args:
        source: The table, or None to simulate a page without the table.
    """

    def __init__(self, source: TableSource | None) -> None:
        self.source = source
        self.capture_count = 0

    async def capture(self) -> TableSource | None:
        self.capture_count += 1
        return self.source


class HtmlFileProvider:
    """Provider reading a saved HTML page on every capture.

    Args:
        path: Path of the HTML file.
        table_id: The ``id`` of the aircraft table.
    """

    def __init__(self, path: Path, table_id: str = DEFAULT_TABLE_ID) -> None:
        self.path = path
        self.table_id = table_id

    async def capture(self) -> TableSource | None:
        try:
            content = self.path.read_bytes()
        except OSError as e:
            raise PageFetchException(str(self.path), str(e)) from e
        return parse_table(content, self.table_id, str(self.path))


class HttpTableProvider:
    """Provider fetching a page over HTTP with httpx.

    Only useful for pages that render the table server-side; the live
    ADS-B Exchange map builds it with JavaScript and needs
    PlaywrightTableProvider instead.

    Args:
        url: The page URL.
        table_id: The ``id`` of the aircraft table.
        timeout: Request timeout in seconds.
        client: Optional AsyncClient to reuse. If omitted the provider
            creates one and closes it in close().

    Example::

        async with HttpTableProvider("http://localhost:8080/") as provider:
            table = await provider.capture()
    """

    def __init__(
        self,
        url: str,
        table_id: str = DEFAULT_TABLE_ID,
        timeout: float | None = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url
        self.table_id = table_id
        self.timeout = timeout
        if client is not None:
            self._client = client
            self._owns_client = False
        else:
            self._client = httpx.AsyncClient(
                timeout=timeout, follow_redirects=True
            )
            self._owns_client = True

    async def close(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> HttpTableProvider:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def capture(self) -> TableSource | None:
        try:
            response = await self._client.get(self.url)
        except httpx.TimeoutException as e:
            raise PageFetchException(
                self.url, f"timed out after {self.timeout}s"
            ) from e
        except httpx.HTTPError as e:
            raise PageFetchException(self.url, str(e)) from e

        if response.status_code >= 400:
            raise PageFetchException(
                self.url,
                f"HTTP {response.status_code}",
                status_code=response.status_code,
            )

        logger.debug(
            f"Fetched {self.url}",
            extra={
                "status_code": response.status_code,
                "bytes": len(response.content),
            },
        )
        return parse_table(response.content, self.table_id, self.url)
