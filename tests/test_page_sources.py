"""Tests for the file and HTTP table providers.

The HTTP tests run against the aiohttp mock server from conftest.
"""

from datetime import datetime
from pathlib import Path

import httpx
import pytest

from adsb_extractor.common.exceptions import PageFetchException
from adsb_extractor.driver.page_sources import (
    HtmlFileProvider,
    HttpTableProvider,
    StaticTableProvider,
)
from adsb_extractor.normalizer import normalize_table


class TestStaticTableProvider:
    @pytest.mark.asyncio
    async def test_counts_captures(self, small_table) -> None:
        provider = StaticTableProvider(small_table)

        assert await provider.capture() is small_table
        assert await provider.capture() is small_table
        assert provider.capture_count == 2


class TestHtmlFileProvider:
    @pytest.mark.asyncio
    async def test_reads_saved_page(
        self, tmp_path: Path, planes_html: str, expected_aircraft_count: int
    ) -> None:
        page = tmp_path / "map.html"
        page.write_text(planes_html, encoding="utf-8")

        table = await HtmlFileProvider(page).capture()

        assert table is not None
        assert len(table.body_rows()) == expected_aircraft_count

    @pytest.mark.asyncio
    async def test_rereads_on_every_capture(
        self, tmp_path: Path, planes_html: str
    ) -> None:
        page = tmp_path / "map.html"
        page.write_text("<html><body></body></html>", encoding="utf-8")
        provider = HtmlFileProvider(page)

        assert await provider.capture() is None
        page.write_text(planes_html, encoding="utf-8")
        assert await provider.capture() is not None

    @pytest.mark.asyncio
    async def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(PageFetchException) as exc_info:
            await HtmlFileProvider(tmp_path / "nope.html").capture()

        assert "nope.html" in exc_info.value.message


class TestHttpTableProvider:
    @pytest.mark.asyncio
    async def test_fetches_and_parses(
        self, server_url: str, captured_at: datetime
    ) -> None:
        """The HTTP provider shall return the server-rendered table."""
        async with HttpTableProvider(f"{server_url}/") as provider:
            table = await provider.capture()

        records = normalize_table(table, captured_at)
        assert [r["icao"] for r in records] == [
            "3c6444",
            "a1b2c3",
            "4ca7b5",
            "e48d1f",
        ]
        assert records[0]["country"] == "Germany"

    @pytest.mark.asyncio
    async def test_page_without_table(self, server_url: str) -> None:
        async with HttpTableProvider(f"{server_url}/missing") as provider:
            assert await provider.capture() is None

    @pytest.mark.asyncio
    async def test_table_without_rows(self, server_url: str) -> None:
        async with HttpTableProvider(f"{server_url}/empty") as provider:
            table = await provider.capture()

        assert table is not None
        assert table.body_rows() == []

    @pytest.mark.asyncio
    async def test_server_error_raises(self, server_url: str) -> None:
        async with HttpTableProvider(f"{server_url}/error") as provider:
            with pytest.raises(PageFetchException) as exc_info:
                await provider.capture()

        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_connection_error_raises(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(refuse))
        provider = HttpTableProvider("http://radar.invalid/", client=client)

        with pytest.raises(PageFetchException) as exc_info:
            await provider.capture()

        assert "connection refused" in exc_info.value.message
        await client.aclose()

    @pytest.mark.asyncio
    async def test_timeout_raises(self) -> None:
        def stall(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(stall))
        provider = HttpTableProvider(
            "http://radar.invalid/", timeout=1.5, client=client
        )

        with pytest.raises(PageFetchException) as exc_info:
            await provider.capture()

        assert "1.5s" in exc_info.value.message
        await client.aclose()

    @pytest.mark.asyncio
    async def test_shared_client_not_closed(self) -> None:
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(
                lambda request: httpx.Response(200, text="")
            )
        )

        async with HttpTableProvider("http://radar.invalid/", client=client):
            pass

        assert not client.is_closed
        await client.aclose()
