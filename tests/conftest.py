"""Shared fixtures for the extractor tests."""

import asyncio
import socket
import threading
import time
from collections.abc import Generator
from contextlib import closing
from datetime import datetime, timezone

import pytest
from aiohttp import web

from adsb_extractor.common.table_source import StaticDataCell, StaticTable
from tests.mock_server import AIRCRAFT, create_app, generate_planes_html


@pytest.fixture
def planes_html() -> str:
    """Generate the aircraft table page.

    Returns:
        HTML string containing every aircraft in AIRCRAFT.
    """
    return generate_planes_html()


@pytest.fixture
def expected_aircraft_count() -> int:
    return len(AIRCRAFT)


@pytest.fixture
def captured_at() -> datetime:
    return datetime(2024, 5, 1, 12, 30, 5, 123000, tzinfo=timezone.utc)


@pytest.fixture
def small_table() -> StaticTable:
    """Two-aircraft in-memory table with an icao, flag and callsign column."""
    return StaticTable.from_rows(
        ["icao", "flag", "callsign"],
        [
            ("3c6444", ["3c6444", StaticDataCell(img_title="Germany"), "DLH4AB"]),
            ("a1b2c3", ["a1b2c3", StaticDataCell(img_title="Spain"), "IBE31"]),
        ],
    )


# =============================================================================
# aiohttp test server fixtures
# =============================================================================


def find_free_port() -> int:
    """Find a free port on localhost.

    Returns:
        An available port number.
    """
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(("", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


class AioHttpTestServer:
    """Wrapper to run aiohttp server in a background thread."""

    def __init__(self, app: web.Application, port: int) -> None:
        self.app = app
        self.port = port
        self.host = "127.0.0.1"
        self._loop: asyncio.AbstractEventLoop | None = None
        self._runner: web.AppRunner | None = None
        self._thread: threading.Thread | None = None

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def start(self) -> None:
        """Start the server in a background thread."""
        self._thread = threading.Thread(target=self._run_server, daemon=True)
        self._thread.start()
        time.sleep(0.1)

    def _run_server(self) -> None:
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)

        async def start() -> None:
            self._runner = web.AppRunner(self.app)
            await self._runner.setup()
            site = web.TCPSite(self._runner, self.host, self.port)
            await site.start()

        self._loop.run_until_complete(start())
        self._loop.run_forever()

    def stop(self) -> None:
        """Stop the server and clean up resources."""
        if self._loop and self._runner:
            runner = self._runner
            future = asyncio.run_coroutine_threadsafe(
                runner.cleanup(), self._loop
            )
            future.result(timeout=2.0)

        if self._loop:
            self._loop.call_soon_threadsafe(self._loop.stop)

        if self._thread:
            self._thread.join(timeout=2.0)


@pytest.fixture
def planes_server() -> Generator[AioHttpTestServer, None, None]:
    """Create and start an aiohttp test server serving the aircraft pages.

    Yields:
        AioHttpTestServer instance with the mock app running.
    """
    app = create_app()
    port = find_free_port()
    server = AioHttpTestServer(app, port)
    server.start()
    yield server
    server.stop()


@pytest.fixture
def server_url(planes_server: AioHttpTestServer) -> str:
    return planes_server.url
