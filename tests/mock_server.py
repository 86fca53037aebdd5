"""Mock aircraft-table pages.

This module defines the aircraft data used across the tests and renders it
the way the ADS-B Exchange map renders its table: header cells are ``td``
elements under ``thead`` identified by their ``id``, rows carry the ICAO
hex as ``id``, and the flag column holds an ``img`` whose ``title`` is the
country of registration.
"""

from dataclasses import dataclass
from html import escape

from aiohttp import web


@dataclass
class MockAircraft:
    """One row of the aircraft table."""

    icao: str
    callsign: str
    country: str | None
    altitude: str
    speed: str
    aircraft_type: str


AIRCRAFT: list[MockAircraft] = [
    MockAircraft(
        icao="3c6444",
        callsign="DLH4AB",
        country="Germany",
        altitude="36000",
        speed="451",
        aircraft_type="A320",
    ),
    MockAircraft(
        icao="a1b2c3",
        callsign="UAL123",
        country="United States",
        altitude="12,500",
        speed="310",
        aircraft_type="B738",
    ),
    MockAircraft(
        icao="4ca7b5",
        callsign="RYR9QK",
        country="Ireland",
        altitude="ground",
        speed="0",
        aircraft_type="B38M",
    ),
    MockAircraft(
        icao="e48d1f",
        callsign="",
        country=None,
        altitude="2300",
        speed="95",
        aircraft_type="C172",
    ),
]

HEADER_IDS = ["icao", "flag", "callsign", "altitude", "speed", "aircraft_type"]


def _flag_cell(country: str | None) -> str:
    if country is None:
        return "<td></td>"
    return (
        f'<td><img src="flags/{escape(country)}.png" '
        f'title="{escape(country)}"></td>'
    )


def generate_planes_html(
    aircraft: list[MockAircraft] | None = None,
    table_id: str = "planesTable",
    incomplete_rows: int = 0,
) -> str:
    """Render the aircraft table page.

    Args:
        aircraft: Rows to render (defaults to AIRCRAFT).
        table_id: The table's id attribute.
        incomplete_rows: Number of extra rows with a single cell.

    Returns:
        Full HTML page.
    """
    rows = aircraft if aircraft is not None else AIRCRAFT
    header = "".join(
        f'<td id="{h}">{h.upper()}</td>' for h in HEADER_IDS
    )
    body = "".join(
        f'<tr id="{a.icao}">'
        f"<td>{a.icao}</td>"
        f"{_flag_cell(a.country)}"
        f"<td> {escape(a.callsign)} </td>"
        f"<td>{escape(a.altitude)}</td>"
        f"<td>{a.speed}</td>"
        f"<td>{a.aircraft_type}</td>"
        "</tr>"
        for a in rows
    )
    body += "".join(
        f'<tr id="partial{i}"><td>partial{i}</td></tr>'
        for i in range(incomplete_rows)
    )
    return f"""<!DOCTYPE html>
<html>
<head><title>ADS-B Exchange</title></head>
<body>
    <div id="map_canvas"></div>
    <table id="{table_id}">
        <thead><tr>{header}</tr></thead>
        <tbody>{body}</tbody>
    </table>
</body>
</html>
"""


def generate_page_without_table() -> str:
    return """<!DOCTYPE html>
<html><body><div id="map_canvas">Loading...</div></body></html>
"""


async def handle_planes(request: web.Request) -> web.Response:
    return web.Response(text=generate_planes_html(), content_type="text/html")


async def handle_empty(request: web.Request) -> web.Response:
    return web.Response(
        text=generate_planes_html(aircraft=[]), content_type="text/html"
    )


async def handle_missing(request: web.Request) -> web.Response:
    return web.Response(
        text=generate_page_without_table(), content_type="text/html"
    )


async def handle_server_error(request: web.Request) -> web.Response:
    return web.Response(status=503, text="Service Unavailable")


def create_app() -> web.Application:
    """Create the aiohttp application serving the mock pages."""
    app = web.Application()
    app.router.add_get("/", handle_planes)
    app.router.add_get("/empty", handle_empty)
    app.router.add_get("/missing", handle_missing)
    app.router.add_get("/error", handle_server_error)
    return app
