"""adsb-extractor CLI: one-off and scheduled extraction of the aircraft table.

Usage:
    adsb-extractor extract page.html                 # Extract from a saved page
    adsb-extractor extract http://host/page          # Extract from a static URL
    adsb-extractor run https://globe.adsbexchange.com/ --interval 5
    adsb-extractor run URL --driver http --max-extractions 3 --export csv
"""

from __future__ import annotations

import asyncio
import json
import logging
import signal
from pathlib import Path
from typing import Any

import click

from adsb_extractor.common.exceptions import InvalidConfigurationException
from adsb_extractor.config import ExtractorConfig
from adsb_extractor.data_types import ExportMode, ProgressEvent
from adsb_extractor.driver.page_sources import (
    HtmlFileProvider,
    HttpTableProvider,
    TableProvider,
)
from adsb_extractor.driver.scheduler import ExtractionScheduler
from adsb_extractor.driver.sinks import (
    DirectorySink,
    ExportSink,
    combine_sinks,
)

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def _build_config(**values: Any) -> ExtractorConfig:
    try:
        return ExtractorConfig.build(**values)
    except InvalidConfigurationException as e:
        raise click.BadParameter(e.message) from e


def _build_sink(output_dir: str, copy_to: tuple[str, ...]) -> ExportSink:
    """Sink writing into output_dir and mirroring into every copy_to dir."""
    return combine_sinks(
        DirectorySink(Path(output_dir)),
        *(DirectorySink(Path(d)) for d in copy_to),
    )


async def _echo_event(event: ProgressEvent) -> None:
    if event.event_type in (
        "extraction_completed",
        "extraction_failed",
        "limit_reached",
        "export_failed",
    ):
        click.echo(event.to_json())


@click.group()
@click.version_option(package_name="adsb-extractor")
def cli() -> None:
    """adsb-extractor: automated aircraft table extraction."""


@cli.command()
@click.argument("source")
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False),
    default="exports",
    show_default=True,
    help="Directory the CSV and JSON files are written to.",
)
@click.option(
    "--copy-to",
    multiple=True,
    type=click.Path(file_okay=False),
    help="Extra directory receiving a copy of every file (repeatable).",
)
@click.option(
    "--table-id",
    default="planesTable",
    show_default=True,
    help="The id attribute of the aircraft table.",
)
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging.")
def extract(
    source: str,
    output_dir: str,
    copy_to: tuple[str, ...],
    table_id: str,
    verbose: bool,
) -> None:
    """Extract the table once and write CSV and JSON files.

    SOURCE is a path to a saved HTML page or an http(s) URL of a page that
    renders the table server-side.

    \b
    Examples:
        adsb-extractor extract saved_map.html
        adsb-extractor extract http://127.0.0.1:8080/ --output-dir out
    """
    _configure_logging(verbose)
    config = _build_config(table_id=table_id)

    if not _is_url(source) and not Path(source).is_file():
        raise click.BadParameter(
            f"'{source}' is neither an http(s) URL nor an existing file",
            param_hint="SOURCE",
        )

    async def _go() -> int:
        provider: TableProvider
        if _is_url(source):
            provider = HttpTableProvider(source, table_id=table_id)
        else:
            provider = HtmlFileProvider(Path(source), table_id=table_id)

        sink = _build_sink(output_dir, copy_to)
        try:
            async with ExtractionScheduler(provider, sink, config) as scheduler:
                snapshot = await scheduler.extract_now()
        finally:
            if isinstance(provider, HttpTableProvider):
                await provider.close()
        if snapshot is None:
            raise click.ClickException(
                "Failed to extract aircraft data or no aircraft found."
            )
        return snapshot.record_count

    count = asyncio.run(_go())
    click.echo(f"Extracted {count} aircraft into {Path(output_dir).absolute()}")


@cli.command()
@click.argument("url")
@click.option(
    "--driver",
    "driver_name",
    type=click.Choice(["playwright", "http"]),
    default="playwright",
    show_default=True,
    help="How the page is loaded.",
)
@click.option(
    "--interval",
    type=int,
    default=5,
    show_default=True,
    help="Minutes between scheduled extractions.",
)
@click.option(
    "--max-extractions",
    type=int,
    default=0,
    show_default=True,
    help="Stop after this many extractions (0 = unlimited).",
)
@click.option(
    "--export",
    "export_mode",
    type=click.Choice([m.value for m in ExportMode]),
    default="both",
    show_default=True,
    help="Files written by scheduled extractions.",
)
@click.option(
    "--force-export",
    is_flag=True,
    help="Write both files on every scheduled extraction.",
)
@click.option(
    "--keep",
    type=int,
    default=10,
    show_default=True,
    help="Extractions kept in memory (0 = unlimited).",
)
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False),
    default="exports",
    show_default=True,
    help="Directory the exported files are written to.",
)
@click.option(
    "--copy-to",
    multiple=True,
    type=click.Path(file_okay=False),
    help="Extra directory receiving a copy of every file (repeatable).",
)
@click.option(
    "--table-id",
    default="planesTable",
    show_default=True,
    help="The id attribute of the aircraft table.",
)
@click.option("--headed", is_flag=True, help="Show the browser window.")
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging.")
def run(
    url: str,
    driver_name: str,
    interval: int,
    max_extractions: int,
    export_mode: str,
    force_export: bool,
    keep: int,
    output_dir: str,
    copy_to: tuple[str, ...],
    table_id: str,
    headed: bool,
    verbose: bool,
) -> None:
    """Extract the table from URL on a timer until stopped.

    Runs until the extraction limit is reached or the process receives
    SIGINT/SIGTERM, then writes the in-memory history as one JSON file.

    \b
    Examples:
        adsb-extractor run https://globe.adsbexchange.com/
        adsb-extractor run URL --interval 1 --max-extractions 10 --export json
    """
    _configure_logging(verbose)
    config = _build_config(
        interval_minutes=interval,
        max_extractions=max_extractions,
        export_mode=export_mode,
        history_capacity=keep,
        force_scheduled_export=force_export,
        table_id=table_id,
    )
    sink = _build_sink(output_dir, copy_to)

    click.echo(f"URL:      {url}")
    click.echo(f"Driver:   {driver_name}")
    click.echo(f"Interval: {config.interval_minutes} minutes")
    click.echo(
        "Max extractions: "
        f"{config.max_extractions if config.max_extractions else 'Unlimited'}"
    )
    click.echo(f"Export:   {config.export_mode.value}")
    click.echo(f"Output:   {Path(output_dir).absolute()}")
    for copy_dir in copy_to:
        click.echo(f"Copy to:  {Path(copy_dir).absolute()}")

    async def _schedule(provider: TableProvider) -> None:
        async with ExtractionScheduler(
            provider, sink, config, on_progress=_echo_event
        ) as scheduler:
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                try:
                    loop.add_signal_handler(
                        sig, lambda: asyncio.ensure_future(scheduler.stop())
                    )
                except NotImplementedError:
                    # Windows: fall back to KeyboardInterrupt
                    pass

            await scheduler.start()
            await scheduler.wait_until_stopped()
            await scheduler.wait_for_idle()

            filename = await scheduler.download_history()
            await scheduler.wait_for_exports()
            status = scheduler.get_status()
            click.echo(
                json.dumps(
                    {
                        "extraction_count": status.extraction_count,
                        "history_count": status.history_count,
                        "history_file": filename,
                    }
                )
            )

    async def _go() -> None:
        if driver_name == "http":
            async with HttpTableProvider(url, table_id=table_id) as provider:
                await _schedule(provider)
            return

        try:
            from adsb_extractor.driver.playwright_source import (
                PlaywrightTableProvider,
            )
        except ImportError as e:
            raise click.ClickException(
                f"Missing dependency: {e}. "
                "Install the 'playwright' extra: "
                "pip install adsb-extractor[playwright]"
            ) from e

        async with PlaywrightTableProvider.open(
            url, table_id=table_id, headless=not headed
        ) as provider:
            await _schedule(provider)

    asyncio.run(_go())
    click.echo("Done.")


def main() -> None:
    """Entry point for the ``adsb-extractor`` console script."""
    cli()
