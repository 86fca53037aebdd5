"""Playwright-backed table provider for the live, JavaScript-rendered page.

The aircraft table on the ADS-B Exchange map is built client-side, so a
plain HTTP fetch never sees it. This provider keeps one browser page open
on the map and, on every capture:

1. waits (briefly) for the table to be attached to the DOM,
2. serializes the rendered DOM with ``page.content()``,
3. parses that snapshot with lxml into an LxmlTableSource.

The normalizer therefore only ever reads a static snapshot, never a live
browser handle.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from playwright.async_api import (
    Browser,
    Page,
    async_playwright,
)
from playwright.async_api import (
    Error as PlaywrightError,
)
from playwright.async_api import (
    TimeoutError as PlaywrightTimeoutError,
)

from adsb_extractor.common.exceptions import PageFetchException
from adsb_extractor.common.lxml_table_source import (
    DEFAULT_TABLE_ID,
    LxmlTableSource,
    parse_table,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


class PlaywrightTableProvider:
    """TableProvider reading the table from a live Playwright page.

    Use PlaywrightTableProvider.open() to get a provider with a launched
    browser; the constructor only wraps an existing page.

    Args:
        page: The Playwright page showing the map.
        table_id: The ``id`` of the aircraft table.
        wait_timeout_ms: How long to wait for the table before treating it
            as absent.

    Example::

        async with PlaywrightTableProvider.open(
            "https://globe.adsbexchange.com/"
        ) as provider:
            table = await provider.capture()
    """

    def __init__(
        self,
        page: Page,
        table_id: str = DEFAULT_TABLE_ID,
        wait_timeout_ms: float = 5000,
    ) -> None:
        self.page = page
        self.table_id = table_id
        self.wait_timeout_ms = wait_timeout_ms

    @classmethod
    @asynccontextmanager
    async def open(
        cls,
        url: str,
        table_id: str = DEFAULT_TABLE_ID,
        browser_type: str = "chromium",
        headless: bool = True,
        viewport: dict[str, int] | None = None,
        user_agent: str | None = None,
        locale: str = "en-US",
        wait_timeout_ms: float = 5000,
        navigation_timeout_ms: float = 60000,
    ) -> AsyncIterator[PlaywrightTableProvider]:
        """Launch a browser, open the page and yield a provider for it.

        Args:
            url: URL of the map page.
            table_id: The ``id`` of the aircraft table.
            browser_type: "chromium", "firefox" or "webkit".
            headless: Run the browser without a window.
            viewport: Viewport size (default 1280x720).
            user_agent: Custom user agent string.
            locale: Browser locale.
            wait_timeout_ms: Per-capture wait for the table.
            navigation_timeout_ms: Timeout for the initial navigation.

        Yields:
            A provider bound to the opened page. The browser is closed on
            exit.

        Raises:
            PageFetchException: If the initial navigation fails.
        """
        if viewport is None:
            viewport = {"width": 1280, "height": 720}

        async with async_playwright() as playwright:
            browser_launcher = getattr(playwright, browser_type)
            browser: Browser = await browser_launcher.launch(headless=headless)
            try:
                context_kwargs: dict[str, Any] = {
                    "viewport": viewport,
                    "locale": locale,
                }
                if user_agent:
                    context_kwargs["user_agent"] = user_agent
                context = await browser.new_context(**context_kwargs)
                page = await context.new_page()
                try:
                    await page.goto(
                        url,
                        wait_until="domcontentloaded",
                        timeout=navigation_timeout_ms,
                    )
                except PlaywrightError as e:
                    raise PageFetchException(url, str(e)) from e
                logger.info(f"Opened {url} in {browser_type}")
                yield cls(page, table_id, wait_timeout_ms)
            finally:
                await browser.close()

    async def capture(self) -> LxmlTableSource | None:
        try:
            await self.page.wait_for_selector(
                f"table#{self.table_id}",
                state="attached",
                timeout=self.wait_timeout_ms,
            )
        except PlaywrightTimeoutError:
            logger.warning(
                f"Table #{self.table_id} did not appear within "
                f"{self.wait_timeout_ms}ms",
                extra={"url": self.page.url},
            )
            return None
        except PlaywrightError as e:
            # e.g. the execution context was destroyed by a navigation
            raise PageFetchException(self.page.url, str(e)) from e

        try:
            html_content = await self.page.content()
        except PlaywrightError as e:
            raise PageFetchException(self.page.url, str(e)) from e
        return parse_table(html_content, self.table_id, self.page.url)
