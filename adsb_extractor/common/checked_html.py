"""Checked HTML element wrapper for safe XPath/CSS querying.

This module provides CheckedHtmlElement, a wrapper around
lxml.html.HtmlElement that validates selector results against expected
counts, so that a change in the page layout surfaces as a clear
HTMLStructuralAssumptionException instead of silently empty data.
"""

from __future__ import annotations

from typing import overload

from lxml.html import HtmlElement

from adsb_extractor.common.exceptions import (
    HTMLStructuralAssumptionException,
)


class CheckedHtmlElement:
    """Wrapper around HtmlElement with validated selectors.

    checked_xpath() and checked_css() compare the number of results with the
    expected min/max counts and raise HTMLStructuralAssumptionException with
    the selector, the description and the counts when they disagree.
    """

    def __init__(self, element: HtmlElement, source_url: str = "") -> None:
        """Initialize the checked element wrapper.

        Args:
            element: The lxml HtmlElement to wrap.
            source_url: Optional URL or path for error context.
        """
        self._element = element
        self._source_url = source_url

    @property
    def source_url(self) -> str:
        return self._source_url

    def _check_count(
        self,
        selector: str,
        selector_type: str,
        description: str,
        actual_count: int,
        min_count: int,
        max_count: int | None,
    ) -> None:
        if actual_count < min_count or (
            max_count is not None and actual_count > max_count
        ):
            raise HTMLStructuralAssumptionException(
                selector=selector,
                selector_type=selector_type,
                description=description,
                expected_min=min_count,
                expected_max=max_count,
                actual_count=actual_count,
                source_url=self._source_url,
            )

    @overload
    def checked_xpath(
        self,
        xpath: str,
        description: str,
        min_count: int = 1,
        max_count: int | None = None,
        *,
        type: type[str],
        **variables: str,
    ) -> list[str]: ...

    @overload
    def checked_xpath(
        self,
        xpath: str,
        description: str,
        min_count: int = 1,
        max_count: int | None = None,
        **variables: str,
    ) -> list[CheckedHtmlElement]: ...

    def checked_xpath(
        self,
        xpath: str,
        description: str,
        min_count: int = 1,
        max_count: int | None = None,
        *,
        type: type[str] | None = None,
        **variables: str,
    ) -> list[CheckedHtmlElement] | list[str]:
        """Execute XPath query with count validation.

        Args:
            xpath: XPath expression to execute.
            description: Human-readable description of what's being selected.
            min_count: Minimum number of results expected (default: 1).
            max_count: Maximum number of results expected (None = unlimited).
            type: Pass `str` to return only string results (text/attributes).
                If omitted, only elements are returned.
            **variables: XPath variables referenced as ``$name`` in the
                expression.

        Returns:
            List of matching CheckedHtmlElements, or strings with type=str.

        Raises:
            HTMLStructuralAssumptionException: If count doesn't match expectations.

        Example::

            tree = CheckedHtmlElement(lxml.html.fromstring(html))
            rows = tree.checked_xpath("//tbody/tr", "aircraft rows", min_count=0)
            titles = tree.checked_xpath("//img/@title", "flag titles", type=str)
        """
        results = self._element.xpath(xpath, **variables)

        if type is str:
            strings: list[str] = [str(r) for r in results if isinstance(r, str)]
            self._check_count(
                xpath, "xpath", description, len(strings), min_count, max_count
            )
            return strings

        wrapped = [
            CheckedHtmlElement(r, self._source_url)
            for r in results
            if isinstance(r, HtmlElement)
        ]
        self._check_count(
            xpath, "xpath", description, len(wrapped), min_count, max_count
        )
        return wrapped

    def checked_css(
        self,
        selector: str,
        description: str,
        min_count: int = 1,
        max_count: int | None = None,
    ) -> list[CheckedHtmlElement]:
        """Execute CSS selector query with count validation.

        Args:
            selector: CSS selector expression.
            description: Human-readable description of what's being selected.
            min_count: Minimum number of elements expected (default: 1).
            max_count: Maximum number of elements expected (None = unlimited).

        Returns:
            List of matching CheckedHtmlElements, each supporting nested
            checked queries.

        Raises:
            HTMLStructuralAssumptionException: If count doesn't match
                expectations or the selector is invalid.
        """
        try:
            results = self._element.cssselect(selector)
        except Exception as e:
            raise HTMLStructuralAssumptionException(
                selector=selector,
                selector_type="css",
                description=description,
                expected_min=min_count,
                expected_max=max_count,
                actual_count=0,
                source_url=self._source_url,
            ) from e

        self._check_count(
            selector, "css", description, len(results), min_count, max_count
        )
        return [
            CheckedHtmlElement(result, self._source_url) for result in results
        ]

    def __getattr__(self, name: str):
        """Delegate all other attributes to the wrapped element.

        This lets CheckedHtmlElement stand in for HtmlElement
        (``text_content()``, ``get()``, ``tag``...).
        """
        return getattr(self._element, name)
