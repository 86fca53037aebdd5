"""LxmlTableSource implementation backed by parsed HTML.

This is the standard TableSource used by every page provider. Whether the
HTML came from a saved file, an HTTP response or a serialized Playwright
DOM, it is parsed with lxml and wrapped in CheckedHtmlElement, so the
normalizer only ever sees a static snapshot of the table.
"""

from __future__ import annotations

from lxml import etree, html

from adsb_extractor.common.checked_html import CheckedHtmlElement

DEFAULT_TABLE_ID = "planesTable"


class LxmlHeaderCell:
    def __init__(self, element: CheckedHtmlElement) -> None:
        self._element = element

    def identifier(self) -> str:
        return self._element.get("id") or ""


class LxmlDataCell:
    def __init__(self, element: CheckedHtmlElement) -> None:
        self._element = element

    def text_content(self) -> str:
        return self._element.text_content()

    def image_title(self) -> str | None:
        if not self._element.checked_xpath(".//img", "flag image", min_count=0):
            return None
        titles = self._element.checked_xpath(
            "(.//img)[1]/@title",
            "flag image title",
            min_count=0,
            max_count=1,
            type=str,
        )
        return titles[0] if titles else ""


class LxmlBodyRow:
    def __init__(self, element: CheckedHtmlElement) -> None:
        self._element = element

    def identifier(self) -> str:
        return self._element.get("id") or ""

    def cells(self) -> list[LxmlDataCell]:
        return [
            LxmlDataCell(cell)
            for cell in self._element.checked_xpath(
                "./td", "row cells", min_count=0
            )
        ]


class LxmlTableSource:
    """TableSource implementation wrapping a CheckedHtmlElement table.

    Header cells are the ``td`` elements under ``thead`` (the aircraft
    table uses ``td`` rather than ``th`` for its column headers); body rows
    are the ``tr`` elements under ``tbody``.

    Attributes:
        _table: The wrapped ``<table>`` element.
    """

    def __init__(self, table: CheckedHtmlElement) -> None:
        self._table = table

    @property
    def source_url(self) -> str:
        return self._table.source_url

    def header_cells(self) -> list[LxmlHeaderCell]:
        return [
            LxmlHeaderCell(cell)
            for cell in self._table.checked_css(
                "thead td", "header cells", min_count=0
            )
        ]

    def body_rows(self) -> list[LxmlBodyRow]:
        return [
            LxmlBodyRow(row)
            for row in self._table.checked_css(
                "tbody tr", "aircraft rows", min_count=0
            )
        ]


def locate_table(
    document: CheckedHtmlElement, table_id: str = DEFAULT_TABLE_ID
) -> LxmlTableSource | None:
    """Find the table with the given id in a parsed document.

    Args:
        document: The parsed page.
        table_id: The ``id`` attribute of the table.

    Returns:
        LxmlTableSource for the table, or None if the page has no such table.

    Raises:
        HTMLStructuralAssumptionException: If more than one table carries
            the id.
    """
    tables = document.checked_xpath(
        "//table[@id=$table_id]",
        f"table #{table_id}",
        min_count=0,
        max_count=1,
        table_id=table_id,
    )
    if not tables:
        return None
    return LxmlTableSource(tables[0])


def parse_table(
    html_text: str | bytes,
    table_id: str = DEFAULT_TABLE_ID,
    source_url: str = "",
) -> LxmlTableSource | None:
    """Parse a page snapshot and locate the aircraft table in it.

    Args:
        html_text: Full HTML of the page.
        table_id: The ``id`` attribute of the table.
        source_url: URL or path of the page, for error context.

    Returns:
        LxmlTableSource, or None if the table is absent (or the page empty).
    """
    if not html_text or not html_text.strip():
        return None
    try:
        root = html.fromstring(html_text)
    except etree.ParserError:
        # Whitespace or comments only
        return None
    document = CheckedHtmlElement(root, source_url)
    return locate_table(document, table_id)
