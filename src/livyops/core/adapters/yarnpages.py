"""requests-based PageFetcher for the YARN resource manager UI.

The RM UI serves its tables in the initial HTML, so a plain HTML parse is
enough to expose them as a Page.
"""

from __future__ import annotations

import asyncio
import logging
from html.parser import HTMLParser
from typing import Callable

import requests

from livyops.core.errors import TransientTransportError
from livyops.core.pages import Cell, Page, PageCache, Row, Table

LOGGER = logging.getLogger(__name__)

_SKIPPED_TEXT_TAGS = {"script", "style", "head", "title"}


class _TableBuilder:
    def __init__(self, table_id: str | None, classes: tuple[str, ...]):
        self.id = table_id
        self.classes = classes
        self.rows: list[Row] = []
        self.cells: list[Cell] | None = None
        self.cell_text: list[str] | None = None
        self.cell_href: str | None = None
        self.has_data_cell = False

    def build(self) -> Table:
        return Table(id=self.id, classes=self.classes, rows=tuple(self.rows))


class _PageParser(HTMLParser):
    """Collect body rows of every table, plus the visible text of the page."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.tables: list[Table] = []
        self.text: list[str] = []
        self._stack: list[_TableBuilder] = []
        self._skip_depth = 0

    def handle_starttag(self, tag, attrs):
        attributes = dict(attrs)
        if tag in _SKIPPED_TEXT_TAGS:
            self._skip_depth += 1
        elif tag == "table":
            classes = tuple((attributes.get("class") or "").split())
            self._stack.append(_TableBuilder(attributes.get("id"), classes))
        elif not self._stack:
            return
        elif tag == "tr":
            current = self._stack[-1]
            current.cells = []
            current.has_data_cell = False
        elif tag in ("td", "th"):
            current = self._stack[-1]
            if current.cells is None:
                current.cells = []
            if tag == "td":
                current.has_data_cell = True
            current.cell_text = []
            current.cell_href = None
        elif tag == "a":
            current = self._stack[-1]
            if current.cell_text is not None and current.cell_href is None:
                current.cell_href = attributes.get("href")

    def handle_endtag(self, tag):
        if tag in _SKIPPED_TEXT_TAGS:
            self._skip_depth = max(self._skip_depth - 1, 0)
        elif not self._stack:
            return
        elif tag == "table":
            self.tables.append(self._stack.pop().build())
        elif tag in ("td", "th"):
            current = self._stack[-1]
            if current.cell_text is not None and current.cells is not None:
                text = " ".join("".join(current.cell_text).split())
                current.cells.append(Cell(text=text, href=current.cell_href))
            current.cell_text = None
        elif tag == "tr":
            current = self._stack[-1]
            if current.cells and current.has_data_cell:
                current.rows.append(Row(cells=tuple(current.cells)))
            current.cells = None

    def handle_data(self, data):
        if self._skip_depth:
            return
        self.text.append(data)
        if self._stack and self._stack[-1].cell_text is not None:
            self._stack[-1].cell_text.append(data)


def parse_page(url: str, html: str) -> Page:
    """Parse an HTML document into a Page."""
    parser = _PageParser()
    parser.feed(html)
    parser.close()
    while parser._stack:
        parser.tables.append(parser._stack.pop().build())
    text = " ".join(" ".join(parser.text).split())
    return Page(url=url, tables=tuple(parser.tables), text=text)


class YarnPageFetcher:
    """
    Load RM UI pages, sharing results through a PageCache.

    A fresh requests Session is opened for each load and closed right after,
    so an abandoned discovery never leaves a connection behind.
    """

    def __init__(
        self,
        session_factory: Callable[[], requests.Session],
        cache: PageCache,
        timeout: float = 30,
    ):
        self._session_factory = session_factory
        self.cache = cache
        self.timeout = timeout

    def _load(self, url: str) -> Page:
        LOGGER.debug("Loading page %s", url)
        with self._session_factory() as session:
            try:
                resp = session.get(url, timeout=self.timeout, headers={"Accept": "text/html"})
            except requests.RequestException as exc:
                raise TransientTransportError(f"GET {url} failed: {exc}") from exc
        if not 200 <= resp.status_code < 300:
            raise TransientTransportError(f"GET {url} returned {resp.status_code}")
        return parse_page(url, resp.text)

    async def fetch(self, url: str, *, refresh: bool = False) -> Page:
        if not refresh:
            cached = self.cache.get(url)
            if cached is not None:
                return cached
        page = await asyncio.to_thread(self._load, url)
        self.cache.put(url, page)
        return page
