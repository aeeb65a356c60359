"""Rendered-page model and the shared page cache.

Container discovery only needs tables, rows and cells out of the YARN UI,
so the page fetcher is reduced to ``fetch(url) -> Page``.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Protocol


@dataclass(frozen=True)
class Cell:
    """A table cell: its visible text and the first link it contains."""

    text: str
    href: str | None = None


@dataclass(frozen=True)
class Row:
    cells: tuple[Cell, ...]

    def cell(self, index: int) -> Cell | None:
        """Return the cell at ``index`` or None if the row is shorter."""
        if 0 <= index < len(self.cells):
            return self.cells[index]
        return None


@dataclass(frozen=True)
class Table:
    """A body table of a page, identified by its id and CSS classes."""

    id: str | None
    classes: tuple[str, ...]
    rows: tuple[Row, ...]


@dataclass(frozen=True)
class Page:
    """
    Structured view of a rendered page.

    Attributes:
        url: URL the page was loaded from.
        tables: Tables in document order.
        text: Whole visible text of the page.
    """

    url: str
    tables: tuple[Table, ...] = ()
    text: str = ""

    def table(self, key: str) -> Table | None:
        """Return the first table whose id or one of whose classes is ``key``."""
        for table in self.tables:
            if table.id == key or key in table.classes:
                return table
        return None


class PageFetcher(Protocol):
    """Interface for loading a rendered page."""

    async def fetch(self, url: str, *, refresh: bool = False) -> Page:
        """
        Load a page.

        Args:
            url: Absolute URL of the page.
            refresh: Bypass cached copies and load the page again.
        """
        ...


class PageCache:
    """
    Process-wide cache of rendered pages keyed by URL.

    Entries expire after ``ttl_seconds``; once ``max_entries`` is reached
    the oldest entry is evicted. All operations hold one lock, so the cache
    can be shared by fetchers running in worker threads.
    """

    def __init__(
        self,
        ttl_seconds: float = 300,
        max_entries: int = 256,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, Page]] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, url: str) -> Page | None:
        """Return a fresh cached page or None."""
        with self._lock:
            entry = self._entries.get(url)
            if entry is None:
                return None
            stored_at, page = entry
            if self._clock() - stored_at > self.ttl_seconds:
                del self._entries[url]
                return None
            return page

    def put(self, url: str, page: Page) -> None:
        """Store a page, evicting the oldest entries when full."""
        if self.ttl_seconds <= 0 or self.max_entries <= 0:
            return
        with self._lock:
            self._entries.pop(url, None)
            self._entries[url] = (self._clock(), page)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
