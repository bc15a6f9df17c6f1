"""Lazy, single-pass iteration over cursor-paginated GitHub connections."""

from collections import deque
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")

PAGE_SIZE = 100  # GitHub GraphQL caps `first` at 100


@dataclass(frozen=True)
class Page(Generic[T]):
    items: list[T] = field(default_factory=list)
    end_cursor: str | None = None
    has_next_page: bool = False


PageFetcher = Callable[[int, str | None], Page[T]]


class Paginator(Iterator[T]):
    """Iterate a paginated listing one page at a time.

    ``fetch(first, after)`` is called only when the items of the previous page
    have been consumed, so a caller that stops early never triggers another
    request. If ``fetch`` raises, the exception surfaces from ``next()`` and
    the paginator is exhausted afterwards. There is no restart; build a new
    Paginator to enumerate again.
    """

    def __init__(self, fetch: PageFetcher[T], page_size: int = PAGE_SIZE) -> None:
        self._fetch = fetch
        self._page_size = page_size
        self._items: deque[T] = deque()
        self._cursor: str | None = None
        self._has_next = True
        self._done = False
        self.pages_fetched = 0

    def __iter__(self) -> "Paginator[T]":
        return self

    def __next__(self) -> T:
        while not self._items:
            if self._done or not self._has_next:
                self._done = True
                raise StopIteration
            self._fetch_page()
        return self._items.popleft()

    @property
    def done(self) -> bool:
        return self._done

    def close(self) -> None:
        """Stop iterating without fetching any further pages."""
        self._done = True
        self._items.clear()

    def _fetch_page(self) -> None:
        try:
            page = self._fetch(self._page_size, self._cursor)
        except Exception:
            self._done = True
            raise
        self.pages_fetched += 1
        self._items.extend(page.items)
        self._cursor = page.end_cursor
        # A page claiming more results without a cursor would loop forever
        self._has_next = page.has_next_page and page.end_cursor is not None
