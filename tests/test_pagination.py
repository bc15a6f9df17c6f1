"""Tests for prsync.pagination.Paginator."""

import pytest

from prsync.errors import RemoteError
from prsync.pagination import PAGE_SIZE, Page, Paginator


class PagedSource:
    """Serves ``pages`` in order and records every (first, after) request."""

    def __init__(self, pages: list[list[int]], fail_at: int | None = None) -> None:
        self.pages = pages
        self.fail_at = fail_at
        self.requests: list[tuple[int, str | None]] = []

    def __call__(self, first: int, after: str | None) -> Page[int]:
        self.requests.append((first, after))
        index = 0 if after is None else int(after)
        if index == self.fail_at:
            raise RemoteError("RATE_LIMITED: slow down")
        has_next = index + 1 < len(self.pages)
        return Page(items=self.pages[index], end_cursor=str(index + 1), has_next_page=has_next)


class TestPaginator:
    def test_walks_all_pages(self) -> None:
        source = PagedSource([[1, 2], [3], [4, 5]])
        assert list(Paginator(source)) == [1, 2, 3, 4, 5]
        assert source.requests == [(PAGE_SIZE, None), (PAGE_SIZE, "1"), (PAGE_SIZE, "2")]

    def test_lazy_until_first_next(self) -> None:
        source = PagedSource([[1]])
        pager = Paginator(source, page_size=10)
        assert source.requests == []
        assert next(pager) == 1
        assert source.requests == [(10, None)]

    def test_fetches_next_page_only_when_needed(self) -> None:
        source = PagedSource([[1, 2], [3]])
        pager = Paginator(source)
        assert next(pager) == 1
        assert next(pager) == 2
        assert len(source.requests) == 1
        assert next(pager) == 3
        assert len(source.requests) == 2

    def test_early_stop_fetches_nothing_more(self) -> None:
        source = PagedSource([[1, 2], [3]])
        pager = Paginator(source)
        for item in pager:
            if item == 1:
                break
        pager.close()
        assert list(pager) == []
        assert pager.done
        assert pager.pages_fetched == 1

    def test_empty_pages_are_skipped(self) -> None:
        source = PagedSource([[], [1]])
        assert list(Paginator(source)) == [1]

    def test_error_is_terminal(self) -> None:
        source = PagedSource([[1], [2]], fail_at=1)
        pager = Paginator(source)
        assert next(pager) == 1
        with pytest.raises(RemoteError, match="RATE_LIMITED"):
            next(pager)
        # No retry and no restart
        assert list(pager) == []
        assert len(source.requests) == 2

    def test_missing_cursor_ends_iteration(self) -> None:
        pager = Paginator(lambda first, after: Page(items=[1], end_cursor=None, has_next_page=True))
        assert list(pager) == [1]

    def test_single_pass(self) -> None:
        pager = Paginator(PagedSource([[1, 2]]))
        assert list(pager) == [1, 2]
        assert list(pager) == []
