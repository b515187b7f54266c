"""Pagination windowing for result lists."""
from __future__ import annotations

from dataclasses import dataclass, field
from math import ceil
from typing import Union

ELLIPSIS = "..."
MAX_VISIBLE_PAGES = 5

PageEntry = Union[int, str]


def total_pages(total_items: int | None, page_size: int) -> int:
    """Number of pages needed for ``total_items`` at ``page_size`` rows per page."""
    if not total_items or total_items <= 0:
        return 0
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    return ceil(total_items / page_size)


def page_window(current_page: int, total: int) -> list[PageEntry]:
    """
    Page labels to display around ``current_page``.

    Short ranges are shown whole; longer ones keep the first and last page
    and collapse the gaps into ``ELLIPSIS`` markers.

    >>> page_window(5, 10)
    [1, '...', 4, 5, 6, '...', 10]
    """
    if total <= MAX_VISIBLE_PAGES:
        return list(range(1, total + 1))
    if current_page <= 3:
        return [1, 2, 3, 4, ELLIPSIS, total]
    if current_page >= total - 2:
        return [1, ELLIPSIS, *range(total - 3, total + 1)]
    return [1, ELLIPSIS, current_page - 1, current_page, current_page + 1, ELLIPSIS, total]


def can_select(page: int, current_page: int, total: int) -> bool:
    """True when choosing ``page`` should trigger a fetch."""
    if page == current_page:
        return False
    return 1 <= page <= total


@dataclass(frozen=True)
class PageLink:
    label: str
    page: int | None
    is_current: bool = False

    @property
    def is_ellipsis(self) -> bool:
        return self.page is None


@dataclass(frozen=True)
class Pagination:
    current_page: int
    total_pages: int
    links: list[PageLink] = field(default_factory=list)

    @property
    def has_previous(self) -> bool:
        return self.current_page > 1

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def previous_page(self) -> int | None:
        return self.current_page - 1 if self.has_previous else None

    @property
    def next_page(self) -> int | None:
        return self.current_page + 1 if self.has_next else None

    @property
    def visible(self) -> bool:
        return self.total_pages > 1

    def to_dict(self) -> dict:
        return {
            "current_page": self.current_page,
            "total_pages": self.total_pages,
            "previous_page": self.previous_page,
            "next_page": self.next_page,
            "visible": self.visible,
            "links": [
                {"label": link.label, "page": link.page, "is_current": link.is_current, "is_ellipsis": link.is_ellipsis}
                for link in self.links
            ],
        }


def build_pagination(current_page: int, total: int) -> Pagination:
    links = []
    for entry in page_window(current_page, total):
        if entry == ELLIPSIS:
            links.append(PageLink(label=ELLIPSIS, page=None))
        else:
            links.append(PageLink(label=str(entry), page=int(entry), is_current=entry == current_page))
    return Pagination(current_page=current_page, total_pages=total, links=links)
