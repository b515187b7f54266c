"""Interactive search state: debounced query text, sort mode and page."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from ..core.pagination import Pagination, build_pagination, can_select, total_pages
from ..models import CaseItem, SearchParams, SortOption
from ..stores.query_cache import QueryStatus
from .debounce import Debouncer
from .queries import PriceQueries

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchSnapshot:
    params: SearchParams
    raw_query: str
    status: QueryStatus
    items: list[CaseItem] = field(default_factory=list)
    total: int = 0
    total_pages: int = 0
    pagination: Pagination | None = None
    is_placeholder: bool = False
    error: str | None = None


SnapshotListener = Callable[[SearchSnapshot], Awaitable[None]]


class SearchSession:
    """
    One user's search box.

    Query text is debounced before it becomes part of the search key. The
    page returns to 1 whenever the debounced query or the sort mode changes.
    Refreshes run as background tasks so newer input is never blocked by an
    older request; the search observer discards responses for superseded
    parameters.
    """

    def __init__(
        self,
        queries: PriceQueries,
        on_update: SnapshotListener | None = None,
        *,
        query: str = "",
        page: int = 1,
        sort_by: SortOption = SortOption.GAINERS,
        debounce_sec: float | None = None,
    ) -> None:
        self._queries = queries
        self._observer = queries.search_observer()
        self._on_update = on_update
        delay = queries.settings.debounce_sec if debounce_sec is None else debounce_sec
        self._debouncer: Debouncer[str] = Debouncer(delay, query, on_settle=self._on_query_settled)
        self._raw_query = query
        self._sort_by = SortOption(sort_by)
        self._page = max(int(page), 1)
        self._tasks: set[asyncio.Task] = set()

    @property
    def params(self) -> SearchParams:
        return SearchParams(query=self._debouncer.value, page=self._page, sort_by=self._sort_by)

    @property
    def raw_query(self) -> str:
        return self._raw_query

    @property
    def total_pages(self) -> int:
        data = self._observer.state.data
        if data is None:
            return 0
        return total_pages(data.data.total, self._queries.page_size)

    def snapshot(self) -> SearchSnapshot:
        state = self._observer.state
        params = self.params
        items: list[CaseItem] = []
        total = 0
        if state.data is not None:
            items = list(state.data.data.items)
            total = state.data.data.total
        pages = total_pages(total, self._queries.page_size)
        return SearchSnapshot(
            params=params,
            raw_query=self._raw_query,
            status=state.status,
            items=items,
            total=total,
            total_pages=pages,
            pagination=build_pagination(params.page, pages),
            is_placeholder=state.is_placeholder,
            error=state.error_message if state.is_error else None,
        )

    # -- input --------------------------------------------------------------

    def set_query(self, text: str) -> None:
        self._raw_query = text
        self._debouncer.push(text)

    def clear_query(self) -> None:
        """Empty the search box immediately, without waiting for the debounce."""
        self._raw_query = ""
        self._debouncer.push("")
        self._debouncer.flush()

    def set_sort(self, sort_by: SortOption | str) -> bool:
        sort_by = SortOption(sort_by)
        if sort_by == self._sort_by:
            return False
        self._sort_by = sort_by
        self._page = 1
        self.schedule_refresh()
        return True

    def go_to_page(self, page: int) -> bool:
        """Select ``page``; the current page and pages out of range are ignored."""
        if not can_select(page, self._page, self.total_pages):
            return False
        self._page = page
        self.schedule_refresh()
        return True

    def _on_query_settled(self, _query: str) -> None:
        self._page = 1
        self.schedule_refresh()

    # -- fetching -----------------------------------------------------------

    def schedule_refresh(self) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self.refresh())
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.error("Search refresh failed: %s", exc, exc_info=exc)

    async def refresh(self) -> SearchSnapshot | None:
        params = self.params
        key = self._queries.search_key(params)
        generation = self._observer.start(key)
        if self._observer.state.is_fetching:
            await self._publish()
        await self._observer.complete(generation, key, self._queries.search_fetcher(params))
        if not self._observer.is_current(generation):
            return None
        return await self._publish()

    async def _publish(self) -> SearchSnapshot:
        snapshot = self.snapshot()
        if self._on_update is not None:
            await self._on_update(snapshot)
        return snapshot

    async def drain(self) -> None:
        """Wait until no refresh is running."""
        while self._tasks:
            await asyncio.gather(*tuple(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        self._debouncer.cancel()
        for task in tuple(self._tasks):
            task.cancel()
        await self.drain()
