"""Cached data-fetch queries over the price API, one per view concern."""
from __future__ import annotations

from typing import Any

from ..adapters.price_api import PriceApiClient
from ..config import Settings, get_settings
from ..models import (
    ChartInterval,
    ChartResponse,
    PriceChangesResponse,
    PriceStatsResponse,
    SearchParams,
    SortOption,
)
from ..stores.query_cache import Fetcher, QueryCache, QueryObserver, QueryPolicy


class PriceQueries:
    """
    Query layer between views and the API client.

    Keys mirror the parameters of each call, so identical requests within a
    freshness window are served from ``cache`` and concurrent identical
    requests share one upstream call. Item-scoped queries are disabled (return
    ``None`` without a request) when the item id is falsy.
    """

    def __init__(self, client: PriceApiClient, cache: QueryCache | None = None, settings: Settings | None = None) -> None:
        self.client = client
        self.settings = settings or get_settings()
        if cache is None:
            cache = QueryCache(max_entries=self.settings.cache_max_entries, gc_time=self.settings.cache_gc_time_sec)
        self.cache = cache
        retry = self.settings.query_retries
        base_delay = self.settings.retry_base_delay_sec
        self.search_policy = QueryPolicy(
            stale_time=self.settings.search_stale_time_sec,
            retry=retry,
            retry_base_delay=base_delay,
            keep_previous_data=True,
        )
        self.detail_policy = QueryPolicy(
            stale_time=self.settings.stale_time_sec, retry=retry, retry_base_delay=base_delay
        )
        self.item_policy = QueryPolicy(
            stale_time=self.settings.item_stale_time_sec, retry=retry, retry_base_delay=base_delay
        )

    @property
    def page_size(self) -> int:
        return self.settings.page_size

    # -- keys ---------------------------------------------------------------

    @staticmethod
    def search_key(params: SearchParams) -> tuple[Any, ...]:
        return ("priceChanges", params.query, params.page, params.sort_by.value)

    @staticmethod
    def movers_key(sort_by: SortOption, limit: int) -> tuple[Any, ...]:
        name = "topGainers" if SortOption(sort_by) == SortOption.GAINERS else "topLosers"
        return (name, limit)

    @staticmethod
    def chart_key(item_id: int, interval: ChartInterval) -> tuple[Any, ...]:
        return ("priceChart", item_id, ChartInterval(interval).value)

    @staticmethod
    def stats_key(item_id: int) -> tuple[Any, ...]:
        return ("priceStats", item_id)

    @staticmethod
    def item_key(item_id: int) -> tuple[Any, ...]:
        return ("item", item_id)

    # -- queries ------------------------------------------------------------

    def search_fetcher(self, params: SearchParams) -> Fetcher:
        return lambda: self.client.fetch_price_changes(params)

    async def search(self, params: SearchParams) -> PriceChangesResponse:
        return await self.cache.fetch(self.search_key(params), self.search_fetcher(params), self.search_policy)

    def search_observer(self) -> QueryObserver:
        return QueryObserver(self.cache, self.search_policy)

    async def top_movers(self, sort_by: SortOption, limit: int | None = None) -> PriceChangesResponse:
        limit = limit or self.settings.top_movers_limit
        return await self.cache.fetch(
            self.movers_key(sort_by, limit),
            lambda: self.client.fetch_top_movers(sort_by, limit),
            self.detail_policy,
        )

    async def top_gainers(self, limit: int | None = None) -> PriceChangesResponse:
        return await self.top_movers(SortOption.GAINERS, limit)

    async def top_losers(self, limit: int | None = None) -> PriceChangesResponse:
        return await self.top_movers(SortOption.LOSERS, limit)

    async def price_chart(self, item_id: int, interval: ChartInterval | str | None = None) -> ChartResponse | None:
        if not item_id:
            return None
        resolved = ChartInterval(interval or self.settings.default_chart_interval)
        return await self.cache.fetch(
            self.chart_key(item_id, resolved),
            lambda: self.client.fetch_price_chart(item_id, resolved),
            self.detail_policy,
        )

    async def price_stats(self, item_id: int) -> PriceStatsResponse | None:
        if not item_id:
            return None
        return await self.cache.fetch(
            self.stats_key(item_id),
            lambda: self.client.fetch_price_stats(item_id),
            self.detail_policy,
        )

    async def item(self, item_id: int) -> PriceChangesResponse | None:
        if not item_id:
            return None
        return await self.cache.fetch(
            self.item_key(item_id),
            lambda: self.client.fetch_item_by_id(item_id),
            self.item_policy,
        )
