import asyncio

import pytest

from case_index.adapters.price_api import SEARCH_PATH
from case_index.engine.queries import PriceQueries
from case_index.engine.search_session import SearchSession
from case_index.models import SearchParams, SortOption
from case_index.stores.query_cache import QueryStatus


def search_params_of(fake_api):
    return [dict(request.url.params) for request in fake_api.calls(SEARCH_PATH)]


def test_cache_keys_follow_parameters(queries):
    assert queries.search_key(SearchParams(query="a", page=2)) == ("priceChanges", "a", 2, "gainers")
    assert queries.movers_key(SortOption.LOSERS, 10) == ("topLosers", 10)
    assert queries.chart_key(5, "1m") == ("priceChart", 5, "1m")


@pytest.mark.asyncio
async def test_identical_search_is_served_from_cache(queries, fake_api):
    params = SearchParams(query="Chroma", page=2, sort_by=SortOption.GAINERS)
    first = await queries.search(params)
    second = await queries.search(SearchParams(query="Chroma", page=2, sort_by="gainers"))
    assert first is second
    assert len(fake_api.calls()) == 1


@pytest.mark.asyncio
async def test_item_queries_disabled_without_id(queries, fake_api):
    assert await queries.item(0) is None
    assert await queries.price_chart(0) is None
    assert await queries.price_stats(0) is None
    assert fake_api.calls() == []


@pytest.mark.asyncio
async def test_debounced_query_resets_page_and_fetches_once(queries, fake_api):
    snapshots = []

    async def collect(snapshot):
        snapshots.append(snapshot)

    session = SearchSession(queries, collect, debounce_sec=0.02)
    await session.refresh()
    assert session.go_to_page(2) is True
    await session.drain()
    assert session.params.page == 2

    for text in ("C", "Ch", "Chroma"):
        session.set_query(text)
        await asyncio.sleep(0.005)
    await asyncio.sleep(0.06)
    await session.drain()

    assert session.params == SearchParams(query="Chroma", page=1, sort_by=SortOption.GAINERS)
    assert search_params_of(fake_api)[-1] == {"query": "Chroma", "page": "1", "sort_by": "gainers"}
    assert [p["query"] for p in search_params_of(fake_api)] == ["", "", "Chroma"]
    final = snapshots[-1]
    assert final.status is QueryStatus.SUCCESS
    assert final.total == 45
    assert final.total_pages == 3
    await session.close()


@pytest.mark.asyncio
async def test_placeholder_snapshot_published_while_loading(queries):
    snapshots = []

    async def collect(snapshot):
        snapshots.append(snapshot)

    session = SearchSession(queries, collect, query="Chroma", debounce_sec=0)
    await session.refresh()
    assert session.go_to_page(3) is True
    await session.drain()
    loading, loaded = snapshots[-2:]
    assert loading.is_placeholder is True
    assert loading.params.page == 3
    assert len(loading.items) == 20
    assert loaded.is_placeholder is False
    assert len(loaded.items) == 5
    await session.close()


@pytest.mark.asyncio
async def test_sort_change_resets_page(queries):
    session = SearchSession(queries, query="Chroma", page=2, debounce_sec=0)
    await session.refresh()
    assert session.set_sort("gainers") is False
    assert session.set_sort(SortOption.LOSERS) is True
    assert session.params.page == 1
    await session.drain()
    assert session.snapshot().items[0].name == "Chroma Case 1"
    await session.close()


@pytest.mark.asyncio
async def test_page_selection_rules(queries, fake_api):
    session = SearchSession(queries, query="Chroma", debounce_sec=0)
    await session.refresh()
    calls = len(fake_api.calls())
    assert session.go_to_page(1) is False
    assert session.go_to_page(0) is False
    assert session.go_to_page(4) is False
    assert len(fake_api.calls()) == calls
    await session.close()


@pytest.mark.asyncio
async def test_error_snapshot(queries, fake_api):
    fake_api.fail(SEARCH_PATH, 500)
    session = SearchSession(queries, query="Chroma", debounce_sec=0)
    snapshot = await session.refresh()
    assert snapshot.status is QueryStatus.ERROR
    assert snapshot.error == "Request failed with status code 500"
    assert snapshot.items == []
    await session.close()


@pytest.mark.asyncio
async def test_clear_query_applies_immediately(queries):
    session = SearchSession(queries, query="Chroma", page=3, debounce_sec=10)
    session.clear_query()
    assert session.params.query == ""
    assert session.params.page == 1
    await session.drain()
    await session.close()


def test_queries_use_configured_page_size(queries: PriceQueries):
    assert queries.page_size == 20
    assert queries.search_policy.keep_previous_data is True
