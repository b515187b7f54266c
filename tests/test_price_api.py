import httpx
import pytest

from case_index.adapters.price_api import (
    CHART_PATH,
    SEARCH_PATH,
    STATS_PATH,
    MalformedResponseError,
    PriceApiClient,
    PriceApiError,
    PriceApiResponseError,
    PriceApiTransportError,
)
from case_index.models import ChartInterval, SearchParams, SortOption


def client_for(handler):
    return PriceApiClient("http://api.test", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_search_sends_only_search_params(fake_api, api_client):
    response = await api_client.fetch_price_changes(SearchParams(query="Chroma", page=2, sort_by=SortOption.GAINERS))
    (request,) = fake_api.calls()
    assert request.url.path == SEARCH_PATH
    assert dict(request.url.params) == {"query": "Chroma", "page": "2", "sort_by": "gainers"}
    assert response.data.total == 45
    assert len(response.data.items) == 20


@pytest.mark.asyncio
async def test_top_movers_params(fake_api, api_client):
    losers = await api_client.fetch_top_losers(5)
    request = fake_api.calls(SEARCH_PATH)[0]
    assert dict(request.url.params) == {"sort_by": "losers", "page": "1", "limit": "5"}
    assert len(losers.data.items) == 5
    assert losers.data.items[0].name == "Snakebite Case"


@pytest.mark.asyncio
async def test_item_chart_and_stats_calls(fake_api, api_client):
    item = await api_client.fetch_item_by_id(100)
    chart = await api_client.fetch_price_chart(100, ChartInterval.SEVEN_DAYS)
    stats = await api_client.fetch_price_stats(100)
    assert item.data.items[0].name == "Prisma Case"
    assert dict(fake_api.calls(SEARCH_PATH)[0].url.params) == {"item_id": "100"}
    assert dict(fake_api.calls(CHART_PATH)[0].url.params) == {"item_id": "100", "interval": "7d"}
    assert dict(fake_api.calls(STATS_PATH)[0].url.params) == {"item_id": "100"}
    assert len(chart.data) == 5
    assert [stat.label for stat in stats.data] == ["7 Days", "1 Month"]


@pytest.mark.asyncio
async def test_http_error_status_maps_to_response_error():
    client = client_for(lambda request: httpx.Response(503))
    with pytest.raises(PriceApiResponseError) as info:
        await client.fetch_price_stats(1)
    assert str(info.value) == "Request failed with status code 503"
    assert info.value.status_code == 503
    assert info.value.retryable is True

    client = client_for(lambda request: httpx.Response(400))
    with pytest.raises(PriceApiResponseError) as info:
        await client.fetch_price_stats(1)
    assert info.value.retryable is False


@pytest.mark.asyncio
async def test_transport_failure_is_retryable():
    def handler(request):
        raise httpx.ConnectError("Connection refused", request=request)

    with pytest.raises(PriceApiTransportError) as info:
        await client_for(handler).fetch_top_gainers()
    assert "Connection refused" in str(info.value)
    assert info.value.retryable is True
    assert isinstance(info.value, PriceApiError)


@pytest.mark.asyncio
async def test_timeout_is_transport_error():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(PriceApiTransportError, match="timed out"):
        await client_for(handler).fetch_price_chart(1)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>oops</html>"),
        httpx.Response(200, json={"success": True, "data": {"items": [], "total": -1}}),
        httpx.Response(200, json={"data": {"items": [], "total": 0}}),
    ],
)
async def test_malformed_payloads(response):
    with pytest.raises(MalformedResponseError):
        await client_for(lambda request: response).fetch_top_gainers()


@pytest.mark.asyncio
async def test_unsuccessful_envelope_uses_api_message():
    client = client_for(lambda request: httpx.Response(200, json={"success": False, "message": "Database offline"}))
    with pytest.raises(MalformedResponseError, match="Database offline"):
        await client.fetch_price_changes(SearchParams())


@pytest.mark.asyncio
async def test_client_context_manager_closes():
    async with client_for(lambda request: httpx.Response(200, json={"success": True, "data": []})) as client:
        stats = await client.fetch_price_stats(1)
    assert stats.data == []
    assert client._client.is_closed
