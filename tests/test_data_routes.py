import pytest
from httpx import ASGITransport, AsyncClient

from case_index.adapters.price_api import CHART_PATH, SEARCH_PATH, STATS_PATH


async def get(app, url):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.get(url)


@pytest.mark.asyncio
async def test_search_view_model(app, fake_api):
    response = await get(app, "/data/search?q=Chroma&page=3&sort_by=losers")
    assert response.status_code == 200
    body = response.json()
    assert body["params"] == {"query": "Chroma", "page": 3, "sort_by": "losers"}
    assert body["total"] == 45
    assert body["total_pages"] == 3
    assert len(body["items"]) == 5
    assert body["pagination"]["links"][-1]["is_current"] is True
    card = body["items"][0]
    assert card["href"] == f"/item/{card['item_id']}"
    assert card["image_url"].endswith("/128fx128f")


@pytest.mark.asyncio
async def test_repeated_search_hits_cache(app, fake_api):
    for _ in range(3):
        response = await get(app, "/data/search?q=Chroma&page=2")
        assert response.status_code == 200
    assert len(fake_api.calls(SEARCH_PATH)) == 1


@pytest.mark.asyncio
async def test_top_movers(app, fake_api):
    response = await get(app, "/data/top-movers?sort_by=gainers&limit=3")
    assert response.status_code == 200
    rows = response.json()["rows"]
    assert [row["rank"] for row in rows] == [1, 2, 3]
    assert rows[0]["name"] == "Chroma Case 45"
    assert rows[0]["change"] == "+25.00%"
    assert rows[0]["sparkline"]["polyline"]


@pytest.mark.asyncio
async def test_item_view_model(app):
    response = await get(app, "/data/items/101")
    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Snakebite Case"
    assert body["is_gainer"] is False
    assert body["change_abs"] == "25.00%"
    assert body["sparkline"] is None
    assert body["market_url"].endswith("Snakebite%20Case")


@pytest.mark.asyncio
@pytest.mark.parametrize("url", ["/data/items/999", "/data/items/abc", "/data/items/0/chart"])
async def test_unknown_item_is_404(app, url):
    response = await get(app, url)
    assert response.status_code == 404
    assert "not found" in response.json()["detail"]


@pytest.mark.asyncio
async def test_upstream_failure_is_502(app, fake_api):
    fake_api.fail(STATS_PATH, 500)
    response = await get(app, "/data/items/100/stats?current_price=550")
    assert response.status_code == 502
    assert response.json()["detail"] == "Request failed with status code 500"


@pytest.mark.asyncio
async def test_chart_view_model_with_hover(app, fake_api):
    response = await get(app, "/data/items/100/chart?interval=1m&hover=0.5")
    assert response.status_code == 200
    body = response.json()
    assert dict(fake_api.calls(CHART_PATH)[0].url.params) == {"item_id": "100", "interval": "1m"}
    assert body["change_percent"] == 20.0
    assert body["hovered"]["index"] == 2
    assert body["current_price"] == 11.0
    assert body["plot"]["line_path"].startswith("M")
    assert [i["active"] for i in body["intervals"]] == [False, True, False, False]


@pytest.mark.asyncio
async def test_stats_view_model_looks_up_current_price(app, fake_api):
    response = await get(app, "/data/items/100/stats")
    assert response.status_code == 200
    body = response.json()
    assert body["current_price"] == 600
    week, month = body["cards"]
    assert week["position"] == 0.0
    assert week["zone"] == "near_low"
    assert month["label"] == "1 Month"


@pytest.mark.asyncio
async def test_pagination_endpoint(app):
    response = await get(app, "/data/pagination?page=5&total_pages=10")
    assert [link["label"] for link in response.json()["links"]] == ["1", "...", "4", "5", "6", "...", "10"]

    response = await get(app, "/data/pagination?page=1&total_items=41")
    assert response.json()["total_pages"] == 3

    response = await get(app, "/data/pagination?page=1")
    assert response.status_code == 422
