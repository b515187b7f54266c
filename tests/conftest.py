from __future__ import annotations

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from case_index.adapters.price_api import CHART_PATH, SEARCH_PATH, STATS_PATH, PriceApiClient
from case_index.config import Settings
from case_index.engine.queries import PriceQueries
from case_index.stores.query_cache import QueryCache

API_BASE = "http://api.test"


def item_payload(item_id: int, name: str, old: int, latest: int, sparkline=None) -> dict:
    change = round((latest - old) / old * 100, 2) if old else 0.0
    return {
        "item_id": item_id,
        "name": name,
        "icon_url": f"icon-{item_id}",
        "old_sell_price": old,
        "latest_sell_price": latest,
        "change_pct": change,
        "sparkline": sparkline,
    }


class FakePriceApi:
    """In-memory stand-in for the price-change API, served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.items = [
            item_payload(i, f"Chroma Case {i}", 1000, 1000 + (i - 20) * 10, [10.0, 10.5, 10.0 + i / 10])
            for i in range(1, 46)
        ]
        self.items.append(item_payload(100, "Prisma Case", 500, 600, [5.0, 6.0]))
        self.items.append(item_payload(101, "Snakebite Case", 400, 300))
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        self.chart = [
            {"timestamp": (start + timedelta(days=d)).isoformat(), "price": 1000 + d * 50, "change_pct": d * 5.0}
            for d in range(5)
        ]
        self.stats = [
            {"interval": "7d", "label": "7 Days", "high_price": 1300, "low_price": 1000},
            {"interval": "1m", "label": "1 Month", "high_price": 3000, "low_price": 1000},
        ]
        self.requests: list[httpx.Request] = []
        self.failures: dict[str, list[int]] = {}

    def fail(self, path: str, *statuses: int) -> None:
        """Answer the next calls to ``path`` with the given HTTP statuses."""
        self.failures.setdefault(path, []).extend(statuses)

    def calls(self, path: str | None = None) -> list[httpx.Request]:
        return [r for r in self.requests if path is None or r.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        queue = self.failures.get(path)
        if queue:
            return httpx.Response(queue.pop(0), json={"success": False, "message": "upstream failure"})
        params = request.url.params
        if path == SEARCH_PATH:
            return httpx.Response(200, json=self._search(params))
        if path == CHART_PATH:
            return httpx.Response(200, json={"success": True, "data": self.chart})
        if path == STATS_PATH:
            return httpx.Response(200, json={"success": True, "data": self.stats})
        return httpx.Response(404, json={"success": False})

    def _search(self, params: httpx.QueryParams) -> dict:
        if "item_id" in params:
            found = [i for i in self.items if str(i["item_id"]) == params["item_id"]]
            return {"success": True, "data": {"items": found, "total": len(found)}}
        query = params.get("query", "").lower()
        rows = [i for i in self.items if query in i["name"].lower()]
        rows.sort(key=lambda i: i["change_pct"], reverse=params.get("sort_by", "gainers") == "gainers")
        limit = int(params.get("limit", 20))
        page = int(params.get("page", 1))
        window = rows[(page - 1) * limit: page * limit]
        return {"success": True, "data": {"items": window, "total": len(rows)}}


@pytest.fixture
def settings() -> Settings:
    return Settings(api_base_url=API_BASE, debounce_ms=20, query_retries=0, retry_base_delay_sec=0)


@pytest.fixture
def fake_api() -> FakePriceApi:
    return FakePriceApi()


@pytest.fixture
def api_client(fake_api: FakePriceApi) -> PriceApiClient:
    return PriceApiClient(API_BASE, transport=httpx.MockTransport(fake_api.handler))


@pytest.fixture
def queries(api_client: PriceApiClient, settings: Settings) -> PriceQueries:
    return PriceQueries(api_client, QueryCache(), settings)


@pytest.fixture
def app(queries: PriceQueries):
    from case_index.app import create_app

    return create_app(queries)
