"""Async client for the price-change API with typed errors and envelope validation."""
from __future__ import annotations

import logging
from typing import Any, Mapping, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from ..config import get_settings
from ..models import (
    ChartInterval,
    ChartResponse,
    PriceChangesResponse,
    PriceStatsResponse,
    SearchParams,
    SortOption,
)
from ..observability import record_upstream_error, record_upstream_latency

LOGGER = logging.getLogger(__name__)

SEARCH_PATH = "/api/price-changes/search"
CHART_PATH = "/api/price-changes/chart"
STATS_PATH = "/api/price-changes/price-stats"

ResponseT = TypeVar("ResponseT", bound=BaseModel)


class PriceApiError(RuntimeError):
    """Raised when the price API cannot fulfil a request."""

    kind = "error"

    def __init__(self, message: str, *, status_code: int | None = None, retryable: bool = False) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.retryable = retryable


class PriceApiTransportError(PriceApiError):
    kind = "transport"

    def __init__(self, message: str) -> None:
        super().__init__(message, retryable=True)


class PriceApiResponseError(PriceApiError):
    kind = "status"


class MalformedResponseError(PriceApiError):
    kind = "malformed"


class ItemNotFoundError(PriceApiError):
    kind = "not_found"

    def __init__(self, item_id: object) -> None:
        super().__init__(f"Item {item_id} not found", status_code=404)
        self.item_id = item_id


class PriceApiClient:
    """Thin async wrapper around the price-change endpoints."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or settings.request_timeout_sec,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def __aenter__(self) -> "PriceApiClient":
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch_price_changes(self, params: SearchParams) -> PriceChangesResponse:
        return await self._get("search", SEARCH_PATH, params.as_query_params(), PriceChangesResponse)

    async def fetch_top_movers(self, sort_by: SortOption, limit: int = 10) -> PriceChangesResponse:
        query = {"sort_by": SortOption(sort_by).value, "page": 1, "limit": limit}
        return await self._get("search", SEARCH_PATH, query, PriceChangesResponse)

    async def fetch_top_gainers(self, limit: int = 10) -> PriceChangesResponse:
        return await self.fetch_top_movers(SortOption.GAINERS, limit)

    async def fetch_top_losers(self, limit: int = 10) -> PriceChangesResponse:
        return await self.fetch_top_movers(SortOption.LOSERS, limit)

    async def fetch_price_chart(
        self, item_id: int, interval: ChartInterval | str = ChartInterval.THREE_MONTHS
    ) -> ChartResponse:
        query = {"item_id": item_id, "interval": ChartInterval(interval).value}
        return await self._get("chart", CHART_PATH, query, ChartResponse)

    async def fetch_price_stats(self, item_id: int) -> PriceStatsResponse:
        return await self._get("price-stats", STATS_PATH, {"item_id": item_id}, PriceStatsResponse)

    async def fetch_item_by_id(self, item_id: int) -> PriceChangesResponse:
        return await self._get("item", SEARCH_PATH, {"item_id": item_id}, PriceChangesResponse)

    async def _get(
        self,
        endpoint: str,
        path: str,
        params: Mapping[str, Any],
        model: type[ResponseT],
    ) -> ResponseT:
        try:
            with record_upstream_latency(endpoint):
                response = await self._client.get(path, params=dict(params))
        except httpx.TimeoutException as exc:
            record_upstream_error(endpoint, "timeout")
            raise PriceApiTransportError(f"Request to {path} timed out") from exc
        except httpx.HTTPError as exc:
            record_upstream_error(endpoint, PriceApiTransportError.kind)
            raise PriceApiTransportError(str(exc) or f"Network error calling {path}") from exc

        if response.status_code >= 400:
            record_upstream_error(endpoint, PriceApiResponseError.kind)
            raise PriceApiResponseError(
                f"Request failed with status code {response.status_code}",
                status_code=response.status_code,
                retryable=response.status_code >= 500,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            record_upstream_error(endpoint, MalformedResponseError.kind)
            raise MalformedResponseError(f"Response from {path} is not valid JSON") from exc

        try:
            parsed = model.model_validate(payload)
        except ValidationError as exc:
            record_upstream_error(endpoint, MalformedResponseError.kind)
            LOGGER.warning("Malformed %s payload: %s", endpoint, exc.errors(include_url=False)[:3])
            raise MalformedResponseError(f"Response from {path} did not match the expected shape") from exc

        if not getattr(parsed, "success", False):
            record_upstream_error(endpoint, MalformedResponseError.kind)
            detail = (payload.get("message") or payload.get("error")) if isinstance(payload, dict) else None
            raise MalformedResponseError(str(detail) if detail else f"API reported failure for {path}")
        return parsed
