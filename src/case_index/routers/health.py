from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..adapters.price_api import PriceApiError
from ..engine.queries import PriceQueries
from ._helpers import get_queries

router = APIRouter()


class UpstreamHealth(BaseModel):
    base_url: str
    reachable: Optional[bool] = None
    error: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    cache_entries: int
    inflight_queries: int
    upstream: UpstreamHealth
    asof: str


@router.get("/health", response_model=HealthResponse)
async def health(probe: bool = False, queries: PriceQueries = Depends(get_queries)) -> HealthResponse:
    """
    Service health.

    Returns:
        - status: "ok", or "degraded" when a requested probe failed
        - cache_entries / inflight_queries: query cache occupancy
        - upstream: price API base URL and, with ``probe=true``, whether a
          top gainers lookup succeeded
        - asof: ISO8601 timestamp
    """
    upstream = UpstreamHealth(base_url=queries.client.base_url)
    if probe:
        try:
            await queries.top_gainers()
            upstream.reachable = True
        except PriceApiError as exc:
            upstream.reachable = False
            upstream.error = exc.message
    return HealthResponse(
        status="degraded" if upstream.reachable is False else "ok",
        cache_entries=len(queries.cache),
        inflight_queries=queries.cache.inflight_count,
        upstream=upstream,
        asof=datetime.now(timezone.utc).isoformat(),
    )
