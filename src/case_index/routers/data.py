"""JSON view-model endpoints backing the pages."""
from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..adapters.price_api import ItemNotFoundError, PriceApiError
from ..core.pagination import build_pagination, total_pages
from ..engine.queries import PriceQueries
from ..models import SearchParams, SortOption
from ..views import chart_view, first_item, item_header, mover_rows, search_results_view, stats_view
from ._helpers import as_http_error, get_queries, parse_item_id
from .pages import resolve_interval

router = APIRouter()


def _require_item_id(raw: str) -> int:
    item_id = parse_item_id(raw)
    if item_id is None:
        raise as_http_error(ItemNotFoundError(raw))
    return item_id


@router.get("/search")
async def search(
    q: str = "",
    page: int = Query(1, ge=1),
    sort_by: SortOption = SortOption.GAINERS,
    queries: PriceQueries = Depends(get_queries),
) -> dict[str, Any]:
    params = SearchParams(query=q.strip(), page=page, sort_by=sort_by)
    try:
        response = await queries.search(params)
    except PriceApiError as exc:
        raise as_http_error(exc) from exc
    return search_results_view(params, response, queries.page_size)


@router.get("/top-movers")
async def top_movers(
    sort_by: SortOption = SortOption.GAINERS,
    limit: Optional[int] = Query(None, ge=1, le=100),
    queries: PriceQueries = Depends(get_queries),
) -> dict[str, Any]:
    try:
        response = await queries.top_movers(sort_by, limit)
    except PriceApiError as exc:
        raise as_http_error(exc) from exc
    return {"sort_by": sort_by.value, "rows": mover_rows(response)}


@router.get("/items/{item_id}")
async def item(item_id: str, queries: PriceQueries = Depends(get_queries)) -> dict[str, Any]:
    parsed = _require_item_id(item_id)
    try:
        found = first_item(await queries.item(parsed), parsed)
    except PriceApiError as exc:
        raise as_http_error(exc) from exc
    return item_header(found)


@router.get("/items/{item_id}/chart")
async def item_chart(
    item_id: str,
    interval: Optional[str] = None,
    hover: Optional[float] = Query(None, description="Pointer position across the plot, 0..1."),
    queries: PriceQueries = Depends(get_queries),
) -> dict[str, Any]:
    parsed = _require_item_id(item_id)
    resolved = resolve_interval(interval, queries.settings.default_chart_interval)
    try:
        response = await queries.price_chart(parsed, resolved)
    except PriceApiError as exc:
        raise as_http_error(exc) from exc
    return chart_view(response, resolved, hover)


@router.get("/items/{item_id}/stats")
async def item_stats(
    item_id: str,
    current_price: Optional[int] = Query(None, ge=0, description="Price in cents; looked up when omitted."),
    queries: PriceQueries = Depends(get_queries),
) -> dict[str, Any]:
    parsed = _require_item_id(item_id)
    try:
        if current_price is None:
            current_price = first_item(await queries.item(parsed), parsed).latest_sell_price
        response = await queries.price_stats(parsed)
    except PriceApiError as exc:
        raise as_http_error(exc) from exc
    return {"item_id": parsed, "current_price": current_price, "cards": stats_view(response, current_price)}


@router.get("/pagination")
async def pagination(
    page: int = Query(1, ge=1),
    total_pages_: Optional[int] = Query(None, alias="total_pages", ge=0),
    total_items: Optional[int] = Query(None, ge=0),
    queries: PriceQueries = Depends(get_queries),
) -> dict[str, Any]:
    if total_pages_ is None and total_items is None:
        raise HTTPException(status_code=422, detail="total_pages or total_items is required")
    pages = total_pages_ if total_pages_ is not None else total_pages(total_items, queries.page_size)
    return build_pagination(page, pages).to_dict()

