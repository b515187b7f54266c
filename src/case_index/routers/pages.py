"""Server-rendered landing/search and item detail pages."""
from __future__ import annotations

import logging
from pathlib import Path
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from ..adapters.price_api import ItemNotFoundError, PriceApiError
from ..engine.queries import PriceQueries
from ..models import ChartInterval, SearchParams, SortOption
from ..views import GENERIC_ERROR, build_home_view, build_item_view, error_message
from ._helpers import get_queries, parse_item_id

logger = logging.getLogger(__name__)

router = APIRouter(tags=["pages"])

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))


def resolve_interval(raw: str | None, default: str) -> ChartInterval:
    try:
        return ChartInterval(raw or default)
    except ValueError:
        return ChartInterval(default)


def _not_found(request: Request, item_id: object) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "error.html",
        {"title": "Item Not Found", "message": f"The item {item_id} could not be found.", "not_found": True},
        status_code=404,
    )


@router.get("/", response_class=HTMLResponse)
async def home(
    request: Request,
    q: str = "",
    page: int = Query(1, ge=1),
    sort_by: SortOption = SortOption.GAINERS,
    queries: PriceQueries = Depends(get_queries),
) -> HTMLResponse:
    params = SearchParams(query=q.strip(), page=page, sort_by=sort_by)
    view = await build_home_view(queries, params)
    context = {
        "view": view,
        "base_query": urlencode({"q": params.query, "sort_by": params.sort_by.value}),
        "base_query_for_sort": {
            option.value: urlencode({"q": params.query, "sort_by": option.value}) for option in SortOption
        },
    }
    return templates.TemplateResponse(request, "home.html", context)


@router.get("/item", response_class=HTMLResponse, include_in_schema=False)
async def item_missing(request: Request) -> HTMLResponse:
    return _not_found(request, "")


@router.get("/item/{item_id}", response_class=HTMLResponse)
async def item_detail(
    request: Request,
    item_id: str,
    interval: str | None = None,
    queries: PriceQueries = Depends(get_queries),
) -> HTMLResponse:
    parsed = parse_item_id(item_id)
    if parsed is None:
        return _not_found(request, item_id)
    resolved = resolve_interval(interval, queries.settings.default_chart_interval)
    try:
        view = await build_item_view(queries, parsed, resolved)
    except ItemNotFoundError:
        return _not_found(request, parsed)
    except PriceApiError as exc:
        logger.warning("Item %s failed to load: %s", parsed, exc)
        return templates.TemplateResponse(
            request,
            "error.html",
            {"title": "Error loading item", "message": error_message(exc), "not_found": False},
            status_code=502,
        )
    except Exception:
        logger.exception("Unexpected failure rendering item %s", parsed)
        return templates.TemplateResponse(
            request,
            "error.html",
            {"title": "Error loading item", "message": GENERIC_ERROR, "not_found": False},
            status_code=500,
        )
    return templates.TemplateResponse(request, "item.html", {"view": view})
