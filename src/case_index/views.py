"""View models for the landing/search and item detail pages.

Each page is assembled from independent sections. A section that fails
carries an error message instead of data, so one failed fetch never takes
down the rest of the page.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Optional

from .adapters.price_api import ItemNotFoundError, PriceApiError
from .core.chart import build_chart_plot, summarize_chart, to_display_points
from .core.formatting import format_change, format_dollars, format_price, image_url, market_url, plural
from .core.pagination import build_pagination, total_pages
from .core.sparkline import build_sparkline
from .core.stats import build_stat_cards
from .engine.queries import PriceQueries
from .engine.search_session import SearchSnapshot
from .models import CaseItem, ChartInterval, PriceChangesResponse, SearchParams, SortOption

LOGGER = logging.getLogger(__name__)

GENERIC_ERROR = "An unexpected error occurred."


def error_message(exc: BaseException | None) -> str:
    message = str(exc).strip() if exc is not None else ""
    return message or GENERIC_ERROR


@dataclass
class Section:
    data: Any = None
    error: Optional[str] = None


async def load_section(name: str, awaitable: Awaitable[Any]) -> Section:
    try:
        return Section(data=await awaitable)
    except PriceApiError as exc:
        LOGGER.warning("Section %s failed: %s", name, exc)
        return Section(error=error_message(exc))
    except Exception as exc:
        LOGGER.error("Section %s failed unexpectedly: %s", name, exc, exc_info=True)
        return Section(error=GENERIC_ERROR)


# -- building blocks ---------------------------------------------------------

def sparkline_view(samples) -> dict[str, Any] | None:
    geometry = build_sparkline(samples)
    if geometry is None:
        return None
    return {
        "width": geometry.width,
        "height": geometry.height,
        "polyline": geometry.polyline(),
        "area_path": geometry.area_path(),
        "is_rising": geometry.is_rising,
        "points": [{"x": round(p.x, 3), "y": round(p.y, 3), "value": p.value} for p in geometry.points],
    }


def case_card(item: CaseItem, image_size: int = 128) -> dict[str, Any]:
    return {
        "item_id": item.item_id,
        "name": item.name,
        "href": f"/item/{item.item_id}",
        "image_url": image_url(item.icon_url, image_size),
        "price": format_price(item.latest_sell_price),
        "old_price": format_price(item.old_sell_price),
        "latest_sell_price": item.latest_sell_price,
        "old_sell_price": item.old_sell_price,
        "change_pct": item.change_pct,
        "change": format_change(item.change_pct),
        "change_abs": format_change(item.change_pct, signed=False),
        "is_gainer": item.is_gainer,
        "sparkline": sparkline_view(item.sparkline),
    }


def mover_rows(response: PriceChangesResponse | None) -> list[dict[str, Any]]:
    if response is None:
        return []
    return [{"rank": rank, **case_card(item, 64)} for rank, item in enumerate(response.data.items, start=1)]


def results_title(params: SearchParams) -> str:
    return f'Search: "{params.query}"' if params.query else "All Cases"


def search_results_view(params: SearchParams, response: PriceChangesResponse | None, page_size: int) -> dict[str, Any]:
    items = list(response.data.items) if response is not None else []
    total = response.data.total if response is not None else 0
    pages = total_pages(total, page_size)
    return {
        "params": params.as_query_params(),
        "title": results_title(params),
        "items": [case_card(item) for item in items],
        "total": total,
        "result_count": plural(total, "case") + " found",
        "total_pages": pages,
        "pagination": build_pagination(params.page, pages).to_dict(),
    }


def snapshot_view(snapshot: SearchSnapshot) -> dict[str, Any]:
    """Live search message for one session snapshot."""
    params = snapshot.params
    pagination = snapshot.pagination or build_pagination(params.page, snapshot.total_pages)
    return {
        "type": "results",
        "status": snapshot.status.value,
        "params": params.as_query_params(),
        "raw_query": snapshot.raw_query,
        "title": results_title(params),
        "items": [case_card(item) for item in snapshot.items],
        "total": snapshot.total,
        "result_count": plural(snapshot.total, "case") + " found",
        "total_pages": snapshot.total_pages,
        "pagination": pagination.to_dict(),
        "is_placeholder": snapshot.is_placeholder,
        "error": snapshot.error,
    }


# -- pages -------------------------------------------------------------------

async def build_home_view(queries: PriceQueries, params: SearchParams) -> dict[str, Any]:
    """Landing page: top movers, or paginated search results when a query is set."""
    searching = bool(params.query)
    if searching:
        search = await load_section("search", queries.search(params))
        gainers = losers = Section()
    else:
        search = Section()
        gainers, losers = await asyncio.gather(
            load_section("top_gainers", queries.top_gainers()),
            load_section("top_losers", queries.top_losers()),
        )
    view: dict[str, Any] = {
        "searching": searching,
        "params": params.as_query_params(),
        "sort_options": [option.value for option in SortOption],
        "movers": {
            "gainers": {"rows": mover_rows(gainers.data), "error": gainers.error},
            "losers": {"rows": mover_rows(losers.data), "error": losers.error},
        },
        "search": None,
    }
    if searching:
        results = search_results_view(params, search.data, queries.page_size)
        results["error"] = search.error
        view["search"] = results
    return view


def chart_view(response, interval: ChartInterval, hover: float | None = None) -> dict[str, Any]:
    series = list(response.data) if response is not None else []
    plot = build_chart_plot(to_display_points(series))
    hover_index = plot.hover_index(hover) if plot is not None and hover is not None else None
    summary = summarize_chart(series, hover_index)
    hovered = summary.hovered
    return {
        "interval": interval.value,
        "intervals": [{"value": option.value, "label": option.label, "active": option == interval} for option in ChartInterval],
        "empty": summary.is_empty,
        "current_price": round(summary.current_price, 2),
        "current_price_text": format_dollars(summary.current_price),
        "change_value": round(summary.change_value, 2),
        "change_percent": round(summary.change_percent, 2),
        "change_text": format_change(summary.change_percent),
        "is_positive": summary.is_positive,
        "stroke": summary.stroke_color,
        "hovered": None if hovered is None else {
            "index": hover_index,
            "timestamp": hovered.timestamp.isoformat(),
            "price": hovered.display_price,
            "change_pct": hovered.change_pct,
        },
        "plot": None if plot is None else {
            "width": plot.width,
            "height": plot.height,
            "line_path": plot.line_path(),
            "area_path": plot.area_path(),
            "x_ticks": [{"position": round(t.position, 1), "label": t.label} for t in plot.x_ticks],
            "y_ticks": [{"position": round(t.position, 1), "label": t.label} for t in plot.y_ticks],
        },
        "points": [
            {"timestamp": p.timestamp.isoformat(), "price": p.display_price, "change_pct": p.change_pct}
            for p in summary.points
        ],
    }


def stats_view(response, current_price: int) -> list[dict[str, Any]]:
    stats = list(response.data) if response is not None else []
    return [card.to_dict() for card in build_stat_cards(stats, current_price)]


def item_header(item: CaseItem) -> dict[str, Any]:
    return {**case_card(item, 256), "market_url": market_url(item.name)}


def first_item(response: PriceChangesResponse | None, item_id: object) -> CaseItem:
    if response is None or not response.data.items:
        raise ItemNotFoundError(item_id)
    return response.data.items[0]


async def build_item_view(
    queries: PriceQueries,
    item_id: int,
    interval: ChartInterval,
    hover: float | None = None,
) -> dict[str, Any]:
    """
    Detail page: item header, chart and stats, fetched concurrently.

    Raises ``ItemNotFoundError`` when the lookup returns no item and
    ``PriceApiError`` when the item itself cannot be loaded; chart and stats
    failures are reported inside their sections.
    """
    item_response, chart, stats = await asyncio.gather(
        queries.item(item_id),
        load_section("chart", queries.price_chart(item_id, interval)),
        load_section("stats", queries.price_stats(item_id)),
        return_exceptions=True,
    )
    if isinstance(item_response, BaseException):
        raise item_response
    item = first_item(item_response, item_id)
    return {
        "item": item_header(item),
        "chart": {**chart_view(chart.data, interval, hover), "error": chart.error},
        "stats": {"cards": stats_view(stats.data, item.latest_sell_price), "error": stats.error},
    }
