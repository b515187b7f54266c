from __future__ import annotations

from fastapi import HTTPException, Request, WebSocket, status

from ..adapters.price_api import ItemNotFoundError, PriceApiError
from ..engine.queries import PriceQueries


def get_queries(request: Request) -> PriceQueries:
    """Return the query layer created at startup."""

    return request.app.state.queries


def get_ws_queries(websocket: WebSocket) -> PriceQueries:
    return websocket.app.state.queries


def parse_item_id(raw: str | int | None) -> int | None:
    """Positive integer item id, or None when ``raw`` is missing or not numeric."""

    if raw is None:
        return None
    text = str(raw).strip()
    if not text.isdigit():
        return None
    value = int(text)
    return value if value > 0 else None


def as_http_error(exc: PriceApiError) -> HTTPException:
    if isinstance(exc, ItemNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message)
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message or "Upstream request failed")
