"""Live search WebSocket: debounced query text, sort and page changes pushed as result snapshots."""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..engine.search_session import SearchSession, SearchSnapshot
from ..models import SortOption
from ..views import snapshot_view
from ._helpers import get_ws_queries

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ws", tags=["websocket"])


class SearchChannel:
    """One connected client and its search session."""

    def __init__(self, websocket: WebSocket, session_kwargs: dict[str, Any]) -> None:
        self.websocket = websocket
        self._send_lock = asyncio.Lock()
        self.session = SearchSession(get_ws_queries(websocket), self.push, **session_kwargs)

    async def push(self, snapshot: SearchSnapshot) -> None:
        async with self._send_lock:
            await self.websocket.send_json(snapshot_view(snapshot))

    async def send_error(self, detail: str) -> None:
        async with self._send_lock:
            await self.websocket.send_json({"type": "error", "detail": detail})

    async def handle(self, message: dict[str, Any]) -> None:
        """Apply one client message; unknown keys are reported back."""
        handled = False
        if "clear" in message and message["clear"]:
            self.session.clear_query()
            handled = True
        if "query" in message:
            self.session.set_query("" if message["query"] is None else str(message["query"]))
            handled = True
        if "sort_by" in message:
            try:
                self.session.set_sort(SortOption(message["sort_by"]))
            except ValueError:
                await self.send_error(f"Unknown sort option: {message['sort_by']!r}")
            handled = True
        if "page" in message:
            try:
                page = int(message["page"])
            except (TypeError, ValueError):
                await self.send_error(f"Invalid page: {message['page']!r}")
            else:
                self.session.go_to_page(page)
            handled = True
        if message.get("refresh"):
            self.session.schedule_refresh()
            handled = True
        if not handled:
            await self.send_error("Expected one of: query, sort_by, page, clear, refresh")


@router.websocket("/search")
async def live_search(websocket: WebSocket, q: str = "", page: int = 1, sort_by: str = "gainers"):
    await websocket.accept()
    try:
        sort = SortOption(sort_by)
    except ValueError:
        sort = SortOption.GAINERS
    channel = SearchChannel(websocket, {"query": q.strip(), "page": max(page, 1), "sort_by": sort})
    logger.info("Live search connected (query=%r, page=%d, sort_by=%s)", q, page, sort.value)
    if q.strip():
        channel.session.schedule_refresh()
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                await channel.send_error("Messages must be JSON objects")
                continue
            if not isinstance(message, dict):
                await channel.send_error("Messages must be JSON objects")
                continue
            await channel.handle(message)
    except WebSocketDisconnect:
        logger.info("Live search disconnected")
    finally:
        await channel.session.close()
