from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware

from .adapters.price_api import PriceApiClient
from .config import get_settings
from .engine.queries import PriceQueries
from .logging_config import configure_logging
from .routers import data, health, live_search, pages
from .stores.query_cache import QueryCache

logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "script-src 'self' 'unsafe-inline' 'unsafe-eval' https://cdn.tailwindcss.com https://unpkg.com; "
            "style-src 'self' 'unsafe-inline'; "
            "img-src 'self' data: https://community.fastly.steamstatic.com https://community.akamai.steamstatic.com; "
            "connect-src 'self' ws: wss:; "
            "frame-ancestors 'none'; "
            "base-uri 'self'; "
            "form-action 'self'"
        )
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=(), payment=()"
        return response


def create_app(queries: Optional[PriceQueries] = None) -> FastAPI:
    """
    Build the web app.

    ``queries`` is used as-is when given (tests pass one backed by a mock
    transport); otherwise the lifespan creates an API client and cache from
    settings and closes the client on shutdown.
    """
    settings = get_settings()
    configure_logging(log_level=settings.log_level, log_file=settings.log_file)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned: Optional[PriceApiClient] = None
        if getattr(app.state, "queries", None) is None:
            owned = PriceApiClient(settings.api_base_url, timeout=settings.request_timeout_sec)
            cache = QueryCache(max_entries=settings.cache_max_entries, gc_time=settings.cache_gc_time_sec)
            app.state.queries = PriceQueries(owned, cache, settings)
            logger.info("Case index started against %s", settings.api_base_url)
        yield
        if owned is not None:
            await owned.close()
            app.state.queries = None

    app = FastAPI(title="Case Index", description="CS2 case market tracker", lifespan=lifespan)
    app.state.queries = queries

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.include_router(health.router, tags=["health"])
    app.include_router(pages.router)
    app.include_router(data.router, prefix="/data", tags=["data"])
    app.include_router(live_search.router)

    if settings.metrics_enabled:
        @app.get("/metrics", include_in_schema=False)
        async def metrics_endpoint() -> Response:
            return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


app = create_app()
