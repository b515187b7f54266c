"""Prometheus metrics and observability helpers for the case index."""
from __future__ import annotations

import time
from contextlib import contextmanager

from prometheus_client import Counter, Histogram

from .config import get_settings

_CACHE_HITS = Counter(
    "case_index_query_cache_hits_total", "Number of queries served from a fresh cache entry.", ["query"],
)
_CACHE_MISSES = Counter(
    "case_index_query_cache_misses_total", "Number of queries that required an upstream fetch.", ["query"],
)
_CACHE_COALESCED = Counter(
    "case_index_query_cache_coalesced_total", "Number of queries joined onto an in-flight fetch.", ["query"],
)
_UPSTREAM_LATENCY = Histogram(
    "case_index_upstream_latency_seconds",
    "Latency of price API calls by endpoint.",
    labelnames=("endpoint",),
    buckets=(0.05, 0.1, 0.2, 0.3, 0.5, 0.75, 1.0, 1.5, 2.0, 3.0, 5.0, 10.0),
)
_UPSTREAM_ERRORS = Counter(
    "case_index_upstream_errors_total", "Number of failed price API calls.", ["endpoint", "kind"],
)


def _enabled() -> bool:
    return get_settings().metrics_enabled


def record_cache_event(query: str, event: str) -> None:
    if not _enabled():
        return
    if event == "hit":
        _CACHE_HITS.labels(query=query).inc()
    elif event == "coalesced":
        _CACHE_COALESCED.labels(query=query).inc()
    else:
        _CACHE_MISSES.labels(query=query).inc()


def record_upstream_error(endpoint: str, kind: str) -> None:
    if not _enabled():
        return
    _UPSTREAM_ERRORS.labels(endpoint=endpoint, kind=kind).inc()


@contextmanager
def record_upstream_latency(endpoint: str):
    if not _enabled():
        yield
        return
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        _UPSTREAM_LATENCY.labels(endpoint=endpoint).observe(max(elapsed, 0.0))
