"""In-process query cache keyed by request parameters.

Entries map a serialized query key to its latest state (status, data, error,
timestamp). A ``QueryPolicy`` decides how long data stays fresh, how many
times transient failures are retried, and whether an observer keeps showing
the previous key's data while a new key loads. Concurrent fetches of the
same key share one in-flight task. The cache is bounded: entries unused for
``gc_time`` seconds, and the least recently used beyond ``max_entries``, are
dropped, except while they are being fetched.
"""
from __future__ import annotations

import asyncio
import json
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Awaitable, Callable, Sequence

from ..observability import record_cache_event

LOGGER = logging.getLogger(__name__)

MAX_RETRY_DELAY_SEC = 30.0
DEFAULT_MAX_ENTRIES = 1000
DEFAULT_GC_TIME_SEC = 600.0

Fetcher = Callable[[], Awaitable[Any]]


class QueryStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


def _is_retryable(exc: BaseException) -> bool:
    return bool(getattr(exc, "retryable", False))


@dataclass(frozen=True)
class QueryPolicy:
    stale_time: float = 0.0
    retry: int = 0
    retry_base_delay: float = 1.0
    keep_previous_data: bool = False
    retry_on: Callable[[BaseException], bool] = _is_retryable

    def retry_delay(self, attempt: int) -> float:
        return min(self.retry_base_delay * (2 ** attempt), MAX_RETRY_DELAY_SEC)


@dataclass(frozen=True)
class QueryState:
    key: str
    status: QueryStatus = QueryStatus.IDLE
    data: Any = None
    error: BaseException | None = None
    updated_at: float | None = None
    is_fetching: bool = False
    is_placeholder: bool = False

    @property
    def is_loading(self) -> bool:
        return self.status == QueryStatus.LOADING

    @property
    def is_success(self) -> bool:
        return self.status == QueryStatus.SUCCESS

    @property
    def is_error(self) -> bool:
        return self.status == QueryStatus.ERROR

    @property
    def error_message(self) -> str | None:
        if self.error is None:
            return None
        return str(self.error).strip() or None


def _key_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    return str(value)


def serialize_key(key: Sequence[Any]) -> str:
    """Stable string form of a query key; equal parameters give equal strings."""
    return json.dumps(list(key), sort_keys=True, default=_key_default, separators=(",", ":"))


def _query_name(key: Sequence[Any]) -> str:
    return str(key[0]) if key else "query"


class QueryCache:
    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        gc_time: float = DEFAULT_GC_TIME_SEC,
    ) -> None:
        self._entries: OrderedDict[str, QueryState] = OrderedDict()
        self._last_used: dict[str, float] = {}
        self.max_entries = max_entries
        self.gc_time = gc_time
        self._inflight: dict[str, asyncio.Task] = {}
        self._clock = clock
        self._sleep = sleep

    def __len__(self) -> int:
        return len(self._entries)

    def peek(self, key: Sequence[Any] | str) -> QueryState:
        skey = key if isinstance(key, str) else serialize_key(key)
        return self._entries.get(skey) or QueryState(key=skey)

    def is_fresh(self, key: Sequence[Any] | str, policy: QueryPolicy) -> bool:
        state = self.peek(key)
        if state.status != QueryStatus.SUCCESS or state.updated_at is None:
            return False
        return self._clock() - state.updated_at < policy.stale_time

    def is_fetching(self, key: Sequence[Any]) -> bool:
        return serialize_key(key) in self._inflight

    @property
    def inflight_count(self) -> int:
        return len(self._inflight)

    def invalidate(self, key: Sequence[Any] | None = None) -> None:
        """Mark one entry (or every entry) stale without dropping its data."""
        if key is None:
            targets = list(self._entries)
        else:
            targets = [serialize_key(key)]
        for skey in targets:
            state = self._entries.get(skey)
            if state is not None:
                self._entries[skey] = replace(state, updated_at=None)

    async def fetch(self, key: Sequence[Any], fn: Fetcher, policy: QueryPolicy) -> Any:
        """
        Return data for ``key``, fetching it with ``fn`` unless a fresh entry exists.

        Callers asking for a key that is already being fetched wait on the same
        task. A caller that is cancelled does not cancel the shared fetch.
        """
        skey = serialize_key(key)
        name = _query_name(key)
        if self.is_fresh(skey, policy):
            record_cache_event(name, "hit")
            self._touch(skey)
            self.collect()
            return self._entries[skey].data

        task = self._inflight.get(skey)
        if task is None:
            record_cache_event(name, "miss")
            previous = self.peek(skey)
            status = QueryStatus.SUCCESS if previous.status == QueryStatus.SUCCESS else QueryStatus.LOADING
            self._entries[skey] = replace(previous, status=status, is_fetching=True)
            task = asyncio.get_running_loop().create_task(self._run(skey, fn, policy))
            self._inflight[skey] = task
        else:
            record_cache_event(name, "coalesced")
        self._touch(skey)
        self.collect()
        return await asyncio.shield(task)

    def _touch(self, skey: str) -> None:
        self._entries.move_to_end(skey)
        self._last_used[skey] = self._clock()

    def collect(self) -> int:
        """Drop expired and over-capacity entries, oldest use first; returns how many went."""
        now = self._clock()
        dropped = 0
        for skey in list(self._entries):
            if skey in self._inflight:
                continue
            expired = now - self._last_used.get(skey, now) >= self.gc_time
            if not expired and len(self._entries) <= self.max_entries:
                break
            del self._entries[skey]
            self._last_used.pop(skey, None)
            dropped += 1
        if dropped:
            LOGGER.debug("Dropped %d query cache entries (%d kept)", dropped, len(self._entries))
        return dropped

    async def _run(self, skey: str, fn: Fetcher, policy: QueryPolicy) -> Any:
        attempt = 0
        try:
            while True:
                try:
                    data = await fn()
                except Exception as exc:
                    if attempt < policy.retry and policy.retry_on(exc):
                        delay = policy.retry_delay(attempt)
                        attempt += 1
                        LOGGER.info("Retrying %s in %.2fs after: %s (attempt %d/%d)", skey, delay, exc, attempt, policy.retry)
                        await self._sleep(delay)
                        continue
                    LOGGER.warning("Query %s failed: %s", skey, exc)
                    self._entries[skey] = replace(
                        self.peek(skey), status=QueryStatus.ERROR, error=exc, is_fetching=False
                    )
                    raise
                self._entries[skey] = QueryState(
                    key=skey, status=QueryStatus.SUCCESS, data=data, updated_at=self._clock()
                )
                return data
        finally:
            self._inflight.pop(skey, None)


class QueryObserver:
    """
    Follows a query whose key changes over time.

    Only the most recently started key may update the observer's state; a
    slower response for a superseded key still lands in the cache but is not
    shown.
    """

    def __init__(self, cache: QueryCache, policy: QueryPolicy) -> None:
        self._cache = cache
        self.policy = policy
        self._generation = 0
        self._state = QueryState(key="")

    @property
    def state(self) -> QueryState:
        return self._state

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    def start(self, key: Sequence[Any]) -> int:
        """Switch to ``key`` and return the generation token for ``complete``."""
        self._generation += 1
        skey = serialize_key(key)
        cached = self._cache.peek(skey)
        previous = self._state
        if cached.status == QueryStatus.SUCCESS:
            self._state = replace(cached, is_fetching=not self._cache.is_fresh(skey, self.policy), is_placeholder=False)
        elif self.policy.keep_previous_data and previous.data is not None:
            self._state = replace(
                previous, key=skey, status=QueryStatus.LOADING, error=None, is_fetching=True, is_placeholder=True
            )
        else:
            self._state = QueryState(key=skey, status=QueryStatus.LOADING, is_fetching=True)
        return self._generation

    async def complete(self, generation: int, key: Sequence[Any], fn: Fetcher) -> QueryState:
        skey = serialize_key(key)
        try:
            await self._cache.fetch(key, fn, self.policy)
        except Exception as exc:
            # Surfaced through the cache entry's error state below.
            LOGGER.debug("Observer fetch for %s ended with %s", skey, exc)
        if not self.is_current(generation):
            return self._state
        self._state = replace(self._cache.peek(skey), is_fetching=False, is_placeholder=False)
        return self._state

    async def fetch(self, key: Sequence[Any], fn: Fetcher) -> QueryState:
        return await self.complete(self.start(key), key, fn)