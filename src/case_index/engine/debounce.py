"""Timer-reset debounce for values that change in bursts (e.g. search keystrokes)."""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Generic, TypeVar

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class Debouncer(Generic[T]):
    """
    Holds an effective value that follows pushed values after a quiet period.

    Every ``push`` cancels the pending timer and starts a new one; only a
    timer that runs out uninterrupted updates ``value``. ``on_settle`` is
    called with the new value when it differs from the previous one.
    """

    def __init__(self, delay: float, initial: T, on_settle: Callable[[T], None] | None = None) -> None:
        if delay < 0:
            raise ValueError("delay must be non-negative")
        self.delay = delay
        self._value = initial
        self._pending_value: T = initial
        self._handle: asyncio.TimerHandle | None = None
        self._on_settle = on_settle

    @property
    def value(self) -> T:
        return self._value

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def push(self, value: T) -> None:
        self.cancel()
        self._pending_value = value
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def flush(self) -> None:
        """Apply the pending value now instead of waiting for the timer."""
        if self._handle is not None:
            self.cancel()
            self._fire()

    def _fire(self) -> None:
        self._handle = None
        value = self._pending_value
        if value == self._value:
            return
        self._value = value
        if self._on_settle is not None:
            try:
                self._on_settle(value)
            except Exception:
                LOGGER.exception("Debounce callback failed for %r", value)
