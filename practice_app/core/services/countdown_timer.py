"""Countdown clock for timed attempts and the one-second tick source driving it."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from practice_app.constants.attempt_constants import TICK_INTERVAL_SECONDS
from practice_app.constants.ui_constants import NO_TIME_LIMIT_LABEL

logger = logging.getLogger(__name__)


class CountdownTimer:
    """Counts down whole seconds and signals expiry exactly once.

    The timer does no scheduling of its own; ``tick()`` is called once per
    second by a :class:`TickSource` (or directly in tests).
    """

    def __init__(self, on_expire: Callable[[], None] | None = None) -> None:
        self._on_expire = on_expire
        self._limit_seconds: int | None = None
        self._remaining: int | None = None
        self._running: bool = False
        self._expired: bool = False

    def start(self, limit_seconds: int | None) -> None:
        """Start counting down from ``limit_seconds``; ``None`` or 0 means no limit."""
        if limit_seconds is not None and limit_seconds < 0:
            raise ValueError("Time limit must not be negative.")
        self._limit_seconds = limit_seconds or None
        self._remaining = self._limit_seconds
        self._expired = False
        self._running = True

    def tick(self) -> None:
        if not self._running or self._expired or self._remaining is None:
            return
        self._remaining = max(0, self._remaining - 1)
        if self._remaining == 0:
            self._expired = True
            self._running = False
            logger.info("Countdown of %ss expired", self._limit_seconds)
            if self._on_expire is not None:
                self._on_expire()

    def stop(self) -> None:
        self._running = False

    def resume(self) -> None:
        """Continue a stopped countdown that has not expired yet."""
        if self._expired or self._remaining is None:
            return
        self._running = True

    def reset(self) -> None:
        self._running = False
        self._expired = False
        self._remaining = self._limit_seconds

    def remaining(self) -> int | None:
        """Seconds left, or ``None`` when the attempt is untimed."""
        return self._remaining

    @property
    def limit_seconds(self) -> int | None:
        return self._limit_seconds

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def has_expired(self) -> bool:
        return self._expired

    @property
    def is_unlimited(self) -> bool:
        return self._limit_seconds is None


class TickSource:
    """Recurring callback scheduled on the running asyncio event loop."""

    def __init__(
        self,
        callback: Callable[[], None],
        interval_seconds: float = TICK_INTERVAL_SECONDS,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._callback = callback
        self._interval = interval_seconds
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None

    @property
    def is_active(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        if self._handle is not None:
            return
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        self._schedule()

    def cancel(self) -> None:
        if self._handle is None:
            return
        self._handle.cancel()
        self._handle = None

    def _schedule(self) -> None:
        assert self._loop is not None
        self._handle = self._loop.call_later(self._interval, self._fire)

    def _fire(self) -> None:
        if self._handle is None:
            return
        self._schedule()
        self._callback()


def format_clock(seconds: int | None) -> str:
    """Render remaining seconds as ``MM:SS``; untimed attempts get a label instead."""
    if seconds is None:
        return NO_TIME_LIMIT_LABEL
    seconds = max(0, int(seconds))
    minutes, secs = divmod(seconds, 60)
    return f"{minutes:02d}:{secs:02d}"
