"""
voicebook/events.py

Single-threaded event processing for the voice core.

Every audio callback, timer expiry and subscription update is posted to
one EventQueue. Handlers run one at a time, to completion; a handler that
posts another event (directly or by calling into a collaborator) only
queues it, so session starts can never re-enter each other.

@module events
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Callable, Optional

log = logging.getLogger("voicebook.events")


# =============================================================================
# EVENT QUEUE
# =============================================================================


class EventQueue:
    """Run posted handlers in FIFO order, never re-entrantly."""

    def __init__(self) -> None:
        self._pending: deque[tuple[Callable[..., Any], tuple]] = deque()
        self._draining = False

    @property
    def draining(self) -> bool:
        """True while a handler is running."""
        return self._draining

    def post(self, handler: Callable[..., Any], *args: Any) -> None:
        """
        Queue a handler.

        If no handler is running the queue is drained immediately, so a
        post from outside the queue behaves like a direct call.
        """
        self._pending.append((handler, args))
        if self._draining:
            return

        self._draining = True
        try:
            while self._pending:
                fn, fn_args = self._pending.popleft()
                try:
                    fn(*fn_args)
                except Exception:
                    log.exception("Event handler %s failed", getattr(fn, "__qualname__", fn))
        finally:
            self._draining = False


# =============================================================================
# TIMERS
# =============================================================================


class TimerHandle(ABC):
    """A scheduled callback that can be cancelled."""

    @abstractmethod
    def cancel(self) -> None:
        ...


class Scheduler(ABC):
    """Source of delayed callbacks for restart and watchdog timers."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        """Run ``callback(*args)`` after ``delay`` seconds."""
        ...


class _AsyncioTimer(TimerHandle):
    def __init__(self, handle: asyncio.TimerHandle):
        self._handle = handle

    def cancel(self) -> None:
        self._handle.cancel()


class AsyncioScheduler(Scheduler):
    """Scheduler backed by the running asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        return _AsyncioTimer(self._get_loop().call_later(delay, callback, *args))


class Timers:
    """Timers whose expiry is delivered through an EventQueue."""

    def __init__(self, scheduler: Scheduler, events: EventQueue):
        self._scheduler = scheduler
        self._events = events

    def call_later(self, delay: float, handler: Callable[..., Any], *args: Any) -> TimerHandle:
        return self._scheduler.call_later(delay, self._events.post, handler, *args)
