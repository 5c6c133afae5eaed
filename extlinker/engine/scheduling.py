"""Cooperative scheduling primitives used by the live processor."""

from __future__ import annotations

import asyncio
from typing import Callable, Optional, Protocol

Callback = Callable[[], None]


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    """Submits work to run later without blocking the current turn."""

    def defer(self, callback: Callback) -> None:
        """Run ``callback`` at the next scheduling opportunity."""

    def call_later(self, delay: float, callback: Callback) -> TimerHandle:
        """Run ``callback`` after ``delay`` seconds unless cancelled."""


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop.

    ``defer`` maps to ``loop.call_soon`` which plays the role of "next
    animation frame": queued I/O and other callbacks get a turn between
    batches.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self.loop = loop or asyncio.get_running_loop()

    def defer(self, callback: Callback) -> None:
        self.loop.call_soon(callback)

    def call_later(self, delay: float, callback: Callback) -> asyncio.TimerHandle:
        return self.loop.call_later(delay, callback)
