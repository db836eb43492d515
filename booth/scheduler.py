from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Protocol


class DelayScheduler(Protocol):
    def after(self, delay: float, callback: Callable[[], None]) -> None:  # pragma: no cover
        """Run `callback` once, no sooner than `delay` time units from now."""
        ...


class LoopScheduler:
    """Delay scheduler on the running asyncio loop.

    Callbacks run on the loop thread one at a time, so a stage handler is never
    preempted by another.
    """

    def __init__(self, *, unit_seconds: float = 1.0) -> None:
        self.unit_seconds = unit_seconds

    def after(self, delay: float, callback: Callable[[], None]) -> None:
        loop = asyncio.get_running_loop()
        loop.call_later(max(delay, 0.0) * self.unit_seconds, callback)
