"""Cooperative periodic scheduler driving the countdown's tick callback."""

from __future__ import annotations

import logging
from typing import Callable

from focustimer.core.clock import Clock

logger = logging.getLogger(__name__)

TICK_PERIOD_MS = 250


class TickHandle:
    """Handle to a repeating callback; :meth:`cancel` is idempotent."""

    def __init__(self, callback: Callable[[], None], period_ms: int, due: int) -> None:
        self.callback = callback
        self.period_ms = period_ms
        self.due = due
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        """True once :meth:`cancel` has been called."""
        return self._cancelled

    def cancel(self) -> None:
        """Stop future calls. Safe to call any number of times."""
        self._cancelled = True


class PollingScheduler:
    """Single-threaded scheduler polled by the host loop.

    Nothing runs until the host calls :meth:`run_pending`. A callback that
    is late by several periods fires once and is re-armed from *now*;
    missed periods are never replayed.
    """

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._handles: list[TickHandle] = []

    @property
    def pending(self) -> int:
        """Number of live (uncancelled) callbacks."""
        return sum(1 for handle in self._handles if not handle.cancelled)

    def schedule_repeating(self, callback: Callable[[], None], period_ms: int) -> TickHandle:
        """Call *callback* every *period_ms*, first one period from now."""
        if period_ms <= 0:
            raise ValueError(f"period_ms must be positive, got {period_ms}")
        handle = TickHandle(callback, period_ms, self._clock.now() + period_ms)
        self._handles.append(handle)
        logger.debug("scheduled repeating callback every %d ms", period_ms)
        return handle

    def run_pending(self) -> int:
        """Fire every due callback once. Returns how many fired."""
        now = self._clock.now()
        fired = 0
        # Callbacks may cancel handles (their own included) while we iterate.
        for handle in list(self._handles):
            if handle.cancelled or handle.due > now:
                continue
            handle.due = now + handle.period_ms
            handle.callback()
            fired += 1
        self._handles = [handle for handle in self._handles if not handle.cancelled]
        return fired

    def next_delay_ms(self) -> int | None:
        """Milliseconds until the next callback is due, or None when idle."""
        live = [handle.due for handle in self._handles if not handle.cancelled]
        if not live:
            return None
        return max(0, min(live) - self._clock.now())
