"""Foreground run loop connecting the engine to the terminal."""

from __future__ import annotations

import time
from typing import Callable

import click

from focustimer.cli.host import TerminalBell, TerminalVisibility
from focustimer.core.engine import CountdownEngine, Phase, Snapshot
from focustimer.core.scheduler import TICK_PERIOD_MS, PollingScheduler

_LABELS = {
    Phase.IDLE: "ready",
    Phase.RUNNING: "running",
    Phase.PAUSED: "paused",
    Phase.ALARM_PENDING: "time's up",
    Phase.ALARM_ACTIVE: "time's up! (Ctrl-C to stop)",
}


def format_remaining(seconds: int) -> str:
    """Format *seconds* as ``MM:SS``."""
    total = max(int(seconds), 0)
    return f"{total // 60:02d}:{total % 60:02d}"


class ForegroundRunner:
    """Drives one countdown from start until the user stops it.

    Each :meth:`step` runs due ticks, delivers a pending foreground
    resume to the engine, rings the bell and redraws. Ctrl-C
    acknowledges a sounding alarm, or stops a countdown in progress.
    """

    def __init__(
        self,
        engine: CountdownEngine,
        scheduler: PollingScheduler,
        visibility: TerminalVisibility,
        bell: TerminalBell,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._engine = engine
        self._scheduler = scheduler
        self._visibility = visibility
        self._bell = bell
        self._sleep = sleep

    def step(self) -> Snapshot:
        """Run due ticks, fire a deferred alarm once in the foreground, ring and redraw."""
        self._scheduler.run_pending()
        # SIGCONT also follows `bg`, so the flag alone never proves visibility.
        resumed = self._visibility.consume_resumed()
        foreground = self._visibility.is_foreground()
        if foreground and (resumed or self._engine.phase == Phase.ALARM_PENDING):
            self._engine.resume_visible()
        self._bell.poll()
        snapshot = self._engine.snapshot()
        if foreground:
            self._draw(snapshot)
        return snapshot

    def run(self) -> str:
        """Start the countdown and loop until interrupted. Returns a summary line."""
        previous = self._visibility.install()
        self._engine.start()
        try:
            while True:
                self.step()
                delay = self._scheduler.next_delay_ms()
                self._sleep((delay if delay is not None else TICK_PERIOD_MS) / 1000)
        except KeyboardInterrupt:
            click.echo()
            return self._interrupt()
        finally:
            self._visibility.restore(previous)

    def _interrupt(self) -> str:
        mode = self._engine.mode.value
        if self._engine.snapshot().is_alarm:
            self._engine.acknowledge()
            return f"{mode} finished"
        self._engine.pause()
        if self._engine.phase != Phase.PAUSED:
            # Expired on the reconciling tick inside pause().
            self._engine.acknowledge()
            return f"{mode} finished"
        return f"{mode} stopped at {format_remaining(self._engine.snapshot().remaining_seconds)} remaining"

    def _draw(self, snapshot: Snapshot) -> None:
        line = f"{snapshot.mode.value:<11} {format_remaining(snapshot.remaining_seconds)}  {_LABELS[snapshot.phase]}"
        click.echo(f"\r{line:<48}", nl=False)
