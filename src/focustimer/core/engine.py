"""Countdown engine: a wall-clock anchored focus/break state machine."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from focustimer.core.alarm import AlarmDispatcher
from focustimer.core.clock import Clock, SystemClock
from focustimer.core.durations import DurationTable, Mode
from focustimer.core.scheduler import TICK_PERIOD_MS, PollingScheduler, TickHandle

logger = logging.getLogger(__name__)


class Phase(Enum):
    """Possible phases of the countdown."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    ALARM_PENDING = "alarm-pending"
    ALARM_ACTIVE = "alarm-active"


_STARTABLE = frozenset({Phase.IDLE, Phase.PAUSED})
_ALARM_PHASES = frozenset({Phase.ALARM_PENDING, Phase.ALARM_ACTIVE})


class HostVisibility(Protocol):
    def is_foreground(self) -> bool:
        """True while the host is foregrounded and an alarm may sound."""
        ...


class _AlwaysForeground:
    def is_foreground(self) -> bool:
        return True


@dataclass(frozen=True)
class Snapshot:
    """Read-only view of the engine for presentation."""

    phase: Phase
    remaining_ms: int
    mode: Mode

    @property
    def remaining_seconds(self) -> int:
        """Remaining time truncated to whole seconds, for display."""
        return self.remaining_ms // 1000

    @property
    def is_alarm(self) -> bool:
        """True while an alarm is pending or sounding."""
        return self.phase in _ALARM_PHASES


class CountdownEngine:
    """Owns the single countdown and its alarm state.

    While running, remaining time is always ``anchor_deadline - now``; it
    is never decremented per tick, so a delayed, throttled or suspended
    tick callback cannot make the countdown drift. Every operation is a
    no-op when its guard does not hold, so callers never need to check
    the phase first.

    With a *scheduler*, :meth:`start` arms a repeating :meth:`tick`;
    without one the host is expected to call :meth:`tick` itself.

    :attr:`alarm_acknowledged` turns True the moment the alarm is
    dispatched and False on every return to IDLE or new start. It stays
    False in ALARM_PENDING, where nothing has been dispatched yet.
    """

    def __init__(
        self,
        durations: DurationTable,
        dispatcher: AlarmDispatcher,
        clock: Clock | None = None,
        scheduler: PollingScheduler | None = None,
        visibility: HostVisibility | None = None,
        tick_period_ms: int = TICK_PERIOD_MS,
    ) -> None:
        self._durations = durations
        self._dispatcher = dispatcher
        self._clock: Clock = clock if clock is not None else SystemClock()
        self._scheduler = scheduler
        self._visibility: HostVisibility = visibility if visibility is not None else _AlwaysForeground()
        self._tick_period_ms = tick_period_ms
        self._tick_handle: TickHandle | None = None

        self._mode: Mode = Mode.PRIMARY
        self._phase: Phase = Phase.IDLE
        self._remaining_ms: int = durations.duration_ms(self._mode)
        self._anchor_deadline: int | None = None
        self._alarm_acknowledged: bool = False

    # -- read-only state -----------------------------------------------------

    @property
    def phase(self) -> Phase:
        """The current phase."""
        return self._phase

    @property
    def mode(self) -> Mode:
        """The current mode."""
        return self._mode

    @property
    def remaining_ms(self) -> int:
        """Remaining milliseconds, derived from the anchor while running."""
        if self._phase == Phase.RUNNING:
            return max(self._anchor_deadline - self._clock.now(), 0)
        return self._remaining_ms

    @property
    def anchor_deadline(self) -> int | None:
        """Clock time at which a running countdown reaches zero; None unless RUNNING."""
        return self._anchor_deadline

    @property
    def alarm_acknowledged(self) -> bool:
        """True once the current expiration's alarm has been dispatched."""
        return self._alarm_acknowledged

    @property
    def durations(self) -> DurationTable:
        """The duration table the engine re-homes from."""
        return self._durations

    def snapshot(self) -> Snapshot:
        """Return a read-only view; remaining time is derived live while running."""
        return Snapshot(phase=self._phase, remaining_ms=self.remaining_ms, mode=self._mode)

    # -- transitions ---------------------------------------------------------

    def start(self) -> None:
        """Anchor the countdown and enter RUNNING.

        Valid only from IDLE or PAUSED; a no-op while running or alarmed.
        """
        if self._phase not in _STARTABLE:
            return
        if self._phase == Phase.IDLE:
            # Picks up a primary preset changed while the countdown was busy.
            self._remaining_ms = self._durations.duration_ms(self._mode)
        self._anchor_deadline = self._clock.now() + self._remaining_ms
        self._alarm_acknowledged = False
        self._set_phase(Phase.RUNNING)
        if self._scheduler is not None:
            self._cancel_ticks()
            self._tick_handle = self._scheduler.schedule_repeating(self.tick, self._tick_period_ms)

    def pause(self) -> None:
        """Freeze the remaining time. Valid only from RUNNING."""
        # Reconcile first: a countdown whose deadline already passed
        # expires rather than pausing at zero.
        self.tick()
        if self._phase != Phase.RUNNING:
            return
        self._remaining_ms = max(self._anchor_deadline - self._clock.now(), 0)
        self._anchor_deadline = None
        self._cancel_ticks()
        self._set_phase(Phase.PAUSED)

    def toggle(self) -> None:
        """Start/pause button: pause when running, acknowledge an alarm, start otherwise."""
        if self._phase == Phase.RUNNING:
            self.pause()
        elif self._phase in _ALARM_PHASES:
            self.acknowledge()
        else:
            self.start()

    def tick(self) -> None:
        """Recompute remaining time from the anchor; expire once it reaches zero."""
        if self._phase != Phase.RUNNING:
            return
        remaining = self._anchor_deadline - self._clock.now()
        if remaining > 0:
            self._remaining_ms = remaining
            return
        self._expire()

    def resume_visible(self) -> None:
        """Host came back to the foreground: fire a deferred alarm, if any."""
        if self._phase != Phase.ALARM_PENDING:
            return
        logger.info("host foregrounded, firing deferred alarm")
        self._fire_alarm()

    def acknowledge(self) -> None:
        """Stop a pending or sounding alarm and return to IDLE."""
        if self._phase not in _ALARM_PHASES:
            return
        self._rehome(self._mode)

    def set_mode(self, mode: Mode) -> None:
        """Switch to *mode*, discarding any run or alarm in progress."""
        self._rehome(mode)

    def reset(self) -> None:
        """Return the current mode to its full duration, discarding any run or alarm."""
        self._rehome(self._mode)

    def set_primary_duration(self, minutes: int) -> None:
        """Change the primary preset; ignored when *minutes* is not an allowed preset.

        Applies to the displayed time at once only when the primary mode is
        idle; otherwise on its next start, reset or mode switch.
        """
        if not self._durations.set_primary(minutes):
            return
        if self._mode == Mode.PRIMARY and self._phase == Phase.IDLE:
            self._remaining_ms = self._durations.duration_ms(Mode.PRIMARY)

    # -- private helpers -----------------------------------------------------

    def _expire(self) -> None:
        self._remaining_ms = 0
        self._anchor_deadline = None
        self._cancel_ticks()
        if self._visibility.is_foreground():
            logger.info("%s countdown expired", self._mode.value)
            self._fire_alarm()
        else:
            logger.info("%s countdown expired in background, deferring alarm", self._mode.value)
            self._set_phase(Phase.ALARM_PENDING)

    def _fire_alarm(self) -> None:
        self._set_phase(Phase.ALARM_ACTIVE)
        if self._alarm_acknowledged:
            return
        self._alarm_acknowledged = True
        self._dispatcher.dispatch(self._mode)

    def _rehome(self, mode: Mode) -> None:
        """Cancel any run or alarm and rest at *mode*'s full duration."""
        self._cancel_ticks()
        if self._phase in _ALARM_PHASES:
            self._dispatcher.stop()
        self._mode = mode
        self._remaining_ms = self._durations.duration_ms(mode)
        self._anchor_deadline = None
        self._alarm_acknowledged = False
        self._set_phase(Phase.IDLE)

    def _cancel_ticks(self) -> None:
        if self._tick_handle is not None:
            self._tick_handle.cancel()
            self._tick_handle = None

    def _set_phase(self, phase: Phase) -> None:
        if phase != self._phase:
            logger.debug("%s -> %s (%s)", self._phase.value, phase.value, self._mode.value)
        self._phase = phase
