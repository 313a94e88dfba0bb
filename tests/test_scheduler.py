"""Tests for the PollingScheduler and SystemClock."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from conftest import FakeClock

from focustimer.core.clock import SystemClock
from focustimer.core.scheduler import PollingScheduler


class TestSystemClock:
    def test_now_is_wall_clock_milliseconds(self) -> None:
        with patch("focustimer.core.clock.time") as mock_time:
            mock_time.time.return_value = 1_700_000_000.1234
            assert SystemClock().now() == 1_700_000_000_123


class TestPollingScheduler:
    """Callbacks run only from run_pending(), once per due period."""

    def test_nothing_fires_before_due(self, scheduler: PollingScheduler, clock: FakeClock) -> None:
        calls: list[int] = []
        scheduler.schedule_repeating(lambda: calls.append(clock.now()), 250)
        clock.advance(249)
        assert scheduler.run_pending() == 0
        assert calls == []

    def test_fires_each_period(self, scheduler: PollingScheduler, clock: FakeClock) -> None:
        calls: list[int] = []
        scheduler.schedule_repeating(lambda: calls.append(clock.now()), 250)
        for _ in range(3):
            clock.advance(250)
            scheduler.run_pending()
        assert calls == [250, 500, 750]

    def test_late_callback_fires_once(self, scheduler: PollingScheduler, clock: FakeClock) -> None:
        calls: list[int] = []
        scheduler.schedule_repeating(lambda: calls.append(clock.now()), 250)
        clock.advance(10_000)
        assert scheduler.run_pending() == 1
        assert scheduler.next_delay_ms() == 250

    def test_cancel_is_idempotent(self, scheduler: PollingScheduler, clock: FakeClock) -> None:
        calls: list[int] = []
        handle = scheduler.schedule_repeating(lambda: calls.append(1), 250)
        handle.cancel()
        handle.cancel()
        clock.advance(1_000)
        scheduler.run_pending()
        assert calls == []
        assert scheduler.pending == 0
        assert handle.cancelled is True

    def test_callback_may_cancel_itself(self, scheduler: PollingScheduler, clock: FakeClock) -> None:
        calls: list[int] = []

        def once() -> None:
            calls.append(1)
            handle.cancel()

        handle = scheduler.schedule_repeating(once, 100)
        clock.advance(100)
        scheduler.run_pending()
        clock.advance(100)
        scheduler.run_pending()
        assert calls == [1]
        assert scheduler.pending == 0

    def test_callback_may_cancel_another(self, scheduler: PollingScheduler, clock: FakeClock) -> None:
        calls: list[str] = []
        second = None

        def first() -> None:
            calls.append("first")
            second.cancel()

        scheduler.schedule_repeating(first, 100)
        second = scheduler.schedule_repeating(lambda: calls.append("second"), 100)
        clock.advance(100)
        scheduler.run_pending()
        assert calls == ["first"]

    def test_next_delay_none_when_idle(self, scheduler: PollingScheduler) -> None:
        assert scheduler.next_delay_ms() is None

    def test_next_delay(self, scheduler: PollingScheduler, clock: FakeClock) -> None:
        scheduler.schedule_repeating(lambda: None, 250)
        clock.advance(100)
        assert scheduler.next_delay_ms() == 150

    def test_rejects_non_positive_period(self, scheduler: PollingScheduler) -> None:
        with pytest.raises(ValueError):
            scheduler.schedule_repeating(lambda: None, 0)
