"""Clock source: the only time primitive the countdown depends on."""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Anything that can report the current wall-clock time."""

    def now(self) -> int:
        """Return the current time in milliseconds."""
        ...


class SystemClock:
    """Wall-clock milliseconds from ``time.time()``.

    Keeps counting while the process is stopped or the machine sleeps.
    """

    def now(self) -> int:
        return int(time.time() * 1000)
