"""Terminal implementations of the engine's host collaborators.

* :class:`TerminalVisibility`: foreground means our process group owns
  the controlling terminal; ``fg`` after ``bg``/Ctrl-Z delivers ``SIGCONT``.
* :class:`TerminalBell`: "looped audio" as a terminal bell rung by the
  run loop while the alarm sounds.
* :class:`DesktopNotifier`: ``notify-send`` / ``osascript`` notifications,
  gated on a persisted permission preference.
"""

from __future__ import annotations

import logging
import os
import shutil
import signal
import subprocess
import sys
from typing import Any

import click

from focustimer.core.clock import Clock
from focustimer.core.preferences import PreferenceStore

logger = logging.getLogger(__name__)

NOTIFICATION_PREFERENCE_KEY = "notifications"
_GRANTED = "granted"
_DENIED = "denied"

BELL_INTERVAL_MS = 1000


class TerminalVisibility:
    """Tracks whether the process is the terminal's foreground job."""

    def __init__(self, stream: Any = None) -> None:
        self._stream = stream if stream is not None else sys.stdin
        self._resumed = False

    def install(self) -> Any:
        """Listen for ``SIGCONT``, sent by both ``fg`` and ``bg``.

        Returns the handler it replaced, for :meth:`restore`.
        """
        return signal.signal(signal.SIGCONT, self._on_continue)

    def restore(self, previous: Any) -> None:
        """Put back the ``SIGCONT`` handler returned by :meth:`install`."""
        if previous is not None:
            signal.signal(signal.SIGCONT, previous)

    def _on_continue(self, signum: int, frame: Any) -> None:
        # Only record it: the run loop delivers it between engine transitions.
        self._resumed = True

    def consume_resumed(self) -> bool:
        """Return True once per ``SIGCONT`` received since the last call."""
        resumed, self._resumed = self._resumed, False
        return resumed

    def is_foreground(self) -> bool:
        """True when our process group owns the controlling terminal."""
        try:
            fd = self._stream.fileno()
            return os.tcgetpgrp(fd) == os.getpgrp()
        except (OSError, ValueError):
            # No controlling terminal: nothing can background us.
            return True


class TerminalBell:
    """Rings the terminal bell every *interval_ms* while playing."""

    def __init__(self, visibility: TerminalVisibility, clock: Clock, interval_ms: int = BELL_INTERVAL_MS) -> None:
        self._visibility = visibility
        self._clock = clock
        self._interval_ms = interval_ms
        self._playing = False
        self._next_ring: int | None = None

    @property
    def playing(self) -> bool:
        """True between :meth:`play_looped` and :meth:`stop`."""
        return self._playing

    def play_looped(self) -> None:
        """Start ringing on the next :meth:`poll`, then every interval."""
        self._playing = True

    def stop(self) -> None:
        """Stop ringing and rewind, so the next play rings at once."""
        self._playing = False
        self._next_ring = None

    def is_playback_allowed(self) -> bool:
        """The bell may only start while the job is in the foreground."""
        return self._visibility.is_foreground()

    def poll(self) -> bool:
        """Ring if a ring is due. Returns True when the bell rang."""
        if not self._playing:
            return False
        now = self._clock.now()
        if self._next_ring is not None and now < self._next_ring:
            return False
        click.echo("\a", nl=False)
        self._next_ring = now + self._interval_ms
        return True


class DesktopNotifier:
    """Desktop notifications through the platform's command-line notifier."""

    def __init__(self, store: PreferenceStore, platform: str = sys.platform) -> None:
        self._store = store
        self._platform = platform
        self._children: list[subprocess.Popen] = []

    def request_permission(self) -> bool:
        """Grant permission when a notifier is available; persist the answer."""
        granted = self._binary() is not None
        self._store.set(NOTIFICATION_PREFERENCE_KEY, _GRANTED if granted else _DENIED)
        logger.debug("notification permission %s", _GRANTED if granted else _DENIED)
        return granted

    def deny(self) -> None:
        """Persist a refusal; nothing is shown until permission is requested again."""
        self._store.set(NOTIFICATION_PREFERENCE_KEY, _DENIED)

    def is_granted(self) -> bool:
        """True when permission was previously granted and persisted."""
        return self._store.get(NOTIFICATION_PREFERENCE_KEY) == _GRANTED

    def show(self, title: str, body: str) -> None:
        """Spawn the notifier without waiting; finished notifiers are reaped on the next call."""
        self.reap()
        command = self._command(title, body)
        if command is None:
            logger.debug("no desktop notifier available")
            return
        self._children.append(
            subprocess.Popen(command, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        )

    def reap(self) -> int:
        """Collect exited notifier processes. Returns how many are still running."""
        self._children = [child for child in self._children if child.poll() is None]
        return len(self._children)

    # -- private helpers -----------------------------------------------------

    def _binary(self) -> str | None:
        name = "osascript" if self._platform == "darwin" else "notify-send"
        return shutil.which(name)

    def _command(self, title: str, body: str) -> list[str] | None:
        binary = self._binary()
        if binary is None:
            return None
        if self._platform == "darwin":
            script = f"display notification {_applescript_quote(body)} with title {_applescript_quote(title)}"
            return [binary, "-e", script]
        return [binary, "--app-name=focustimer", title, body]


def _applescript_quote(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'
