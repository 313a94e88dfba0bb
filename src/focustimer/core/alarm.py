"""Alarm dispatcher: forwards an expiration to the audio and notification channels."""

from __future__ import annotations

import logging
from typing import Protocol

from focustimer.core.durations import Mode

logger = logging.getLogger(__name__)

_MESSAGES = {
    Mode.PRIMARY: ("Focus session complete", "Time for a break."),
    Mode.SHORT_BREAK: ("Short break over", "Back to focus."),
    Mode.LONG_BREAK: ("Long break over", "Ready for the next focus session."),
}


class AudioResource(Protocol):
    def play_looped(self) -> None:
        """Start playback that repeats until :meth:`stop`."""
        ...

    def stop(self) -> None:
        """Halt playback and rewind to the start."""
        ...

    def is_playback_allowed(self) -> bool:
        """True while the host is in the foreground."""
        ...


class NotificationService(Protocol):
    def request_permission(self) -> bool:
        """Ask for permission to notify; returns whether it was granted."""
        ...

    def is_granted(self) -> bool:
        """True when permission was previously granted."""
        ...

    def show(self, title: str, body: str) -> None:
        """Show a one-shot notification."""
        ...


def alarm_message(mode: Mode) -> tuple[str, str]:
    """Return the ``(title, body)`` announcing the end of *mode*."""
    return _MESSAGES[mode]


class AlarmDispatcher:
    """Fires the alarm on both channels, each isolated from the other's failures.

    A notification without permission, or audio blocked by the host, is an
    expected degraded condition: the other channel still fires and nothing
    propagates to the engine. A dispatch while an alarm is already live is
    ignored until :meth:`stop`.
    """

    def __init__(self, audio: AudioResource, notifier: NotificationService) -> None:
        self._audio = audio
        self._notifier = notifier
        self._active = False

    @property
    def active(self) -> bool:
        """True from a dispatch until the next :meth:`stop`."""
        return self._active

    def dispatch(self, mode: Mode) -> None:
        """Announce the end of *mode*: notify first, then start looped audio."""
        if self._active:
            logger.debug("alarm already live, ignoring dispatch for %s", mode.value)
            return
        self._active = True
        logger.info("alarm: %s finished", mode.value)
        self._notify(mode)
        self._play()

    def stop(self) -> None:
        """Halt the alarm audio and allow the next dispatch."""
        self._active = False
        try:
            self._audio.stop()
        except Exception:
            logger.exception("failed to stop alarm audio")

    # -- private helpers -----------------------------------------------------

    def _notify(self, mode: Mode) -> None:
        try:
            if not self._notifier.is_granted():
                logger.debug("notification permission not granted, skipping")
                return
            title, body = alarm_message(mode)
            self._notifier.show(title, body)
        except Exception:
            logger.exception("alarm notification failed")

    def _play(self) -> None:
        try:
            if not self._audio.is_playback_allowed():
                logger.debug("audio playback not allowed, skipping")
                return
            self._audio.play_looped()
        except Exception:
            logger.warning("alarm audio playback failed", exc_info=True)
