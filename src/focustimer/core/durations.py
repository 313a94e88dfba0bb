"""Duration table: maps each timer mode to its configured length."""

from __future__ import annotations

import logging
from enum import Enum

from focustimer.core.preferences import PreferenceStore

logger = logging.getLogger(__name__)

PRIMARY_PRESETS = (25, 45, 60)
PRIMARY_PREFERENCE_KEY = "primary_minutes"

_MS_PER_MINUTE = 60_000


class Mode(Enum):
    """Named countdown profiles."""

    PRIMARY = "primary"
    SHORT_BREAK = "short-break"
    LONG_BREAK = "long-break"

    @classmethod
    def parse(cls, text: str) -> "Mode":
        """Return the mode whose value is *text*; raises ``ValueError`` otherwise."""
        return cls(text)


_DEFAULT_MINUTES: dict[Mode, int] = {
    Mode.PRIMARY: 25,
    Mode.SHORT_BREAK: 5,
    Mode.LONG_BREAK: 10,
}


def is_valid_preset(minutes: object) -> bool:
    """Return True if *minutes* is one of the allowed primary durations."""
    # bool is an int subclass; True/False are never presets.
    return isinstance(minutes, int) and not isinstance(minutes, bool) and minutes in PRIMARY_PRESETS


class DurationTable:
    """Configured minutes per :class:`Mode`.

    Only the primary mode is configurable, and only to one of
    :data:`PRIMARY_PRESETS`. The break modes are fixed.
    """

    def __init__(self, store: PreferenceStore | None = None) -> None:
        self._minutes: dict[Mode, int] = dict(_DEFAULT_MINUTES)
        self._store = store

    @classmethod
    def load(cls, store: PreferenceStore | None) -> "DurationTable":
        """Build a table from defaults plus the persisted primary preset, if valid."""
        table = cls(store)
        if store is None:
            return table
        persisted = store.get(PRIMARY_PREFERENCE_KEY)
        if persisted is None:
            return table
        if is_valid_preset(persisted):
            table._minutes[Mode.PRIMARY] = persisted
        else:
            logger.warning("ignoring invalid persisted primary duration: %r", persisted)
        return table

    # -- public interface ----------------------------------------------------

    def minutes(self, mode: Mode) -> int:
        """Return the configured minutes for *mode*."""
        return self._minutes[mode]

    def duration_ms(self, mode: Mode) -> int:
        """Return the duration of *mode* in milliseconds."""
        return self._minutes[mode] * _MS_PER_MINUTE

    def set_primary(self, minutes: int) -> bool:
        """Set the primary duration to *minutes* and persist it.

        Returns False, leaving the table untouched, when *minutes* is not
        in the preset allow-list.
        """
        if not is_valid_preset(minutes):
            logger.debug("rejected primary duration %r", minutes)
            return False
        self._minutes[Mode.PRIMARY] = minutes
        if self._store is not None:
            self._store.set(PRIMARY_PREFERENCE_KEY, minutes)
        logger.debug("primary duration set to %d minutes", minutes)
        return True

    def as_dict(self) -> dict[Mode, int]:
        """Return a copy of the whole table."""
        return dict(self._minutes)
