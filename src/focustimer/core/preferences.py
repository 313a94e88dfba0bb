"""Preference store: persisted user settings with JSON file locking."""

from __future__ import annotations

import fcntl
import json
import logging
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "focustimer"
_PREFERENCES_FILE = "preferences.json"


class PreferenceStore(Protocol):
    """Key/value preference storage."""

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under *key*, or *default*."""
        ...

    def set(self, key: str, value: Any) -> None:
        """Store *value* under *key*."""
        ...


class MemoryPreferenceStore:
    """In-memory store, for embedding and tests."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value


class JsonPreferenceStore:
    """Preferences kept in ``<config_dir>/preferences.json``.

    The file is read once on construction and rewritten after every
    :meth:`set`, so that settings survive across invocations.
    """

    def __init__(self, config_dir: Path | None = None) -> None:
        self._config_dir: Path = config_dir if config_dir is not None else DEFAULT_CONFIG_DIR
        self._values: dict[str, Any] = {}
        self._load()

    @property
    def path(self) -> Path:
        """Location of the preferences file."""
        return self._config_dir / _PREFERENCES_FILE

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Store *value* under *key* and rewrite the file."""
        self._values[key] = value
        self._save()

    # -- persistence ---------------------------------------------------------

    def _save(self) -> None:
        """Write all preferences to the JSON file with file locking."""
        self._config_dir.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            fcntl.flock(f, fcntl.LOCK_EX)
            json.dump(self._values, f, indent=2, sort_keys=True)

    def _load(self) -> None:
        """Load preferences from the JSON file if it exists."""
        path = self.path
        if not path.exists():
            return

        with open(path) as f:
            fcntl.flock(f, fcntl.LOCK_SH)
            try:
                data = json.load(f)
            except json.JSONDecodeError as exc:
                logger.warning("ignoring unreadable preferences file %s: %s", path, exc)
                return

        if not isinstance(data, dict):
            logger.warning("ignoring preferences file %s: expected an object", path)
            return
        self._values = data
