"""focustimer: a drift-free focus/break countdown timer."""

__version__ = "0.1.0"
