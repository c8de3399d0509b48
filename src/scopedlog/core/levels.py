"""Severity levels and the gating predicate."""

import logging
from enum import IntEnum


class Severity(IntEnum):
    """Ordered log severity.

    The numeric values define the total order used for gating; a record is
    emitted only when its level is at or above the configured minimum.
    """

    TRACE = 0
    DEBUG = 1
    INFORMATION = 2
    WARNING = 3
    ERROR = 4
    CRITICAL = 5

    @property
    def label(self) -> str:
        """Display name, e.g. "Information"."""
        return self.name.capitalize()

    @classmethod
    def parse(cls, value: "str | int | Severity") -> "Severity":
        """Parse a level name, alias or numeric value.

        Args:
            value: A Severity, its integer value, or a case-insensitive name
                such as "Warning", "warn", "INFO" or "fatal".

        Returns:
            The matching Severity.

        Raises:
            ValueError: If the value does not name a level.
        """
        if isinstance(value, Severity):
            return value
        if isinstance(value, int):
            return cls(value)
        key = value.strip().upper()
        if key in _ALIASES:
            return _ALIASES[key]
        try:
            return cls[key]
        except KeyError:
            raise ValueError(f"Unknown severity: {value!r}") from None


_ALIASES = {
    "TRC": Severity.TRACE,
    "VERBOSE": Severity.TRACE,
    "DBG": Severity.DEBUG,
    "INFO": Severity.INFORMATION,
    "INF": Severity.INFORMATION,
    "WARN": Severity.WARNING,
    "WRN": Severity.WARNING,
    "ERR": Severity.ERROR,
    "FATAL": Severity.CRITICAL,
    "CRIT": Severity.CRITICAL,
}


def is_enabled(level: Severity, minimum: Severity) -> bool:
    """Return True if a record at ``level`` passes a ``minimum`` gate."""
    return level >= minimum


# stdlib level -> Severity, checked from the highest threshold down
_FROM_STDLIB = [
    (logging.CRITICAL, Severity.CRITICAL),
    (logging.ERROR, Severity.ERROR),
    (logging.WARNING, Severity.WARNING),
    (logging.INFO, Severity.INFORMATION),
    (logging.DEBUG, Severity.DEBUG),
]

_TO_STDLIB = {
    Severity.TRACE: 5,
    Severity.DEBUG: logging.DEBUG,
    Severity.INFORMATION: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
    Severity.CRITICAL: logging.CRITICAL,
}


def from_stdlib(levelno: int) -> Severity:
    """Map a stdlib ``logging`` level number to a Severity.

    Anything below ``logging.DEBUG`` maps to TRACE.
    """
    for threshold, severity in _FROM_STDLIB:
        if levelno >= threshold:
            return severity
    return Severity.TRACE


def to_stdlib(level: Severity) -> int:
    """Map a Severity to a stdlib ``logging`` level number."""
    return _TO_STDLIB[level]
