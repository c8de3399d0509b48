"""In-memory sinks.

``InMemorySink`` keeps every record; ``RingBufferSink`` keeps only the most
recent ``max_size`` records, evicting the oldest, for services that need
predictable memory usage.
"""

from collections import deque
from collections.abc import Iterable

from scopedlog.core.levels import Severity
from scopedlog.core.models import LogRecord


def _select(
    records: Iterable[LogRecord], since: float, level: Severity | None
) -> list[LogRecord]:
    filtered = [
        r
        for r in records
        if r.timestamp > since and (level is None or r.level >= level)
    ]
    return sorted(filtered, key=lambda r: r.timestamp)


class InMemorySink:
    """Keeps records in a list. Suitable for tests and short-lived tools."""

    def __init__(self) -> None:
        self._records: list[LogRecord] = []

    def emit(self, record: LogRecord) -> None:
        self._records.append(record)

    def read(self, since: float = 0, level: Severity | None = None) -> list[LogRecord]:
        """Records newer than ``since`` at or above ``level``.

        Returns records with timestamp > since, ordered by timestamp ascending.
        """
        return _select(list(self._records), since, level)

    @property
    def records(self) -> list[LogRecord]:
        """All records in emission order."""
        return list(self._records)

    @property
    def messages(self) -> list[str]:
        return [r.message for r in self._records]

    def clear(self) -> None:
        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)


class RingBufferSink:
    """Keeps the most recent records in a fixed-size circular buffer.

    Args:
        max_size: Maximum number of records to keep.
    """

    def __init__(self, max_size: int) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._buffer: deque[LogRecord] = deque(maxlen=max_size)

    @property
    def max_size(self) -> int:
        return self._buffer.maxlen or 0

    def emit(self, record: LogRecord) -> None:
        self._buffer.append(record)

    def read(self, since: float = 0, level: Severity | None = None) -> list[LogRecord]:
        """Records newer than ``since`` at or above ``level``, oldest first."""
        return _select(list(self._buffer), since, level)

    def clear(self) -> None:
        self._buffer.clear()

    def __len__(self) -> int:
        return len(self._buffer)
