"""Port interface for sink adapters.

The core delivers every record that passes the level gate to each
registered sink. Where a sink writes (memory, SQLite, stdlib logging) and
how it formats the record is the adapter's concern.
"""

from typing import Protocol, runtime_checkable

from scopedlog.core.models import LogRecord


@runtime_checkable
class LogSinkPort(Protocol):
    """Port for record delivery.

    Examples: InMemorySink, RingBufferSink, SQLiteSink, StdlibSink.
    """

    def emit(self, record: LogRecord) -> None:
        """Accept one finished record.

        Exceptions raised here are contained by the core: they never reach the
        code that logged and never stop delivery to other sinks.
        """
        ...
