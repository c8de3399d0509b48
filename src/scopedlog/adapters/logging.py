"""Bridge between Python's standard library logging module and scopedlog.

``ScopedLogHandler`` feeds stdlib records into the scopedlog pipeline, so
they pick up the active scope and reach the configured sinks.
``StdlibSink`` goes the other way and forwards scopedlog records to stdlib
loggers named after the record category.
"""

import logging
from typing import Any

from scopedlog.config import LoggingConfig
from scopedlog.core.levels import from_stdlib, to_stdlib
from scopedlog.core.logs import Logger
from scopedlog.core.models import LogRecord

# Set on stdlib records produced by StdlibSink so the handler skips them
FORWARDED_ATTR = "scopedlog_forwarded"

# Standard LogRecord attributes that should not be treated as extra fields
_STANDARD_LOGRECORD_ATTRS = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)

# Default attributes to extract from LogRecord
_DEFAULT_INCLUDE_ATTRS = ["module", "funcName", "lineno"]


class ScopedLogHandler(logging.Handler):
    """Logging handler that routes stdlib records through scopedlog.

    The stdlib logger name becomes the record category and the stdlib
    creation time becomes the record timestamp. Extras passed with
    ``extra={...}`` become fields; ``exc_info`` becomes an error chain.

    Example:
        ```python
        handler = ScopedLogHandler()
        logging.getLogger().addHandler(handler)

        with begin_scope({"RequestId": "abc"}):
            logging.getLogger("app").warning("Disk almost full")
        ```
    """

    def __init__(
        self,
        config: LoggingConfig | None = None,
        include_attrs: list[str] | None = None,
    ) -> None:
        """Initialize the handler.

        Args:
            config: Configuration to log through (default: the process-wide
                configuration at the time of each record).
            include_attrs: LogRecord attributes to include as fields. Defaults
                to ["module", "funcName", "lineno"].
        """
        super().__init__()
        self._config = config
        self._include_attrs = (
            _DEFAULT_INCLUDE_ATTRS if include_attrs is None else include_attrs
        )

    def emit(self, record: logging.LogRecord) -> None:
        """Forward a stdlib record to the scopedlog pipeline.

        Args:
            record: The log record to emit.
        """
        if getattr(record, FORWARDED_ATTR, False):
            return
        try:
            attr_mapping: dict[str, Any] = {
                "module": record.module,
                "funcName": record.funcName or "",
                "lineno": record.lineno,
                "pathname": record.pathname,
            }
            attributes = {
                key: attr_mapping[key]
                for key in self._include_attrs
                if key in attr_mapping
            }
            for key, value in record.__dict__.items():
                if key not in _STANDARD_LOGRECORD_ATTRS and not key.startswith("_"):
                    attributes[key] = value

            exc = record.exc_info[1] if record.exc_info else None
            created = record.created
            logger = Logger(record.name, self._config, clock=lambda: created)
            logger.write(
                from_stdlib(record.levelno), record.getMessage(), exc, **attributes
            )
        except Exception:
            self.handleError(record)


class StdlibSink:
    """Sink that forwards records to stdlib loggers.

    Each record goes to ``logging.getLogger(prefix + category)`` at the
    mapped stdlib level. Scope values and fields travel as the ``scope`` and
    ``fields`` extras; an attached error chain is passed as its formatted
    traceback in ``error``.
    """

    def __init__(self, prefix: str = "") -> None:
        self._prefix = prefix

    def emit(self, record: LogRecord) -> None:
        logger = logging.getLogger(self._prefix + record.category)
        level = to_stdlib(record.level)
        if not logger.isEnabledFor(level):
            return
        extra: dict[str, Any] = {
            FORWARDED_ATTR: True,
            "scope": dict(record.scope),
            "fields": record.properties,
        }
        if record.error is not None:
            extra["error"] = record.error.traceback or "; ".join(
                f"{d.type_name}: {d.message}" for d in record.error.descriptors
            )
        logger.log(level, record.message, extra=extra)

    def __repr__(self) -> str:
        return f"StdlibSink(prefix={self._prefix!r})"
