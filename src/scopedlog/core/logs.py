"""Logger facade.

A call such as ``logger.info("Order {OrderId} created", order_id)`` runs
the pipeline: level gate, deferred-argument resolution, template
rendering, error capture, scope snapshot, record construction and delivery
to every configured sink. The gate runs first; nothing else is evaluated
for a disabled level.
"""

import logging
import sys
import threading
import time
import weakref
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from scopedlog.config import LoggingConfig, get_config
from scopedlog.core import scope as scope_stack
from scopedlog.core.errors import capture
from scopedlog.core.formatters import FormatterRegistry
from scopedlog.core.levels import Severity, is_enabled
from scopedlog.core.models import (
    BatchStatistics,
    ErrorChain,
    ErrorDescriptor,
    FieldKind,
    LogField,
    LogRecord,
    PerformanceSample,
)
from scopedlog.core.ports import LogSinkPort
from scopedlog.core.templates import classify, render, unrenderable
from scopedlog.core.timing import Clock, PhaseReport, Stopwatch, to_ms

# Diagnostics about the logging core itself go to the stdlib logger.
_diagnostics = logging.getLogger("scopedlog")

# Keyed by id; entries vanish with their sink, so a reused id starts clean
_failed_sinks: weakref.WeakValueDictionary[int, LogSinkPort] = weakref.WeakValueDictionary()
_pinned_failed_sinks: dict[int, LogSinkPort] = {}
_failed_sinks_lock = threading.Lock()


class Deferred:
    """A log argument computed only if the record is actually built.

    Example:
        ```python
        logger.debug("Expensive debug data: {Data}", Deferred(build_debug_data))
        ```
    """

    __slots__ = ("_factory",)

    def __init__(self, factory: Callable[[], Any]) -> None:
        self._factory = factory

    def resolve(self) -> Any:
        return self._factory()


def _resolve(args: Sequence[Any]) -> tuple[list[Any], bool]:
    values: list[Any] = []
    failed = False
    for arg in args:
        if not isinstance(arg, Deferred):
            values.append(arg)
            continue
        try:
            values.append(arg.resolve())
        except Exception as exc:
            values.append(f"<deferred argument failed: {type(exc).__name__}>")
            failed = True
    return values, failed


def _capture(exc: BaseException) -> ErrorChain:
    try:
        return capture(exc)
    except Exception:
        return ErrorChain((ErrorDescriptor(type(exc).__name__, "<unrenderable>"),))


def _mark_failed(sink: LogSinkPort) -> bool:
    """Remember a failing sink; False if its failure was already reported."""
    key = id(sink)
    with _failed_sinks_lock:
        if key in _failed_sinks or key in _pinned_failed_sinks:
            return False
        try:
            _failed_sinks[key] = sink
        except TypeError:
            # Not weak-referenceable: hold it so the id cannot be reused
            _pinned_failed_sinks[key] = sink
        return True


def _report_sink_failure(sink: LogSinkPort) -> None:
    if not _mark_failed(sink):
        return
    _diagnostics.warning(
        "Sink %r failed to emit a record; later failures of this sink are not reported",
        sink,
        exc_info=True,
    )


def dispatch(record: LogRecord, sinks: Sequence[LogSinkPort]) -> None:
    """Deliver a record to every sink, containing sink failures."""
    for sink in sinks:
        try:
            sink.emit(record)
        except Exception:
            _report_sink_failure(sink)


class Logger:
    """Category-named structured logger.

    Without an explicit ``config`` the logger reads the process-wide
    configuration on every call, so it can be created before ``configure()``.

    Attributes:
        category: Logger name attached to every record.
    """

    def __init__(
        self,
        category: str,
        config: LoggingConfig | None = None,
        clock: Callable[[], float] = time.time,
        registry: FormatterRegistry | None = None,
    ) -> None:
        self.category = category
        self._config = config
        self._clock = clock
        self._registry = registry

    @property
    def config(self) -> LoggingConfig:
        return self._config if self._config is not None else get_config()

    def is_enabled(self, level: Severity) -> bool:
        """Check the gate before building expensive arguments."""
        return is_enabled(level, self.config.minimum_for(self.category))

    def log(
        self,
        level: Severity,
        template: str,
        *args: Any,
        exc: BaseException | None = None,
    ) -> LogRecord | None:
        """Render and deliver a record.

        Args:
            level: Severity of the record.
            template: Message template with ``{Name}`` placeholders.
            *args: Placeholder values, bound positionally; ``Deferred``
                values are resolved only after the gate passes.
            exc: Error whose causal chain is attached to the record.

        Returns:
            The delivered record, or None if the level is disabled.
        """
        config = self.config
        if not is_enabled(level, config.minimum_for(self.category)):
            return None
        values, failed = _resolve(args)
        rendered = render(template, values, self._registry)
        return self._deliver(
            config,
            level,
            template,
            rendered.text,
            rendered.fields,
            rendered.malformed or failed,
            exc,
        )

    def write(
        self,
        level: Severity,
        message: str,
        exc: BaseException | None = None,
        /,
        **attributes: Any,
    ) -> LogRecord | None:
        """Deliver a pre-rendered message with explicit attributes.

        The message is not parsed as a template; attributes become fields.
        An attribute whose string conversion raises is recorded as
        unrenderable and marks the record malformed.
        """
        config = self.config
        if not is_enabled(level, config.minimum_for(self.category)):
            return None
        fields = []
        malformed = False
        for name, value in attributes.items():
            kind = classify(value)
            if kind is not None:
                fields.append(LogField(name, value, kind))
                continue
            try:
                text = str(value)
            except Exception:
                text = unrenderable(value)
                malformed = True
            fields.append(LogField(name, text, FieldKind.STRING))
        return self._deliver(config, level, message, message, tuple(fields), malformed, exc)

    def _deliver(
        self,
        config: LoggingConfig,
        level: Severity,
        template: str,
        message: str,
        fields: tuple[LogField, ...],
        malformed: bool,
        exc: BaseException | None,
    ) -> LogRecord:
        record = LogRecord(
            level=level,
            category=self.category,
            template=template,
            message=message,
            timestamp=self._clock(),
            fields=fields,
            scope=scope_stack.current_context(),
            scopes=scope_stack.current_scopes(),
            error=_capture(exc) if exc is not None else None,
            malformed=malformed,
        )
        dispatch(record, config.sinks)
        return record

    def trace(self, template: str, *args: Any, exc: BaseException | None = None) -> LogRecord | None:
        return self.log(Severity.TRACE, template, *args, exc=exc)

    def debug(self, template: str, *args: Any, exc: BaseException | None = None) -> LogRecord | None:
        return self.log(Severity.DEBUG, template, *args, exc=exc)

    def info(self, template: str, *args: Any, exc: BaseException | None = None) -> LogRecord | None:
        return self.log(Severity.INFORMATION, template, *args, exc=exc)

    def warning(self, template: str, *args: Any, exc: BaseException | None = None) -> LogRecord | None:
        return self.log(Severity.WARNING, template, *args, exc=exc)

    def error(self, template: str, *args: Any, exc: BaseException | None = None) -> LogRecord | None:
        return self.log(Severity.ERROR, template, *args, exc=exc)

    def critical(self, template: str, *args: Any, exc: BaseException | None = None) -> LogRecord | None:
        return self.log(Severity.CRITICAL, template, *args, exc=exc)

    def exception(self, template: str, *args: Any) -> LogRecord | None:
        """Log at ERROR with the exception currently being handled."""
        return self.log(Severity.ERROR, template, *args, exc=sys.exc_info()[1])

    def begin_scope(self, context: Any, *args: Any) -> scope_stack.ScopeHandle:
        """Push a scope; see ``scopedlog.core.scope.push``."""
        return scope_stack.push(context, *args)

    @contextmanager
    def timed(
        self,
        operation: str,
        level: Severity = Severity.INFORMATION,
        clock: Clock = time.perf_counter,
    ) -> Iterator[Stopwatch]:
        """Log the start and outcome of an operation with its duration.

        A failure is logged at ERROR with the exception attached and then
        re-raised.
        """
        stopwatch = Stopwatch(clock).start()
        self.log(level, "Starting operation {Operation}", operation)
        try:
            yield stopwatch
        except Exception as exc:
            stopwatch.stop()
            self.log(
                Severity.ERROR,
                "Operation {Operation} failed after {Duration}ms",
                operation,
                stopwatch.elapsed_ms,
                exc=exc,
            )
            raise
        stopwatch.stop()
        self.log(
            level,
            "Operation {Operation} completed in {Duration}ms",
            operation,
            stopwatch.elapsed_ms,
        )

    def log_performance(
        self, sample: PerformanceSample, level: Severity = Severity.INFORMATION
    ) -> LogRecord | None:
        template = (
            "Operation {OperationName} completed in {Duration}ms: "
            "{ItemsProcessed} items, {Throughput:F2} items/sec"
        )
        args: list[Any] = [
            sample.operation_name,
            round(to_ms(sample.elapsed)),
            sample.items_processed,
            sample.throughput_per_second,
        ]
        if sample.memory_used is not None:
            template += ", memory {MemoryUsed:N0} bytes"
            args.append(sample.memory_used)
        return self.log(level, template, *args)

    def log_batch(
        self,
        stats: BatchStatistics,
        batch_id: str = "",
        level: Severity = Severity.INFORMATION,
    ) -> LogRecord | None:
        return self.log(
            level,
            "Batch processing {BatchId} completed: {ProcessedItems} items processed, "
            "{Errors} errors, {SuccessRate:F1}% success rate, "
            "{OverallThroughput:F2} items/sec, Total duration: {TotalDuration}ms",
            batch_id,
            stats.processed,
            stats.errors,
            stats.success_rate,
            stats.throughput,
            round(to_ms(stats.elapsed)),
        )

    def log_phases(
        self, report: PhaseReport, level: Severity = Severity.INFORMATION
    ) -> LogRecord | None:
        values = report.as_fields()
        return self.log(
            level,
            "Operation {OperationName} completed. Total: {TotalDuration}ms, "
            "Throughput: {Throughput:F2} items/sec, Phases: {@Phases}",
            values["OperationName"],
            values["TotalDuration"],
            values["Throughput"],
            values["Phases"],
        )

    def __repr__(self) -> str:
        return f"<Logger {self.category!r}>"


_loggers: dict[str, Logger] = {}
_loggers_lock = threading.Lock()


def get_logger(category: str) -> Logger:
    """Return the shared Logger for a category, bound to the global config."""
    with _loggers_lock:
        logger = _loggers.get(category)
        if logger is None:
            logger = _loggers[category] = Logger(category)
        return logger


def clear_logger_cache() -> None:
    """Drop cached loggers (used by tests for clean state)."""
    with _loggers_lock:
        _loggers.clear()
