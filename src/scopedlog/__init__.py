"""Structured logging with scoped context, message templates and timing.

Example:
    ```python
    from scopedlog import InMemorySink, LoggingConfig, begin_scope, configure, get_logger

    sink = InMemorySink()
    configure(LoggingConfig(sinks=(sink,)))
    logger = get_logger("orders")

    with begin_scope("UserId:{UserId}", 123):
        logger.info("Order {OrderId} created for {Amount:C}", "ORD-001", 99.95)
    ```
"""

from scopedlog.adapters.logging import ScopedLogHandler, StdlibSink
from scopedlog.adapters.sinks import InMemorySink, RingBufferSink, SQLiteSink
from scopedlog.config import LoggingConfig, configure, get_config
from scopedlog.core.encoding.ndjson import encode_record, encode_records
from scopedlog.core.errors import BusinessRuleViolation, ValidationFailed, capture
from scopedlog.core.formatters import FormatConventions, FormatterRegistry
from scopedlog.core.levels import Severity, is_enabled
from scopedlog.core.logs import Deferred, Logger, get_logger
from scopedlog.core.models import (
    AuditEvent,
    BatchStatistics,
    ErrorChain,
    ErrorDescriptor,
    ErrorKind,
    FieldError,
    FieldKind,
    LogField,
    LogRecord,
    PerformanceSample,
)
from scopedlog.core.ports import LogSinkPort
from scopedlog.core.retry import retry
from scopedlog.core.scope import (
    ScopeDisciplineError,
    ScopeHandle,
    current_context,
    current_scopes,
)
from scopedlog.core.scope import push as begin_scope
from scopedlog.core.templates import parse_template, render
from scopedlog.core.timing import (
    BatchTracker,
    MemoryTracker,
    PhaseReport,
    PhaseTimer,
    Stopwatch,
    aggregate_phases,
    batch_statistics,
    success_rate,
    throughput,
    time_concurrently,
)

__all__ = [
    # Configuration
    "LoggingConfig",
    "configure",
    "get_config",
    # Logging
    "Deferred",
    "Logger",
    "Severity",
    "get_logger",
    "is_enabled",
    # Records
    "AuditEvent",
    "BatchStatistics",
    "ErrorChain",
    "ErrorDescriptor",
    "ErrorKind",
    "FieldError",
    "FieldKind",
    "LogField",
    "LogRecord",
    "PerformanceSample",
    # Templates
    "FormatConventions",
    "FormatterRegistry",
    "parse_template",
    "render",
    # Scopes
    "ScopeDisciplineError",
    "ScopeHandle",
    "begin_scope",
    "current_context",
    "current_scopes",
    # Errors
    "BusinessRuleViolation",
    "ValidationFailed",
    "capture",
    "retry",
    # Timing
    "BatchTracker",
    "MemoryTracker",
    "PhaseReport",
    "PhaseTimer",
    "Stopwatch",
    "aggregate_phases",
    "batch_statistics",
    "success_rate",
    "throughput",
    "time_concurrently",
    # Sinks and adapters
    "InMemorySink",
    "LogSinkPort",
    "RingBufferSink",
    "SQLiteSink",
    "ScopedLogHandler",
    "StdlibSink",
    "encode_record",
    "encode_records",
]
