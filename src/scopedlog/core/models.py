"""Core domain models for structured log records and metrics."""

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
from types import MappingProxyType
from typing import Any

from scopedlog.core.levels import Severity

_EMPTY: Mapping[str, Any] = MappingProxyType({})


class FieldKind(str, Enum):
    """Type tag carried by every structured field."""

    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"
    DURATION = "duration"
    STRUCTURED = "structured"
    SEQUENCE = "sequence"
    NULL = "null"


@dataclass(frozen=True)
class LogField:
    """A named value bound to a template placeholder.

    Attributes:
        name: Placeholder name without capture marker.
        value: The bound value (destructured for STRUCTURED fields).
        kind: Type tag for structured sinks.
        format: Format specifier from the placeholder, if any.
    """

    name: str
    value: Any
    kind: FieldKind
    format: str | None = None


class ErrorKind(str, Enum):
    """Variant tag for captured errors."""

    GENERIC = "generic"
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"


@dataclass(frozen=True)
class FieldError:
    """One failed field in a validation error."""

    field: str
    value: Any
    error: str


@dataclass(frozen=True)
class ErrorDescriptor:
    """One link of a captured error chain.

    Attributes:
        type_name: Exception class name.
        message: ``str()`` of the exception.
        kind: Variant tag used to interpret ``context``.
        context: Structured payload, preserved verbatim for the kind.
    """

    type_name: str
    message: str
    kind: ErrorKind = ErrorKind.GENERIC
    context: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)


@dataclass(frozen=True)
class ErrorChain:
    """Causally linked errors, outermost first.

    Attributes:
        descriptors: Outer-to-inner descriptors; the last one is the root cause.
        cycle_detected: True if the walk stopped on a revisited error.
        traceback: Formatted traceback of the outermost error.
    """

    descriptors: tuple[ErrorDescriptor, ...]
    cycle_detected: bool = False
    traceback: str = ""

    @property
    def root_cause(self) -> ErrorDescriptor | None:
        return self.descriptors[-1] if self.descriptors else None

    def __len__(self) -> int:
        return len(self.descriptors)


@dataclass(frozen=True)
class LogRecord:
    """One immutable log event.

    Attributes:
        level: Severity of the event.
        category: Name of the logger that produced it.
        template: Message template text.
        message: Rendered human-readable text.
        fields: Bound placeholder values in template order.
        scope: Merged scope context active when the record was produced.
        scopes: Rendered description of each active scope frame, outer first.
        timestamp: Unix timestamp in seconds (UTC).
        error: Captured error chain, if the event carries one.
        malformed: True if placeholders and arguments did not line up.
    """

    level: Severity
    category: str
    template: str
    message: str
    timestamp: float
    fields: tuple[LogField, ...] = ()
    scope: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)
    scopes: tuple[str, ...] = ()
    error: ErrorChain | None = None
    malformed: bool = False

    @property
    def properties(self) -> dict[str, Any]:
        """Field values keyed by placeholder name."""
        return {f.name: f.value for f in self.fields}

    @property
    def utc_datetime(self) -> datetime:
        """Timestamp as an aware UTC datetime."""
        return datetime.fromtimestamp(self.timestamp, tz=UTC)


def throughput(items: float, elapsed: timedelta) -> float:
    """Items per second; 0.0 when no time has elapsed."""
    seconds = elapsed.total_seconds()
    if seconds <= 0:
        return 0.0
    return items / seconds


def success_rate(processed: int, errors: int) -> float:
    """Percentage of processed items without error; 0.0 when nothing ran."""
    if processed == 0:
        return 0.0
    return (processed - errors) / processed * 100


@dataclass(frozen=True)
class PerformanceSample:
    """Elapsed time and work done by one operation.

    ``throughput_per_second`` is 0.0 when ``elapsed`` is zero.
    """

    operation_name: str
    elapsed: timedelta
    items_processed: int = 0
    memory_used: int | None = None

    @property
    def throughput_per_second(self) -> float:
        return throughput(self.items_processed, self.elapsed)


@dataclass(frozen=True)
class BatchStatistics:
    """Outcome of a batch run.

    ``success_rate`` is a percentage and is 0.0 when nothing was processed;
    ``throughput`` is 0.0 when ``elapsed`` is zero.
    """

    processed: int
    errors: int
    elapsed: timedelta

    @property
    def success_rate(self) -> float:
        return success_rate(self.processed, self.errors)

    @property
    def throughput(self) -> float:
        return throughput(self.processed, self.elapsed)


@dataclass
class AuditEvent:
    """A business event meant to be logged as a structured value.

    Example:
        ```python
        event = AuditEvent(event_type="UserCreated", user_id="123",
                           action="CreateUser", resource="UserManagement")
        logger.info("Structured event: {@Event}", event)
        ```
    """

    event_type: str = ""
    user_id: str = ""
    action: str = ""
    resource: str = ""
    properties: dict[str, Any] = field(default_factory=dict)
    duration: timedelta | None = None
    success: bool = True
    error_message: str | None = None
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
