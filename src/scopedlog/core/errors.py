"""Domain error kinds and error-chain capture."""

import traceback
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from scopedlog.core.models import (
    ErrorChain,
    ErrorDescriptor,
    ErrorKind,
    FieldError,
)


class ValidationFailed(Exception):
    """Input validation failed on one or more fields.

    Example:
        ```python
        raise (
            ValidationFailed("Email address format is invalid")
            .add_error("Email", "john.doe@", "Invalid email format")
            .add_error("Age", "-5", "Age must be positive")
        )
        ```
    """

    def __init__(self, message: str, errors: list[FieldError] | None = None) -> None:
        super().__init__(message)
        self.errors: list[FieldError] = list(errors or [])

    def add_error(self, field: str, value: Any, error: str) -> "ValidationFailed":
        self.errors.append(FieldError(field, value, error))
        return self


class BusinessRuleViolation(Exception):
    """A business rule rejected an operation.

    Attributes:
        rule_code: Stable identifier of the rule, e.g. "INSUFFICIENT_FUNDS".
        context: Arbitrary key-value payload describing the violation.
    """

    def __init__(
        self,
        rule_code: str,
        message: str,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.rule_code = rule_code
        self.context: dict[str, Any] = dict(context or {})


def describe(error: BaseException) -> ErrorDescriptor:
    """Build the descriptor for a single error, dispatching on its kind."""
    type_name = type(error).__name__
    message = str(error)
    if isinstance(error, ValidationFailed):
        payload = {
            "errors": tuple(
                {"field": e.field, "value": e.value, "error": e.error}
                for e in error.errors
            )
        }
        return ErrorDescriptor(
            type_name, message, ErrorKind.VALIDATION, MappingProxyType(payload)
        )
    if isinstance(error, BusinessRuleViolation):
        payload = {"rule_code": error.rule_code, "context": dict(error.context)}
        return ErrorDescriptor(
            type_name, message, ErrorKind.BUSINESS_RULE, MappingProxyType(payload)
        )
    return ErrorDescriptor(type_name, message)


def _next_cause(error: BaseException) -> BaseException | None:
    if error.__cause__ is not None:
        return error.__cause__
    if error.__context__ is not None and not error.__suppress_context__:
        return error.__context__
    return None


def capture(error: BaseException, max_depth: int | None = None) -> ErrorChain:
    """Walk an error's causal chain, outermost first.

    Follows ``__cause__``, or ``__context__`` when the context is not
    suppressed, until an error has neither. An error seen twice ends the walk
    and marks the chain with ``cycle_detected``.

    Args:
        error: The outermost error.
        max_depth: Optional limit on the number of descriptors.

    Returns:
        ErrorChain with one descriptor per error in the chain.
    """
    descriptors: list[ErrorDescriptor] = []
    seen: set[int] = set()
    cycle = False
    current: BaseException | None = error
    while current is not None:
        if id(current) in seen:
            cycle = True
            break
        if max_depth is not None and len(descriptors) >= max_depth:
            break
        seen.add(id(current))
        descriptors.append(describe(current))
        current = _next_cause(current)

    formatted = ""
    if error.__traceback__ is not None:
        formatted = "".join(traceback.format_exception(error))
    return ErrorChain(tuple(descriptors), cycle_detected=cycle, traceback=formatted)
