"""Message template parsing and rendering.

Templates use named placeholders that bind positionally to arguments::

    "Order {OrderId} created for customer {CustomerId}"
    "Payment processed: {Amount:C} at {Timestamp:yyyy-MM-dd HH:mm:ss}"
    "Structured event: {@Event}"

Rendering produces both the human-readable text and an ordered tuple of
typed fields for structured sinks. Argument-count mismatches never raise;
they set the ``malformed`` flag on the result.
"""

import dataclasses
import json
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from functools import lru_cache
from typing import Any

from scopedlog.core.formatters import FormatterRegistry, default_registry
from scopedlog.core.models import FieldKind, LogField

_MAX_DEPTH = 10

_PLACEHOLDER = re.compile(
    r"(?P<capture>[@$]?)(?P<name>[A-Za-z0-9_][A-Za-z0-9_.]*)"
    r"(?:,(?P<alignment>-?\d+))?(?::(?P<format>.*))?",
    re.DOTALL,
)

_SEQUENCE_TYPES = (list, tuple, set, frozenset)


class Capture(str, Enum):
    """How a placeholder captures its argument."""

    DEFAULT = "default"
    STRUCTURE = "structure"  # {@Name}
    STRINGIFY = "stringify"  # {$Name}


_MARKERS = {"": Capture.DEFAULT, "@": Capture.STRUCTURE, "$": Capture.STRINGIFY}


@dataclass(frozen=True)
class Placeholder:
    name: str
    capture: Capture = Capture.DEFAULT
    alignment: int | None = None
    format: str | None = None
    raw: str = ""


@dataclass(frozen=True)
class MessageTemplate:
    """A parsed template: literal strings interleaved with placeholders."""

    text: str
    tokens: tuple[str | Placeholder, ...]

    @property
    def placeholders(self) -> tuple[Placeholder, ...]:
        return tuple(t for t in self.tokens if isinstance(t, Placeholder))

    @property
    def names(self) -> tuple[str, ...]:
        """Distinct placeholder names in order of first appearance."""
        return tuple(dict.fromkeys(p.name for p in self.placeholders))


@dataclass(frozen=True)
class RenderedMessage:
    text: str
    fields: tuple[LogField, ...]
    malformed: bool = False


@lru_cache(maxsize=512)
def parse_template(text: str) -> MessageTemplate:
    """Parse template text into literal and placeholder tokens.

    ``{{`` and ``}}`` are literal braces. A ``{`` without a closing brace, or
    whose body is not a valid placeholder, is kept as literal text.
    """
    tokens: list[str | Placeholder] = []
    literal: list[str] = []
    i, n = 0, len(text)
    while i < n:
        ch = text[i]
        if ch == "{":
            if text.startswith("{{", i):
                literal.append("{")
                i += 2
                continue
            end = text.find("}", i + 1)
            if end == -1:
                literal.append(text[i:])
                break
            match = _PLACEHOLDER.fullmatch(text, i + 1, end)
            if match is None:
                literal.append(text[i : end + 1])
                i = end + 1
                continue
            if literal:
                tokens.append("".join(literal))
                literal = []
            alignment = match.group("alignment")
            tokens.append(
                Placeholder(
                    name=match.group("name"),
                    capture=_MARKERS[match.group("capture")],
                    alignment=int(alignment) if alignment else None,
                    format=match.group("format") or None,
                    raw=text[i : end + 1],
                )
            )
            i = end + 1
        elif ch == "}":
            literal.append("}")
            i += 2 if text.startswith("}}", i) else 1
        else:
            stop = min(
                (p for p in (text.find("{", i), text.find("}", i)) if p != -1),
                default=n,
            )
            literal.append(text[i:stop])
            i = stop
    if literal:
        tokens.append("".join(literal))
    return MessageTemplate(text=text, tokens=tuple(tokens))


def classify(value: Any) -> FieldKind | None:
    """Return the field kind for a value, or None for arbitrary objects."""
    if value is None:
        return FieldKind.NULL
    if isinstance(value, bool):
        return FieldKind.BOOLEAN
    if isinstance(value, int):
        return FieldKind.INTEGER
    if isinstance(value, (float, Decimal)):
        return FieldKind.FLOAT
    if isinstance(value, str):
        return FieldKind.STRING
    if isinstance(value, (datetime, date, time)):
        return FieldKind.TIMESTAMP
    if isinstance(value, timedelta):
        return FieldKind.DURATION
    if isinstance(value, Mapping):
        return FieldKind.STRUCTURED
    if isinstance(value, _SEQUENCE_TYPES):
        return FieldKind.SEQUENCE
    return None


def destructure(value: Any, _depth: int = 0) -> Any:
    """Convert an object graph into mappings, lists and scalars.

    Dataclasses and plain objects become dicts of their public attributes.
    Nesting deeper than ten levels is cut off with ``str()``.
    """
    if _depth > _MAX_DEPTH:
        return str(value)
    if isinstance(value, Enum):
        return value.name
    kind = classify(value)
    if kind is FieldKind.STRUCTURED:
        return {str(k): destructure(v, _depth + 1) for k, v in value.items()}
    if kind is FieldKind.SEQUENCE:
        return [destructure(v, _depth + 1) for v in value]
    if kind is not None:
        return value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            f.name: destructure(getattr(value, f.name), _depth + 1)
            for f in dataclasses.fields(value)
        }
    if hasattr(value, "__dict__"):
        return {
            k: destructure(v, _depth + 1)
            for k, v in vars(value).items()
            if not k.startswith("_")
        }
    return str(value)


def _to_field(placeholder: Placeholder, value: Any) -> LogField:
    name, fmt = placeholder.name, placeholder.format
    if placeholder.capture is Capture.STRUCTURE:
        captured = destructure(value)
        kind = classify(captured) or FieldKind.STRING
        return LogField(name, captured, kind, fmt)
    if placeholder.capture is Capture.STRINGIFY:
        return LogField(name, _safe_str(value), FieldKind.STRING, fmt)
    kind = classify(value)
    if kind is FieldKind.SEQUENCE:
        return LogField(name, list(value), kind, fmt)
    if kind is None or kind is FieldKind.STRUCTURED:
        return LogField(name, _safe_str(value), FieldKind.STRING, fmt)
    return LogField(name, value, kind, fmt)


def unrenderable(value: Any) -> str:
    """Placeholder text for a value whose string conversion raised."""
    return f"<unrenderable {type(value).__name__}>"


def _safe_str(value: Any) -> str:
    try:
        return str(value)
    except Exception:
        return unrenderable(value)


def _to_text(
    placeholder: Placeholder, value: Any, registry: FormatterRegistry
) -> str:
    if value is None:
        text = "(null)"
    elif placeholder.capture is Capture.STRINGIFY:
        text = str(value)
    elif placeholder.capture is Capture.STRUCTURE:
        text = json.dumps(destructure(value), default=str, ensure_ascii=False)
    elif isinstance(value, _SEQUENCE_TYPES):
        text = ", ".join(
            "(null)" if item is None else registry.format(item, None) for item in value
        )
    else:
        text = registry.format(value, placeholder.format)
    if placeholder.alignment is not None:
        width = abs(placeholder.alignment)
        text = text.ljust(width) if placeholder.alignment < 0 else text.rjust(width)
    return text


def render(
    template: str | MessageTemplate,
    args: Sequence[Any] = (),
    registry: FormatterRegistry | None = None,
) -> RenderedMessage:
    """Render a template against positional arguments.

    Distinct placeholder names bind to ``args`` in order of first
    appearance; a name used twice reuses its argument. Placeholders without
    an argument stay literal, surplus arguments are ignored, and either case
    marks the result malformed.

    Args:
        template: Template text or a parsed MessageTemplate.
        args: Positional argument values.
        registry: Format-specifier registry (default: invariant registry).

    Returns:
        RenderedMessage with the human text, typed fields and malformed flag.
    """
    parsed = template if isinstance(template, MessageTemplate) else parse_template(template)
    registry = registry or default_registry()
    names = parsed.names
    malformed = len(args) != len(names)
    values = dict(zip(names, args, strict=False))

    fields: dict[str, LogField] = {}
    parts: list[str] = []
    for token in parsed.tokens:
        if isinstance(token, str):
            parts.append(token)
            continue
        if token.name not in values:
            parts.append(token.raw)
            continue
        value = values[token.name]
        try:
            if token.name not in fields:
                fields[token.name] = _to_field(token, value)
            parts.append(_to_text(token, value, registry))
        except Exception:
            text = unrenderable(value)
            fields.setdefault(token.name, LogField(token.name, text, FieldKind.STRING))
            parts.append(text)
            malformed = True
    return RenderedMessage(
        text="".join(parts), fields=tuple(fields.values()), malformed=malformed
    )
