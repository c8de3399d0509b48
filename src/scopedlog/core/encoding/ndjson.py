"""NDJSON encoding of log records."""

import json
from collections.abc import Iterable, Mapping
from dataclasses import asdict, is_dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any

from scopedlog.core.levels import Severity
from scopedlog.core.models import (
    ErrorChain,
    ErrorDescriptor,
    ErrorKind,
    FieldKind,
    LogField,
    LogRecord,
)


def _json_safe(value: Any) -> Any:
    """Convert a field value into JSON-compatible data."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, timedelta):
        return value.total_seconds()
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, Mapping):
        return {str(k): _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_json_safe(v) for v in value]
    if is_dataclass(value) and not isinstance(value, type):
        return _json_safe(asdict(value))
    return str(value)


def _encode_error(chain: ErrorChain) -> dict[str, Any]:
    return {
        "chain": [
            {
                "type": d.type_name,
                "message": d.message,
                "kind": d.kind.value,
                "context": _json_safe(d.context),
            }
            for d in chain.descriptors
        ],
        "cycle_detected": chain.cycle_detected,
        "traceback": chain.traceback,
    }


def encode_record(record: LogRecord) -> dict[str, Any]:
    """Encode a record as a JSON-compatible dict.

    Args:
        record: The record to encode.

    Returns:
        Dict with level label, rendered message, template, category, typed
        fields, merged scope, scope descriptions, timestamp and error chain.
    """
    obj: dict[str, Any] = {
        "timestamp": record.timestamp,
        "time": record.utc_datetime.isoformat(),
        "level": record.level.label,
        "category": record.category,
        "message": record.message,
        "template": record.template,
        "fields": [
            {
                "name": f.name,
                "value": _json_safe(f.value),
                "kind": f.kind.value,
                **({"format": f.format} if f.format else {}),
            }
            for f in record.fields
        ],
        "scope": _json_safe(record.scope),
        "scopes": list(record.scopes),
    }
    if record.error is not None:
        obj["error"] = _encode_error(record.error)
    if record.malformed:
        obj["malformed"] = True
    return obj


def encode_records(records: Iterable[LogRecord]) -> str:
    """Encode records to newline-delimited JSON.

    Returns:
        NDJSON string with one JSON object per line.
        Empty string if no records.
    """
    lines = [json.dumps(encode_record(r), ensure_ascii=False) for r in records]
    if not lines:
        return ""
    return "\n".join(lines) + "\n"


def decode_record(obj: Mapping[str, Any]) -> LogRecord:
    """Rebuild a record from ``encode_record`` output.

    Values come back in their JSON form: timestamps as ISO strings and
    durations as seconds.
    """
    error = None
    if "error" in obj:
        raw = obj["error"]
        error = ErrorChain(
            tuple(
                ErrorDescriptor(
                    d["type"],
                    d["message"],
                    ErrorKind(d.get("kind", ErrorKind.GENERIC.value)),
                    MappingProxyType(dict(d.get("context", {}))),
                )
                for d in raw.get("chain", [])
            ),
            cycle_detected=raw.get("cycle_detected", False),
            traceback=raw.get("traceback", ""),
        )
    return LogRecord(
        level=Severity.parse(obj["level"]),
        category=obj.get("category", ""),
        template=obj.get("template", obj["message"]),
        message=obj["message"],
        timestamp=obj["timestamp"],
        fields=tuple(
            LogField(f["name"], f["value"], FieldKind(f["kind"]), f.get("format"))
            for f in obj.get("fields", [])
        ),
        scope=MappingProxyType(dict(obj.get("scope", {}))),
        scopes=tuple(obj.get("scopes", [])),
        error=error,
        malformed=obj.get("malformed", False),
    )
