"""Pluggable format-specifier registry used by the template engine.

A placeholder such as ``{Amount:C}`` or ``{Timestamp:yyyy-MM-dd HH:mm:ss}``
carries a format specifier. The registry maps specifiers to formatter
functions through an ordered table of rules; nothing about a particular
locale is hard-coded in the template engine itself.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any


@dataclass(frozen=True)
class FormatConventions:
    """Culture-like settings consulted by the numeric formatters."""

    currency_symbol: str = "$"
    group_separator: str = ","
    decimal_separator: str = "."


Formatter = Callable[[Any, "re.Match[str]", FormatConventions], str]
Predicate = Callable[[Any], bool]


@dataclass(frozen=True)
class FormatRule:
    """One entry of the registry: specifier pattern, value test, formatter."""

    pattern: "re.Pattern[str]"
    applies: Predicate
    formatter: Formatter


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def is_integral(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def is_temporal(value: Any) -> bool:
    return isinstance(value, (datetime, date, time))


def _precision(match: "re.Match[str]", default: int) -> int:
    digits = match.group(1)
    return int(digits) if digits else default


def _localize(text: str, conventions: FormatConventions) -> str:
    if conventions.group_separator == "," and conventions.decimal_separator == ".":
        return text
    # swap through a sentinel so the two separators can trade places
    return (
        text.replace(",", "\0")
        .replace(".", conventions.decimal_separator)
        .replace("\0", conventions.group_separator)
    )


def _fixed(value: Any, match: "re.Match[str]", conv: FormatConventions) -> str:
    return _localize(f"{value:.{_precision(match, 2)}f}", conv)


def _grouped(value: Any, match: "re.Match[str]", conv: FormatConventions) -> str:
    return _localize(f"{value:,.{_precision(match, 2)}f}", conv)


def _currency(value: Any, match: "re.Match[str]", conv: FormatConventions) -> str:
    body = _localize(f"{abs(value):,.{_precision(match, 2)}f}", conv)
    sign = "-" if value < 0 else ""
    return f"{sign}{conv.currency_symbol}{body}"


def _percent(value: Any, match: "re.Match[str]", conv: FormatConventions) -> str:
    return _localize(f"{value * 100:,.{_precision(match, 2)}f}", conv) + " %"


def _exponent(value: Any, match: "re.Match[str]", conv: FormatConventions) -> str:
    spec = "E" if match.group(0)[0] == "E" else "e"
    return _localize(f"{value:.{_precision(match, 6)}{spec}}", conv)


def _padded(value: Any, match: "re.Match[str]", conv: FormatConventions) -> str:
    width = _precision(match, 1)
    sign = "-" if value < 0 else ""
    return f"{sign}{abs(value):0{width}d}"


def _hex(value: Any, match: "re.Match[str]", conv: FormatConventions) -> str:
    spec = "X" if match.group(0)[0] == "X" else "x"
    return f"{value:0{_precision(match, 1)}{spec}}"


_STANDARD_DATE_PATTERNS = {
    "o": lambda v: v.isoformat(),
    "O": lambda v: v.isoformat(),
    "s": lambda v: v.strftime("%Y-%m-%dT%H:%M:%S"),
    "u": lambda v: v.strftime("%Y-%m-%d %H:%M:%SZ"),
    "d": lambda v: v.strftime("%m/%d/%Y"),
    "t": lambda v: v.strftime("%H:%M"),
    "T": lambda v: v.strftime("%H:%M:%S"),
}

_DATE_TOKEN = re.compile(r"yyyy|yy|MM|dd|HH|hh|mm|ss|fff|ff|tt")

_DATE_TOKENS: dict[str, Callable[[Any], str]] = {
    "yyyy": lambda v: f"{v.year:04d}",
    "yy": lambda v: f"{v.year % 100:02d}",
    "MM": lambda v: f"{v.month:02d}",
    "dd": lambda v: f"{v.day:02d}",
    "HH": lambda v: f"{v.hour:02d}",
    "hh": lambda v: f"{(v.hour % 12) or 12:02d}",
    "mm": lambda v: f"{v.minute:02d}",
    "ss": lambda v: f"{v.second:02d}",
    "fff": lambda v: f"{v.microsecond // 1000:03d}",
    "ff": lambda v: f"{v.microsecond // 10000:02d}",
    "tt": lambda v: "AM" if v.hour < 12 else "PM",
}


def _standard_date(value: Any, match: "re.Match[str]", conv: FormatConventions) -> str:
    return _STANDARD_DATE_PATTERNS[match.group(0)](value)


def _custom_date(value: Any, match: "re.Match[str]", conv: FormatConventions) -> str:
    return _DATE_TOKEN.sub(lambda m: _DATE_TOKENS[m.group(0)](value), match.group(0))


def _default_rules() -> list[FormatRule]:
    return [
        FormatRule(re.compile(r"[Ff](\d*)"), is_number, _fixed),
        FormatRule(re.compile(r"[Nn](\d*)"), is_number, _grouped),
        FormatRule(re.compile(r"[Cc](\d*)"), is_number, _currency),
        FormatRule(re.compile(r"[Pp](\d*)"), is_number, _percent),
        FormatRule(re.compile(r"[Ee](\d*)"), is_number, _exponent),
        FormatRule(re.compile(r"[Dd](\d*)"), is_integral, _padded),
        FormatRule(re.compile(r"[Xx](\d*)"), is_integral, _hex),
        FormatRule(re.compile(r"[oOsudtT]"), is_temporal, _standard_date),
        FormatRule(
            re.compile(rf".*(?:{_DATE_TOKEN.pattern}).*"), is_temporal, _custom_date
        ),
    ]


class FormatterRegistry:
    """Ordered table of format rules.

    Rules registered later take precedence over the defaults. When no rule
    matches, Python's ``format()`` is tried, then ``str()``; formatting
    never raises.

    Example:
        ```python
        registry = FormatterRegistry(FormatConventions(currency_symbol="EUR "))
        registry.register(r"ms", lambda v, m, c: f"{v.total_seconds() * 1000:.0f}ms",
                          applies=lambda v: isinstance(v, timedelta))
        ```
    """

    def __init__(
        self,
        conventions: FormatConventions | None = None,
        include_defaults: bool = True,
    ) -> None:
        self.conventions = conventions or FormatConventions()
        self._rules: list[FormatRule] = _default_rules() if include_defaults else []

    def register(
        self,
        pattern: str,
        formatter: Formatter,
        applies: Predicate = lambda value: True,
    ) -> None:
        """Add a rule ahead of the existing ones.

        Args:
            pattern: Regular expression that must fully match the specifier.
            formatter: Called with (value, match, conventions).
            applies: Predicate on the value; the rule is skipped when False.
        """
        self._rules.insert(0, FormatRule(re.compile(pattern), applies, formatter))

    def format(self, value: Any, spec: str | None) -> str:
        """Render ``value`` according to ``spec``."""
        if not spec:
            return str(value)
        for rule in self._rules:
            match = rule.pattern.fullmatch(spec)
            if match is None or not rule.applies(value):
                continue
            try:
                return rule.formatter(value, match, self.conventions)
            except (ValueError, TypeError, ArithmeticError, AttributeError):
                break
        try:
            return format(value, spec)
        except (ValueError, TypeError):
            return str(value)


_default_registry = FormatterRegistry()


def default_registry() -> FormatterRegistry:
    """Return the shared registry with invariant conventions."""
    return _default_registry
