"""Tests for message template parsing and rendering."""

from dataclasses import dataclass
from datetime import datetime

import pytest

from scopedlog.core.models import FieldKind
from scopedlog.core.templates import Capture, Placeholder, parse_template, render


class TestParseTemplate:
    @pytest.mark.core
    def test_literal_and_placeholders(self) -> None:
        """Placeholders are found between literal text."""
        parsed = parse_template("Order {OrderId} created for {CustomerId}")

        assert parsed.names == ("OrderId", "CustomerId")
        assert parsed.tokens[0] == "Order "

    @pytest.mark.core
    def test_alignment_and_format(self) -> None:
        """Alignment and format are parsed from the placeholder."""
        (placeholder,) = parse_template("{Amount,10:F2}").placeholders

        assert placeholder == Placeholder(
            name="Amount", alignment=10, format="F2", raw="{Amount,10:F2}"
        )

    @pytest.mark.core
    def test_capture_markers_are_stripped_from_name(self) -> None:
        """@ and $ select the capture mode and are not part of the name."""
        structured, stringified = parse_template("{@Event} {$Value}").placeholders

        assert structured.name == "Event"
        assert structured.capture is Capture.STRUCTURE
        assert stringified.name == "Value"
        assert stringified.capture is Capture.STRINGIFY

    @pytest.mark.core
    def test_escaped_braces_are_literal(self) -> None:
        """Doubled braces produce literal braces."""
        parsed = parse_template("{{literal}} {Name}")

        assert parsed.tokens[0] == "{literal} "
        assert parsed.names == ("Name",)

    @pytest.mark.core
    def test_unterminated_brace_is_literal(self) -> None:
        """An unclosed brace is kept as literal text."""
        parsed = parse_template("broken {Name")

        assert parsed.placeholders == ()
        assert parsed.tokens == ("broken {Name",)

    @pytest.mark.core
    def test_format_may_contain_spaces_and_colons(self) -> None:
        """Everything after the first colon is the format."""
        (placeholder,) = parse_template("{Timestamp:yyyy-MM-dd HH:mm:ss}").placeholders

        assert placeholder.format == "yyyy-MM-dd HH:mm:ss"


class TestRender:
    @pytest.mark.core
    def test_binds_positionally(self) -> None:
        """Arguments bind to placeholders in order and keep their types."""
        result = render("Order {OrderId} created for customer {CustomerId}", ["ORD-001", 42])

        assert result.text == "Order ORD-001 created for customer 42"
        assert [(f.name, f.value, f.kind) for f in result.fields] == [
            ("OrderId", "ORD-001", FieldKind.STRING),
            ("CustomerId", 42, FieldKind.INTEGER),
        ]
        assert result.malformed is False

    @pytest.mark.core
    def test_repeated_name_reuses_argument(self) -> None:
        """A repeated name renders the same argument twice."""
        result = render("{User} logged in; bye {User}", ["ann"])

        assert result.text == "ann logged in; bye ann"
        assert len(result.fields) == 1
        assert result.malformed is False

    @pytest.mark.core
    def test_too_few_arguments_leave_placeholder_literal(self) -> None:
        """Missing arguments leave the placeholder text and mark malformed."""
        result = render("{A} and {B}", [1])

        assert result.text == "1 and {B}"
        assert result.malformed is True

    @pytest.mark.core
    def test_unterminated_brace_renders_literally_without_malformed(self) -> None:
        """An unclosed brace is plain text, so a call without arguments is well formed."""
        result = render("broken {Name", [])

        assert result.text == "broken {Name"
        assert result.fields == ()
        assert result.malformed is False

    @pytest.mark.core
    def test_extra_arguments_are_ignored(self) -> None:
        """Surplus arguments are dropped and mark malformed."""
        result = render("Only {A}", [1, 2, 3])

        assert result.text == "Only 1"
        assert [f.name for f in result.fields] == ["A"]
        assert result.malformed is True

    @pytest.mark.core
    def test_none_renders_as_null(self) -> None:
        """None renders as (null)."""
        result = render("Value: {Value}", [None])

        assert result.text == "Value: (null)"
        assert result.fields[0].kind is FieldKind.NULL

    @pytest.mark.core
    def test_sequence_is_joined(self) -> None:
        """Sequences render as comma-separated items."""
        result = render("Tags: {Tags}", [["a", "b", None]])

        assert result.text == "Tags: a, b, (null)"
        assert result.fields[0].kind is FieldKind.SEQUENCE

    @pytest.mark.core
    def test_structured_capture_destructures_objects(self) -> None:
        """@ capture turns dataclasses into nested mappings rendered as JSON."""
        @dataclass
        class Address:
            city: str

        @dataclass
        class Customer:
            name: str
            address: Address

        result = render("Customer {@Customer}", [Customer("Ann", Address("Oslo"))])

        field = result.fields[0]
        assert field.name == "Customer"
        assert field.kind is FieldKind.STRUCTURED
        assert field.value == {"name": "Ann", "address": {"city": "Oslo"}}
        assert result.text == 'Customer {"name": "Ann", "address": {"city": "Oslo"}}'

    @pytest.mark.core
    def test_stringify_capture(self) -> None:
        """$ capture stores the string form."""
        result = render("{$Items}", [[1, 2]])

        assert result.fields[0].value == "[1, 2]"
        assert result.fields[0].kind is FieldKind.STRING

    @pytest.mark.core
    def test_default_capture_of_object_stores_string(self) -> None:
        """Arbitrary objects are stored as their string form."""
        class Thing:
            def __str__(self) -> str:
                return "thing"

        result = render("{Thing}", [Thing()])

        assert result.fields[0].value == "thing"
        assert result.fields[0].kind is FieldKind.STRING

    @pytest.mark.core
    def test_format_specifiers(self) -> None:
        """Format specifiers apply to the rendered text only."""
        ts = datetime(2024, 3, 5, 14, 7, 9)
        result = render(
            "Payment {Amount:C} at {Timestamp:yyyy-MM-dd HH:mm:ss} ratio {Ratio:F2}",
            [1234.5, ts, 0.12345],
        )

        assert result.text == "Payment $1,234.50 at 2024-03-05 14:07:09 ratio 0.12"
        assert result.fields[1].kind is FieldKind.TIMESTAMP
        assert result.fields[0].format == "C"

    @pytest.mark.core
    def test_alignment_pads(self) -> None:
        """Positive alignment pads left, negative pads right."""
        assert render("[{A,5}]", ["x"]).text == "[    x]"
        assert render("[{A,-5}]", ["x"]).text == "[x    ]"

    @pytest.mark.core
    def test_unrenderable_argument_does_not_raise(self) -> None:
        """An argument whose str() raises renders a marker and marks malformed."""
        class Broken:
            def __str__(self) -> str:
                raise RuntimeError("no")

        result = render("Value {V}", [Broken()])

        assert result.text == "Value <unrenderable Broken>"
        assert result.malformed is True

    @pytest.mark.core
    def test_rendering_is_pure(self) -> None:
        """Rendering the same input twice gives equal results."""
        first = render("{A} {B:F1}", [1, 2.25])
        second = render("{A} {B:F1}", [1, 2.25])

        assert first == second
