"""BDD step definitions for structured_logging.feature."""

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import timedelta

import pytest
from pytest_bdd import given, parsers, then, when

from scopedlog.adapters.sinks.in_memory import InMemorySink
from scopedlog.config import LoggingConfig
from scopedlog.core.errors import BusinessRuleViolation
from scopedlog.core.levels import Severity
from scopedlog.core.logs import Logger
from scopedlog.core.models import BatchStatistics, LogRecord
from scopedlog.core.ports import LogSinkPort
from scopedlog.core.scope import ScopeHandle, push
from scopedlog.core.timing import aggregate_phases


class AlwaysFailingSink:
    def emit(self, record: LogRecord) -> None:
        raise ConnectionError("log collector unreachable")


@dataclass
class LoggingScenarioContext:
    """State shared between the steps of one scenario."""

    sink: InMemorySink = field(default_factory=InMemorySink)
    extra_sinks: list[LogSinkPort] = field(default_factory=list)
    category: str = "app"
    minimum_level: Severity = Severity.INFORMATION
    handles: list[ScopeHandle] = field(default_factory=list)

    @property
    def logger(self) -> Logger:
        sinks = (*self.extra_sinks, self.sink)
        return Logger(self.category, LoggingConfig(self.minimum_level, sinks))

    @property
    def last(self) -> LogRecord:
        return self.sink.records[-1]


@pytest.fixture
def ctx() -> Iterator[LoggingScenarioContext]:
    """Fresh scenario context; scopes entered by steps are released afterwards."""
    context = LoggingScenarioContext()
    yield context
    for handle in reversed(context.handles):
        handle.release()


def ms(value: int) -> timedelta:
    return timedelta(milliseconds=value)


# === Given ===


@given("an in-memory sink")
def given_sink(ctx: LoggingScenarioContext) -> None:
    ctx.sink = InMemorySink()


@given(parsers.parse('a logger named "{category}" with minimum level "{level}"'))
def given_logger(ctx: LoggingScenarioContext, category: str, level: str) -> None:
    ctx.category = category
    ctx.minimum_level = Severity.parse(level)


@given("a sink that always fails registered first")
def given_failing_sink(ctx: LoggingScenarioContext) -> None:
    ctx.extra_sinks.append(AlwaysFailingSink())


# === When ===


@when(parsers.parse('the scope "{template}" is entered with {value:d}'))
def when_scope_entered(ctx: LoggingScenarioContext, template: str, value: int) -> None:
    ctx.handles.append(push(template, value))


@when(
    parsers.parse('the logger writes "{template}" at "{level}" with arguments "{args}"')
)
def when_logger_writes(
    ctx: LoggingScenarioContext, template: str, level: str, args: str
) -> None:
    ctx.logger.log(Severity.parse(level), template, *args.split(","))


@when(
    parsers.parse(
        'a business rule "{rule_code}" violation wrapped in a processing error is logged'
    )
)
def when_nested_error_logged(ctx: LoggingScenarioContext, rule_code: str) -> None:
    try:
        try:
            raise BusinessRuleViolation(rule_code, "Account balance insufficient")
        except BusinessRuleViolation as exc:
            raise RuntimeError("Transaction processing failed") from exc
    except RuntimeError:
        ctx.logger.exception("Transaction {TransactionId} failed", "TXN-001")


@when(
    parsers.parse(
        "phases of {a:d}, {b:d} and {c:d} ms over {overall:d} ms "
        "with {items:d} items are logged"
    )
)
def when_phases_logged(
    ctx: LoggingScenarioContext, a: int, b: int, c: int, overall: int, items: int
) -> None:
    report = aggregate_phases(
        "ComplexDataProcessing",
        {"DataLoading": ms(a), "DataProcessing": ms(b), "DataValidation": ms(c)},
        ms(overall),
        items,
    )
    ctx.logger.log_phases(report)


@when(
    parsers.parse(
        "a batch of {processed:d} items with {errors:d} errors "
        "over {seconds:d} seconds is logged"
    )
)
def when_batch_logged(
    ctx: LoggingScenarioContext, processed: int, errors: int, seconds: int
) -> None:
    stats = BatchStatistics(processed, errors, timedelta(seconds=seconds))
    ctx.logger.log_batch(stats, "BATCH-1")


# === Then ===


@then(parsers.re(r"the sink holds (?P<count>\d+) records?"))
def then_sink_holds(ctx: LoggingScenarioContext, count: str) -> None:
    assert len(ctx.sink) == int(count)


@then(parsers.parse('the last record message is "{message}"'))
def then_last_message_is(ctx: LoggingScenarioContext, message: str) -> None:
    assert ctx.last.message == message


@then(parsers.parse('the last record message contains "{text}"'))
def then_last_message_contains(ctx: LoggingScenarioContext, text: str) -> None:
    assert text in ctx.last.message


@then(parsers.parse('the last record scope has "{key}" equal to "{value}"'))
def then_scope_has(ctx: LoggingScenarioContext, key: str, value: str) -> None:
    assert str(ctx.last.scope[key]) == value


@then("the last record is marked malformed")
def then_malformed(ctx: LoggingScenarioContext) -> None:
    assert ctx.last.malformed is True


@then(parsers.parse("the last record error chain has {levels:d} levels"))
def then_chain_levels(ctx: LoggingScenarioContext, levels: int) -> None:
    assert ctx.last.error is not None
    assert len(ctx.last.error) == levels


@then(parsers.parse('the root cause has rule code "{rule_code}"'))
def then_root_cause(ctx: LoggingScenarioContext, rule_code: str) -> None:
    assert ctx.last.error is not None
    root = ctx.last.error.root_cause
    assert root is not None
    assert root.context["rule_code"] == rule_code
