"""Tests for the stdlib logging bridge."""

import logging
from collections.abc import Iterator

import pytest

from scopedlog.adapters.logging import ScopedLogHandler, StdlibSink
from scopedlog.adapters.sinks.in_memory import InMemorySink
from scopedlog.config import LoggingConfig
from scopedlog.core.levels import Severity
from scopedlog.core.logs import Logger
from scopedlog.core.scope import push


@pytest.fixture
def stdlib_logger(sink: InMemorySink) -> Iterator[logging.Logger]:
    """A stdlib logger routed through ScopedLogHandler into ``sink``."""
    logger = logging.getLogger("tests.bridge")
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    handler = ScopedLogHandler(LoggingConfig(Severity.TRACE, (sink,)))
    logger.addHandler(handler)
    yield logger
    logger.removeHandler(handler)


class TestScopedLogHandler:
    @pytest.mark.core
    def test_forwards_message_level_and_category(
        self, stdlib_logger: logging.Logger, sink: InMemorySink
    ) -> None:
        """Handler forwards message, level and logger name."""
        stdlib_logger.warning("Disk %s%% full", 90)

        (record,) = sink.records
        assert record.message == "Disk 90% full"
        assert record.level is Severity.WARNING
        assert record.category == "tests.bridge"

    @pytest.mark.core
    def test_uses_stdlib_creation_time(self, sink: InMemorySink) -> None:
        """Handler keeps the stdlib record's creation time."""
        handler = ScopedLogHandler(LoggingConfig(Severity.TRACE, (sink,)))
        stdlib_record = logging.LogRecord(
            "tests.bridge", logging.INFO, __file__, 10, "created earlier", None, None
        )
        stdlib_record.created = 1702300000.25

        handler.emit(stdlib_record)

        assert sink.records[0].timestamp == 1702300000.25

    @pytest.mark.core
    def test_extras_and_default_attrs_become_fields(
        self, stdlib_logger: logging.Logger, sink: InMemorySink
    ) -> None:
        """Extras and default attributes become fields."""
        stdlib_logger.info("User action", extra={"user_id": 42, "action": "login"})

        props = sink.records[0].properties
        assert props["user_id"] == 42
        assert props["action"] == "login"
        assert props["funcName"] == "test_extras_and_default_attrs_become_fields"
        assert props["module"] == "test_stdlib_bridge"
        assert "lineno" in props

    @pytest.mark.core
    def test_active_scope_is_attached(
        self, stdlib_logger: logging.Logger, sink: InMemorySink
    ) -> None:
        """Records from stdlib carry the active scope."""
        with push({"RequestId": "r-1"}):
            stdlib_logger.info("inside request")

        assert dict(sink.records[0].scope) == {"RequestId": "r-1"}

    @pytest.mark.core
    def test_exc_info_becomes_error_chain(
        self, stdlib_logger: logging.Logger, sink: InMemorySink
    ) -> None:
        """exc_info becomes the record's error chain."""
        try:
            raise ValueError("bad value")
        except ValueError:
            stdlib_logger.exception("Processing failed")

        error = sink.records[0].error
        assert error is not None
        assert error.descriptors[0].type_name == "ValueError"
        assert "bad value" in error.traceback

    @pytest.mark.core
    def test_gate_applies(self, sink: InMemorySink) -> None:
        """Handler applies the configured minimum level."""
        logger = logging.getLogger("tests.bridge.gated")
        logger.setLevel(logging.DEBUG)
        logger.propagate = False
        handler = ScopedLogHandler(LoggingConfig(Severity.WARNING, (sink,)), include_attrs=[])
        logger.addHandler(handler)
        try:
            logger.info("dropped")
            logger.error("kept")
        finally:
            logger.removeHandler(handler)

        assert sink.messages == ["kept"]
        assert sink.records[0].properties == {}


class TestStdlibSink:
    @pytest.mark.core
    def test_forwards_to_category_logger(self, caplog: pytest.LogCaptureFixture) -> None:
        """StdlibSink forwards to the prefixed category logger with scope and fields."""
        logger = Logger("billing", LoggingConfig(Severity.TRACE, (StdlibSink(prefix="app."),)))

        with caplog.at_level(logging.INFO, logger="app.billing"):
            with push({"TenantId": "t1"}):
                logger.info("Invoice {InvoiceId} sent", "INV-9")

        (forwarded,) = [r for r in caplog.records if r.name == "app.billing"]
        assert forwarded.getMessage() == "Invoice INV-9 sent"
        assert forwarded.levelno == logging.INFO
        assert forwarded.scope == {"TenantId": "t1"}  # type: ignore[attr-defined]
        assert forwarded.fields == {"InvoiceId": "INV-9"}  # type: ignore[attr-defined]

    @pytest.mark.core
    def test_respects_stdlib_level(self, caplog: pytest.LogCaptureFixture) -> None:
        """StdlibSink skips records the stdlib logger would drop."""
        logger = Logger("quiet", LoggingConfig(Severity.TRACE, (StdlibSink(),)))

        with caplog.at_level(logging.WARNING, logger="quiet"):
            logger.debug("hidden")

        assert [r for r in caplog.records if r.name == "quiet"] == []

    @pytest.mark.core
    def test_handler_skips_forwarded_records(self, sink: InMemorySink) -> None:
        """Forwarded records are not fed back into the handler."""
        stdlib = logging.getLogger("loop")
        stdlib.setLevel(logging.DEBUG)
        stdlib.propagate = False
        handler = ScopedLogHandler(LoggingConfig(Severity.TRACE, (sink,)))
        stdlib.addHandler(handler)
        try:
            Logger("loop", LoggingConfig(Severity.TRACE, (StdlibSink(),))).info("once")
        finally:
            stdlib.removeHandler(handler)

        assert sink.messages == []
