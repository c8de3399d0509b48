"""Walk through the main scopedlog features.

Records go to stdlib logging (printed to stderr) and to a ring buffer whose
contents are dumped as NDJSON at the end.

Run with:
    SCOPEDLOG_LEVEL=Debug python examples/showcase.py
"""

import asyncio
import logging
import random
import sys
from datetime import UTC, datetime

from scopedlog import (
    AuditEvent,
    BatchTracker,
    BusinessRuleViolation,
    Deferred,
    LoggingConfig,
    MemoryTracker,
    PhaseTimer,
    RingBufferSink,
    Severity,
    StdlibSink,
    ValidationFailed,
    begin_scope,
    configure,
    encode_records,
    get_logger,
    retry,
    time_concurrently,
)

buffer = RingBufferSink(max_size=500)
logger = get_logger("showcase")


def basic_and_structured() -> None:
    logger.info("Application started at {StartTime:yyyy-MM-dd HH:mm:ss}", datetime.now(UTC))
    with begin_scope("UserId:{UserId}", 123):
        logger.info("Order {OrderId} created for customer {CustomerId}", "ORD-001", 42)
        logger.info("Payment processed: {Amount:C} at {Timestamp:s}", 299.99, datetime.now(UTC))
        event = AuditEvent(
            event_type="UserCreated",
            user_id="123",
            action="CreateUser",
            resource="UserManagement",
            properties={"Email": "john.doe@example.com"},
        )
        logger.info("Structured event: {@Event}", event)
    logger.debug("Expensive debug data: {@Data}", Deferred(lambda: {"Rows": list(range(5))}))


def error_handling() -> None:
    with begin_scope({"Operation": "Signup"}):
        try:
            raise (
                ValidationFailed("Email address format is invalid")
                .add_error("Email", "john.doe@", "Invalid email format")
                .add_error("Age", "-5", "Age must be positive")
            )
        except ValidationFailed:
            logger.exception("Validation failed for user registration")

    try:
        try:
            raise BusinessRuleViolation(
                "INSUFFICIENT_FUNDS",
                "Account balance insufficient for transaction",
                {"AccountId": "ACC-123", "Balance": 100.00, "RequestedAmount": 250.00},
            )
        except BusinessRuleViolation as exc:
            raise RuntimeError("Transaction processing failed") from exc
    except RuntimeError:
        logger.exception("Transaction {TransactionId} failed", "TXN-001")

    attempts = iter([True, True, False])

    def flaky() -> str:
        if next(attempts):
            raise ConnectionError("Temporary network failure")
        return "connected"

    retry("ConnectToDatabase", flaky, logger=logger, delay=0.01)


def performance() -> None:
    memory = MemoryTracker()
    timer = PhaseTimer("ComplexDataProcessing")
    with timer.phase("DataLoading"):
        data = [random.random() for _ in range(100_000)]
    memory.checkpoint()
    with timer.phase("DataProcessing"):
        data = sorted(data)
    with timer.phase("DataValidation"):
        valid = sum(1 for x in data if 0 <= x < 1)
    report = timer.finish(items_processed=valid)
    logger.log_phases(report)
    logger.log_performance(report.as_sample(memory_used=memory.increase()))

    tracker = BatchTracker()
    for batch_number in range(3):
        with begin_scope("BatchNumber:{BatchNumber}", batch_number + 1):
            with tracker.batch() as batch:
                for _ in range(50):
                    batch.item(failed=random.random() < 0.05)
            logger.log_batch(tracker.batches[-1], f"BATCH-{batch_number + 1}")
    logger.log_batch(tracker.finish(), "ALL")


async def fan_out() -> None:
    async def fetch(source: str) -> int:
        with begin_scope({"Source": source}):
            await asyncio.sleep(random.uniform(0.01, 0.05))
            logger.info("Fetched from {Source}", source)
            return len(source)

    with begin_scope({"CorrelationId": "corr-001"}):
        timing = await time_concurrently(fetch("users"), fetch("orders"), fetch("stock"))
        slowest = timing.slowest
        logger.info(
            "Fetched {SourceCount} sources in {Duration}ms, slowest was #{Slowest}",
            len(timing.tasks),
            round(timing.elapsed.total_seconds() * 1000),
            slowest.index if slowest else None,
        )


def main() -> None:
    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )
    configure(LoggingConfig.from_env(sinks=(buffer, StdlibSink())))

    with logger.timed("Showcase"):
        basic_and_structured()
        error_handling()
        performance()
        asyncio.run(fan_out())

    sys.stdout.write(encode_records(buffer.read(level=Severity.WARNING)))


if __name__ == "__main__":
    main()
