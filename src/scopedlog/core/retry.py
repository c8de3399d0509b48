"""Retry helper that logs every attempt."""

import time
from collections.abc import Callable
from typing import TypeVar

from scopedlog.core.logs import Logger
from scopedlog.core.timing import Stopwatch

T = TypeVar("T")


def retry(
    operation: str,
    func: Callable[[], T],
    *,
    logger: Logger,
    max_attempts: int = 3,
    delay: float = 0.1,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``func`` until it succeeds or attempts run out.

    Each attempt is logged at DEBUG, each retryable failure at WARNING and
    the final failure at ERROR before it is re-raised. Errors not listed in
    ``retry_on`` propagate immediately without a retry.

    Args:
        operation: Name used in every log message.
        func: Zero-argument callable to run.
        logger: Logger receiving the attempt records.
        max_attempts: Total attempts, including the first.
        delay: Seconds to wait between attempts.
        retry_on: Exception types that trigger a retry.
        sleep: Sleep function (injectable for tests).

    Returns:
        The value returned by the first successful call.

    Raises:
        ValueError: If max_attempts is less than 1.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    stopwatch = Stopwatch.start_new()
    attempt = 1
    while True:
        logger.debug(
            "Attempting {Operation} (attempt {Attempt}/{MaxAttempts})",
            operation,
            attempt,
            max_attempts,
        )
        try:
            result = func()
        except retry_on as exc:
            if attempt >= max_attempts:
                logger.error(
                    "Operation {Operation} failed permanently after {Attempts} attempts",
                    operation,
                    attempt,
                    exc=exc,
                )
                raise
            logger.warning(
                "Operation {Operation} failed on attempt {Attempt}/{MaxAttempts}, "
                "retrying in {Delay}ms",
                operation,
                attempt,
                max_attempts,
                round(delay * 1000),
                exc=exc,
            )
            sleep(delay)
            attempt += 1
            continue
        stopwatch.stop()
        logger.info(
            "Operation {Operation} succeeded on attempt {Attempt} after {Duration}ms",
            operation,
            attempt,
            stopwatch.elapsed_ms,
        )
        return result
