"""Timing and throughput instrumentation.

Everything here computes over explicit durations. The only wall-clock
dependency is the clock a Stopwatch reads when started and stopped, and
that clock can be injected for deterministic tests.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import timedelta
from types import MappingProxyType
from typing import Any

import psutil

from scopedlog.core.models import (
    BatchStatistics,
    PerformanceSample,
    success_rate,
    throughput,
)

Clock = Callable[[], float]

_ZERO = timedelta(0)


class Stopwatch:
    """Measures elapsed time from an injectable monotonic clock.

    ``stop()`` freezes the reading; later calls to ``stop()`` or ``elapsed``
    return the frozen value instead of measuring again.

    Example:
        ```python
        with Stopwatch() as sw:
            do_work()
        logger.info("Done in {Duration}ms", sw.elapsed_ms)
        ```
    """

    def __init__(self, clock: Clock = time.perf_counter) -> None:
        self._clock = clock
        self._started: float | None = None
        self._stopped: float | None = None

    @classmethod
    def start_new(cls, clock: Clock = time.perf_counter) -> "Stopwatch":
        return cls(clock).start()

    def start(self) -> "Stopwatch":
        """Start measuring from zero, discarding any previous reading."""
        self._started = self._clock()
        self._stopped = None
        return self

    @property
    def is_running(self) -> bool:
        return self._started is not None and self._stopped is None

    @property
    def elapsed(self) -> timedelta:
        if self._started is None:
            return _ZERO
        end = self._stopped if self._stopped is not None else self._clock()
        return max(timedelta(seconds=end - self._started), _ZERO)

    @property
    def elapsed_ms(self) -> int:
        """Whole milliseconds elapsed, truncated."""
        return int(self.elapsed.total_seconds() * 1000)

    def stop(self) -> timedelta:
        if self._started is not None and self._stopped is None:
            self._stopped = self._clock()
        return self.elapsed

    def __enter__(self) -> "Stopwatch":
        return self.start()

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.stop()


def to_ms(duration: timedelta) -> float:
    return duration.total_seconds() * 1000


@dataclass(frozen=True)
class PhaseReport:
    """Per-phase and overall durations of one multi-phase operation."""

    operation_name: str
    phases: Mapping[str, timedelta]
    overall: timedelta
    items_processed: int = 0

    @property
    def throughput_per_second(self) -> float:
        return throughput(self.items_processed, self.overall)

    @property
    def phases_total(self) -> timedelta:
        return sum(self.phases.values(), _ZERO)

    @property
    def unaccounted(self) -> timedelta:
        """Overall time not covered by any phase (never negative)."""
        return max(self.overall - self.phases_total, _ZERO)

    def phase_throughput(self, name: str) -> float:
        """Items per second if the whole workload ran in phase ``name``."""
        return throughput(self.items_processed, self.phases[name])

    def as_fields(self) -> dict[str, Any]:
        """Report values keyed the way log_phases names them; durations in ms."""
        return {
            "OperationName": self.operation_name,
            "TotalDuration": round(to_ms(self.overall)),
            "Throughput": self.throughput_per_second,
            "Phases": {name: round(to_ms(d)) for name, d in self.phases.items()},
        }

    def as_sample(self, memory_used: int | None = None) -> PerformanceSample:
        return PerformanceSample(
            self.operation_name, self.overall, self.items_processed, memory_used
        )


def aggregate_phases(
    operation_name: str,
    phases: Mapping[str, timedelta],
    overall: timedelta,
    items_processed: int = 0,
) -> PhaseReport:
    """Combine already-measured phase durations into a report.

    Args:
        operation_name: Name of the whole operation.
        phases: Phase name to measured duration, in execution order.
        overall: Separately measured duration of the whole operation.
        items_processed: Work items handled by the operation.

    Returns:
        PhaseReport; nothing is re-measured.
    """
    return PhaseReport(
        operation_name, MappingProxyType(dict(phases)), overall, items_processed
    )


class PhaseTimer:
    """Times the phases of one operation plus the operation overall.

    Example:
        ```python
        timer = PhaseTimer("ComplexDataProcessing")
        with timer.phase("Load"):
            load()
        with timer.phase("Process"):
            process()
        report = timer.finish(items_processed=1000)
        ```
    """

    def __init__(self, operation_name: str, clock: Clock = time.perf_counter) -> None:
        self.operation_name = operation_name
        self._clock = clock
        self._phases: dict[str, timedelta] = {}
        self.overall = Stopwatch(clock).start()

    @contextmanager
    def phase(self, name: str) -> Iterator[Stopwatch]:
        stopwatch = Stopwatch(self._clock).start()
        try:
            yield stopwatch
        finally:
            self._phases[name] = stopwatch.stop()

    def record(self, name: str, duration: timedelta) -> None:
        """Record a phase measured elsewhere."""
        self._phases[name] = duration

    @property
    def phases(self) -> dict[str, timedelta]:
        return dict(self._phases)

    def finish(self, items_processed: int = 0) -> PhaseReport:
        return aggregate_phases(
            self.operation_name, self._phases, self.overall.stop(), items_processed
        )


def batch_statistics(processed: int, errors: int, elapsed: timedelta) -> BatchStatistics:
    return BatchStatistics(processed, errors, elapsed)


@dataclass
class BatchCounter:
    """Counts items within one batch; failed items count as processed."""

    processed: int = 0
    errors: int = 0

    def item(self, failed: bool = False) -> None:
        self.processed += 1
        if failed:
            self.errors += 1


class BatchTracker:
    """Accumulates per-batch and overall statistics for a batch run."""

    def __init__(self, clock: Clock = time.perf_counter) -> None:
        self._clock = clock
        self._overall = Stopwatch(clock).start()
        self.processed = 0
        self.errors = 0
        self.batches: list[BatchStatistics] = []

    @contextmanager
    def batch(self) -> Iterator[BatchCounter]:
        """Time one batch.

        An exception escaping the batch counts as one more processed item
        that failed, so errors never exceed processed items.
        """
        counter = BatchCounter()
        stopwatch = Stopwatch(self._clock).start()
        try:
            yield counter
        except Exception:
            counter.item(failed=True)
            raise
        finally:
            stats = BatchStatistics(counter.processed, counter.errors, stopwatch.stop())
            self.batches.append(stats)
            self.processed += counter.processed
            self.errors += counter.errors

    def finish(self) -> BatchStatistics:
        return BatchStatistics(self.processed, self.errors, self._overall.stop())


class MemoryTracker:
    """Tracks resident memory of a process against its starting value."""

    def __init__(self, process: psutil.Process | None = None) -> None:
        self._process = process if process is not None else psutil.Process()
        self.initial = self.current()
        self.peak = self.initial
        self.checkpoints: list[int] = []

    def current(self) -> int:
        """Resident set size in bytes."""
        return int(self._process.memory_info().rss)

    def checkpoint(self) -> int:
        value = self.current()
        self.checkpoints.append(value)
        self.peak = max(self.peak, value)
        return value

    def increase(self, value: int | None = None) -> int:
        """Bytes above the initial reading (of ``value`` or a fresh reading)."""
        return (value if value is not None else self.current()) - self.initial


@dataclass(frozen=True)
class TaskTiming:
    index: int
    elapsed: timedelta
    result: Any = None


@dataclass(frozen=True)
class ConcurrentTiming:
    """Durations of concurrently awaited operations and of the whole join."""

    tasks: tuple[TaskTiming, ...]
    elapsed: timedelta
    results: tuple[Any, ...] = field(default=())

    @property
    def slowest(self) -> TaskTiming | None:
        return max(self.tasks, key=lambda t: t.elapsed, default=None)


async def time_concurrently(
    *awaitables: Awaitable[Any], clock: Clock = time.perf_counter
) -> ConcurrentTiming:
    """Await operations concurrently, timing each one and the whole join.

    Each awaitable runs in its own task, so it has its own stopwatch and its
    own copy of the scope stack. The join waits for every task; if any failed,
    the first failure is raised after all have finished.
    """
    overall = Stopwatch(clock).start()

    async def _timed(index: int, awaitable: Awaitable[Any]) -> TaskTiming:
        stopwatch = Stopwatch(clock).start()
        result = await awaitable
        return TaskTiming(index, stopwatch.stop(), result)

    outcomes = await asyncio.gather(
        *(_timed(i, aw) for i, aw in enumerate(awaitables)), return_exceptions=True
    )
    elapsed = overall.stop()
    for outcome in outcomes:
        if isinstance(outcome, BaseException):
            raise outcome
    timings = tuple(outcomes)
    return ConcurrentTiming(timings, elapsed, tuple(t.result for t in timings))
