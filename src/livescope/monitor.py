"""
Per-operation timing.

Collects call counts, min/avg/max durations and error rates for the
engine's public operations. The clock is injected so durations can be
driven deterministically in tests.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from threading import Lock
from typing import Iterator, Optional

from livescope.clock import Clock, perf_clock_ms

_SEP = "-" * 86


@dataclass
class _Tally:
    count: int = 0
    total_ms: float = 0.0
    min_ms: float = float("inf")
    max_ms: float = 0.0
    errors: int = 0


@dataclass(frozen=True)
class OperationMetrics:
    """Summary of every recorded call of one operation."""

    operation: str
    calls: int
    average_ms: float
    min_ms: float
    max_ms: float
    total_ms: float
    error_rate: float  # percent


class PerformanceMonitor:
    """
    Records how long named operations take.

    Example:
        >>> monitor = PerformanceMonitor()
        >>> with monitor.measure("detect_key"):
        ...     analyzer.detect_key()
        >>> monitor.get_metrics("detect_key").calls
        1
    """

    def __init__(self, clock: Clock = perf_clock_ms):
        self._clock = clock
        self._tallies: dict[str, _Tally] = {}
        self._lock = Lock()

    def record(self, operation: str, duration_ms: float, success: bool = True) -> None:
        """Add one completed call."""
        with self._lock:
            tally = self._tallies.setdefault(operation, _Tally())
            tally.count += 1
            tally.total_ms += duration_ms
            tally.min_ms = min(tally.min_ms, duration_ms)
            tally.max_ms = max(tally.max_ms, duration_ms)
            if not success:
                tally.errors += 1

    @contextmanager
    def measure(self, operation: str) -> Iterator[None]:
        """Time the enclosed block; an escaping exception counts as an error."""
        start = self._clock()
        try:
            yield
        except BaseException:
            self.record(operation, self._clock() - start, success=False)
            raise
        self.record(operation, self._clock() - start, success=True)

    def get_metrics(self, operation: str) -> Optional[OperationMetrics]:
        """Metrics for one operation, or None if it was never recorded."""
        with self._lock:
            tally = self._tallies.get(operation)
            if tally is None:
                return None
            return self._summarize(operation, tally)

    def all_metrics(self) -> list[OperationMetrics]:
        """Metrics for every operation, largest total time first."""
        with self._lock:
            metrics = [self._summarize(op, t) for op, t in self._tallies.items()]
        return sorted(metrics, key=lambda m: m.total_ms, reverse=True)

    def bottlenecks(self, limit: int = 5) -> list[OperationMetrics]:
        """The ``limit`` operations with the highest average duration."""
        return sorted(self.all_metrics(), key=lambda m: m.average_ms, reverse=True)[:limit]

    def report(self) -> str:
        """Fixed-width text table of every operation."""
        metrics = self.all_metrics()
        if not metrics:
            return "No performance metrics collected"

        lines = [
            "Operation".ljust(30) + "Calls".ljust(10) + "Avg(ms)".ljust(12)
            + "Min(ms)".ljust(12) + "Max(ms)".ljust(12) + "Errors",
            _SEP,
        ]
        for m in metrics:
            lines.append(
                m.operation.ljust(30)
                + str(m.calls).ljust(10)
                + f"{m.average_ms:.2f}".ljust(12)
                + f"{m.min_ms:.2f}".ljust(12)
                + f"{m.max_ms:.2f}".ljust(12)
                + f"{m.error_rate:.1f}%"
            )

        total_calls = sum(m.calls for m in metrics)
        total_ms = sum(m.total_ms for m in metrics)
        lines += [
            "",
            f"Total Operations: {total_calls}",
            f"Total Time: {total_ms:.2f}ms",
            f"Average per Operation: {total_ms / total_calls:.2f}ms",
        ]
        return "\n".join(lines)

    def reset(self) -> None:
        with self._lock:
            self._tallies.clear()

    @staticmethod
    def _summarize(operation: str, tally: _Tally) -> OperationMetrics:
        return OperationMetrics(
            operation=operation,
            calls=tally.count,
            average_ms=tally.total_ms / tally.count,
            min_ms=tally.min_ms,
            max_ms=tally.max_ms,
            total_ms=tally.total_ms,
            error_rate=tally.errors / tally.count * 100.0,
        )
