"""
Clock capabilities.

Every component that needs the current time takes a zero-argument callable
returning milliseconds, so tests can drive time by hand.
"""

import time
from typing import Callable

Clock = Callable[[], float]


def wall_clock_ms() -> float:
    """Milliseconds since the Unix epoch."""
    return time.time() * 1000.0


def perf_clock_ms() -> float:
    """High-resolution monotonic milliseconds, for measuring durations."""
    return time.perf_counter() * 1000.0
