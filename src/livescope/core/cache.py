"""
Short-lived report cache.

One slot per report kind, keyed by recency only: the instrument state only
matters as of the latest poll, so an entry is either fresh enough to reuse
or it is recomputed. The TTL is tied to the instrument's refresh cadence.
"""

import logging
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Optional, TypeVar

from livescope.clock import Clock, wall_clock_ms

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry:
    """Cached report with its capture time."""

    result: Any
    captured_at: float  # ms, from the cache's clock


class AnalysisCache:
    """
    Thread-safe single-slot-per-kind TTL cache.

    Args:
        ttl_ms: Entry lifetime in milliseconds (default: 50).
        clock: Zero-argument callable returning the current time in ms.
    """

    def __init__(self, ttl_ms: float = 50.0, clock: Clock = wall_clock_ms) -> None:
        self.ttl_ms = ttl_ms
        self._clock = clock
        self._slots: dict[str, CacheEntry] = {}
        self._lock = Lock()

    def get(self, kind: str) -> Optional[Any]:
        """
        Return the cached result for ``kind`` if it is still fresh.

        Expired entries are dropped on lookup.
        """
        with self._lock:
            entry = self._slots.get(kind)
            if entry is None:
                return None
            if self._clock() - entry.captured_at >= self.ttl_ms:
                del self._slots[kind]
                return None
            logger.debug("AnalysisCache HIT: %s", kind)
            return entry.result

    def put(self, kind: str, result: Any) -> None:
        """Store ``result`` as the latest value for ``kind``."""
        with self._lock:
            self._slots[kind] = CacheEntry(result=result, captured_at=self._clock())

    def get_or_compute(self, kind: str, compute: Callable[[], T]) -> T:
        """
        Return the fresh cached value, or compute, store and return a new one.

        Exceptions from ``compute`` propagate and nothing is stored.
        """
        cached = self.get(kind)
        if cached is not None:
            return cached
        result = compute()
        self.put(kind, result)
        return result

    def age(self, kind: str) -> Optional[float]:
        """Milliseconds since ``kind`` was stored, or None if absent."""
        with self._lock:
            entry = self._slots.get(kind)
            if entry is None:
                return None
            return self._clock() - entry.captured_at

    def clear(self, kind: Optional[str] = None) -> None:
        """Drop one slot, or every slot when ``kind`` is None."""
        with self._lock:
            if kind is None:
                self._slots.clear()
            else:
                self._slots.pop(kind, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._slots)
