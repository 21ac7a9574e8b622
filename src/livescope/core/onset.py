"""
Onset detection via spectral flux.

The :class:`OnsetTracker` is the engine's only durable state: the previous
magnitude frame (for flux differencing) and a bounded FIFO of onset
timestamps. Tempo and rhythm estimation read immutable snapshots of that
history; they never run detection themselves.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Optional

import numpy as np

from livescope.config import DEFAULT_CONFIG, EngineConfig

logger = logging.getLogger(__name__)

MAX_MAGNITUDE = 255.0


def spectral_flux(current: np.ndarray, previous: Optional[np.ndarray]) -> float:
    """
    Positive-only frame-to-frame magnitude increase, normalized to [0, 1].

    Args:
        current: Magnitude frame, values in 0–255.
        previous: The frame before it, or None on the first call.

    Returns:
        ``sum(max(0, current - previous)) / (n_bins * 255)``. Zero when there
        is no previous frame, when the frame is empty, or when the bin count
        changed between frames.
    """
    if previous is None:
        return 0.0
    current = np.asarray(current, dtype=np.float64)
    previous = np.asarray(previous, dtype=np.float64)
    if current.size == 0 or current.shape != previous.shape:
        return 0.0
    rising = np.maximum(current - previous, 0.0)
    return float(rising.sum() / (current.size * MAX_MAGNITUDE))


@dataclass(frozen=True)
class OnsetEvent:
    """Outcome of feeding one frame to the tracker."""

    flux: float
    is_onset: bool
    timestamp: float


class OnsetTracker:
    """
    Previous frame plus a bounded onset-timestamp history.

    Feed exactly one frame per poll through :meth:`process`; hand
    :meth:`snapshot` to every consumer of that poll.
    """

    def __init__(self, threshold: float = 0.3, capacity: int = 100):
        """
        Args:
            threshold: Flux above which a frame is an onset.
            capacity: Maximum number of remembered onsets; oldest go first.
        """
        self.threshold = threshold
        self.capacity = capacity
        self._history: deque[float] = deque(maxlen=capacity)
        self._previous: Optional[np.ndarray] = None

    @classmethod
    def from_config(cls, config: EngineConfig = DEFAULT_CONFIG) -> "OnsetTracker":
        return cls(threshold=config.onset_threshold, capacity=config.history_size)

    @property
    def previous_frame(self) -> Optional[np.ndarray]:
        return self._previous

    def __len__(self) -> int:
        return len(self._history)

    def process(self, frame: np.ndarray, timestamp: float) -> OnsetEvent:
        """
        Compute flux against the previous frame and record an onset if needed.

        The new frame always replaces the stored one, onset or not.

        Args:
            frame: Current magnitude frame.
            timestamp: Time of this poll in milliseconds.

        Returns:
            OnsetEvent describing the flux and whether an onset was recorded.
        """
        current = np.array(frame, dtype=np.float64)
        flux = spectral_flux(current, self._previous)
        self._previous = current

        is_onset = flux > self.threshold
        if is_onset:
            self.record(timestamp)
            logger.debug("Onset at %.1f ms (flux=%.3f)", timestamp, flux)
        return OnsetEvent(flux=flux, is_onset=is_onset, timestamp=timestamp)

    def record(self, timestamp: float) -> None:
        """Append an onset timestamp, evicting the oldest beyond capacity."""
        self._history.append(float(timestamp))

    def snapshot(self) -> tuple[float, ...]:
        """Immutable copy of the onset history, oldest first."""
        return tuple(self._history)

    def reset(self) -> None:
        """Forget every onset and the previous frame."""
        self._history.clear()
        self._previous = None
