"""
Rhythm analysis from onset timing.

Describes the recent onsets by how dense, how irregular and how off-beat
they are, and draws them onto a fixed-width step grid.
"""

from dataclasses import dataclass, field
from typing import Any, Sequence

import numpy as np
from scipy import stats

from livescope.config import DEFAULT_CONFIG, EngineConfig

HIT = "X"
REST = "."

# Phase distance from the nearest beat tolerated before a hit counts as off-beat
SYNCOPATION_TOLERANCE = 0.08
REGULARITY_CV = 0.2


@dataclass(frozen=True)
class RhythmReport:
    """Rhythmic character of the recent onsets."""

    pattern: str                  # e.g. "X...X...X...X..."
    complexity: float             # [0,1]
    density: float                # onsets per second
    syncopation: float            # [0,1]
    onsets: tuple[float, ...] = field(default_factory=tuple)  # ms
    is_regular: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "pattern": self.pattern,
            "complexity": self.complexity,
            "density": self.density,
            "syncopation": self.syncopation,
            "onsets": list(self.onsets),
            "is_regular": self.is_regular,
        }


class RhythmAnalyzer:
    """
    Derives density, complexity, syncopation, regularity and a step pattern.

    Never raises on thin input: fewer than two onsets give the default
    report (a single hit on the first step, all metrics zero).
    """

    def __init__(self, pattern_slots: int = 16):
        self.pattern_slots = pattern_slots

    @classmethod
    def from_config(cls, config: EngineConfig = DEFAULT_CONFIG) -> "RhythmAnalyzer":
        return cls(pattern_slots=config.pattern_slots)

    def default_report(self, onsets: Sequence[float] = ()) -> RhythmReport:
        """Report used when there is not enough timing information."""
        return RhythmReport(
            pattern=HIT + REST * (self.pattern_slots - 1),
            complexity=0.0,
            density=0.0,
            syncopation=0.0,
            onsets=tuple(float(t) for t in onsets),
            is_regular=True,
        )

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------

    @staticmethod
    def density(onsets: np.ndarray) -> float:
        """Onsets per second across the observed span."""
        span_sec = (onsets[-1] - onsets[0]) / 1000.0
        if span_sec <= 0:
            return 0.0
        return float((len(onsets) - 1) / span_sec)

    @staticmethod
    def subdivision_score(intervals: np.ndarray, mean_interval: float) -> float:
        """
        Variety of interval ratios, quantized to eighths of the mean.

        Four or more distinct ratios saturate the score.
        """
        if mean_interval <= 0:
            return 0.0
        quantized = np.round(intervals / mean_interval * 8.0) / 8.0
        return float(np.clip(len(np.unique(quantized)) / 4.0, 0.0, 1.0))

    @staticmethod
    def syncopation(onsets: np.ndarray, mean_interval: float) -> float:
        """
        Average off-beat distance of every onset after the first.

        Beat phase is measured within a four-beat bar of ``mean_interval``
        beats. Needs at least four onsets.
        """
        if len(onsets) < 4 or mean_interval <= 0:
            return 0.0
        bar = mean_interval * 4.0
        total = 0.0
        for onset in onsets[1:]:
            phase = (onset % bar) / mean_interval
            distance = abs(phase - round(phase))
            if distance > SYNCOPATION_TOLERANCE:
                total += min(max(distance * 4.0, 0.0), 1.0)
        return float(np.clip(total / (len(onsets) - 1), 0.0, 1.0))

    def pattern(self, onsets: np.ndarray, mean_interval: float) -> str:
        """Mark each onset on a grid of ``pattern_slots`` steps of one mean interval."""
        slots = [REST] * self.pattern_slots
        if mean_interval <= 0:
            slots[0] = HIT
            return "".join(slots)
        cycle = mean_interval * self.pattern_slots
        for onset in onsets:
            index = int(round((onset % cycle) / mean_interval))
            if 0 <= index < self.pattern_slots:
                slots[index] = HIT
        return "".join(slots)

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def analyze(self, onsets: Sequence[float]) -> RhythmReport:
        """
        Analyze onset timing.

        Args:
            onsets: Onset times in milliseconds, oldest first.

        Returns:
            RhythmReport; the default report for fewer than two onsets.
        """
        if len(onsets) < 2:
            return self.default_report(onsets)

        times = np.asarray(onsets, dtype=np.float64)
        intervals = np.diff(times)
        mean_interval = float(intervals.mean())

        if mean_interval > 0:
            cv = float(stats.variation(intervals))
        else:
            cv = 0.0

        subdivision = self.subdivision_score(intervals, mean_interval)
        complexity = float(
            np.clip(np.clip(cv * 5.0, 0.0, 1.0) * 0.8 + subdivision * 0.2, 0.0, 1.0)
        )

        return RhythmReport(
            pattern=self.pattern(times, mean_interval),
            complexity=complexity,
            density=self.density(times),
            syncopation=self.syncopation(times, mean_interval),
            onsets=tuple(float(t) for t in times),
            is_regular=cv < REGULARITY_CV,
        )
