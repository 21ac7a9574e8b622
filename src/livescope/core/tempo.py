"""
Tempo estimation from inter-onset intervals.
"""

from dataclasses import asdict, dataclass
from typing import Any, Sequence

import numpy as np
from scipy import stats

from livescope.config import DEFAULT_CONFIG, EngineConfig


@dataclass(frozen=True)
class TempoReport:
    """Estimated tempo of the recent onsets."""

    bpm: int           # 0 when no plausible tempo was found
    confidence: float  # [0,1]
    method: str = "onset"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


NO_TEMPO = TempoReport(bpm=0, confidence=0.0)


class TempoEstimator:
    """
    Converts an onset history into BPM and a confidence score.

    The tempo is the reciprocal of the mean inter-onset interval. Confidence
    drops with the spread of the intervals: a perfectly steady pulse scores
    1.0, a coefficient of variation of 2/3 or more scores 0.
    """

    def __init__(
        self,
        min_bpm: float = 40.0,
        max_bpm: float = 200.0,
        min_onsets: int = 4,
    ):
        self.min_bpm = min_bpm
        self.max_bpm = max_bpm
        self.min_onsets = min_onsets

    @classmethod
    def from_config(cls, config: EngineConfig = DEFAULT_CONFIG) -> "TempoEstimator":
        return cls(
            min_bpm=config.min_bpm,
            max_bpm=config.max_bpm,
            min_onsets=config.min_tempo_onsets,
        )

    def estimate(self, onsets: Sequence[float]) -> TempoReport:
        """
        Estimate tempo from onset timestamps.

        Args:
            onsets: Onset times in milliseconds, oldest first.

        Returns:
            TempoReport; the zero report when there are too few onsets or the
            tempo falls outside ``[min_bpm, max_bpm]``.
        """
        if len(onsets) < self.min_onsets:
            return NO_TEMPO

        intervals = np.diff(np.asarray(onsets, dtype=np.float64))
        mean_interval = float(intervals.mean())
        if mean_interval <= 0:
            return NO_TEMPO

        bpm = 60000.0 / mean_interval
        if bpm < self.min_bpm or bpm > self.max_bpm:
            return NO_TEMPO

        cv = float(stats.variation(intervals))
        confidence = float(np.clip(1.0 - cv * 1.5, 0.0, 1.0))
        return TempoReport(bpm=int(round(bpm)), confidence=confidence)
