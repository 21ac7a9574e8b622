"""
Basic spectrum summary.

Cheap per-poll descriptors of a magnitude frame: band levels, peak,
centroid, and coarse playing/silent/brightness flags. Band edges are bin
indices of a 1024-bin analyser frame (fft size 2048).
"""

from dataclasses import asdict, dataclass
from typing import Any, Optional, Sequence

import numpy as np

# (start_bin, end_bin) per band; levels are the sum divided by the band width
BANDS = {
    "bass": (0, 8),
    "low_mid": (8, 32),
    "mid": (32, 128),
    "high_mid": (128, 256),
    "treble": (256, 512),
}

PLAYING_LEVEL = 5.0
SILENT_LEVEL = 1.0
BRIGHT_CENTROID = 500.0
BALANCED_CENTROID = 200.0


@dataclass(frozen=True)
class SpectrumFeatures:
    """Per-poll spectrum descriptors."""

    average: float           # mean magnitude, 1 decimal
    peak: int                # loudest bin value 0–255
    peak_frequency: int      # Hz
    centroid: float          # magnitude-weighted mean bin index, 1 decimal
    bass: int
    low_mid: int
    mid: int
    high_mid: int
    treble: int
    is_playing: bool
    is_silent: bool
    bass_to_treble_ratio: Optional[float]  # None when the treble band is empty
    brightness: str          # "bright" | "balanced" | "dark"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SpectrumReport:
    """Spectrum summary together with the analyser's connection state."""

    connected: bool
    timestamp: Optional[float] = None
    features: Optional[SpectrumFeatures] = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"connected": self.connected}
        if self.timestamp is not None:
            out["timestamp"] = self.timestamp
        if self.features is not None:
            out["features"] = self.features.to_dict()
        if self.error is not None:
            out["error"] = self.error
        return out


def _brightness(centroid: float) -> str:
    if centroid > BRIGHT_CENTROID:
        return "bright"
    if centroid > BALANCED_CENTROID:
        return "balanced"
    return "dark"


def summarize_spectrum(
    magnitudes: Sequence[float],
    sample_rate: int = 44100,
) -> SpectrumFeatures:
    """
    Summarize a magnitude frame.

    Args:
        magnitudes: Frame values, one per bin, 0–255.
        sample_rate: Source sample rate; bins span 0 to Nyquist.

    Returns:
        SpectrumFeatures for the frame. An empty frame is reported silent.
    """
    data = np.asarray(magnitudes, dtype=np.float64)
    n_bins = data.size

    levels = {
        name: float(data[start:end].sum() / (end - start))
        for name, (start, end) in BANDS.items()
    }

    if n_bins == 0:
        average = 0.0
        peak = 0.0
        peak_index = 0
    else:
        average = float(data.mean())
        peak_index = int(np.argmax(data))
        peak = float(data[peak_index])
    peak_frequency = (peak_index / n_bins) * (sample_rate / 2) if n_bins else 0.0

    total = data.sum()
    centroid = float(np.dot(np.arange(n_bins), data) / total) if total > 0 else 0.0

    treble = levels["treble"]
    ratio = round(levels["bass"] / treble, 2) if treble > 0 else None

    return SpectrumFeatures(
        average=round(average, 1),
        peak=int(peak),
        peak_frequency=int(round(peak_frequency)),
        centroid=round(centroid, 1),
        bass=int(round(levels["bass"])),
        low_mid=int(round(levels["low_mid"])),
        mid=int(round(levels["mid"])),
        high_mid=int(round(levels["high_mid"])),
        treble=int(round(treble)),
        is_playing=average > PLAYING_LEVEL,
        is_silent=average < SILENT_LEVEL,
        bass_to_treble_ratio=ratio,
        brightness=_brightness(centroid),
    )
