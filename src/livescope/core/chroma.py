"""
Chroma extraction from a single magnitude frame.

Folds every bin in the musical range onto its pitch class (C = 0 … B = 11)
and normalizes the result to a probability-like distribution.
"""

from typing import Sequence

import librosa
import numpy as np

from livescope.config import DEFAULT_CONFIG, EngineConfig

CHROMA_NAMES = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")


def bin_frequencies(n_bins: int, sample_rate: int) -> np.ndarray:
    """
    Centre frequency of each bin of an analyser frame.

    An analyser with ``fft_size = 2 * n_bins`` reports bins spanning
    0 Hz up to (but excluding) Nyquist, so bin *i* sits at
    ``(i / n_bins) * sample_rate / 2``.
    """
    if n_bins <= 0:
        return np.zeros(0)
    return librosa.fft_frequencies(sr=sample_rate, n_fft=2 * n_bins)[:n_bins]


def frequency_to_pitch_class(freqs: np.ndarray) -> np.ndarray:
    """Nearest equal-tempered pitch class of each frequency (A4 = 440 Hz)."""
    midi = librosa.hz_to_midi(np.asarray(freqs, dtype=np.float64))
    return np.round(midi).astype(int) % 12


class ChromaExtractor:
    """
    Extracts a 12-bin chroma vector from a magnitude frame.

    Only bins between ``min_hz`` and ``max_hz`` contribute; sub-audio rumble
    and upper harmonics would otherwise smear the pitch classes.
    """

    def __init__(
        self,
        sample_rate: int = 44100,
        min_hz: float = 20.0,
        max_hz: float = 4000.0,
    ):
        self.sample_rate = sample_rate
        self.min_hz = min_hz
        self.max_hz = max_hz

    @classmethod
    def from_config(cls, config: EngineConfig = DEFAULT_CONFIG) -> "ChromaExtractor":
        return cls(
            sample_rate=config.sample_rate,
            min_hz=config.chroma_min_hz,
            max_hz=config.chroma_max_hz,
        )

    def extract(self, magnitudes: Sequence[float]) -> np.ndarray:
        """
        Fold a magnitude frame into pitch-class energies.

        Args:
            magnitudes: Frame values, one per bin.

        Returns:
            Shape (12,) array summing to 1, or all zeros for a silent frame.
        """
        mags = np.asarray(magnitudes, dtype=np.float64)
        chroma = np.zeros(12)
        if mags.size == 0:
            return chroma

        freqs = bin_frequencies(mags.size, self.sample_rate)
        in_range = (freqs >= self.min_hz) & (freqs <= self.max_hz)
        if not np.any(in_range):
            return chroma

        pitch_classes = frequency_to_pitch_class(freqs[in_range])
        chroma = np.bincount(pitch_classes, weights=mags[in_range], minlength=12)

        total = chroma.sum()
        if total > 0:
            chroma = chroma / total
        return chroma
