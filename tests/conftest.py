"""Shared fixtures: a hand-driven clock and canned analyser frames."""

import numpy as np
import pytest

from livescope.io.frames import CapturedFrame, LiveMagnitudes, StaticFrameSource

N_BINS = 1024
SR = 44100


class FakeClock:
    """Zero-argument millisecond clock advanced by hand."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> float:
        self.now += ms
        return self.now


def bin_for(freq: float, n_bins: int = N_BINS, sr: int = SR) -> int:
    """Index of the analyser bin closest to ``freq``."""
    return int(round(freq / (sr / 2) * n_bins))


def live_frame(magnitudes, timestamp=None, connected=True) -> CapturedFrame:
    return CapturedFrame(
        connected=connected,
        payload=LiveMagnitudes.from_bytes(magnitudes),
        sample_timestamp=timestamp,
    )


@pytest.fixture
def clock():
    return FakeClock(start=1_000.0)


@pytest.fixture
def silent_frame():
    return np.zeros(N_BINS, dtype=np.uint8)


@pytest.fixture
def loud_frame():
    return np.full(N_BINS, 255, dtype=np.uint8)


@pytest.fixture
def c_major_frame():
    """Peaks at C4, E4 and G4 over silence."""
    frame = np.zeros(N_BINS, dtype=np.uint8)
    for freq, level in ((261.63, 230), (329.63, 200), (392.00, 190)):
        frame[bin_for(freq)] = level
    return frame


@pytest.fixture
def source():
    return StaticFrameSource()
