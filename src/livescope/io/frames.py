"""
Frame sources feeding the analysis engine.

A frame source is whatever polls the instrument's audio analyser. Each poll
yields a :class:`CapturedFrame` whose payload is one of two variants:

* :class:`LiveMagnitudes`: a raw byte-valued magnitude spectrum, one value
  per frequency bin, as read from the instrument.
* :class:`PrecomputedFeatures`: onset times and/or a chroma vector that
  were derived elsewhere (replays, recorded sessions, tests).

Estimators branch on the payload type.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence, Union

import numpy as np


@dataclass(frozen=True)
class LiveMagnitudes:
    """Raw magnitude spectrum read from the instrument."""

    magnitudes: Optional[np.ndarray]  # (n_bins,) values in 0–255, None if unavailable

    @classmethod
    def from_bytes(cls, data: Optional[Sequence[int]]) -> "LiveMagnitudes":
        """Wrap a byte sequence (list, bytes, Uint8 array) as a frame."""
        if data is None:
            return cls(magnitudes=None)
        return cls(magnitudes=np.asarray(data, dtype=np.uint8))


@dataclass(frozen=True)
class PrecomputedFeatures:
    """Onset times (ms) and/or a 12-bin chroma vector computed elsewhere."""

    onsets: Optional[tuple[float, ...]] = None
    chroma: Optional[tuple[float, ...]] = None

    def __post_init__(self):
        if self.onsets is not None:
            object.__setattr__(self, "onsets", tuple(float(t) for t in self.onsets))
        if self.chroma is not None:
            chroma = tuple(float(c) for c in self.chroma)
            if len(chroma) != 12:
                raise ValueError(f"chroma must have 12 bins, got {len(chroma)}")
            object.__setattr__(self, "chroma", chroma)


FramePayload = Union[LiveMagnitudes, PrecomputedFeatures]


@dataclass(frozen=True)
class CapturedFrame:
    """One poll of the instrument's analyser."""

    connected: bool
    payload: Optional[FramePayload] = None
    sample_timestamp: Optional[float] = None  # ms, as stamped by the capture side

    @classmethod
    def disconnected(cls) -> "CapturedFrame":
        return cls(connected=False)


class FrameSource(Protocol):
    """Anything that can be polled for the latest captured frame."""

    def get_frame(self) -> CapturedFrame:
        ...


class StaticFrameSource:
    """
    In-memory frame source.

    Returns the most recently pushed frame on every poll. Used to replay
    recorded sessions and to drive the engine in tests.
    """

    def __init__(self, frame: Optional[CapturedFrame] = None):
        self._frame = frame if frame is not None else CapturedFrame.disconnected()
        self.polls = 0

    def push(self, frame: CapturedFrame) -> None:
        """Replace the frame returned by subsequent polls."""
        self._frame = frame

    def get_frame(self) -> CapturedFrame:
        self.polls += 1
        return self._frame
