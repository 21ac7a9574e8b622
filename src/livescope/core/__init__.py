"""Core analysis modules."""

from livescope.core.chroma import ChromaExtractor
from livescope.core.key import KeyEstimator
from livescope.core.onset import OnsetTracker
from livescope.core.rhythm import RhythmAnalyzer
from livescope.core.tempo import TempoEstimator

__all__ = [
    "OnsetTracker",
    "ChromaExtractor",
    "TempoEstimator",
    "KeyEstimator",
    "RhythmAnalyzer",
]
