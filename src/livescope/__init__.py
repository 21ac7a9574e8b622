"""Live music-information-retrieval engine for a live-coding instrument."""

from livescope.config import DEFAULT_CONFIG, EngineConfig
from livescope.core.stream import AdvancedAnalysis, LiveAnalyzer
from livescope.errors import AnalysisError, InvalidFrameDataError, NotConnectedError
from livescope.io.frames import (
    CapturedFrame,
    LiveMagnitudes,
    PrecomputedFeatures,
    StaticFrameSource,
)

__version__ = "0.1.0"
__all__ = [
    "LiveAnalyzer",
    "AdvancedAnalysis",
    "EngineConfig",
    "DEFAULT_CONFIG",
    "AnalysisError",
    "NotConnectedError",
    "InvalidFrameDataError",
    "CapturedFrame",
    "LiveMagnitudes",
    "PrecomputedFeatures",
    "StaticFrameSource",
]
