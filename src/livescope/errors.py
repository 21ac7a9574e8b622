"""
Exceptions raised by the analysis engine.

Only missing instrumentation and missing frame data are errors. Too few
onsets or too little tonal energy produce a low-confidence report instead.
"""


class AnalysisError(Exception):
    """Base class for engine errors."""


class NotConnectedError(AnalysisError):
    """The audio analyser is not attached to the instrument."""

    def __init__(self, message: str = "Analyzer not connected"):
        super().__init__(message)


class InvalidFrameDataError(AnalysisError):
    """The captured frame carries no usable magnitude data."""

    def __init__(self, message: str = "Frame has no magnitude data"):
        super().__init__(message)
