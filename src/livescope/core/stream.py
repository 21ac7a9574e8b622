"""
Live analysis facade for the instrument's audio stream.

Architecture Overview
---------------------
::

    FrameSource.get_frame()            (polled ~every 50 ms)
        │
        ▼
    LiveAnalyzer._observe()            (once per captured frame)
        │
        ├─► OnsetTracker.process()     spectral flux → onset history
        │        └─► immutable onset snapshot
        │
        ├─► TempoEstimator             ◄── onset snapshot
        ├─► RhythmAnalyzer             ◄── onset snapshot
        ├─► KeyEstimator               ◄── ChromaExtractor(frame)
        └─► summarize_spectrum         ◄── frame
                 │
                 ▼
           AnalysisCache (one slot per report, TTL ≈ poll cadence)

Onset detection runs at most once per captured frame: observations are keyed
on the frame's ``sample_timestamp``, so asking for tempo and rhythm of the
same frame never appends the same onset twice.

Failure policy
--------------
* Tempo and key raise :class:`NotConnectedError` when the analyser is
  detached and :class:`InvalidFrameDataError` when the frame carries no data.
* Rhythm never raises; it degrades to the default report.
* The composite report omits tempo/key that failed rather than failing.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from threading import RLock
from typing import Any, Callable, Optional

import numpy as np

from livescope.clock import Clock, wall_clock_ms
from livescope.config import DEFAULT_CONFIG, EngineConfig
from livescope.core.cache import AnalysisCache
from livescope.core.chroma import ChromaExtractor
from livescope.core.key import KeyEstimator, KeyReport
from livescope.core.onset import OnsetEvent, OnsetTracker
from livescope.core.rhythm import RhythmAnalyzer, RhythmReport
from livescope.core.spectrum import SpectrumReport, summarize_spectrum
from livescope.core.tempo import TempoEstimator, TempoReport
from livescope.errors import InvalidFrameDataError, NotConnectedError
from livescope.io.frames import (
    CapturedFrame,
    FramePayload,
    FrameSource,
    LiveMagnitudes,
    PrecomputedFeatures,
)
from livescope.monitor import PerformanceMonitor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Observation:
    """Everything the estimators need from one captured frame."""

    connected: bool
    payload: Optional[FramePayload]
    onsets: tuple[float, ...]
    sample_timestamp: Optional[float] = None
    onset_event: Optional[OnsetEvent] = None

    @property
    def magnitudes(self) -> Optional[np.ndarray]:
        if isinstance(self.payload, LiveMagnitudes):
            return self.payload.magnitudes
        return None


@dataclass(frozen=True)
class AdvancedAnalysis:
    """Composite report; tempo and key are None when unavailable."""

    rhythm: RhythmReport
    timestamp: float
    tempo: Optional[TempoReport] = None
    key: Optional[KeyReport] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.tempo is not None:
            out["tempo"] = self.tempo.to_dict()
        if self.key is not None:
            out["key"] = self.key.to_dict()
        out["rhythm"] = self.rhythm.to_dict()
        out["timestamp"] = self.timestamp
        return out


class LiveAnalyzer:
    """
    Tempo, key and rhythm reports for a live frame source.

    Parameters
    ----------
    source:
        Frame source polled on every (uncached) analysis call.
    config:
        Engine constants (default: :data:`DEFAULT_CONFIG`).
    clock:
        Zero-argument callable returning milliseconds. Stamps onsets,
        composite reports and cache entries.
    tracker:
        Onset state to use. Defaults to a fresh tracker built from
        ``config``; pass one in to inspect or share it.
    monitor:
        Optional :class:`PerformanceMonitor` timing each public operation.
    """

    def __init__(
        self,
        source: FrameSource,
        config: EngineConfig = DEFAULT_CONFIG,
        clock: Clock = wall_clock_ms,
        tracker: Optional[OnsetTracker] = None,
        monitor: Optional[PerformanceMonitor] = None,
    ):
        self.source = source
        self.config = config
        self.clock = clock
        self.tracker = tracker if tracker is not None else OnsetTracker.from_config(config)
        self.monitor = monitor if monitor is not None else PerformanceMonitor()

        self.chroma_extractor = ChromaExtractor.from_config(config)
        self.tempo_estimator = TempoEstimator.from_config(config)
        self.key_estimator = KeyEstimator.from_config(config)
        self.rhythm_analyzer = RhythmAnalyzer.from_config(config)
        self.cache = AnalysisCache(ttl_ms=config.cache_ttl_ms, clock=clock)

        self._lock = RLock()
        self._last_observation: Optional[Observation] = None

    # ------------------------------------------------------------------
    # Observation (the single onset-detection step per frame)
    # ------------------------------------------------------------------

    def _observe(self) -> Observation:
        """Poll the source and run onset detection once for a new frame."""
        with self._lock:
            frame = self.source.get_frame()
            last = self._last_observation
            if (
                last is not None
                and frame.sample_timestamp is not None
                and frame.sample_timestamp == last.sample_timestamp
            ):
                return last

            observation = self._build_observation(frame)
            self._last_observation = observation
            return observation

    def _build_observation(self, frame: CapturedFrame) -> Observation:
        event = None
        payload = frame.payload
        if frame.connected and isinstance(payload, LiveMagnitudes):
            if payload.magnitudes is not None:
                event = self.tracker.process(payload.magnitudes, self.clock())

        if isinstance(payload, PrecomputedFeatures) and payload.onsets is not None:
            onsets = payload.onsets
        else:
            onsets = self.tracker.snapshot()

        return Observation(
            connected=frame.connected,
            payload=payload,
            onsets=onsets,
            sample_timestamp=frame.sample_timestamp,
            onset_event=event,
        )

    def tick(self) -> Observation:
        """
        Advance one poll without building any report.

        Call this from a polling loop to keep the onset history current
        between report requests.
        """
        with self.monitor.measure("tick"):
            return self._observe()

    # ------------------------------------------------------------------
    # Per-report computation from an observation
    # ------------------------------------------------------------------

    def _tempo_report(self, obs: Observation) -> TempoReport:
        if not obs.connected:
            raise NotConnectedError()
        payload = obs.payload
        if isinstance(payload, PrecomputedFeatures):
            return self.tempo_estimator.estimate(obs.onsets)
        if isinstance(payload, LiveMagnitudes) and payload.magnitudes is not None:
            return self.tempo_estimator.estimate(obs.onsets)
        raise InvalidFrameDataError()

    def _key_report(self, obs: Observation) -> KeyReport:
        if not obs.connected:
            raise NotConnectedError()
        payload = obs.payload
        if isinstance(payload, PrecomputedFeatures):
            if payload.chroma is None:
                raise InvalidFrameDataError("Frame has neither chroma nor magnitude data")
            return self.key_estimator.estimate(payload.chroma)
        if isinstance(payload, LiveMagnitudes) and payload.magnitudes is not None:
            chroma = self.chroma_extractor.extract(payload.magnitudes)
            return self.key_estimator.estimate(chroma)
        raise InvalidFrameDataError()

    def _rhythm_report(self, obs: Observation) -> RhythmReport:
        if not obs.connected:
            logger.warning("Rhythm analysis without a connected analyser; using default")
            return self.rhythm_analyzer.default_report()
        payload = obs.payload
        if isinstance(payload, LiveMagnitudes) and payload.magnitudes is None:
            logger.warning("Rhythm analysis without magnitude data; using default")
            return self.rhythm_analyzer.default_report()
        if payload is None:
            logger.warning("Rhythm analysis without frame data; using default")
            return self.rhythm_analyzer.default_report()
        return self.rhythm_analyzer.analyze(obs.onsets)

    def _spectrum_report(self, obs: Observation) -> SpectrumReport:
        if not obs.connected:
            return SpectrumReport(connected=False, error="Analyzer not connected")
        magnitudes = obs.magnitudes
        if magnitudes is None:
            return SpectrumReport(
                connected=True, timestamp=self.clock(), error="No magnitude data"
            )
        return SpectrumReport(
            connected=True,
            timestamp=self.clock(),
            features=summarize_spectrum(magnitudes, self.config.sample_rate),
        )

    def _cached(self, kind: str, compute: Callable[[], Any]) -> Any:
        with self.monitor.measure(kind):
            return self.cache.get_or_compute(kind, compute)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def detect_tempo(self) -> TempoReport:
        """
        Tempo of the recent onsets.

        Raises:
            NotConnectedError: The analyser is not attached.
            InvalidFrameDataError: The frame carries no magnitude data.
        """
        return self._cached("tempo", lambda: self._tempo_report(self._observe()))

    def detect_key(self) -> KeyReport:
        """
        Key of the current frame.

        Raises:
            NotConnectedError: The analyser is not attached.
            InvalidFrameDataError: The frame carries no magnitude data.
        """
        return self._cached("key", lambda: self._key_report(self._observe()))

    def analyze_rhythm(self) -> RhythmReport:
        """Rhythmic character of the recent onsets; never raises."""
        return self._cached("rhythm", self._safe_rhythm)

    def _safe_rhythm(self) -> RhythmReport:
        try:
            obs = self._observe()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Frame source failed during rhythm analysis (%s); using default", exc)
            return self.rhythm_analyzer.default_report()
        return self._rhythm_report(obs)

    def analyze_spectrum(self) -> SpectrumReport:
        """Band levels, peak and brightness of the current frame."""
        return self._cached("spectrum", lambda: self._spectrum_report(self._observe()))

    def get_advanced_analysis(self) -> AdvancedAnalysis:
        """
        Tempo, key and rhythm in one report.

        The frame is observed once, then the three estimators run
        concurrently against that observation. A tempo or key failure is
        logged and leaves the field as None.
        """
        with self.monitor.measure("advanced"):
            try:
                obs = self._observe()
            except Exception as exc:  # noqa: BLE001
                logger.warning("Frame source failed during composite analysis: %s", exc)
                return AdvancedAnalysis(
                    rhythm=self.rhythm_analyzer.default_report(),
                    timestamp=self.clock(),
                )

            with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
                tempo_f = pool.submit(self._cached, "tempo", lambda: self._tempo_report(obs))
                key_f = pool.submit(self._cached, "key", lambda: self._key_report(obs))
                rhythm_f = pool.submit(self._cached, "rhythm", lambda: self._rhythm_report(obs))

                tempo = self._settled(tempo_f, "tempo")
                key = self._settled(key_f, "key")
                rhythm = rhythm_f.result()

            return AdvancedAnalysis(
                rhythm=rhythm,
                timestamp=self.clock(),
                tempo=tempo,
                key=key,
            )

    @staticmethod
    def _settled(future, kind: str) -> Optional[Any]:
        try:
            return future.result()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Omitting %s from composite analysis: %s", kind, exc)
            return None

    def clear_cache(self) -> None:
        """Drop every cached report; onset history is kept."""
        self.cache.clear()

    def reset_history(self) -> None:
        """Forget onset history, the previous frame and every cached report."""
        with self._lock:
            self.tracker.reset()
            self._last_observation = None
            self.cache.clear()
        logger.info("Onset history reset")
