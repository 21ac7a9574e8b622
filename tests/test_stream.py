"""Tests for the live analysis facade."""

import numpy as np
import pytest

from conftest import N_BINS, live_frame
from livescope import (
    CapturedFrame,
    EngineConfig,
    InvalidFrameDataError,
    LiveAnalyzer,
    LiveMagnitudes,
    NotConnectedError,
    PrecomputedFeatures,
)

C_TRIAD = [0.4, 0, 0, 0, 0.3, 0, 0, 0.3, 0, 0, 0, 0]
FOUR_ON_FLOOR = [0, 500, 1000, 1500, 2000, 2500, 3000, 3500]


@pytest.fixture
def analyzer(source, clock):
    return LiveAnalyzer(source, clock=clock)


def play_pulse(analyzer, source, clock, beats, interval_ms=500.0):
    """Alternate silent and loud frames so every loud frame is an onset."""
    silent = np.zeros(N_BINS, dtype=np.uint8)
    loud = np.full(N_BINS, 255, dtype=np.uint8)
    stamp = 0
    for _ in range(beats):
        for frame in (silent, loud):
            stamp += 1
            clock.advance(interval_ms / 2)
            source.push(live_frame(frame, timestamp=stamp))
            analyzer.tick()


class TestDisconnected:
    def test_tempo_raises(self, analyzer):
        with pytest.raises(NotConnectedError, match="Analyzer not connected"):
            analyzer.detect_tempo()

    def test_key_raises(self, analyzer):
        with pytest.raises(NotConnectedError):
            analyzer.detect_key()

    def test_rhythm_degrades_to_default(self, analyzer):
        report = analyzer.analyze_rhythm()
        assert report.pattern == "X" + "." * 15
        assert report.density == 0.0

    def test_spectrum_reports_disconnection(self, analyzer):
        report = analyzer.analyze_spectrum()
        assert report.connected is False
        assert report.features is None
        assert report.error == "Analyzer not connected"

    def test_advanced_omits_tempo_and_key(self, analyzer, clock):
        result = analyzer.get_advanced_analysis()
        assert result.tempo is None
        assert result.key is None
        assert result.timestamp == clock()
        data = result.to_dict()
        assert set(data) == {"rhythm", "timestamp"}


class TestMissingFrameData:
    @pytest.mark.parametrize(
        "frame",
        [
            CapturedFrame(connected=True, payload=LiveMagnitudes(magnitudes=None)),
            CapturedFrame(connected=True, payload=None),
        ],
    )
    def test_tempo_and_key_raise(self, analyzer, source, frame):
        source.push(frame)
        with pytest.raises(InvalidFrameDataError):
            analyzer.detect_tempo()
        with pytest.raises(InvalidFrameDataError):
            analyzer.detect_key()

    def test_rhythm_degrades_to_default(self, analyzer, source):
        source.push(CapturedFrame(connected=True, payload=LiveMagnitudes(magnitudes=None)))
        assert analyzer.analyze_rhythm().pattern == "X" + "." * 15

    def test_failures_are_not_cached(self, analyzer, source, c_major_frame):
        with pytest.raises(NotConnectedError):
            analyzer.detect_key()
        source.push(live_frame(c_major_frame, timestamp=1))
        assert analyzer.detect_key().label == "C major"


class TestLiveFrames:
    def test_key_from_magnitudes(self, analyzer, source, c_major_frame):
        source.push(live_frame(c_major_frame, timestamp=1))
        report = analyzer.detect_key()
        assert report.key == "C"
        assert report.scale == "major"
        assert report.confidence > 0.7

    def test_tempo_from_pulse(self, analyzer, source, clock):
        play_pulse(analyzer, source, clock, beats=5)
        assert analyzer.tracker.snapshot() == (1500.0, 2000.0, 2500.0, 3000.0, 3500.0)
        report = analyzer.detect_tempo()
        assert report.bpm == 120
        assert report.confidence == pytest.approx(1.0)
        assert report.method == "onset"

    def test_rhythm_from_pulse(self, analyzer, source, clock):
        play_pulse(analyzer, source, clock, beats=5)
        report = analyzer.analyze_rhythm()
        assert report.is_regular
        assert report.density == pytest.approx(2.0)
        assert len(report.onsets) == 5

    def test_too_few_onsets_is_not_an_error(self, analyzer, source, clock):
        play_pulse(analyzer, source, clock, beats=2)
        assert analyzer.detect_tempo().bpm == 0

    def test_spectrum(self, analyzer, source, loud_frame):
        source.push(live_frame(loud_frame, timestamp=1))
        report = analyzer.analyze_spectrum()
        assert report.connected
        assert report.features.is_playing


class TestSingleDetectionPerFrame:
    def test_same_frame_counts_once(self, analyzer, source, clock, silent_frame, loud_frame):
        source.push(live_frame(silent_frame, timestamp=1))
        analyzer.tick()
        source.push(live_frame(loud_frame, timestamp=2))
        analyzer.tick()
        analyzer.detect_tempo()
        analyzer.analyze_rhythm()
        clock.advance(100.0)
        analyzer.clear_cache()
        analyzer.detect_tempo()
        analyzer.get_advanced_analysis()
        assert len(analyzer.tracker) == 1

    def test_advanced_polls_once(self, analyzer, source, c_major_frame):
        source.push(live_frame(c_major_frame, timestamp=1))
        analyzer.get_advanced_analysis()
        assert source.polls == 1


class TestCaching:
    def test_reuse_within_ttl(self, analyzer, source, clock, c_major_frame):
        source.push(live_frame(c_major_frame, timestamp=1))
        first = analyzer.detect_key()
        clock.advance(49.0)
        assert analyzer.detect_key() is first
        assert source.polls == 1

    def test_recompute_after_ttl(self, analyzer, source, clock, c_major_frame):
        source.push(live_frame(c_major_frame, timestamp=1))
        analyzer.detect_key()
        clock.advance(50.0)
        analyzer.detect_key()
        assert source.polls == 2

    def test_clear_cache_keeps_history(self, analyzer, source, clock):
        play_pulse(analyzer, source, clock, beats=5)
        analyzer.detect_tempo()
        analyzer.clear_cache()
        assert len(analyzer.cache) == 0
        assert len(analyzer.tracker) == 5
        assert analyzer.detect_tempo().bpm == 120

    def test_reset_history(self, analyzer, source, clock):
        play_pulse(analyzer, source, clock, beats=5)
        assert analyzer.detect_tempo().bpm == 120
        analyzer.reset_history()
        assert len(analyzer.tracker) == 0
        assert analyzer.tracker.previous_frame is None
        assert analyzer.detect_tempo().bpm == 0

    def test_zero_ttl_recomputes(self, source, clock, c_major_frame):
        analyzer = LiveAnalyzer(source, config=EngineConfig(cache_ttl_ms=0.0), clock=clock)
        source.push(live_frame(c_major_frame, timestamp=1))
        analyzer.detect_key()
        analyzer.detect_key()
        assert source.polls == 2


class TestPrecomputedFeatures:
    def test_tempo_and_key(self, analyzer, source):
        source.push(
            CapturedFrame(
                connected=True,
                payload=PrecomputedFeatures(onsets=FOUR_ON_FLOOR, chroma=C_TRIAD),
            )
        )
        assert analyzer.detect_tempo().bpm == 120
        key = analyzer.detect_key()
        assert key.label == "C major"
        assert key.confidence > 0.7
        assert analyzer.analyze_rhythm().pattern == "XXXXXXXX........"
        assert len(analyzer.tracker) == 0

    def test_missing_chroma(self, analyzer, source):
        source.push(
            CapturedFrame(connected=True, payload=PrecomputedFeatures(onsets=FOUR_ON_FLOOR))
        )
        with pytest.raises(InvalidFrameDataError):
            analyzer.detect_key()

    def test_bad_chroma_length(self):
        with pytest.raises(ValueError):
            PrecomputedFeatures(chroma=[0.1] * 11)

    def test_advanced_analysis(self, analyzer, source):
        source.push(
            CapturedFrame(
                connected=True,
                payload=PrecomputedFeatures(onsets=FOUR_ON_FLOOR, chroma=C_TRIAD),
            )
        )
        result = analyzer.get_advanced_analysis()
        assert result.tempo.bpm == 120
        assert result.key.label == "C major"
        assert result.rhythm.density == pytest.approx(2.0)
        assert set(result.to_dict()) == {"tempo", "key", "rhythm", "timestamp"}

    def test_advanced_fills_cache(self, analyzer, source):
        source.push(
            CapturedFrame(
                connected=True,
                payload=PrecomputedFeatures(onsets=FOUR_ON_FLOOR, chroma=C_TRIAD),
            )
        )
        result = analyzer.get_advanced_analysis()
        assert analyzer.detect_key() is result.key
        assert source.polls == 1


class FailingSource:
    def get_frame(self):
        raise RuntimeError("instrument offline")


class TestFailingSource:
    def test_tempo_propagates(self, clock):
        analyzer = LiveAnalyzer(FailingSource(), clock=clock)
        with pytest.raises(RuntimeError):
            analyzer.detect_tempo()

    def test_rhythm_and_advanced_degrade(self, clock):
        analyzer = LiveAnalyzer(FailingSource(), clock=clock)
        assert analyzer.analyze_rhythm().pattern == "X" + "." * 15
        result = analyzer.get_advanced_analysis()
        assert result.tempo is None
        assert result.key is None


def test_monitor_records_operations(analyzer, source, c_major_frame):
    source.push(live_frame(c_major_frame, timestamp=1))
    analyzer.detect_key()
    source.push(CapturedFrame.disconnected())
    analyzer.clear_cache()
    with pytest.raises(NotConnectedError):
        analyzer.detect_tempo()
    assert analyzer.monitor.get_metrics("key").calls == 1
    assert analyzer.monitor.get_metrics("tempo").error_rate == 100.0
