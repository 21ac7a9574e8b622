"""
Livescope estimator benchmark + poll-budget check.

Usage:
    python scripts/benchmark.py [--quick]

Modes:
    default  - 1024-bin frames, 20 warm-up + 200 timed runs per function
    --quick  - 1024-bin frames, 5 warm-up + 30 timed runs (CI-friendly)

Output: timing table printed to stdout.

Budget check: one full poll (onset tracking, chroma, key, tempo, rhythm)
must fit comfortably inside the instrument's 50 ms refresh. The script
exits non-zero when the mean poll exceeds POLL_BUDGET_MS.
"""

import argparse
import os
import sys
import time
from typing import List

import numpy as np

# Make sure the installed package is on the path when run from repo root
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from livescope import CapturedFrame, LiveAnalyzer, LiveMagnitudes
from livescope.core import (
    ChromaExtractor,
    KeyEstimator,
    OnsetTracker,
    RhythmAnalyzer,
    TempoEstimator,
)
from livescope.core.spectrum import summarize_spectrum

_SEP = "-" * 72
N_BINS = 1024
POLL_BUDGET_MS = 10.0


def _hdr(title: str) -> None:
    print(f"\n{_SEP}")
    print(f"  {title}")
    print(_SEP)


def _timeit(fn, *args, warmup: int = 2, runs: int = 5, **kwargs) -> List[float]:
    """Run fn(*args, **kwargs), discard warmup iterations, return timed samples."""
    for _ in range(warmup):
        fn(*args, **kwargs)
    times = []
    for _ in range(runs):
        t0 = time.perf_counter()
        fn(*args, **kwargs)
        times.append(time.perf_counter() - t0)
    return times


def _stats(times: List[float]) -> str:
    arr = np.array(times)
    return f"mean={arr.mean()*1000:.3f} ms  min={arr.min()*1000:.3f} ms  max={arr.max()*1000:.3f} ms"


def _frames(n: int, seed: int = 42) -> List[np.ndarray]:
    """Random byte spectra with a loud frame every fourth poll."""
    rng = np.random.RandomState(seed)
    frames = []
    for i in range(n):
        level = 220 if i % 4 == 0 else 40
        frames.append(rng.randint(0, level, N_BINS).astype(np.uint8))
    return frames


def _onsets(n: int, interval_ms: float = 500.0, jitter_ms: float = 15.0) -> np.ndarray:
    rng = np.random.RandomState(7)
    return np.arange(n) * interval_ms + rng.uniform(-jitter_ms, jitter_ms, n)


class _LoopSource:
    """Cycles through a list of frames, one per poll."""

    def __init__(self, frames: List[np.ndarray]):
        self._frames = frames
        self._i = 0

    def get_frame(self) -> CapturedFrame:
        frame = self._frames[self._i % len(self._frames)]
        self._i += 1
        return CapturedFrame(
            connected=True,
            payload=LiveMagnitudes(magnitudes=frame),
            sample_timestamp=float(self._i),
        )


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main() -> None:
    parser = argparse.ArgumentParser(description="Livescope estimator benchmark")
    parser.add_argument(
        "--quick",
        action="store_true",
        help="Fewer runs for fast CI checks",
    )
    args = parser.parse_args()

    if args.quick:
        WARMUP, RUNS = 5, 30
        label = "quick mode"
    else:
        WARMUP, RUNS = 20, 200
        label = "full mode"

    print(f"\nLivescope Estimator Benchmark  -  {label}")
    print(f"Frame size: {N_BINS} bins  |  Warm-up runs: {WARMUP}  |  Timed runs: {RUNS}")

    frames = _frames(64)
    onsets = _onsets(100)
    results = {}

    # ------------------------------------------------------------------
    # 1. onset tracking
    # ------------------------------------------------------------------
    _hdr("1. OnsetTracker.process")
    tracker = OnsetTracker()
    counter = iter(range(10**9))
    t = _timeit(lambda: tracker.process(frames[next(counter) % len(frames)], 0.0),
                warmup=WARMUP, runs=RUNS)
    results["onset_process"] = t
    print(f"  {_stats(t)}")

    # ------------------------------------------------------------------
    # 2. chroma + key
    # ------------------------------------------------------------------
    _hdr("2. ChromaExtractor.extract")
    extractor = ChromaExtractor()
    t = _timeit(extractor.extract, frames[0], warmup=WARMUP, runs=RUNS)
    results["chroma_extract"] = t
    print(f"  {_stats(t)}")

    _hdr("3. KeyEstimator.estimate (84 candidates)")
    chroma = extractor.extract(frames[0])
    t = _timeit(KeyEstimator().estimate, chroma, warmup=WARMUP, runs=RUNS)
    results["key_estimate"] = t
    print(f"  {_stats(t)}")

    # ------------------------------------------------------------------
    # 4. tempo + rhythm on a full history
    # ------------------------------------------------------------------
    _hdr("4. TempoEstimator.estimate (100 onsets)")
    t = _timeit(TempoEstimator().estimate, onsets, warmup=WARMUP, runs=RUNS)
    results["tempo_estimate"] = t
    print(f"  {_stats(t)}")

    _hdr("5. RhythmAnalyzer.analyze (100 onsets)")
    t = _timeit(RhythmAnalyzer().analyze, onsets, warmup=WARMUP, runs=RUNS)
    results["rhythm_analyze"] = t
    print(f"  {_stats(t)}")

    _hdr("6. summarize_spectrum")
    t = _timeit(summarize_spectrum, frames[0], warmup=WARMUP, runs=RUNS)
    results["spectrum_summary"] = t
    print(f"  {_stats(t)}")

    # ------------------------------------------------------------------
    # 7. full poll through the facade (cache disabled by clearing)
    # ------------------------------------------------------------------
    _hdr("7. LiveAnalyzer.get_advanced_analysis (uncached poll)")
    analyzer = LiveAnalyzer(_LoopSource(frames))

    def _poll():
        analyzer.clear_cache()
        return analyzer.get_advanced_analysis()

    t = _timeit(_poll, warmup=WARMUP, runs=RUNS)
    results["advanced_poll"] = t
    print(f"  {_stats(t)}")

    # ------------------------------------------------------------------
    # Poll budget
    # ------------------------------------------------------------------
    _hdr(f"Poll budget (mean poll must stay under {POLL_BUDGET_MS:.0f} ms)")
    poll_ms = float(np.mean(results["advanced_poll"]) * 1000)
    if poll_ms <= POLL_BUDGET_MS:
        print(f"  {poll_ms:.3f} ms  [PASS]")
    else:
        print(f"  {poll_ms:.3f} ms  [FAIL]")
        print("\n  !! Poll exceeds budget; the instrument refresh will lag !!")
        sys.exit(1)

    # ------------------------------------------------------------------
    # Summary table
    # ------------------------------------------------------------------
    _hdr("Summary")
    rows = [(name, f"{np.mean(times)*1000:.3f}") for name, times in results.items()]

    name_w = max(len(r[0]) for r in rows) + 2
    print(f"  {'Function':<{name_w}} Time (ms, mean)")
    print(f"  {'-'*name_w} ---------------")
    for name, val in rows:
        print(f"  {name:<{name_w}} {val}")

    print()
    print(analyzer.monitor.report())
    print(f"\n{_SEP}\n")


if __name__ == "__main__":
    main()
