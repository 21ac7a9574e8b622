"""
Engine configuration.

A single immutable config object carries every tunable constant of the
analysis engine so estimators, the cache and the facade agree on them.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class EngineConfig:
    """
    Tunable constants for the live analysis engine.

    Attributes:
        sample_rate: Source sample rate in Hz. Bin *i* of an N-bin frame
            covers ``(i / N) * sample_rate / 2``.
        onset_threshold: Normalized spectral flux above which a frame is
            counted as an onset.
        history_size: Capacity of the onset history FIFO.
        chroma_min_hz: Lowest frequency folded into the chroma vector.
        chroma_max_hz: Highest frequency folded into the chroma vector.
        min_bpm: Lowest plausible tempo; slower estimates are rejected.
        max_bpm: Highest plausible tempo; faster estimates are rejected.
        min_tempo_onsets: Onsets needed before a tempo is estimated.
        key_energy_floor: Total chroma energy below which key detection
            falls back to a low-confidence C major.
        pattern_slots: Width of the rhythm pattern string.
        cache_ttl_ms: Lifetime of a cached report, tied to the poll cadence.
        max_workers: Thread pool size for the composite analysis.

    Example:
        >>> config = EngineConfig(onset_threshold=0.25, cache_ttl_ms=100.0)
        >>> analyzer = LiveAnalyzer(source, config=config)
    """

    sample_rate: int = 44100
    onset_threshold: float = 0.3
    history_size: int = 100
    chroma_min_hz: float = 20.0
    chroma_max_hz: float = 4000.0
    min_bpm: float = 40.0
    max_bpm: float = 200.0
    min_tempo_onsets: int = 4
    key_energy_floor: float = 0.1
    pattern_slots: int = 16
    cache_ttl_ms: float = 50.0
    max_workers: int = 3

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {self.sample_rate}")
        if not 0.0 <= self.onset_threshold <= 1.0:
            raise ValueError(
                f"onset_threshold must lie in [0, 1], got {self.onset_threshold}"
            )
        if self.history_size <= 0:
            raise ValueError(f"history_size must be positive, got {self.history_size}")
        if not 0.0 < self.chroma_min_hz < self.chroma_max_hz:
            raise ValueError(
                f"chroma range must satisfy 0 < min < max, "
                f"got ({self.chroma_min_hz}, {self.chroma_max_hz})"
            )
        if not 0.0 < self.min_bpm < self.max_bpm:
            raise ValueError(
                f"tempo bounds must satisfy 0 < min < max, "
                f"got ({self.min_bpm}, {self.max_bpm})"
            )
        if self.min_tempo_onsets < 2:
            raise ValueError(
                f"min_tempo_onsets must be at least 2, got {self.min_tempo_onsets}"
            )
        if self.key_energy_floor < 0.0:
            raise ValueError(
                f"key_energy_floor must be non-negative, got {self.key_energy_floor}"
            )
        if self.pattern_slots <= 0:
            raise ValueError(f"pattern_slots must be positive, got {self.pattern_slots}")
        if self.cache_ttl_ms < 0.0:
            raise ValueError(f"cache_ttl_ms must be non-negative, got {self.cache_ttl_ms}")
        if self.max_workers <= 0:
            raise ValueError(f"max_workers must be positive, got {self.max_workers}")


DEFAULT_CONFIG = EngineConfig()
"""Defaults matching a 44.1 kHz instrument polled every 50 ms."""
