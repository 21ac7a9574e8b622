"""
Key detection by Krumhansl-Schmuckler profile correlation.

The chroma vector is rotated to each of the 12 candidate tonics and compared
against seven scale profiles by cosine similarity. Raw scores are then
nudged toward readings a listener would pick first:

* tonics that are among the three loudest pitch classes get a boost, so
  relative keys sharing one pitch set resolve toward the sounding root;
* major and dorian, the most common scales in live-coded patterns, get a
  small prior;
* a church mode whose characteristic degree is silent is discounted.

The profiles for the church modes are the major profile rotated to the
mode's degree of its parent major scale.
"""

from dataclasses import dataclass, field
from typing import Any, Sequence

import numpy as np

from livescope.config import DEFAULT_CONFIG, EngineConfig
from livescope.core.chroma import CHROMA_NAMES


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------

# Krumhansl & Kessler probe-tone ratings
MAJOR_PROFILE = np.array(
    [6.35, 2.23, 3.48, 2.33, 4.38, 4.09, 2.52, 5.19, 2.39, 3.66, 2.29, 2.88]
)
MINOR_PROFILE = np.array(
    [6.33, 2.68, 3.52, 5.38, 2.60, 3.53, 2.54, 4.75, 3.98, 2.69, 3.34, 3.17]
)

# Degree of the parent major scale each mode starts on
_MODE_DEGREES = {
    "dorian": 2,
    "phrygian": 4,
    "lydian": 5,
    "mixolydian": 7,
    "locrian": 11,
}

# Multipliers by rank among the three loudest pitch classes
TOP_PITCH_BOOST = (1.075, 1.075, 1.075)
SCALE_PRIORS = {"major": 1.03, "dorian": 1.015}

# Semitones above the tonic that set each mode apart from its parent scale
CHARACTERISTIC_DEGREES = {
    "dorian": 9,
    "phrygian": 1,
    "lydian": 6,
    "mixolydian": 10,
    "locrian": 6,
}
# Share of the loudest pitch class below which a characteristic degree is silent
CHARACTERISTIC_PRESENCE = 0.1
MISSING_CHARACTERISTIC_PENALTY = 0.9

N_ALTERNATIVES = 3


def rotate_profile(profile: Sequence[float], steps: int) -> np.ndarray:
    """
    Rotate a 12-bin vector so index ``steps`` lands on index 0.

    ``rotated[i] = profile[(i + steps) mod 12]``.
    """
    return np.roll(np.asarray(profile, dtype=np.float64), -(steps % 12))


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Normalized dot product; 0 when either vector has no energy."""
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    norm = np.linalg.norm(a) * np.linalg.norm(b)
    if norm == 0:
        return 0.0
    return float(np.dot(a, b) / norm)


def _build_profiles() -> dict[str, np.ndarray]:
    profiles = {"major": MAJOR_PROFILE, "minor": MINOR_PROFILE}
    for mode, degree in _MODE_DEGREES.items():
        profiles[mode] = rotate_profile(MAJOR_PROFILE, degree)
    for prof in profiles.values():
        prof.setflags(write=False)
    return profiles


SCALE_PROFILES = _build_profiles()
SCALE_NAMES = tuple(SCALE_PROFILES)


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class KeyCandidate:
    """A runner-up key reading."""

    key: str
    scale: str
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return {"key": self.key, "scale": self.scale, "confidence": self.confidence}


@dataclass(frozen=True)
class KeyReport:
    """
    Most likely key plus ranked alternatives.

    ``confidence`` blends the winner's score with its margin over the
    runner-up. Alternatives carry their biased score clipped to [0, 1], so
    a close runner-up can show a higher number than the winner's blended
    confidence; rank, not the number, says which reading won.
    """

    key: str          # e.g. "F#"
    scale: str        # one of SCALE_NAMES
    confidence: float # [0,1]
    alternatives: tuple[KeyCandidate, ...] = field(default_factory=tuple)

    @property
    def label(self) -> str:
        return f"{self.key} {self.scale}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "scale": self.scale,
            "confidence": self.confidence,
            "alternatives": [alt.to_dict() for alt in self.alternatives],
        }


UNTONAL_KEY = KeyReport(key="C", scale="major", confidence=0.1)


# ---------------------------------------------------------------------------
# Estimator
# ---------------------------------------------------------------------------

class KeyEstimator:
    """
    Scores all 84 (scale, tonic) pairs against a chroma vector.

    Example:
        >>> report = KeyEstimator().estimate(chroma)
        >>> report.label
        'A minor'
    """

    def __init__(self, energy_floor: float = 0.1):
        """
        Args:
            energy_floor: Total chroma energy below which the input is
                considered atonal and a low-confidence C major is returned.
        """
        self.energy_floor = energy_floor
        self.profiles = {
            name: prof / prof.sum() for name, prof in SCALE_PROFILES.items()
        }

    @classmethod
    def from_config(cls, config: EngineConfig = DEFAULT_CONFIG) -> "KeyEstimator":
        return cls(energy_floor=config.key_energy_floor)

    def score_candidates(self, chroma: Sequence[float]) -> list[tuple[float, str, int]]:
        """
        Biased score of every (scale, tonic) pair, best first.

        Args:
            chroma: 12-bin pitch-class energies.

        Returns:
            List of ``(score, scale_name, tonic_index)`` sorted descending.
            Ties keep profile order, then tonic order.
        """
        chroma = np.asarray(chroma, dtype=np.float64)
        # Stable sort so equal energies rank by pitch class
        top_pitches = [int(i) for i in np.argsort(-chroma, kind="stable")[:3]]
        silent = chroma < CHARACTERISTIC_PRESENCE * chroma.max()

        candidates = []
        for scale, profile in self.profiles.items():
            prior = SCALE_PRIORS.get(scale, 1.0)
            degree = CHARACTERISTIC_DEGREES.get(scale)
            for tonic in range(12):
                score = cosine_similarity(rotate_profile(chroma, tonic), profile)
                if tonic in top_pitches:
                    score *= TOP_PITCH_BOOST[top_pitches.index(tonic)]
                if degree is not None and silent[(tonic + degree) % 12]:
                    score *= MISSING_CHARACTERISTIC_PENALTY
                candidates.append((score * prior, scale, tonic))

        candidates.sort(key=lambda c: c[0], reverse=True)
        return candidates

    def estimate(self, chroma: Sequence[float]) -> KeyReport:
        """
        Detect the key of a chroma vector.

        Confidence blends the absolute strength of the winner (75 %) with
        its margin over the runner-up (25 %, saturating at a 0.1 gap).

        Args:
            chroma: 12-bin pitch-class energies, normalized or not.

        Returns:
            KeyReport with up to three alternatives.
        """
        chroma = np.asarray(chroma, dtype=np.float64)
        if chroma.shape != (12,):
            raise ValueError(f"chroma must have shape (12,), got {chroma.shape}")
        if chroma.sum() < self.energy_floor:
            return UNTONAL_KEY

        ranked = self.score_candidates(chroma)
        best_score, best_scale, best_tonic = ranked[0]
        second_score = ranked[1][0]

        separation = float(np.clip((best_score - second_score) * 10.0, 0.0, 1.0))
        confidence = float(
            np.clip(best_score * 0.75 + separation * 0.25, 0.0, 1.0)
        )

        alternatives = tuple(
            KeyCandidate(
                key=CHROMA_NAMES[tonic],
                scale=scale,
                confidence=float(np.clip(score, 0.0, 1.0)),
            )
            for score, scale, tonic in ranked[1:1 + N_ALTERNATIVES]
        )
        return KeyReport(
            key=CHROMA_NAMES[best_tonic],
            scale=best_scale,
            confidence=confidence,
            alternatives=alternatives,
        )
