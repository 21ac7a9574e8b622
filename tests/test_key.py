"""Tests for Krumhansl-Schmuckler key detection."""

import numpy as np
import pytest

from livescope.core.key import (
    MAJOR_PROFILE,
    MISSING_CHARACTERISTIC_PENALTY,
    SCALE_NAMES,
    SCALE_PRIORS,
    SCALE_PROFILES,
    TOP_PITCH_BOOST,
    UNTONAL_KEY,
    KeyEstimator,
    KeyReport,
    cosine_similarity,
    rotate_profile,
)

C_MAJOR = [0.9, 0.1, 0.2, 0.1, 0.8, 0.3, 0.1, 0.75, 0.2, 0.1, 0.2, 0.1]
A_MINOR = [0.7, 0.1, 0.2, 0.1, 0.75, 0.2, 0.1, 0.3, 0.1, 0.85, 0.1, 0.2]
D_DORIAN = [0.6, 0.1, 0.7, 0.2, 0.8, 0.3, 0.1, 0.2, 0.1, 0.7, 0.1, 0.2]
AMBIGUOUS = [0.8, 0.1, 0.2, 0.1, 0.8, 0.2, 0.1, 0.6, 0.1, 0.8, 0.1, 0.2]


@pytest.fixture
def estimator():
    return KeyEstimator()


class TestHelpers:
    def test_rotate_by_zero_is_identity(self):
        np.testing.assert_array_equal(rotate_profile(MAJOR_PROFILE, 0), MAJOR_PROFILE)

    def test_rotate_wraps_at_twelve(self):
        np.testing.assert_array_equal(rotate_profile(MAJOR_PROFILE, 12), MAJOR_PROFILE)
        np.testing.assert_array_equal(
            rotate_profile(MAJOR_PROFILE, 14), rotate_profile(MAJOR_PROFILE, 2)
        )

    def test_rotate_moves_index_to_front(self):
        p = np.arange(12)
        rotated = rotate_profile(p, 5)
        assert rotated[0] == 5
        assert all(rotated[i] == p[(i + 5) % 12] for i in range(12))

    def test_cosine_of_self_is_one(self):
        v = np.array(C_MAJOR)
        assert cosine_similarity(v, v) == pytest.approx(1.0)

    def test_cosine_of_orthogonal_is_zero(self):
        a = np.eye(12)[0]
        b = np.eye(12)[5]
        assert cosine_similarity(a, b) == 0.0

    def test_cosine_of_zero_vector_is_zero(self):
        assert cosine_similarity(np.zeros(12), np.ones(12)) == 0.0


class TestProfiles:
    def test_seven_scales(self):
        assert SCALE_NAMES == (
            "major", "minor", "dorian", "phrygian", "lydian", "mixolydian", "locrian"
        )

    def test_profiles_are_read_only(self):
        with pytest.raises(ValueError):
            SCALE_PROFILES["major"][0] = 0.0

    def test_modes_are_rotations_of_major(self):
        np.testing.assert_array_equal(
            SCALE_PROFILES["mixolydian"], rotate_profile(MAJOR_PROFILE, 7)
        )

    def test_estimator_profiles_sum_to_one(self, estimator):
        for profile in estimator.profiles.values():
            assert profile.sum() == pytest.approx(1.0)


class TestKnownKeys:
    def test_c_major(self, estimator):
        report = estimator.estimate(C_MAJOR)
        assert report.key == "C"
        assert report.scale == "major"
        assert report.confidence > 0.7

    def test_a_minor(self, estimator):
        report = estimator.estimate(A_MINOR)
        assert report.key == "A"
        assert report.scale == "minor"
        assert report.confidence > 0.7

    def test_pure_triad(self, estimator):
        chroma = np.zeros(12)
        chroma[[0, 4, 7]] = [0.4, 0.3, 0.3]
        report = estimator.estimate(chroma)
        assert report.label == "C major"
        assert report.confidence > 0.7

    def test_modal_input_resolves_to_shared_pitch_set(self, estimator):
        # D dorian, A aeolian and C major share one pitch set
        report = estimator.estimate(D_DORIAN)
        assert report.key in ("D", "A", "C")
        assert report.confidence > 0.5

    def test_scale_is_known(self, estimator):
        assert estimator.estimate(D_DORIAN).scale in SCALE_NAMES


class TestBareTriad:
    @pytest.mark.parametrize("floor", [0.0, 0.01, 0.02, 0.05])
    def test_triad_over_quiet_background(self, estimator, floor):
        chroma = np.full(12, floor)
        chroma[[0, 4, 7]] = 1.0
        report = estimator.estimate(chroma)
        assert report.label == "C major"
        assert report.confidence > 0.7

    def test_modes_without_their_degree_are_discounted(self, estimator):
        chroma = np.zeros(12)
        chroma[[0, 4, 7]] = 1.0
        scores = {(s, t): score for score, s, t in estimator.score_candidates(chroma)}
        # E phrygian and G mixolydian share the C major pitch set but lack F
        expected = scores[("major", 0)] / SCALE_PRIORS["major"] * MISSING_CHARACTERISTIC_PENALTY
        assert scores[("phrygian", 4)] == pytest.approx(expected)
        assert scores[("mixolydian", 7)] == pytest.approx(expected)

    def test_sounding_characteristic_degree_is_not_discounted(self, estimator):
        chroma = np.zeros(12)
        chroma[[0, 4, 5, 7]] = 1.0  # F sounds: phrygian b2 of E
        scores = {(s, t): score for score, s, t in estimator.score_candidates(chroma)}
        raw = cosine_similarity(rotate_profile(chroma, 4), estimator.profiles["phrygian"])
        assert scores[("phrygian", 4)] == pytest.approx(raw * TOP_PITCH_BOOST[1])

    def test_runner_up_below_winner(self, estimator):
        chroma = np.zeros(12)
        chroma[[0, 4, 7]] = 1.0
        report = estimator.estimate(chroma)
        assert all(alt.confidence < report.confidence for alt in report.alternatives)


class TestConfidence:
    def test_bounds(self, estimator):
        for chroma in (C_MAJOR, A_MINOR, D_DORIAN, AMBIGUOUS):
            report = estimator.estimate(chroma)
            assert 0.0 <= report.confidence <= 1.0

    def test_ambiguous_input_has_moderate_confidence(self, estimator):
        report = estimator.estimate(AMBIGUOUS)
        assert report.label == "C major"
        assert 0.5 < report.confidence < 0.85

    def test_low_energy_falls_back(self, estimator):
        chroma = np.zeros(12)
        chroma[9] = 0.05
        assert estimator.estimate(chroma) == UNTONAL_KEY
        assert UNTONAL_KEY.label == "C major"
        assert UNTONAL_KEY.confidence == 0.1

    def test_silence_falls_back(self, estimator):
        report = estimator.estimate(np.zeros(12))
        assert report.confidence < 0.4
        assert report.alternatives == ()


class TestAlternatives:
    def test_three_alternatives(self, estimator):
        report = estimator.estimate(AMBIGUOUS)
        assert len(report.alternatives) == 3

    def test_sorted_descending(self, estimator):
        alts = estimator.estimate(AMBIGUOUS).alternatives
        confidences = [a.confidence for a in alts]
        assert confidences == sorted(confidences, reverse=True)

    def test_alternatives_are_valid(self, estimator):
        for alt in estimator.estimate(AMBIGUOUS).alternatives:
            assert 0.0 <= alt.confidence <= 1.0
            assert alt.scale in SCALE_NAMES
            assert alt.key

    def test_relative_minor_is_considered(self, estimator):
        ranked = estimator.score_candidates(A_MINOR)
        assert len(ranked) == 84
        assert (ranked[0][1], ranked[0][2]) == ("minor", 9)

    def test_scores_sorted(self, estimator):
        scores = [c[0] for c in estimator.score_candidates(C_MAJOR)]
        assert scores == sorted(scores, reverse=True)


class TestValidation:
    def test_wrong_length_rejected(self, estimator):
        with pytest.raises(ValueError):
            estimator.estimate([0.5] * 11)


def test_report_to_dict(estimator):
    data = estimator.estimate(C_MAJOR).to_dict()
    assert data["key"] == "C"
    assert data["scale"] == "major"
    assert len(data["alternatives"]) == 3
    assert set(data["alternatives"][0]) == {"key", "scale", "confidence"}


def test_report_default_alternatives():
    assert KeyReport(key="G", scale="lydian", confidence=0.4).alternatives == ()
