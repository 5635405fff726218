"""
Tests for posture, overall score and readiness label calculation.
"""

import pytest

from invoice_readiness.schemas import Questionnaire
from invoice_readiness.scoring import (
    calculate_overall_score,
    calculate_posture_score,
    clamp_score,
    compose_scores,
    get_readiness_label,
    round_half_up,
)


class TestRounding:

    @pytest.mark.parametrize("value,expected", [
        (2.5, 3), (3.5, 4), (2.49, 2), (66.67, 67), (0.0, 0),
    ])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected

    @pytest.mark.parametrize("value,expected", [
        (-5, 0), (0, 0), (42.4, 42), (100, 100), (250, 100), (float("nan"), 0),
    ])
    def test_clamp_score(self, value, expected):
        assert clamp_score(value) == expected


class TestPostureScore:
    """Tests for the questionnaire score."""

    def test_no_answers(self):
        assert calculate_posture_score(None) == 0
        assert calculate_posture_score(Questionnaire()) == 0

    def test_all_answers(self):
        questionnaire = Questionnaire(webhooks=True, sandbox_env=True, retries=True)
        assert calculate_posture_score(questionnaire) == 100

    @pytest.mark.parametrize("answers,expected", [
        ({"webhooks": True}, 40),
        ({"sandbox_env": True}, 40),
        ({"retries": True}, 20),
        ({"webhooks": True, "retries": True}, 60),
    ])
    def test_partial_answers(self, answers, expected):
        assert calculate_posture_score(answers) == expected


class TestOverallScore:
    """Tests for the weighted blend."""

    def test_weighted_blend(self):
        # 80*0.25 + 60*0.35 + 60*0.30 + 40*0.10 = 63
        assert calculate_overall_score(80, 60, 60, 40) == 63

    def test_perfect(self):
        assert calculate_overall_score(100, 100, 100, 100) == 100

    def test_clamped_above(self):
        assert calculate_overall_score(1000, 1000, 1000, 1000) == 100

    def test_clamped_below(self):
        assert calculate_overall_score(-50, -50, -50, -50) == 0

    def test_nan_component(self):
        assert calculate_overall_score(float("nan"), 0, 0, 0) == 0

    def test_monotonic_in_each_component(self):
        base = calculate_overall_score(50, 50, 50, 50)
        assert calculate_overall_score(60, 50, 50, 50) >= base
        assert calculate_overall_score(50, 60, 50, 50) >= base
        assert calculate_overall_score(50, 50, 60, 50) >= base
        assert calculate_overall_score(50, 50, 50, 60) >= base


class TestReadinessLabel:

    @pytest.mark.parametrize("score,label", [
        (100, "High"), (80, "High"), (79, "Medium"), (60, "Medium"), (59, "Low"), (0, "Low"),
    ])
    def test_thresholds(self, score, label):
        assert get_readiness_label(score) == label

    def test_compose_scores(self):
        composed = compose_scores(data=100, coverage=100, rules=60, posture=0)
        # 25 + 35 + 18 + 0
        assert composed.overall == 78
        assert composed.readiness_label == "Medium"
