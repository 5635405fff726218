"""
Score calculation for readiness reports.

- Coverage score: weighted share of canonical fields found in the dataset
- Posture score: points from the technical questionnaire
- Overall score: fixed-weight blend of data, coverage, rules and posture
- Readiness label: High / Medium / Low bucket of the overall score
"""

import math
from typing import Optional, Union

from .config import (
    CLOSE_MATCH_DISCOUNT,
    HIGH_READINESS_THRESHOLD,
    MEDIUM_READINESS_THRESHOLD,
    POSTURE_POINTS,
    SCORE_WEIGHTS,
)
from .gets import GETS_SCHEMA, GetsSchema
from .schemas import ComposedScore, CoverageResult, Questionnaire


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def clamp_score(value: float) -> int:
    """Round a raw score and clamp it to the 0-100 range (NaN counts as 0)."""
    if math.isnan(value) or value <= 0:
        return 0
    if value >= 100:
        return 100
    return round_half_up(value)


def calculate_coverage_score(
    coverage: CoverageResult,
    schema: GetsSchema = GETS_SCHEMA,
) -> int:
    """
    Convert a coverage partition into a 0-100 score.

    Matched fields earn their full weight. Close matches earn their weight
    scaled by confidence and discounted by CLOSE_MATCH_DISCOUNT. Missing
    fields earn nothing. Paths unknown to the schema weigh 1.

    Args:
        coverage: Result of field detection
        schema: Schema supplying the field weights

    Returns:
        Integer coverage score in [0, 100]
    """
    total_weight = schema.total_weight
    if total_weight <= 0:
        return 0

    matched_weight = sum(schema.weight_of(path) for path in coverage.matched)
    close_weight = sum(
        schema.weight_of(item.target) * item.confidence * CLOSE_MATCH_DISCOUNT
        for item in coverage.close
    )

    return clamp_score((matched_weight + close_weight) / total_weight * 100)


def calculate_posture_score(
    questionnaire: Optional[Union[Questionnaire, dict]] = None,
) -> int:
    """Sum the points of every positive questionnaire answer, capped at 100."""
    if questionnaire is None:
        return 0
    if isinstance(questionnaire, dict):
        questionnaire = Questionnaire.model_validate(questionnaire)

    score = sum(
        points for answer, points in POSTURE_POINTS.items()
        if getattr(questionnaire, answer, False)
    )
    return min(100, score)


def calculate_overall_score(
    data: float,
    coverage: float,
    rules: float,
    posture: float,
) -> int:
    """Blend the component scores with SCORE_WEIGHTS; result is clamped to 0-100."""
    overall = (
        data * SCORE_WEIGHTS["data"]
        + coverage * SCORE_WEIGHTS["coverage"]
        + rules * SCORE_WEIGHTS["rules"]
        + posture * SCORE_WEIGHTS["posture"]
    )
    return clamp_score(overall)


def get_readiness_label(overall_score: int) -> str:
    if overall_score >= HIGH_READINESS_THRESHOLD:
        return "High"
    if overall_score >= MEDIUM_READINESS_THRESHOLD:
        return "Medium"
    return "Low"


def compose_scores(
    data: float,
    coverage: float,
    rules: float,
    posture: float,
) -> ComposedScore:
    """
    Combine the four component scores into the overall score and its label.

    Args:
        data: Data-quality score (share of rows parsed)
        coverage: Coverage score from field detection
        rules: Averaged rule score
        posture: Questionnaire score

    Returns:
        ComposedScore with the overall score and readiness label
    """
    overall = calculate_overall_score(data, coverage, rules, posture)
    return ComposedScore(overall=overall, readiness_label=get_readiness_label(overall))
