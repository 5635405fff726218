"""
End-to-end readiness analysis of one dataset.

The analyzer runs field detection on a sample row, the rule checks over all
rows, combines their scores with the externally supplied data-quality and
posture inputs, and returns a single immutable ReadinessReport. It does no
I/O of its own; loading rows and storing the report belong to the caller.
"""

import time
import uuid
from typing import Any, Mapping, Optional, Union

from .config import DEFAULT_COUNTRY, DEFAULT_ERP, logger
from .detector import detect_fields
from .exceptions import InputError
from .gets import GETS_SCHEMA, GetsSchema
from .loader import calculate_data_score, limit_rows, parse_data
from .rows import count_total_lines
from .schemas import Questionnaire, ReadinessReport, ReportMeta, Scores
from .scoring import (
    calculate_coverage_score,
    calculate_posture_score,
    clamp_score,
    compose_scores,
)
from .validator import run_all_rule_checks, synthesize_gaps


def generate_report_id() -> str:
    """Return a fresh report identifier such as ``r_1a2b3c4d5e6f``."""
    return f"r_{uuid.uuid4().hex[:12]}"


def analyze_dataset(
    rows: list[Mapping[str, Any]],
    questionnaire: Optional[Union[Questionnaire, dict]] = None,
    data_score: int = 100,
    rows_parsed: Optional[int] = None,
    country: str = DEFAULT_COUNTRY,
    erp: str = DEFAULT_ERP,
    schema: GetsSchema = GETS_SCHEMA,
) -> ReadinessReport:
    """
    Analyze a parsed dataset and build its readiness report.

    Args:
        rows: Parsed source rows (flat or nested); must be non-empty.
            Only the first MAX_ROWS rows are analyzed
        questionnaire: Technical posture answers; no answers scores 0
        data_score: Data-quality score from the loader (share of rows parsed)
        rows_parsed: Rows reported in the metadata (defaults to len(rows))
        country: Country the invoices are issued in, for the metadata
        erp: Source ERP system, for the metadata
        schema: Canonical schema to analyze against

    Returns:
        ReadinessReport with scores, coverage, findings, gaps and metadata

    Raises:
        InputError: If rows is not a non-empty list
    """
    if not isinstance(rows, list) or not rows:
        raise InputError("No valid data to analyze")

    # Rows beyond MAX_ROWS are dropped and cost data score, as in the loader
    original_length = len(rows)
    rows = limit_rows(rows)
    if len(rows) < original_length:
        data_score = min(data_score, calculate_data_score(original_length, len(rows)))
        rows_parsed = len(rows)

    start = time.perf_counter()

    coverage = detect_fields(rows, schema)
    coverage_score = calculate_coverage_score(coverage, schema)

    rule_results = run_all_rule_checks(rows, schema=schema)
    posture_score = calculate_posture_score(questionnaire)
    data = clamp_score(data_score)

    composed = compose_scores(
        data=data,
        coverage=coverage_score,
        rules=rule_results.rules_score,
        posture=posture_score,
    )

    scores = Scores(
        data=data,
        coverage=coverage_score,
        rules=rule_results.rules_score,
        posture=posture_score,
        overall=composed.overall,
    )

    gaps = synthesize_gaps(coverage, rule_results.rule_findings, schema)

    meta = ReportMeta(
        rows_parsed=len(rows) if rows_parsed is None else rows_parsed,
        lines_total=count_total_lines(rows),
        country=country,
        erp=erp,
        processing_time_ms=int((time.perf_counter() - start) * 1000),
        readiness_label=composed.readiness_label,
    )

    report = ReadinessReport(
        report_id=generate_report_id(),
        scores=scores,
        coverage=coverage,
        rule_findings=rule_results.rule_findings,
        gaps=gaps,
        meta=meta,
    )

    logger.info(
        f"Report {report.report_id}: overall {scores.overall} "
        f"({composed.readiness_label}), {len(gaps)} gap(s)"
    )

    return report


def analyze_content(
    content: str,
    file_type: Optional[str] = None,
    questionnaire: Optional[Union[Questionnaire, dict]] = None,
    country: str = DEFAULT_COUNTRY,
    erp: str = DEFAULT_ERP,
) -> ReadinessReport:
    """
    Parse raw CSV/JSON text and analyze it in one step.

    The loader's data score and parsed row count feed the report.

    Raises:
        DataParseError: If the content cannot be parsed
    """
    dataset = parse_data(content, file_type)
    return analyze_dataset(
        dataset.rows,
        questionnaire=questionnaire,
        data_score=dataset.data_score,
        rows_parsed=dataset.parsed_length,
        country=country,
        erp=erp,
    )
