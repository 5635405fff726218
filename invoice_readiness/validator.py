"""
Rule aggregation and gap synthesis.

This module runs all rule checks over a dataset, averages their scores into
one rules score, and turns missing required fields and failed findings into
the human-readable gap list of a readiness report.
"""

import math
import time
from collections import Counter
from typing import Any, Mapping, Optional

from .config import logger
from .exceptions import InputError
from .gets import GETS_SCHEMA, GetsSchema
from .rules import VALIDATION_RULES, ValidationRule, get_rule
from .schemas import CoverageResult, ReadinessReport, RuleFinding, RulesSummary
from .scoring import round_half_up


def run_all_rule_checks(
    rows: list[Mapping[str, Any]],
    rules: Optional[tuple[ValidationRule, ...]] = None,
    schema: GetsSchema = GETS_SCHEMA,
) -> RulesSummary:
    """
    Run every rule check over a dataset and aggregate the outcome.

    Findings are concatenated in rule execution order. The rules score is the
    rounded mean of the finite per-rule scores.

    Args:
        rows: Source rows (flat or nested); must be a non-empty list
        rules: Optional rules to apply (defaults to all VALIDATION_RULES)
        schema: Canonical schema used to resolve field names

    Returns:
        RulesSummary with all findings, the rules score and per-rule scores

    Raises:
        InputError: If rows is not a non-empty list
    """
    if not isinstance(rows, list) or not rows:
        raise InputError("Invalid data: must be a non-empty array")

    if rules is None:
        rules = VALIDATION_RULES

    start = time.perf_counter()

    findings: list[RuleFinding] = []
    individual_scores: dict[str, int] = {}

    for rule in rules:
        result = rule.check(rows, schema)
        findings.extend(result.findings)
        individual_scores[rule.code.value.lower()] = result.score

    scores = [s for s in individual_scores.values() if math.isfinite(s)]
    rules_score = round_half_up(sum(scores) / len(scores)) if scores else 0

    elapsed_ms = int((time.perf_counter() - start) * 1000)
    failed = sum(1 for f in findings if not f.ok)
    logger.info(
        f"Rule checks complete on {len(rows)} rows: score {rules_score}, "
        f"{failed} failing finding(s)"
    )

    return RulesSummary(
        rule_findings=findings,
        rules_score=rules_score,
        individual_scores=individual_scores,
        processing_time_ms=elapsed_ms,
    )


def synthesize_gaps(
    coverage: CoverageResult,
    rule_findings: list[RuleFinding],
    schema: GetsSchema = GETS_SCHEMA,
) -> list[str]:
    """
    Build the gap list of a report.

    Missing required fields come first, in coverage order. Then every failing
    finding adds its rule's gap sentence, so a rule failing on three rows
    contributes three gaps.

    Args:
        coverage: Result of field detection
        rule_findings: Findings from run_all_rule_checks
        schema: Schema deciding which fields are required

    Returns:
        Ordered list of gap strings
    """
    required = set(schema.required_paths)
    gaps = [
        f"Missing required field: {path}"
        for path in coverage.missing
        if path in required
    ]

    for finding in rule_findings:
        if finding.ok:
            continue
        rule = get_rule(finding.rule)
        if rule is None:
            continue
        gaps.append(rule.gap.format(value=finding.value or "unknown"))

    return gaps


def get_top_gaps(gaps: list[str], n: int = 5) -> list[tuple[str, int]]:
    """
    Get the N most frequent gaps with their counts.

    Args:
        gaps: Gap list from synthesize_gaps
        n: Number of gaps to return

    Returns:
        List of (gap, count) tuples, most frequent first
    """
    return Counter(gaps).most_common(n)


def format_report_text(report: ReadinessReport) -> str:
    """
    Format a ReadinessReport as human-readable text for CLI output.

    Args:
        report: ReadinessReport to format

    Returns:
        Formatted string for display
    """
    scores = report.scores
    lines = [
        "=" * 50,
        "READINESS REPORT",
        "=" * 50,
        f"Report ID:      {report.report_id}",
        f"Rows parsed:    {report.meta.rows_parsed}",
        f"Line items:     {report.meta.lines_total}",
        f"Country / ERP:  {report.meta.country} / {report.meta.erp}",
        "",
        f"Data score:     {scores.data}",
        f"Coverage score: {scores.coverage}",
        f"Rules score:    {scores.rules}",
        f"Posture score:  {scores.posture}",
        f"Overall score:  {scores.overall} ({report.meta.readiness_label})",
        "",
        f"Coverage: {len(report.coverage.matched)} matched, "
        f"{len(report.coverage.close)} close, {len(report.coverage.missing)} missing",
        "",
    ]

    if report.coverage.close:
        lines.append("Close Matches:")
        lines.append("-" * 40)
        for item in report.coverage.close:
            lines.append(f"  {item.target} <- {item.candidate} ({item.confidence:.2f})")
        lines.append("")

    if report.gaps:
        lines.append("Top Gaps:")
        lines.append("-" * 40)
        for gap, count in get_top_gaps(report.gaps):
            suffix = f" (x{count})" if count > 1 else ""
            lines.append(f"  {gap}{suffix}")
        lines.append("")

    lines.append("=" * 50)

    return "\n".join(lines)
