"""
Tests for the validator module.

These tests verify rule aggregation, gap synthesis and report formatting.
"""

import pytest

from invoice_readiness.analyzer import analyze_dataset
from invoice_readiness.config import RuleCode
from invoice_readiness.exceptions import InputError
from invoice_readiness.rules import VALIDATION_RULES
from invoice_readiness.schemas import CoverageResult, RuleFinding
from invoice_readiness.validator import (
    format_report_text,
    get_top_gaps,
    run_all_rule_checks,
    synthesize_gaps,
)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def scenario_rows() -> list:
    """One flat invoice with a blank seller TRN and no line items."""
    return [{
        "invoice_id": "A1",
        "date": "2025-01-31",
        "currency": "USD",
        "total_excl_vat": 100,
        "vat_amount": 5,
        "total_incl_vat": 105,
        "seller_trn": "",
        "buyer_trn": "T1",
    }]


# ============================================================================
# Rule Aggregation
# ============================================================================

class TestRunAllRuleChecks:
    """Tests for running all rules over a dataset."""

    @pytest.mark.parametrize("rows", [[], None, "not rows", {"invoice_id": "A1"}])
    def test_invalid_input_raises(self, rows):
        with pytest.raises(InputError, match="non-empty array"):
            run_all_rule_checks(rows)

    def test_scenario(self, scenario_rows):
        summary = run_all_rule_checks(scenario_rows)

        assert summary.rules_score == 60
        assert summary.individual_scores == {
            "totals_balance": 100,
            "line_math": 0,
            "date_iso": 100,
            "currency_allowed": 100,
            "trn_present": 0,
        }

        by_rule = {}
        for finding in summary.rule_findings:
            by_rule.setdefault(finding.rule, []).append(finding)

        assert by_rule[RuleCode.LINE_MATH][0].message == "No line items found"
        trn = by_rule[RuleCode.TRN_PRESENT]
        assert len(trn) == 1
        assert trn[0].ok is False
        assert trn[0].example_line == 1
        assert "seller.trn" in trn[0].message
        assert "buyer.trn" not in trn[0].message

    def test_findings_in_rule_order(self, scenario_rows):
        summary = run_all_rule_checks(scenario_rows)
        assert [f.rule for f in summary.rule_findings] == [
            RuleCode.TOTALS_BALANCE,
            RuleCode.LINE_MATH,
            RuleCode.DATE_ISO,
            RuleCode.CURRENCY_ALLOWED,
            RuleCode.TRN_PRESENT,
        ]

    def test_every_rule_reports(self, scenario_rows):
        summary = run_all_rule_checks(scenario_rows)
        reported = {f.rule for f in summary.rule_findings}
        assert reported == {rule.code for rule in VALIDATION_RULES}

    def test_subset_of_rules(self, scenario_rows):
        summary = run_all_rule_checks(scenario_rows, rules=VALIDATION_RULES[:1])
        assert summary.rules_score == 100
        assert list(summary.individual_scores) == ["totals_balance"]

    def test_scores_in_range(self):
        rows = [{"zzz": 1}, {"qqq": "x"}]
        summary = run_all_rule_checks(rows)
        assert 0 <= summary.rules_score <= 100
        assert summary.processing_time_ms >= 0


# ============================================================================
# Gap Synthesis
# ============================================================================

class TestSynthesizeGaps:
    """Tests for turning coverage and findings into gap strings."""

    def test_only_required_missing_fields(self):
        coverage = CoverageResult(missing=["seller.city", "buyer.trn", "lines[].description"])
        assert synthesize_gaps(coverage, []) == ["Missing required field: buyer.trn"]

    def test_one_gap_per_failing_finding(self):
        findings = [
            RuleFinding(rule=RuleCode.TOTALS_BALANCE, ok=False, example_line=1),
            RuleFinding(rule=RuleCode.TOTALS_BALANCE, ok=False, example_line=2),
            RuleFinding(rule=RuleCode.DATE_ISO, ok=True),
        ]
        gaps = synthesize_gaps(CoverageResult(), findings)
        assert gaps == [
            "Invoice totals do not balance correctly",
            "Invoice totals do not balance correctly",
        ]

    def test_currency_gap_names_value(self):
        findings = [
            RuleFinding(rule=RuleCode.CURRENCY_ALLOWED, ok=False, value="EUR"),
            RuleFinding(rule=RuleCode.CURRENCY_ALLOWED, ok=False),
        ]
        gaps = synthesize_gaps(CoverageResult(), findings)
        assert gaps == ["Invalid currency: EUR", "Invalid currency: unknown"]

    def test_missing_fields_come_first(self):
        coverage = CoverageResult(missing=["invoice.currency"])
        findings = [RuleFinding(rule=RuleCode.TRN_PRESENT, ok=False)]
        assert synthesize_gaps(coverage, findings) == [
            "Missing required field: invoice.currency",
            "Missing Tax Registration Numbers (TRN)",
        ]

    def test_no_gaps(self):
        findings = [RuleFinding(rule=rule.code, ok=True) for rule in VALIDATION_RULES]
        assert synthesize_gaps(CoverageResult(), findings) == []

    def test_top_gaps(self):
        gaps = ["a", "b", "a", "c", "a", "b"]
        assert get_top_gaps(gaps, n=2) == [("a", 3), ("b", 2)]


# ============================================================================
# Report Formatting
# ============================================================================

class TestFormatReportText:
    """Tests for the CLI report rendering."""

    def test_contains_scores_and_gaps(self, scenario_rows):
        report = analyze_dataset(scenario_rows, country="UAE", erp="SAP")
        text = format_report_text(report)

        assert "READINESS REPORT" in text
        assert f"Rules score:    {report.scores.rules}" in text
        assert f"Overall score:  {report.scores.overall} ({report.meta.readiness_label})" in text
        assert "UAE / SAP" in text
        for gap, _ in get_top_gaps(report.gaps):
            assert gap in text

    def test_only_top_gaps_listed(self, scenario_rows):
        report = analyze_dataset(scenario_rows)
        gaps = [f"Gap {i}" for i in range(7)] + ["Gap 0"]
        text = format_report_text(report.model_copy(update={"gaps": gaps}))

        assert "Gap 0 (x2)" in text
        assert "Gap 4" in text
        assert "Gap 6" not in text

    def test_trn_gap_listed(self, scenario_rows):
        report = analyze_dataset(scenario_rows)
        gaps = ["Missing Tax Registration Numbers (TRN)"]
        text = format_report_text(report.model_copy(update={"gaps": gaps}))

        assert "  Missing Tax Registration Numbers (TRN)" in text
