"""
E-Invoicing Readiness Analyzer

A Python service that measures how ready a CSV/JSON invoice export is for the
GETS e-invoicing schema: field coverage, business-rule checks and a weighted
readiness score with human-readable gaps.
"""

__version__ = "0.1.0"
__author__ = "Invoice Readiness Team"

from .analyzer import analyze_content, analyze_dataset
from .detector import detect_fields
from .exceptions import DataParseError, InputError
from .gets import GETS_SCHEMA, CanonicalField, GetsSchema
from .inference import infer_type
from .loader import parse_data
from .schemas import CoverageResult, ReadinessReport, RuleFinding, RulesSummary
from .scoring import calculate_coverage_score, compose_scores
from .validator import run_all_rule_checks, synthesize_gaps

__all__ = [
    "GETS_SCHEMA",
    "CanonicalField",
    "GetsSchema",
    "CoverageResult",
    "ReadinessReport",
    "RuleFinding",
    "RulesSummary",
    "InputError",
    "DataParseError",
    "infer_type",
    "detect_fields",
    "calculate_coverage_score",
    "run_all_rule_checks",
    "compose_scores",
    "synthesize_gaps",
    "analyze_dataset",
    "analyze_content",
    "parse_data",
]
