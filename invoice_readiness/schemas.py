"""
Pydantic models for coverage, rule findings and readiness reports.

This module defines the data structures returned by the analyzer core:
- CoverageResult and CloseMatch for field detection
- RuleFinding, RuleCheckResult and RulesSummary for rule validation
- Scores, ReportMeta and ReadinessReport for the final report
- ParsedDataset for the dataset loader
- Questionnaire for the technical-posture answers

Result models are frozen: once the core has built them they are never
modified.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from .config import DEFAULT_COUNTRY, DEFAULT_ERP, RuleCode


class Questionnaire(BaseModel):
    """
    Technical posture questionnaire answered by the integrator.

    Attributes:
        webhooks: The ERP can push or receive webhooks
        sandbox_env: A sandbox environment is available for testing
        retries: Failed submissions are retried automatically
    """
    webhooks: bool = False
    sandbox_env: bool = False
    retries: bool = False


# ============================================================================
# Coverage
# ============================================================================

class CloseMatch(BaseModel):
    """A source column that probably, but not confidently, maps to a canonical field."""
    model_config = ConfigDict(frozen=True)

    target: str = Field(..., description="Canonical GETS path")
    candidate: str = Field(..., description="Source column (flattened name)")
    confidence: float = Field(..., ge=0, le=1, description="Similarity, rounded to 2 decimals")


class CoverageResult(BaseModel):
    """
    Partition of the canonical schema against one dataset's columns.

    Every canonical field appears in exactly one of the three lists.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "examples": [
                {
                    "matched": ["invoice.id", "invoice.currency"],
                    "close": [
                        {"target": "seller.trn", "candidate": "sellerTaxNo", "confidence": 0.67}
                    ],
                    "missing": ["buyer.city"],
                }
            ]
        },
    )

    matched: list[str] = Field(default_factory=list)
    close: list[CloseMatch] = Field(default_factory=list)
    missing: list[str] = Field(default_factory=list)


# ============================================================================
# Rule Findings
# ============================================================================

class RuleFinding(BaseModel):
    """
    One outcome of a rule check.

    Passing rules produce a single finding with ok=True and no payload.
    Failing rows produce one finding each, carrying whatever detail the rule
    has about the failure.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "examples": [
                {
                    "rule": "TOTALS_BALANCE",
                    "ok": False,
                    "example_line": 3,
                    "expected": 105.0,
                    "got": 110.0,
                    "message": "Total mismatch: 100 + 5 ≠ 110",
                }
            ]
        },
    )

    rule: RuleCode
    ok: bool
    example_line: Optional[int] = Field(None, ge=1, description="1-based row index of the example")
    expected: Optional[float] = None
    got: Optional[float] = None
    value: Optional[str] = Field(None, description="Offending raw value")
    message: Optional[str] = None


class RuleCheckResult(BaseModel):
    """Findings and pass-rate score of a single rule."""
    model_config = ConfigDict(frozen=True)

    rule: RuleCode
    findings: list[RuleFinding]
    score: int = Field(..., ge=0, le=100)


class RulesSummary(BaseModel):
    """Aggregated result of all rule checks."""
    model_config = ConfigDict(frozen=True)

    rule_findings: list[RuleFinding]
    rules_score: int = Field(..., ge=0, le=100)
    individual_scores: dict[str, int]
    processing_time_ms: int = Field(0, ge=0)


# ============================================================================
# Scores and Report
# ============================================================================

class ComposedScore(BaseModel):
    """Overall score and its readiness label."""
    model_config = ConfigDict(frozen=True)

    overall: int = Field(..., ge=0, le=100)
    readiness_label: str


class Scores(BaseModel):
    """Component scores and the weighted overall score."""
    model_config = ConfigDict(frozen=True)

    data: int = Field(..., ge=0, le=100)
    coverage: int = Field(..., ge=0, le=100)
    rules: int = Field(..., ge=0, le=100)
    posture: int = Field(..., ge=0, le=100)
    overall: int = Field(..., ge=0, le=100)


class ReportMeta(BaseModel):
    """Metadata about the analyzed dataset and the run."""
    model_config = ConfigDict(frozen=True)

    rows_parsed: int = Field(..., ge=0)
    lines_total: int = Field(..., ge=0, description="Number of nested line items")
    country: str = DEFAULT_COUNTRY
    erp: str = DEFAULT_ERP
    processing_time_ms: int = Field(0, ge=0)
    readiness_label: str


class ReadinessReport(BaseModel):
    """
    Complete readiness report for one dataset.

    This is the primary output of the analyzer; callers persist or serve it.
    """
    model_config = ConfigDict(frozen=True)

    report_id: str
    scores: Scores
    coverage: CoverageResult
    rule_findings: list[RuleFinding]
    gaps: list[str]
    meta: ReportMeta


# ============================================================================
# Loader
# ============================================================================

class ParsedDataset(BaseModel):
    """Rows parsed from uploaded CSV/JSON content plus parse statistics."""
    rows: list[dict[str, Any]]
    file_type: str
    original_length: int = Field(..., ge=0)
    parsed_length: int = Field(..., ge=0)
    data_score: int = Field(..., ge=0, le=100)
    has_errors: bool = False


class ColumnPreview(BaseModel):
    """Inferred type of a column across the previewed rows."""
    name: str
    types: dict[str, int] = Field(default_factory=dict, description="Inferred type counts")
    sample: Any = None


# ============================================================================
# API Request/Response Models
# ============================================================================

class AnalyzeRequest(BaseModel):
    """Request body for the /analyze endpoint: either rows or raw content."""
    rows: Optional[list[dict[str, Any]]] = Field(None, description="Already parsed rows")
    content: Optional[str] = Field(None, description="Raw CSV or JSON text")
    file_type: Optional[str] = Field(None, pattern="^(csv|json)$")
    questionnaire: Questionnaire = Field(default_factory=Questionnaire)
    country: str = DEFAULT_COUNTRY
    erp: str = DEFAULT_ERP

    model_config = {
        "json_schema_extra": {
            "examples": [{
                "rows": [{
                    "invoice_id": "A1",
                    "date": "2025-01-31",
                    "currency": "USD",
                    "total_excl_vat": 100,
                    "vat_amount": 5,
                    "total_incl_vat": 105,
                    "seller_trn": "TRN-100",
                    "buyer_trn": "TRN-200",
                }],
                "questionnaire": {"webhooks": True, "sandbox_env": True, "retries": False},
                "country": "UAE",
                "erp": "SAP",
            }]
        }
    }


class DetectRequest(BaseModel):
    """Request body for the /detect endpoint."""
    rows: list[dict[str, Any]] = Field(..., min_length=1)


class DetectResponse(BaseModel):
    """Response for the /detect endpoint."""
    coverage: CoverageResult
    coverage_score: int = Field(..., ge=0, le=100)
