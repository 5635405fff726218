"""
Rule checks for invoice datasets.

This module defines the five business-rule checks run over every row of an
uploaded dataset:
- TOTALS_BALANCE: total excl. VAT + VAT amount equals total incl. VAT
- LINE_MATH: quantity × unit price equals the line total for every line item
- DATE_ISO: the issue date is a real calendar date written as YYYY-MM-DD
- CURRENCY_ALLOWED: the currency is one of the supported codes
- TRN_PRESENT: both buyer and seller tax registration numbers are filled in

Each check takes the full row list and returns a RuleCheckResult holding its
findings and a pass-rate score. Failures are reported as findings, never
raised. Field names are resolved through the GETS schema variants, so any
column the field detector recognises is also understood here.
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Mapping, Optional

from .config import (
    ALLOWED_CURRENCIES,
    AMOUNT_TOLERANCE,
    MAX_LINE_MATH_EXAMPLES,
    RuleCode,
)
from .gets import GETS_SCHEMA, GetsSchema
from .rows import flatten_row, iter_line_items, parse_amount, resolve, resolve_value
from .schemas import RuleCheckResult, RuleFinding
from .scoring import round_half_up

Rows = list[Mapping[str, Any]]

# Type alias for rule check functions
RuleCheckFn = Callable[[Rows, GetsSchema], RuleCheckResult]

ISO_DATE_PATTERN = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$")

NO_DATA_MESSAGE = "No data to validate"


# ============================================================================
# Helpers
# ============================================================================

def _as_flat(row: Any) -> dict[str, Any]:
    return flatten_row(row) if isinstance(row, Mapping) else {}


def _fmt(number: float) -> str:
    """Render an amount without a trailing .0 for whole numbers."""
    if number.is_integer():
        return str(int(number))
    return str(round(number, 4))


def _pass_rate(passed: int, evaluated: int) -> int:
    if evaluated <= 0:
        return 0
    return round_half_up(passed / evaluated * 100)


def _no_data(rule: RuleCode) -> RuleCheckResult:
    return RuleCheckResult(
        rule=rule,
        findings=[RuleFinding(rule=rule, ok=False, message=NO_DATA_MESSAGE)],
        score=0,
    )


def _finish(
    rule: RuleCode,
    failures: list[RuleFinding],
    passed: int,
    evaluated: int,
) -> RuleCheckResult:
    # A rule with no failures still reports one passing finding
    findings = failures or [RuleFinding(rule=rule, ok=True)]
    return RuleCheckResult(rule=rule, findings=findings, score=_pass_rate(passed, evaluated))


def _amounts_match(expected: float, got: float) -> bool:
    return abs(expected - got) <= AMOUNT_TOLERANCE


# ============================================================================
# Rule Checks
# ============================================================================

def check_totals_balance(rows: Rows, schema: GetsSchema = GETS_SCHEMA) -> RuleCheckResult:
    """
    total_excl_vat + vat_amount should equal total_incl_vat within tolerance.

    Rationale: This is the fundamental invoice equation. A row missing any of
    the three amounts cannot balance and counts as a failure.
    """
    rule = RuleCode.TOTALS_BALANCE
    if not rows:
        return _no_data(rule)

    failures: list[RuleFinding] = []
    passed = 0

    for row_number, row in enumerate(rows, start=1):
        flat = _as_flat(row)
        amounts = {
            path: parse_amount(resolve(flat, path, schema))
            for path in ("invoice.total_excl_vat", "invoice.vat_amount", "invoice.total_incl_vat")
        }
        missing = [path for path, amount in amounts.items() if amount is None]
        if missing:
            failures.append(RuleFinding(
                rule=rule,
                ok=False,
                example_line=row_number,
                message=f"Missing or non-numeric totals: {', '.join(missing)}",
            ))
            continue

        excl_vat = amounts["invoice.total_excl_vat"]
        vat_amount = amounts["invoice.vat_amount"]
        incl_vat = amounts["invoice.total_incl_vat"]
        calculated = excl_vat + vat_amount

        if _amounts_match(calculated, incl_vat):
            passed += 1
            continue

        failures.append(RuleFinding(
            rule=rule,
            ok=False,
            example_line=row_number,
            expected=calculated,
            got=incl_vat,
            message=f"Total mismatch: {_fmt(excl_vat)} + {_fmt(vat_amount)} ≠ {_fmt(incl_vat)}",
        ))

    return _finish(rule, failures, passed, len(rows))


def check_line_math(rows: Rows, schema: GetsSchema = GETS_SCHEMA) -> RuleCheckResult:
    """
    Each line item should have qty × unit_price ≈ line_total.

    Line items are the elements of a row's ``lines`` array, or the row itself
    for flat rows carrying a quantity or unit price. The score is the share of
    correct line items across the whole dataset; only the first
    MAX_LINE_MATH_EXAMPLES failures are reported.
    """
    rule = RuleCode.LINE_MATH
    if not rows:
        return _no_data(rule)

    qty_field = schema.field("lines[].qty")
    price_field = schema.field("lines[].unit_price")
    total_field = schema.field("lines[].line_total")

    failures: list[RuleFinding] = []
    passed = 0
    total_lines = 0

    def report(finding: RuleFinding) -> None:
        if len(failures) < MAX_LINE_MATH_EXAMPLES:
            failures.append(finding)

    for row_number, row in enumerate(rows, start=1):
        if not isinstance(row, Mapping):
            continue

        for item in iter_line_items(row, row_number, schema):
            total_lines += 1
            label = f"Line {item.line_number}" if item.nested else f"Row {row_number}"

            qty = parse_amount(resolve_value(item.values, qty_field))
            unit_price = parse_amount(resolve_value(item.values, price_field))
            line_total = parse_amount(resolve_value(item.values, total_field))

            missing = [
                canonical.path
                for canonical, amount in (
                    (qty_field, qty), (price_field, unit_price), (total_field, line_total)
                )
                if amount is None
            ]
            if missing:
                report(RuleFinding(
                    rule=rule,
                    ok=False,
                    example_line=row_number,
                    message=f"{label}: missing {', '.join(missing)}",
                ))
                continue

            calculated = qty * unit_price
            if _amounts_match(calculated, line_total):
                passed += 1
                continue

            report(RuleFinding(
                rule=rule,
                ok=False,
                example_line=row_number,
                expected=calculated,
                got=line_total,
                message=f"{label}: {_fmt(qty)} × {_fmt(unit_price)} ≠ {_fmt(line_total)}",
            ))

    if total_lines == 0:
        return RuleCheckResult(
            rule=rule,
            findings=[RuleFinding(rule=rule, ok=False, message="No line items found")],
            score=0,
        )

    return _finish(rule, failures, passed, total_lines)


def is_iso_date(literal: str) -> bool:
    """True for YYYY-MM-DD strings naming a real calendar date."""
    if not ISO_DATE_PATTERN.match(literal):
        return False
    try:
        return date.fromisoformat(literal).isoformat() == literal
    except ValueError:
        return False


def check_date_iso(rows: Rows, schema: GetsSchema = GETS_SCHEMA) -> RuleCheckResult:
    """The invoice issue date must be written as a valid YYYY-MM-DD date."""
    rule = RuleCode.DATE_ISO
    if not rows:
        return _no_data(rule)

    failures: list[RuleFinding] = []
    passed = 0

    for row_number, row in enumerate(rows, start=1):
        raw = resolve(_as_flat(row), "invoice.issue_date", schema)
        if raw is None:
            failures.append(RuleFinding(
                rule=rule, ok=False, example_line=row_number, message="Missing date field",
            ))
            continue

        literal = str(raw)
        if is_iso_date(literal):
            passed += 1
            continue

        message = (
            "Invalid date value" if ISO_DATE_PATTERN.match(literal)
            else "Date format must be YYYY-MM-DD"
        )
        failures.append(RuleFinding(
            rule=rule, ok=False, example_line=row_number, value=literal, message=message,
        ))

    return _finish(rule, failures, passed, len(rows))


def check_currency_allowed(rows: Rows, schema: GetsSchema = GETS_SCHEMA) -> RuleCheckResult:
    """Currency must be one of ALLOWED_CURRENCIES (case-insensitive)."""
    rule = RuleCode.CURRENCY_ALLOWED
    if not rows:
        return _no_data(rule)

    failures: list[RuleFinding] = []
    passed = 0

    for row_number, row in enumerate(rows, start=1):
        raw = resolve(_as_flat(row), "invoice.currency", schema)
        if raw is None:
            failures.append(RuleFinding(
                rule=rule, ok=False, example_line=row_number, message="Missing currency field",
            ))
            continue

        currency = str(raw)
        if currency.upper() in ALLOWED_CURRENCIES:
            passed += 1
            continue

        failures.append(RuleFinding(
            rule=rule,
            ok=False,
            example_line=row_number,
            value=currency,
            message=(
                f"Currency '{currency}' not allowed. "
                f"Must be one of: {', '.join(ALLOWED_CURRENCIES)}"
            ),
        ))

    return _finish(rule, failures, passed, len(rows))


def check_trn_present(rows: Rows, schema: GetsSchema = GETS_SCHEMA) -> RuleCheckResult:
    """
    Buyer and seller tax registration numbers must both be non-blank.

    Rationale: e-invoicing clearance rejects documents without the TRNs of
    both parties.
    """
    rule = RuleCode.TRN_PRESENT
    if not rows:
        return _no_data(rule)

    failures: list[RuleFinding] = []
    passed = 0

    for row_number, row in enumerate(rows, start=1):
        flat = _as_flat(row)
        missing = [
            path for path in ("buyer.trn", "seller.trn")
            if resolve(flat, path, schema) is None
        ]
        if not missing:
            passed += 1
            continue

        failures.append(RuleFinding(
            rule=rule,
            ok=False,
            example_line=row_number,
            message=f"Missing TRN fields: {', '.join(missing)}",
        ))

    return _finish(rule, failures, passed, len(rows))


# ============================================================================
# Rule Registry
# ============================================================================

@dataclass(frozen=True)
class ValidationRule:
    """
    Represents a single rule check.

    Attributes:
        code: Rule identifier (e.g., RuleCode.TOTALS_BALANCE)
        description: Human-readable description of the rule
        gap: Sentence added to the report's gaps for each failing finding
        check: Function that runs the rule over a dataset
    """
    code: RuleCode
    description: str
    gap: str
    check: RuleCheckFn


# All rule checks in execution order
VALIDATION_RULES: tuple[ValidationRule, ...] = (
    ValidationRule(
        code=RuleCode.TOTALS_BALANCE,
        description="total_excl_vat + vat_amount should equal total_incl_vat",
        gap="Invoice totals do not balance correctly",
        check=check_totals_balance,
    ),
    ValidationRule(
        code=RuleCode.LINE_MATH,
        description="Line item qty × unit_price should equal line_total",
        gap="Line item calculations are incorrect",
        check=check_line_math,
    ),
    ValidationRule(
        code=RuleCode.DATE_ISO,
        description="Invoice issue date must be a valid YYYY-MM-DD date",
        gap="Date format is not ISO standard (YYYY-MM-DD)",
        check=check_date_iso,
    ),
    ValidationRule(
        code=RuleCode.CURRENCY_ALLOWED,
        description=f"Currency must be one of {', '.join(ALLOWED_CURRENCIES)}",
        gap="Invalid currency: {value}",
        check=check_currency_allowed,
    ),
    ValidationRule(
        code=RuleCode.TRN_PRESENT,
        description="Buyer and seller TRN must both be present",
        gap="Missing Tax Registration Numbers (TRN)",
        check=check_trn_present,
    ),
)


def get_rule(code: RuleCode) -> Optional[ValidationRule]:
    for rule in VALIDATION_RULES:
        if rule.code == code:
            return rule
    return None


def get_rule_descriptions() -> dict[str, str]:
    """Get a mapping of rule codes to their descriptions."""
    return {rule.code.value: rule.description for rule in VALIDATION_RULES}
