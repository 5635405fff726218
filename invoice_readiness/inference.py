"""
Type inference for raw cell values.

Values coming out of CSV or JSON uploads are classified into one of four
coarse types. The field detector uses the result to decide whether a column
can stand for a canonical field, and the loader uses it for column previews.
"""

import math
import re
from datetime import date
from typing import Any, Literal

InferredType = Literal["empty", "number", "date", "string"]
ExpectedType = Literal["string", "number", "date", "enum"]

# Year first, one or two digit month/day, "-" or "/" separators
DATE_PATTERN = re.compile(r"([0-9]{4})[-/]([0-9]{1,2})[-/]([0-9]{1,2})")

# Plain ASCII decimal literal: no digit separators, no non-Latin digits, no nan/inf
NUMBER_PATTERN = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


def is_numeric_literal(text: str) -> bool:
    """True when text (ignoring surrounding whitespace) is a finite decimal number."""
    text = text.strip()
    if not NUMBER_PATTERN.fullmatch(text):
        return False
    return math.isfinite(float(text))


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return math.isfinite(value)
    if isinstance(value, str):
        return is_numeric_literal(value)
    return False


def _is_date(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    match = DATE_PATTERN.search(value)
    if not match:
        return False
    year, month, day = (int(part) for part in match.groups())
    try:
        date(year, month, day)
    except ValueError:
        return False
    return True


def infer_type(value: Any) -> InferredType:
    """
    Classify a raw value as empty, number, date or string.

    The number test runs before the date test, so numeric strings are
    always numbers even when they could be read as a date.

    Args:
        value: Any scalar (or nested) value taken from a source row

    Returns:
        One of "empty", "number", "date", "string"
    """
    if value is None or value == "":
        return "empty"
    if _is_number(value):
        return "number"
    if _is_date(value):
        return "date"
    return "string"


def is_type_compatible(inferred: InferredType, expected: ExpectedType) -> bool:
    """Check whether a sampled value's type can fill a canonical field."""
    if expected == "enum":
        return inferred == "string"
    return inferred == expected or inferred == "empty"
