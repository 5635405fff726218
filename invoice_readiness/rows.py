"""
Uniform access to source rows.

Uploaded rows come in two shapes: flat CSV-style rows where every column sits
at the top level (line fields included), and nested JSON-style rows with
seller/buyer objects and a ``lines`` array. The helpers here flatten either
shape into one mapping keyed by normalized column names and resolve canonical
GETS fields on it through the schema's shared variant lists.
"""

import math
import re
from dataclasses import dataclass
from typing import Any, Iterator, Mapping, Optional

from .gets import GETS_SCHEMA, CanonicalField, GetsSchema, normalize_field_name

FlatRow = dict[str, Any]

LINES_KEY = "lines"

# Comma-grouped integer with no decimal part, e.g. 1,000 or 12,345,678
THOUSANDS_GROUPED = re.compile(r"[+-]?[0-9]{1,3}(?:,[0-9]{3})+")


def flatten_row(row: Mapping[str, Any]) -> FlatRow:
    """
    Flatten a row one level deep under normalized keys.

    Object-valued columns expand to ``parent.child``; everything else keeps its
    own (normalized) name. The first column wins when two names normalize to
    the same key.
    """
    flat: FlatRow = {}
    for key, value in row.items():
        if isinstance(value, Mapping):
            for sub_key, sub_value in value.items():
                flat.setdefault(normalize_field_name(f"{key}.{sub_key}"), sub_value)
        else:
            flat.setdefault(normalize_field_name(key), value)
    return flat


def is_present(value: Any) -> bool:
    """A value counts as present when it is not None and not a blank string."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def resolve_value(flat: FlatRow, canonical: CanonicalField) -> Optional[Any]:
    """Return the first present value stored under any key of a canonical field."""
    for key in canonical.lookup_keys():
        value = flat.get(key)
        if is_present(value):
            return value
    return None


def resolve(
    flat: FlatRow,
    path: str,
    schema: GetsSchema = GETS_SCHEMA,
) -> Optional[Any]:
    """Resolve a canonical path (e.g. "buyer.trn") on a flattened row."""
    return resolve_value(flat, schema.field(path))


def parse_amount(value: Any) -> Optional[float]:
    """
    Parse a monetary or quantity value.

    Handles:
    - US/UK format: 1,234.56 (comma = thousand separator, period = decimal)
    - European format: 1.234,56 (period = thousand separator, comma = decimal)
    - Comma-grouped integers: 1,000 (no period, groups of three digits)

    Returns None for missing, boolean, non-finite or unparseable values.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None

    value_str = str(value).strip()
    if not value_str:
        return None

    # Remove currency symbols, ISO codes and whitespace
    value_str = re.sub(r"[\$€£₹¥\s]|[A-Za-z]{3}$|^[A-Za-z]{3}", "", value_str)

    if "," in value_str:
        comma_pos = value_str.rfind(",")
        period_pos = value_str.rfind(".")

        if period_pos == -1 and THOUSANDS_GROUPED.fullmatch(value_str):
            value_str = value_str.replace(",", "")
        elif period_pos < comma_pos:
            value_str = value_str.replace(".", "")
            value_str = value_str.replace(",", ".")
        else:
            value_str = value_str.replace(",", "")

    try:
        number = float(value_str)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


# ============================================================================
# Line Items
# ============================================================================

@dataclass(frozen=True)
class LineItemView:
    """
    One line item located in a dataset.

    Attributes:
        row_number: 1-based index of the row the item belongs to
        line_number: 1-based index inside the row's ``lines`` array (1 for flat rows)
        values: Flattened values of the line item
        nested: True when the item came from a ``lines`` array
    """
    row_number: int
    line_number: int
    values: FlatRow
    nested: bool


def nested_lines(row: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    """Return the mapping elements of a row's ``lines`` array (empty if none)."""
    lines = row.get(LINES_KEY)
    if not isinstance(lines, list):
        return []
    return [line for line in lines if isinstance(line, Mapping)]


def iter_line_items(
    row: Mapping[str, Any],
    row_number: int,
    schema: GetsSchema = GETS_SCHEMA,
) -> Iterator[LineItemView]:
    """
    Yield the line items of one row.

    Nested rows yield one item per element of ``lines``. A flat row is itself
    a single line item when it carries a quantity or a unit price; a row with
    neither has no line items.
    """
    lines = nested_lines(row)
    if lines:
        for index, line in enumerate(lines, start=1):
            yield LineItemView(row_number, index, flatten_row(line), nested=True)
        return

    flat = flatten_row(row)
    qty = resolve_value(flat, schema.field("lines[].qty"))
    unit_price = resolve_value(flat, schema.field("lines[].unit_price"))
    if qty is not None or unit_price is not None:
        yield LineItemView(row_number, 1, flat, nested=False)


def count_total_lines(rows: list[Mapping[str, Any]]) -> int:
    """Count the elements of every row's nested ``lines`` array."""
    total = 0
    for row in rows:
        lines = row.get(LINES_KEY) if isinstance(row, Mapping) else None
        if isinstance(lines, list):
            total += len(lines)
    return total
