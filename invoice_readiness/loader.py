"""
Dataset loading for CSV and JSON invoice exports.

This module provides functionality to:
- Detect whether raw text is CSV or JSON
- Parse CSV into flat rows (numeric cells become floats)
- Parse JSON arrays of (possibly nested) invoice objects
- Cap datasets at MAX_ROWS and score how much of the input survived
- Preview column types for a quick look at an upload
"""

import csv
import io
import json
from pathlib import Path
from typing import Any, Mapping, Optional

from .config import DATA_SCORE_ERROR_PENALTY, DEFAULT_PREVIEW_LIMIT, MAX_ROWS, logger
from .exceptions import DataParseError
from .inference import infer_type, is_numeric_literal
from .schemas import ColumnPreview, ParsedDataset
from .scoring import round_half_up

SUPPORTED_FILE_TYPES = ("csv", "json")


# ============================================================================
# File Type Detection
# ============================================================================

def detect_file_type(content: str) -> str:
    """
    Guess whether content is JSON or CSV.

    JSON when the text starts with ``[`` or ``{``; CSV when the first line
    contains a comma.

    Raises:
        DataParseError: If neither applies
    """
    trimmed = content.strip()

    if trimmed.startswith("[") or trimmed.startswith("{"):
        return "json"

    first_line = trimmed.split("\n", 1)[0]
    if "," in first_line:
        return "csv"

    raise DataParseError(
        "Unable to detect file type. Please ensure the file is valid CSV or JSON."
    )


# ============================================================================
# Parsers
# ============================================================================

def _coerce_cell(value: Optional[str]) -> Any:
    """Turn a CSV cell into a float when it is numeric, else a trimmed string."""
    if value is None:
        return ""
    text = value.strip()
    if not text:
        return ""
    return float(text) if is_numeric_literal(text) else text


def parse_csv(text: str) -> list[dict[str, Any]]:
    """
    Parse CSV text with a header row into a list of flat rows.

    Header names are trimmed, blank lines are skipped, and numeric cells are
    converted to floats.

    Raises:
        DataParseError: If the content is empty or not valid CSV
    """
    if not text or not text.strip():
        raise DataParseError("CSV content is empty")

    rows: list[dict[str, Any]] = []
    try:
        reader = csv.DictReader(io.StringIO(text.strip()))
        for record in reader:
            if not any((value or "").strip() for value in record.values() if isinstance(value, str)):
                continue
            row: dict[str, Any] = {}
            for key, value in record.items():
                # Extra cells beyond the header land under the None key
                if key is None:
                    continue
                row[key.strip()] = _coerce_cell(value)
            rows.append(row)
    except csv.Error as exc:
        raise DataParseError(f"CSV parsing error: {exc}") from exc

    return rows


def parse_json(text: str) -> list[dict[str, Any]]:
    """
    Parse a JSON array of invoice objects.

    Raises:
        DataParseError: If the content is empty, not an array, an empty
            array, or contains non-object items
    """
    if not text or not text.strip():
        raise DataParseError("JSON content is empty")

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise DataParseError(f"JSON parsing error: {exc}") from exc

    if not isinstance(data, list):
        raise DataParseError("JSON must be an array of objects")

    if not data:
        raise DataParseError("JSON array cannot be empty")

    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise DataParseError(f"Item at index {index} must be an object")

    return data


def validate_data_structure(rows: list[Any]) -> None:
    """
    Check that parsed data is a non-empty list of non-empty rows.

    Raises:
        DataParseError: On any structural problem
    """
    if not isinstance(rows, list) or not rows:
        raise DataParseError("Data must be a non-empty array")

    first_row = rows[0]
    if not isinstance(first_row, Mapping):
        raise DataParseError("Each data row must be an object")

    if not first_row:
        raise DataParseError("Data rows cannot be empty")


def limit_rows(rows: list[dict[str, Any]], max_rows: int = MAX_ROWS) -> list[dict[str, Any]]:
    """Keep at most max_rows rows."""
    if len(rows) > max_rows:
        logger.warning(f"Limiting data from {len(rows)} to {max_rows} rows")
        return rows[:max_rows]
    return rows


def calculate_data_score(
    original_length: int,
    parsed_length: int,
    has_errors: bool = False,
) -> int:
    """
    Score the share of input rows that made it into the dataset.

    Args:
        original_length: Number of data rows in the raw input
        parsed_length: Number of rows kept after parsing and limiting
        has_errors: Whether rows were dropped; costs DATA_SCORE_ERROR_PENALTY

    Returns:
        Integer score in [0, 100]
    """
    if original_length <= 0:
        return 0

    score = round_half_up(parsed_length / original_length * 100)

    if has_errors:
        score = max(0, score - DATA_SCORE_ERROR_PENALTY)

    return max(0, min(100, score))


def _count_csv_data_lines(content: str) -> int:
    lines = [line for line in content.split("\n") if line.strip()]
    return max(0, len(lines) - 1)


def parse_data(content: str, file_type: Optional[str] = None) -> ParsedDataset:
    """
    Parse raw CSV or JSON text into a capped dataset.

    Args:
        content: Raw file or pasted text
        file_type: "csv" or "json"; detected from the content when omitted

    Returns:
        ParsedDataset with the rows and parse statistics

    Raises:
        DataParseError: If the content cannot be parsed into rows
    """
    if not isinstance(content, str) or not content.strip():
        raise DataParseError("Content cannot be empty")

    detected_type = file_type or detect_file_type(content)

    if detected_type == "csv":
        original_length = _count_csv_data_lines(content)
        rows = parse_csv(content)
    elif detected_type == "json":
        rows = parse_json(content)
        original_length = len(rows)
    else:
        raise DataParseError(f"Unsupported file type: {detected_type}")

    validate_data_structure(rows)

    limited = limit_rows(rows)
    has_errors = len(limited) < len(rows)

    dataset = ParsedDataset(
        rows=limited,
        file_type=detected_type,
        original_length=original_length,
        parsed_length=len(limited),
        data_score=calculate_data_score(original_length, len(limited)),
        has_errors=has_errors,
    )

    logger.info(
        f"Parsed {dataset.parsed_length} of {dataset.original_length} rows "
        f"({detected_type}), data score {dataset.data_score}"
    )

    return dataset


def load_file(path: Path) -> ParsedDataset:
    """
    Read a CSV or JSON file from disk and parse it.

    The file type comes from the extension when it is .csv or .json, and is
    detected from the content otherwise.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"File not found: {path}")

    suffix = path.suffix.lower().lstrip(".")
    file_type = suffix if suffix in SUPPORTED_FILE_TYPES else None

    logger.info(f"Loading dataset from: {path.name}")
    content = path.read_text(encoding="utf-8-sig")
    return parse_data(content, file_type)


def preview_columns(
    rows: list[Mapping[str, Any]],
    limit: int = DEFAULT_PREVIEW_LIMIT,
) -> list[ColumnPreview]:
    """
    Summarize the inferred types of each top-level column over the first rows.

    Args:
        rows: Parsed rows
        limit: Number of rows to inspect

    Returns:
        One ColumnPreview per column, in first-seen order
    """
    previews: dict[str, ColumnPreview] = {}

    for row in rows[:limit]:
        if not isinstance(row, Mapping):
            continue
        for name, value in row.items():
            preview = previews.get(name)
            if preview is None:
                preview = ColumnPreview(name=name)
                previews[name] = preview
            inferred = infer_type(value)
            preview.types[inferred] = preview.types.get(inferred, 0) + 1
            if preview.sample is None and inferred != "empty":
                preview.sample = value

    return list(previews.values())
