"""
Tests for the dataset loader module.

These tests verify CSV/JSON parsing, row limiting and data scoring.
"""

import json

import pytest

from invoice_readiness.exceptions import DataParseError
from invoice_readiness.loader import (
    calculate_data_score,
    detect_file_type,
    limit_rows,
    load_file,
    parse_csv,
    parse_data,
    parse_json,
    preview_columns,
    validate_data_structure,
)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def csv_content() -> str:
    return (
        "invoice_id,date,currency,total_excl_vat,vat_amount,total_incl_vat\n"
        "A1,2025-01-31,AED,100,5,105\n"
        "A2,2025-02-01,USD,200.50,10,210.50\n"
        "A3,2025-02-02,SAR,50,2.5,52.5\n"
    )


@pytest.fixture
def json_content() -> str:
    return json.dumps([
        {
            "invoice_id": "A1",
            "seller": {"name": "Acme", "trn": "T1"},
            "lines": [{"sku": "X", "qty": 1, "unit_price": 10, "line_total": 10}],
        },
    ])


# ============================================================================
# File Type Detection
# ============================================================================

class TestDetectFileType:

    def test_json_array(self):
        assert detect_file_type('  [{"a": 1}]') == "json"

    def test_json_object(self):
        assert detect_file_type('{"a": 1}') == "json"

    def test_csv(self):
        assert detect_file_type("a,b\n1,2") == "csv"

    def test_unknown(self):
        with pytest.raises(DataParseError, match="Unable to detect file type"):
            detect_file_type("just some text")


# ============================================================================
# Parsers
# ============================================================================

class TestParseCsv:
    """Tests for CSV parsing."""

    def test_numeric_cells_become_floats(self, csv_content):
        rows = parse_csv(csv_content)
        assert len(rows) == 3
        assert rows[0]["invoice_id"] == "A1"
        assert rows[0]["total_excl_vat"] == 100.0
        assert rows[1]["total_incl_vat"] == 210.5

    def test_dates_stay_strings(self, csv_content):
        rows = parse_csv(csv_content)
        assert rows[0]["date"] == "2025-01-31"

    def test_non_plain_numbers_stay_strings(self):
        rows = parse_csv("qty,code,big\n1_000,١٢٣,1e999\n")
        assert rows[0] == {"qty": "1_000", "code": "١٢٣", "big": "1e999"}

    def test_headers_and_cells_trimmed(self):
        rows = parse_csv("invoice_id, total\nA1, 10.5\n\nA2,abc\n")
        assert rows == [
            {"invoice_id": "A1", "total": 10.5},
            {"invoice_id": "A2", "total": "abc"},
        ]

    def test_quoted_cells(self):
        rows = parse_csv('seller_name,total\n"Acme, Inc",10\n')
        assert rows[0]["seller_name"] == "Acme, Inc"

    def test_empty(self):
        with pytest.raises(DataParseError, match="CSV content is empty"):
            parse_csv("   ")


class TestParseJson:
    """Tests for JSON parsing."""

    def test_nested_rows_kept(self, json_content):
        rows = parse_json(json_content)
        assert rows[0]["seller"] == {"name": "Acme", "trn": "T1"}
        assert rows[0]["lines"][0]["qty"] == 1

    @pytest.mark.parametrize("content,message", [
        ('{"a": 1}', "must be an array"),
        ("[]", "cannot be empty"),
        ("[1, 2]", "index 0 must be an object"),
        ('[{"a": 1', "JSON parsing error"),
    ])
    def test_invalid(self, content, message):
        with pytest.raises(DataParseError, match=message):
            parse_json(content)

    def test_error_prefix(self):
        with pytest.raises(DataParseError) as exc_info:
            parse_json("[]")
        assert str(exc_info.value).startswith("Data parsing failed: ")
        assert exc_info.value.reason == "JSON array cannot be empty"


class TestValidateDataStructure:

    def test_empty_first_row(self):
        with pytest.raises(DataParseError, match="cannot be empty"):
            validate_data_structure([{}])

    def test_not_a_list(self):
        with pytest.raises(DataParseError):
            validate_data_structure({"a": 1})


# ============================================================================
# Limiting and Scoring
# ============================================================================

class TestDataScore:
    """Tests for the data-quality score."""

    @pytest.mark.parametrize("original,parsed,has_errors,expected", [
        (10, 10, False, 100),
        (10, 9, False, 90),
        (10, 9, True, 80),
        (3, 2, False, 67),
        (0, 0, False, 0),
        (10, 0, True, 0),
    ])
    def test_calculate_data_score(self, original, parsed, has_errors, expected):
        assert calculate_data_score(original, parsed, has_errors) == expected

    def test_limit_rows(self):
        rows = [{"i": i} for i in range(5)]
        assert limit_rows(rows, max_rows=3) == rows[:3]
        assert limit_rows(rows, max_rows=10) == rows


class TestParseData:
    """Tests for the combined parse entry point."""

    def test_csv(self, csv_content):
        dataset = parse_data(csv_content)
        assert dataset.file_type == "csv"
        assert dataset.original_length == 3
        assert dataset.parsed_length == 3
        assert dataset.data_score == 100
        assert dataset.has_errors is False

    def test_json(self, json_content):
        dataset = parse_data(json_content, "json")
        assert dataset.file_type == "json"
        assert dataset.parsed_length == 1

    def test_rows_capped(self):
        content = json.dumps([{"invoice_id": f"A{i}"} for i in range(250)])
        dataset = parse_data(content)
        assert dataset.original_length == 250
        assert dataset.parsed_length == 200
        assert len(dataset.rows) == 200
        assert dataset.data_score == 80
        assert dataset.has_errors is True

    def test_empty_content(self):
        with pytest.raises(DataParseError, match="Content cannot be empty"):
            parse_data("   ")

    def test_unsupported_type(self, csv_content):
        with pytest.raises(DataParseError, match="Unsupported file type"):
            parse_data(csv_content, "xml")


class TestLoadFile:

    def test_csv_file(self, tmp_path, csv_content):
        path = tmp_path / "invoices.csv"
        path.write_text(csv_content, encoding="utf-8")
        dataset = load_file(path)
        assert dataset.file_type == "csv"
        assert dataset.parsed_length == 3

    def test_bom_is_ignored(self, tmp_path, csv_content):
        path = tmp_path / "invoices.csv"
        path.write_text("\ufeff" + csv_content, encoding="utf-8")
        assert "invoice_id" in load_file(path).rows[0]

    def test_unknown_extension_detects_content(self, tmp_path, json_content):
        path = tmp_path / "export.txt"
        path.write_text(json_content, encoding="utf-8")
        assert load_file(path).file_type == "json"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_file(tmp_path / "nope.csv")


class TestPreviewColumns:

    def test_type_counts(self):
        rows = [
            {"invoice_id": "A1", "total": 10.0, "date": ""},
            {"invoice_id": "A2", "total": "n/a", "date": "2025-01-31"},
        ]
        previews = {p.name: p for p in preview_columns(rows)}
        assert previews["invoice_id"].types == {"string": 2}
        assert previews["total"].types == {"number": 1, "string": 1}
        assert previews["date"].types == {"empty": 1, "date": 1}
        assert previews["date"].sample == "2025-01-31"

    def test_limit(self):
        rows = [{"a": i} for i in range(30)]
        assert preview_columns(rows, limit=5)[0].types == {"number": 5}
