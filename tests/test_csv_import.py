"""
Tests for CSV import: header mapping, row validation, duplicates and execution.
"""
import csv
from io import StringIO

import pytest

from applyos.services.csv_import import (
    TEMPLATE_HEADERS,
    CSVFormatError,
    execute_import,
    generate_csv_template,
    is_duplicate,
    map_headers,
    mark_duplicates,
    normalize_column_name,
    parse_deadline,
    validate_csv,
)
from tests.conftest import USER_ID


class TestColumnMapping:

    @pytest.mark.parametrize("header,expected", [
        ("Title", "title"),
        ("  Job Title ", "title"),
        ("Position", "title"),
        ("Employer", "company"),
        ("Application Link", "url"),
        ("Due Date", "deadline"),
        ("Remarks", "notes"),
        ("Salary", None),
    ])
    def test_normalize_column_name(self, header, expected):
        assert normalize_column_name(header) == expected

    def test_title_in_first_column_is_mapped(self):
        """A title column at index 0 must count as present."""
        assert map_headers(["Title", "Company"]) == {"title": 0, "company": 1}


class TestValidateCsv:

    def test_empty_content_rejected(self):
        with pytest.raises(CSVFormatError):
            validate_csv("   ")

    def test_missing_title_column_rejected(self):
        with pytest.raises(CSVFormatError, match="title"):
            validate_csv("Company,URL\nAcme,https://acme.com")

    def test_valid_rows_are_collected(self):
        result = validate_csv(
            "Title,Company,URL,Status,Priority,Type,Deadline,Notes\n"
            "SWE,Acme,https://acme.com/jobs/1,submitted,high,job,2025-12-31,Backend role\n"
        )
        assert result["rowCount"] == 1
        assert result["errorCount"] == 0
        app = result["applications"][0]
        assert app["title"] == "SWE"
        assert app["company"] == "Acme"
        assert app["status"] == "submitted"
        assert app["priority"] == "high"
        assert app["deadline"].startswith("2025-12-31")
        assert app["job_description"] == "Backend role"

    def test_row_errors_use_spreadsheet_numbering(self):
        result = validate_csv(
            "Title,URL,Status\n"
            "Good,https://ok.com,draft\n"
            ",https://missing-title.com,draft\n"
            "Bad URL,ftp://files.example.com,draft\n"
            "Bad Status,,pending\n"
        )
        assert [a["title"] for a in result["applications"]] == ["Good"]
        rows = {e["row"]: e["errors"] for e in result["errors"]}
        assert rows[3] == ['Missing required "title" field']
        assert "Invalid URL" in rows[4][0]
        assert "Invalid status" in rows[5][0]

    def test_blank_lines_are_skipped(self):
        result = validate_csv("Title\nOne\n\n,\nTwo\n")
        assert result["rowCount"] == 2
        assert [a["title"] for a in result["applications"]] == ["One", "Two"]

    def test_bom_and_quoted_fields(self):
        result = validate_csv("\ufeff" '"Title","Company"\n"Data Analyst, Senior","Big, Co"\n')
        assert result["applications"][0] == {"title": "Data Analyst, Senior", "company": "Big, Co"}

    def test_invalid_deadline_reported(self):
        result = validate_csv("Title,Deadline\nSWE,someday\n")
        assert result["applications"] == []
        assert "Invalid deadline" in result["errors"][0]["errors"][0]


class TestParseDeadline:

    def test_human_formats(self):
        assert parse_deadline("December 31, 2024").startswith("2024-12-31")
        assert parse_deadline("12/31/2024").startswith("2024-12-31")

    def test_garbage_is_none(self):
        assert parse_deadline("not a date") is None


class TestDuplicates:

    def test_same_title_and_url_ignoring_case(self):
        assert is_duplicate(
            {"title": "SWE", "url": "https://ACME.com/1"},
            {"title": "swe", "url": "https://acme.com/1"},
        )

    def test_different_url_is_not_duplicate(self):
        assert not is_duplicate({"title": "SWE", "url": "https://a.com"}, {"title": "SWE", "url": None})

    def test_mark_duplicates_flags_every_row(self):
        flagged = mark_duplicates([{"title": "A"}, {"title": "B"}], [{"title": "a", "url": None}])
        assert [f["isDuplicate"] for f in flagged] == [True, False]


class TestTemplate:

    def test_template_parses_back(self):
        rows = list(csv.reader(StringIO(generate_csv_template())))
        assert rows[0] == TEMPLATE_HEADERS
        assert len(rows) == 4

    def test_template_validates_cleanly(self):
        result = validate_csv(generate_csv_template())
        assert result["errorCount"] == 0
        assert len(result["applications"]) == 3


class TestExecuteImport:

    def test_imports_rows_and_skips_duplicates(self, users):
        result = execute_import(
            USER_ID,
            [
                {"title": "SWE", "status": "submitted", "isDuplicate": False},
                {"title": "Old", "isDuplicate": True},
                {"title": "PM", "url": "not-a-url"},
            ],
        )
        assert result["imported"] == 1
        assert result["skipped"] == 1
        assert result["failed"] == 1
        assert result["applications"][0]["status"] == "submitted"
        assert result["failures"][0]["title"] == "PM"

    def test_duplicates_imported_when_not_skipping(self, users):
        result = execute_import(USER_ID, [{"title": "Old", "isDuplicate": True}], skip_duplicates=False)
        assert result["imported"] == 1
