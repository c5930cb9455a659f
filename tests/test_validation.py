"""Tests for HTML structure validation."""

import pytest
from conftest import BROKEN_HTML, VALID_HTML

from seditor_cli.validation_engine import (
    VALID_DESCRIPTION,
    ValidationEngine,
    describe_validation_result,
    validate_html_structure,
)


class TestValidateHtmlStructure:

    def test_valid_document(self):
        result = validate_html_structure(VALID_HTML)
        assert result.is_valid
        assert result.issues == ()

    def test_markers_are_case_insensitive(self):
        code = "<!doctype HTML><HTML><HEAD></HEAD><BODY></BODY></HTML>"
        assert validate_html_structure(code).is_valid

    def test_each_failing_check_reports_once(self):
        result = validate_html_structure(BROKEN_HTML)

        assert not result.is_valid
        assert result.issues == (
            "Missing <!DOCTYPE html> declaration.",
            "The <head> section is incomplete.",
        )

    def test_empty_input_fails_every_check(self):
        assert len(validate_html_structure("").issues) == 4

    @pytest.mark.parametrize(
        "removed,issue",
        [
            ("<!DOCTYPE html>", "Missing <!DOCTYPE html> declaration."),
            ("</html>", "The <html> or </html> tag is missing."),
            ("</head>", "The <head> section is incomplete."),
            ("</body>", "The <body> section is incomplete."),
        ],
    )
    def test_single_missing_marker_reports_one_issue(self, removed, issue):
        code = VALID_HTML.replace(removed, "")
        assert validate_html_structure(code).issues == (issue,)

    def test_custom_markers(self):
        engine = ValidationEngine(required_markers=[(("<main",), "No main element.")])
        assert engine.validate_html_structure("<div></div>").issues == ("No main element.",)


class TestDescribe:

    def test_valid(self):
        assert describe_validation_result(validate_html_structure(VALID_HTML)) == VALID_DESCRIPTION

    def test_invalid_lists_numbered_findings(self):
        text = describe_validation_result(validate_html_structure(BROKEN_HTML))

        assert text.startswith("The HTML structure is not valid yet.")
        assert "1. Missing <!DOCTYPE html> declaration." in text
        assert "2. The <head> section is incomplete." in text
