"""Structural validation for generated HTML documents."""

from __future__ import annotations

from typing import List, Optional, Tuple

from .models import ValidationResult

# (required markers, issue reported when any marker is missing)
REQUIRED_MARKERS: List[Tuple[Tuple[str, ...], str]] = [
    (("<!doctype html",), "Missing <!DOCTYPE html> declaration."),
    (("<html", "</html>"), "The <html> or </html> tag is missing."),
    (("<head", "</head>"), "The <head> section is incomplete."),
    (("<body", "</body>"), "The <body> section is incomplete."),
]

VALID_DESCRIPTION = "The HTML structure contains all required elements (doctype, html, head, body)."


class ValidationEngine:
    """Checks generated documents for the markers every HTML page needs."""

    def __init__(self, required_markers: Optional[List[Tuple[Tuple[str, ...], str]]] = None):
        self.required_markers = required_markers or REQUIRED_MARKERS

    def validate_html_structure(self, code: str) -> ValidationResult:
        """Check ``code`` for doctype, html, head and body markers.

        Each check is case-insensitive and independent; every failing check
        contributes exactly one issue.

        Args:
            code: Document text

        Returns:
            ValidationResult
        """
        lowered = code.lower()
        issues = [
            issue
            for markers, issue in self.required_markers
            if not all(marker in lowered for marker in markers)
        ]
        return ValidationResult(is_valid=not issues, issues=tuple(issues))

    @staticmethod
    def describe(result: ValidationResult) -> str:
        """Step body for a validation result."""
        if result.is_valid:
            return VALID_DESCRIPTION
        issue_text = "\n".join(f"{i}. {issue}" for i, issue in enumerate(result.issues, start=1))
        return f"The HTML structure is not valid yet. Findings:\n{issue_text}"


def validate_html_structure(code: str) -> ValidationResult:
    return ValidationEngine().validate_html_structure(code)


def describe_validation_result(result: ValidationResult) -> str:
    return ValidationEngine.describe(result)
