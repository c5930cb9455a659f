"""Tests for plan parsing and code-block extraction."""

from seditor_cli.response_parser import extract_html_code, format_plan_outline, parse_plan, wrap_html_block


class TestParsePlan:

    def test_numbered_items_with_continuations(self):
        response = "1. Find header\n   check nav\n2) Add class\n3: Test"
        assert parse_plan(response) == ["Find header\ncheck nav", "Add class", "Test"]

    def test_preamble_is_ignored(self):
        response = "Sure, here is a plan.\n\n1. First\n2. Second"
        assert parse_plan(response) == ["First", "Second"]

    def test_no_numbered_lines(self):
        assert parse_plan("Just prose.\nMore prose.") == []

    def test_empty_number_only_items_are_dropped(self):
        assert parse_plan("1.\n2. Real step") == ["Real step"]

    def test_dash_suffix_and_multi_digit(self):
        assert parse_plan("10- Tenth\n11 Eleventh") == ["Tenth", "Eleventh"]

    def test_outline(self):
        assert format_plan_outline(["A", "B"]) == "1. A\n2. B"
        assert format_plan_outline([]) == ""


class TestExtractHtmlCode:

    def test_html_fence(self):
        response = "Intro\n```html\n<html></html>\n```\nOutro"
        assert extract_html_code(response) == "<html></html>"

    def test_html_fence_is_case_insensitive(self):
        assert extract_html_code("```HTML\n<p>x</p>\n```") == "<p>x</p>"

    def test_html_fence_preferred_over_earlier_generic(self):
        response = "```\nplain\n```\n```html\n<b>y</b>\n```"
        assert extract_html_code(response) == "<b>y</b>"

    def test_generic_fence_fallback(self):
        assert extract_html_code("```\n<p>z</p>\n```") == "<p>z</p>"

    def test_crlf_normalised(self):
        assert extract_html_code("```html\r\n<p>a</p>\r\n<p>b</p>\r\n```") == "<p>a</p>\n<p>b</p>"

    def test_no_fence(self):
        assert extract_html_code("<html></html>") is None

    def test_unclosed_fence(self):
        assert extract_html_code("```html\n<html>") is None

    def test_wrap(self):
        assert wrap_html_block("<p/>") == "```html\n<p/>\n```"
