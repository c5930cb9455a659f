"""Tests for prompt builders and truncation."""

from seditor_cli.complexity import evaluate_complexity
from seditor_cli.models import Chunk, SourceDocument
from seditor_cli.prompts import (
    build_chunk_prompt,
    build_code_prompt,
    build_explanation_prompt,
    build_plan_prompt,
    build_repair_prompt,
    build_strategy_prompt,
    format_chunk_prompt_and_response,
    format_plan_step_body,
    make_context_snippet,
    truncate_for_prompt,
)


def profile_for(instruction: str, lines: int = 10):
    doc = SourceDocument("index.html", "html", "\n".join(["<p>x</p>"] * lines))
    return doc, evaluate_complexity(instruction, doc)


class TestTruncation:

    def test_short_text_unchanged(self):
        assert truncate_for_prompt("abc", 10) == "abc"

    def test_keeps_head_and_tail(self):
        text = "".join(chr(ord("a") + i % 26) for i in range(10000))
        result = truncate_for_prompt(text, 6000)

        assert result.startswith(text[:5595])
        assert result.endswith(text[-400:])
        assert "\n...\n" in result
        assert len(result) == 5595 + 5 + 400

    def test_small_limit_suffix_is_a_third(self):
        result = truncate_for_prompt("x" * 100 + "END", 30)
        assert result.endswith("END") and result.endswith("x" * 7 + "END")

    def test_snippet_splits_budget_evenly(self):
        content = "A" * 50 + "B" * 50
        assert make_context_snippet(content, 20) == "A" * 10 + "\n...\n" + "B" * 10
        assert make_context_snippet("short", 20) == "short"


class TestBuilders:

    def test_plan_prompt_mentions_profile(self):
        doc, profile = profile_for("refactor the layout")
        prompt = build_plan_prompt("refactor the layout", doc, profile)

        assert '"refactor the layout"' in prompt
        assert "structure & architecture" in prompt
        assert "index.html (10 lines, language HTML)" in prompt
        assert "4-5 steps" in prompt

    def test_chunk_prompt_uses_marker(self):
        doc, profile = profile_for("x")
        chunk = Chunk(0, 1, 10, doc.content)
        prompt = build_chunk_prompt(chunk, "x", "", "ctx", profile, not_relevant_marker="irrelevant")

        assert "lines 1-10" in prompt
        assert '"Irrelevant because ..."' in prompt

    def test_strategy_point_limit_depends_on_level(self):
        _, low = profile_for("x")
        _, high = profile_for("refactor api " + "w " * 90, lines=250)

        assert "at most 5 points" in build_strategy_prompt("x", "", "", "", low)
        assert "at most 6 points" in build_strategy_prompt("x", "", "", "", high)

    def test_code_prompt_embeds_snapshot_and_asks_for_fence(self):
        _, profile = profile_for("x")
        prompt = build_code_prompt("x", "1. a", "s", "c", "d", "<p>snapshot</p>", profile)

        assert "```html\n<p>snapshot</p>\n```" in prompt
        assert "single Markdown code block" in prompt

    def test_repair_prompt_lists_issues(self):
        prompt = build_repair_prompt("x", "<p>", ["Missing doctype.", "No head."])
        assert "1. Missing doctype.\n2. No head." in prompt

    def test_repair_prompt_without_issues(self):
        assert "The basic structure is incomplete." in build_repair_prompt("x", "<p>", [])

    def test_explanation_sentence_count(self):
        _, low = profile_for("x")
        assert "3-4 sentences" in build_explanation_prompt("<p>", "x", "", low)


class TestFormatting:

    def test_plan_body_appends_outline(self):
        body = format_plan_step_body("P", "R", "1. a")
        assert body == "Prompt:\nP\n\nResponse:\nR\n\nStructured steps:\n1. a"
        assert format_plan_step_body("P", "R", "") == "Prompt:\nP\n\nResponse:\nR"

    def test_chunk_header(self):
        text = format_chunk_prompt_and_response(Chunk(1, 201, 400, ""), "P", "R")
        assert text.startswith("[Chunk 2 • Lines 201-400]\nPrompt:\nP")
