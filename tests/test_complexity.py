"""Tests for the complexity evaluator."""

import pytest

from seditor_cli.complexity import count_directives, describe_profile, evaluate_complexity
from seditor_cli.models import SourceDocument


def make_document(lines: int) -> SourceDocument:
    return SourceDocument(
        name="page.html",
        language="html",
        content="\n".join(f"<p>{i}</p>" for i in range(lines)),
    )


class TestEvaluateComplexity:
    """Scoring and stage gating."""

    def test_short_plain_instruction_is_low(self):
        instruction = "please change the page title to say hello to everyone today"
        profile = evaluate_complexity(instruction, make_document(30))

        assert profile.word_count == 11
        assert profile.score == 0
        assert profile.level == "low"
        assert profile.chunk_size == 200
        assert profile.requires_context_audit is False
        assert profile.requires_chunk_analysis is False
        assert profile.documented_chunk_limit == 0
        assert profile.attention_phrases == ()
        assert "30-line" in profile.skip_analysis_reason

    def test_long_keyword_instruction_is_high(self):
        instruction = "refactor responsive " + " ".join(["word"] * 88)
        profile = evaluate_complexity(instruction, make_document(250))

        assert profile.word_count == 90
        assert profile.score == 9
        assert profile.level == "high"
        assert profile.chunk_size == 110
        assert profile.requires_context_audit is True
        assert profile.requires_chunk_analysis is True
        assert profile.documented_chunk_limit == 6
        assert profile.attention_phrases == ("structure & architecture", "visual style")
        assert profile.skip_analysis_reason == ""

    def test_keyword_group_counts_once(self):
        profile = evaluate_complexity("refactor the architecture and structure", make_document(5))

        assert profile.score == 2
        assert profile.attention_phrases == ("structure & architecture",)

    def test_keywords_match_case_insensitive_substrings(self):
        profile = evaluate_complexity("Improve ACCESSIBILITY via restyled CSS", make_document(5))

        # "restyled" contains "style"; both terms hit the same group
        assert profile.attention_phrases == ("visual style", "optimization & accessibility")
        assert profile.score == 3
        assert profile.level == "medium"

    def test_large_low_document_still_gets_audit_and_chunks(self):
        profile = evaluate_complexity("fix typo", make_document(120))
        assert profile.level == "low"
        assert profile.requires_context_audit is False

        big = evaluate_complexity("fix typo", make_document(210))
        assert big.level == "low"
        assert big.requires_context_audit is True
        assert big.requires_chunk_analysis is True

    def test_medium_level_needs_more_than_forty_lines_for_chunks(self):
        short = evaluate_complexity("refactor it", make_document(40))
        longer = evaluate_complexity("refactor it", make_document(41))

        assert short.level == longer.level == "low"
        assert short.requires_chunk_analysis is False

        medium = evaluate_complexity("refactor the api", make_document(41))
        assert medium.level == "medium"
        assert medium.requires_chunk_analysis is True

    @pytest.mark.parametrize(
        "score_words,expected",
        [(25, 0), (26, 1), (50, 1), (51, 2), (80, 2), (81, 3)],
    )
    def test_word_thresholds(self, score_words, expected):
        profile = evaluate_complexity(" ".join(["x"] * score_words), make_document(1))
        assert profile.score == expected

    def test_empty_document(self):
        profile = evaluate_complexity("hi", SourceDocument("a.html", "html", ""))
        assert profile.file_line_count == 0
        assert profile.level == "low"


class TestDirectives:
    """Sentence counting."""

    def test_at_least_one(self):
        assert count_directives("") == 1
        assert count_directives("no punctuation") == 1

    def test_counts_non_empty_segments(self):
        assert count_directives("Do this. Then that! Why? ...") == 3

    def test_directive_score(self):
        profile = evaluate_complexity("A. B. C. D. E.", make_document(1))
        assert profile.directive_count == 5
        assert profile.score == 2


class TestDescribeProfile:
    def test_lists_skipped_stages(self):
        doc = make_document(10)
        profile = evaluate_complexity("change the title", doc)
        text = describe_profile(profile, doc)

        assert "Complexity level: Low" in text
        assert "Context audit (skipped)" in text
        assert "Chunk analysis (skipped)" in text
        assert "HTML" in text
