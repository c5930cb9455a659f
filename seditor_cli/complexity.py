"""Heuristic complexity scoring for edit instructions.

The profile decides which pipeline stages run and how finely the document is
chunked. Scoring is additive and fully deterministic.
"""

from __future__ import annotations

import re
from typing import Dict, List, Tuple

from .models import ComplexityLevel, ComplexityProfile, SourceDocument

# (synonyms, increment, label); a group counts once however many synonyms match
KEYWORD_GROUPS: List[Tuple[Tuple[str, ...], int, str]] = [
    (("refactor", "architecture", "restructure", "structure"), 2, "structure & architecture"),
    (("component", "modular", "reusable"), 1, "reusable components"),
    (("style", "css", "responsive"), 1, "visual style"),
    (("animation", "animate", "interaction", "transition"), 1, "interaction / animation"),
    (("optimization", "optimize", "performance", "accessibility", "seo"), 2, "optimization & accessibility"),
    (("integration", "api", "data", "fetch"), 2, "data integration"),
]

LEVEL_LABELS: Dict[str, str] = {
    "low": "Low",
    "medium": "Medium",
    "high": "High",
}

LEVEL_DESCRIPTIONS: Dict[str, str] = {
    "low": "Focused request with a limited scope.",
    "medium": "The change spans several aspects and needs some context tracing.",
    "high": "Complex instruction, likely touching many parts and needing an in-depth review.",
}

PLAN_STEP_RANGES: Dict[str, Tuple[int, int]] = {
    "low": (4, 5),
    "medium": (5, 7),
    "high": (7, 9),
}

CHUNK_SIZES: Dict[str, int] = {"low": 200, "medium": 150, "high": 110}
DOCUMENTED_CHUNK_LIMITS: Dict[str, int] = {"low": 0, "medium": 4, "high": 6}

_DIRECTIVE_SPLIT = re.compile(r"[.!?]")


def _word_score(word_count: int) -> int:
    if word_count > 80:
        return 3
    if word_count > 50:
        return 2
    if word_count > 25:
        return 1
    return 0


def _directive_score(directive_count: int) -> int:
    if directive_count > 4:
        return 2
    if directive_count > 2:
        return 1
    return 0


def _line_score(line_count: int) -> int:
    if line_count > 220:
        return 3
    if line_count > 140:
        return 2
    if line_count > 70:
        return 1
    return 0


def _level_for(score: int) -> ComplexityLevel:
    if score <= 2:
        return "low"
    if score <= 5:
        return "medium"
    return "high"


def count_directives(instruction: str) -> int:
    """Number of non-empty sentences in ``instruction`` (at least 1)."""
    segments = [s for s in _DIRECTIVE_SPLIT.split(instruction) if s.strip()]
    return max(len(segments), 1)


def evaluate_complexity(instruction: str, document: SourceDocument) -> ComplexityProfile:
    """Score an instruction against the document it targets.

    Args:
        instruction: Natural-language edit request
        document: Document the request applies to

    Returns:
        Immutable ComplexityProfile
    """
    word_count = len(instruction.split())
    directive_count = count_directives(instruction)
    line_count = document.line_count

    score = _word_score(word_count) + _directive_score(directive_count) + _line_score(line_count)

    lowered = instruction.lower()
    attention: List[str] = []
    for synonyms, increment, label in KEYWORD_GROUPS:
        if any(term in lowered for term in synonyms):
            score += increment
            attention.append(label)

    level = _level_for(score)
    requires_context_audit = level != "low" or line_count > 150
    requires_chunk_analysis = (level != "low" and line_count > 40) or line_count > 200

    skip_reason = ""
    if not requires_chunk_analysis:
        skip_reason = (
            f"the instruction is focused and the {line_count}-line file is still easy "
            "to read without splitting it into chunks"
        )

    return ComplexityProfile(
        level=level,
        score=score,
        word_count=word_count,
        directive_count=directive_count,
        file_line_count=line_count,
        chunk_size=CHUNK_SIZES[level],
        requires_context_audit=requires_context_audit,
        requires_chunk_analysis=requires_chunk_analysis,
        documented_chunk_limit=DOCUMENTED_CHUNK_LIMITS[level],
        attention_phrases=tuple(attention),
        skip_analysis_reason=skip_reason,
    )


def describe_profile(profile: ComplexityProfile, document: SourceDocument) -> str:
    """Human-readable profile summary recorded as the first step of a run."""
    attention = ", ".join(profile.attention_phrases) if profile.attention_phrases else "-"
    stages = " → ".join([
        "Analysis plan",
        "Context audit" if profile.requires_context_audit else "Context audit (skipped)",
        "Structure map",
        "Chunk analysis" if profile.requires_chunk_analysis else "Chunk analysis (skipped)",
        "Change strategy",
        "HTML generation",
        "Structure validation",
        "Final explanation",
    ])
    return "\n".join([
        f"Complexity level: {LEVEL_LABELS[profile.level]} (heuristic score {profile.score}).",
        LEVEL_DESCRIPTIONS[profile.level],
        f"Instruction length: {profile.word_count} words across {profile.directive_count} sentence(s)/directive(s).",
        f"Active file size: {profile.file_line_count} lines ({document.display_language}).",
        f"Detected focus areas: {attention}",
        f"Execution stages: {stages}",
    ])
