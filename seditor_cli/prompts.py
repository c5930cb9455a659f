"""Prompt builders for each pipeline stage.

Every builder returns one self-contained prompt string. Earlier stages are
carried forward only as textual summaries, truncated to fixed limits so the
prompts stay within the completion service's context window.
"""

from __future__ import annotations

from typing import Sequence

from .complexity import LEVEL_LABELS, PLAN_STEP_RANGES
from .models import Chunk, ComplexityProfile, SourceDocument

CONTEXT_LIMIT = 6000
CHUNK_CONTEXT_LIMIT = 1200
CHUNK_TEXT_LIMIT = 1500
STRATEGY_INPUT_LIMIT = 2000
CODE_PLAN_LIMIT = 2500
CODE_CONTEXT_LIMIT = 2000
REPAIR_CODE_LIMIT = 6000
EXPLANATION_CODE_LIMIT = 4000
EXPLANATION_PLAN_LIMIT = 1500
SNAPSHOT_CHARS = 8000


def truncate_for_prompt(text: str, limit: int) -> str:
    """Keep the head and tail of ``text`` so the result is about ``limit`` characters.

    Args:
        text: Text to shorten
        limit: Target length

    Returns:
        ``text`` unchanged when short enough, else ``prefix + "\\n...\\n" + suffix``
    """
    if len(text) <= limit:
        return text
    suffix_length = min(400, limit // 3)
    prefix_length = max(limit - suffix_length - 5, 0)
    suffix = text[-suffix_length:] if suffix_length > 0 else ""
    return f"{text[:prefix_length]}\n...\n{suffix}"


def make_context_snippet(content: str, max_characters: int = SNAPSHOT_CHARS) -> str:
    """Split the budget evenly between the start and the end of ``content``."""
    if len(content) <= max_characters:
        return content
    prefix_length = max_characters // 2
    suffix_length = max_characters - prefix_length
    return f"{content[:prefix_length]}\n...\n{content[-suffix_length:]}"


def build_plan_prompt(instruction: str, document: SourceDocument, complexity: ComplexityProfile) -> str:
    low, high = PLAN_STEP_RANGES[complexity.level]
    if complexity.attention_phrases:
        attention = f"Pay special attention to: {', '.join(complexity.attention_phrases)}."
    else:
        attention = "Stay focused on the end result the user asked for."
    return f"""You are an advanced coding assistant. User instruction:
"{instruction}"

Task profile:
- Complexity level: {LEVEL_LABELS[complexity.level]} (score {complexity.score}).
- Active file: {document.name} ({document.line_count} lines, language {document.display_language}).
- Main focus: {attention}

Write a numbered work plan of {low}-{high} steps, matching the number of steps to the difficulty of the task.
Every step must explain:
• Its specific goal.
• The code area to review (function, component, or range of lines).
• Checks or risks to keep in mind.

Keep the plan chronological and ready to execute in the next stage."""


def build_context_prompt(
    instruction: str,
    document: SourceDocument,
    plan_outline: str,
    complexity: ComplexityProfile,
) -> str:
    plan_section = plan_outline or "No plan is available yet; rely on your understanding of the instruction."
    content = truncate_for_prompt(document.content, CONTEXT_LIMIT)
    return f"""User instruction:
"{instruction}"

Current analysis plan:
{plan_section}

Here is the content of {document.name} (truncated to fit):
```{document.language}
{content}
```

Your task:
1. Summarize the main structure of the file and the parts related to the instruction.
2. Identify areas likely to be affected by the change (mention lines or structural markers).
3. Highlight risks or dependencies that must be preserved.

Answer concisely but informatively."""


def build_chunk_prompt(
    chunk: Chunk,
    instruction: str,
    plan_outline: str,
    context_summary: str,
    complexity: ComplexityProfile,
    not_relevant_marker: str = "not relevant",
) -> str:
    plan = plan_outline or "-"
    context = truncate_for_prompt(context_summary, CHUNK_CONTEXT_LIMIT)
    text = truncate_for_prompt(chunk.text, CHUNK_TEXT_LIMIT)
    marker = not_relevant_marker[:1].upper() + not_relevant_marker[1:]
    return f"""User instruction:
"{instruction}"

Analysis plan:
{plan}

Context summary (truncated):
{context}

Evaluate the code chunk at lines {chunk.start_line}-{chunk.end_line}:
{text}

Your task:
1. Explain whether this chunk is relevant to the instruction.
2. If it is relevant, name the parts that must change and why.
3. If it is not relevant, answer briefly "{marker} because ..." (one sentence at most).
4. Do not propose code changes at this stage, only analysis."""


def build_strategy_prompt(
    instruction: str,
    plan_outline: str,
    context_summary: str,
    chunk_detail: str,
    complexity: ComplexityProfile,
) -> str:
    plan = plan_outline or "-"
    context = truncate_for_prompt(context_summary, STRATEGY_INPUT_LIMIT)
    detail = truncate_for_prompt(chunk_detail, STRATEGY_INPUT_LIMIT)
    max_points = 6 if complexity.level == "high" else 5
    return f"""User instruction:
"{instruction}"

Analysis plan:
{plan}

Context summary:
{context}

Chunk analysis findings:
{detail}

Write a structured change strategy as a bullet list (at most {max_points} points). Every point must cover:
- Its specific goal.
- The affected code area (lines, HTML elements, or structure).
- Risks or checks to perform after the change."""


def build_code_prompt(
    instruction: str,
    plan_outline: str,
    strategy: str,
    context_summary: str,
    chunk_detail: str,
    context_snippet: str,
    complexity: ComplexityProfile,
) -> str:
    plan = truncate_for_prompt(plan_outline, CODE_PLAN_LIMIT)
    strategy_text = truncate_for_prompt(strategy, CODE_PLAN_LIMIT)
    context = truncate_for_prompt(context_summary, CODE_CONTEXT_LIMIT)
    detail = truncate_for_prompt(chunk_detail, CODE_CONTEXT_LIMIT)
    if complexity.level == "high":
        completeness = "Make sure the final code is production-ready and leaves no placeholders."
    else:
        completeness = "Make sure the final code runs without errors."
    return f"""User instruction:
"{instruction}"

Analysis plan:
{plan}

Change strategy:
{strategy_text}

Context summary:
{context}

Relevant chunk details:
{detail}

Here is the file before the change (truncated):
```html
{context_snippet}
```

Produce the final, tidied HTML file that applies the instruction above. Apply the whole strategy, keep the structure consistent, and preserve the parts that do not need to change.
Format the answer as a single Markdown code block labelled ```html with no extra text outside that block. If JavaScript or CSS is needed, include it inside the HTML document. {completeness}"""


def build_repair_prompt(instruction: str, original_html: str, issues: Sequence[str]) -> str:
    if issues:
        issue_text = "\n".join(f"{i}. {issue}" for i, issue in enumerate(issues, start=1))
    else:
        issue_text = "- The basic structure is incomplete."
    code = truncate_for_prompt(original_html, REPAIR_CODE_LIMIT)
    return f"""Here is the user instruction:
"{instruction}"

The HTML you produced is not valid yet. Problems found:
{issue_text}

Here is the code to fix:
```html
{code}
```

Fix the code so that:
1. It contains <!DOCTYPE html> and matching <html>, <head> and <body> elements.
2. The semantic structure stays tidy and follows the original instruction.
3. Important content from the previous version is not dropped without a clear reason.

Return the final result as a ```html code block with no extra explanation."""


def build_explanation_prompt(
    html_code: str,
    instruction: str,
    plan_outline: str,
    complexity: ComplexityProfile,
) -> str:
    plan = truncate_for_prompt(plan_outline, EXPLANATION_PLAN_LIMIT) if plan_outline else "-"
    code = truncate_for_prompt(html_code, EXPLANATION_CODE_LIMIT)
    sentences = "4-5 sentences" if complexity.level == "high" else "3-4 sentences"
    return f"""You just wrote the following HTML document:

```html
{code}
```

User instruction:
"{instruction}"

The plan that was prepared:
{plan}

Explain this code in {sentences} of clear English. Focus on:
- The page structure and its main sections.
- Important changes compared to the previous version.
- The benefit or effect for the end user.

Avoid bullets, lists, or additional code blocks."""


def build_structure_summary(
    document: SourceDocument,
    chunk_size: int,
    chunk_count: int,
    complexity: ComplexityProfile,
) -> str:
    return "\n".join([
        "File structure:",
        f"• Total lines: {document.line_count}",
        f"• Evaluation chunks: {chunk_count} (at most {chunk_size} lines per chunk)",
        f"• Dominant language: {document.display_language}",
        f"• Complexity profile: {LEVEL_LABELS[complexity.level]}",
    ])


def format_prompt_and_response(prompt: str, response: str) -> str:
    return f"Prompt:\n{prompt}\n\nResponse:\n{response}"


def format_plan_step_body(prompt: str, response: str, plan_outline: str) -> str:
    body = format_prompt_and_response(prompt, response)
    if plan_outline:
        body += f"\n\nStructured steps:\n{plan_outline}"
    return body


def format_chunk_prompt_and_response(chunk: Chunk, prompt: str, response: str) -> str:
    return (
        f"[Chunk {chunk.index + 1} • Lines {chunk.start_line}-{chunk.end_line}]\n"
        f"{format_prompt_and_response(prompt, response)}"
    )
