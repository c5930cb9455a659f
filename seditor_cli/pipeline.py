"""Multi-stage editing pipeline.

Turns an edit instruction and one source document into a validated
replacement document by running a fixed sequence of stages against the
completion service. Stages are gated by the complexity profile, every
completion call is stateless (no prior turns), and chunks are analysed one
at a time so the step log is deterministic.
"""

from __future__ import annotations

import logging
import time
import unicodedata
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .chunker import make_chunks
from .complexity import LEVEL_LABELS, describe_profile, evaluate_complexity
from .errors import UserInputError
from .models import (
    Chunk,
    ChunkSummary,
    ComplexityProfile,
    GenerationOptions,
    PendingChange,
    RunResult,
    SourceDocument,
    Step,
)
from .prompts import (
    SNAPSHOT_CHARS,
    build_chunk_prompt,
    build_code_prompt,
    build_context_prompt,
    build_explanation_prompt,
    build_plan_prompt,
    build_repair_prompt,
    build_strategy_prompt,
    build_structure_summary,
    format_chunk_prompt_and_response,
    format_plan_step_body,
    format_prompt_and_response,
    make_context_snippet,
)
from .response_parser import extract_html_code, format_plan_outline, parse_plan, wrap_html_block
from .validation_engine import ValidationEngine

logger = logging.getLogger(__name__)

StatusCallback = Callable[[str], None]

NO_CODE_MESSAGE = "The model did not return usable HTML code."
REPAIR_FAILED_MESSAGE = "Automatic repair did not produce valid HTML. Review the validation steps."
REPAIR_NO_CODE_MESSAGE = "Automatic repair did not produce valid HTML."
EXPLANATION_FALLBACK = "The model did not return an explanation for the generated code."
GENERATION_PLACEHOLDER = "The HTML code is delivered separately as an ```html``` block."
NO_RELEVANT_CHUNKS = "The model did not flag any specific chunk for change. Use the plan and strategy as the main guide."
NO_DOCUMENTED_CHUNKS = "No chunk was considered relevant enough to document."


@dataclass(frozen=True)
class Stage:
    """One pipeline stage: step title, status label and optional profile gate."""
    title: str
    status_label: str = ""
    gate: Optional[Callable[[ComplexityProfile], bool]] = None

    def enabled(self, profile: ComplexityProfile) -> bool:
        return self.gate is None or self.gate(profile)


STAGES: Dict[str, Stage] = {
    "profile": Stage("Task Profile"),
    "plan": Stage("Analysis Plan", "Interpreting the user instruction"),
    "context_audit": Stage(
        "Context Audit",
        "Reviewing the file context in depth",
        gate=lambda p: p.requires_context_audit,
    ),
    "structure_map": Stage("File Structure Map", "Mapping the file structure"),
    "chunk_analysis": Stage(
        "Relevant Chunk Analysis",
        "Analysing relevant code chunks",
        gate=lambda p: p.requires_chunk_analysis,
    ),
    "strategy": Stage("Change Strategy", "Drafting the change strategy"),
    "generation": Stage("HTML Generation", "Generating the final HTML code"),
    "validation": Stage("HTML Validation"),
    "repair": Stage("HTML Structure Repair", "Repairing the HTML structure"),
    "revalidation": Stage("HTML Revalidation"),
    "explanation": Stage("Code Explanation", "Explaining the generated code"),
}


def fold_text(text: str) -> str:
    """Lower-case ``text`` and strip diacritics for marker matching."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()


@dataclass
class _RunState:
    """Working state of a single run; discarded once the RunResult is built."""
    instruction: str
    document: SourceDocument
    profile: ComplexityProfile
    steps: List[Step] = field(default_factory=list)
    plan_response: str = ""
    plan_outline: str = ""
    plan_items: List[str] = field(default_factory=list)
    context_summary: str = ""
    chunks: List[Chunk] = field(default_factory=list)
    chunk_detail: str = ""
    chunk_analysis_ran: bool = False
    strategy: str = ""

    def record(self, stage_key: str, body: str) -> None:
        self.steps.append(Step(title=STAGES[stage_key].title, body=body))


class EditPipeline:
    """Runs the staged plan → analyse → generate → validate → explain workflow."""

    def __init__(
        self,
        llm,
        on_status_update: Optional[StatusCallback] = None,
        options: Optional[GenerationOptions] = None,
        pace_seconds: float = 0.0,
        not_relevant_marker: str = "not relevant",
        snapshot_chars: int = SNAPSHOT_CHARS,
        validator: Optional[ValidationEngine] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the pipeline.

        Args:
            llm: Completion client exposing ``generate(prompt, prior_turns, options)``
            on_status_update: Observer called with a label at each stage transition
            options: Sampling options (defaults to the client's)
            pace_seconds: Cosmetic delay before each announced stage
            not_relevant_marker: Phrase that marks a chunk summary as irrelevant
            snapshot_chars: Size of the head+tail document snapshot sent for generation
            validator: Structural validator (optional)
            sleep: Delay function, replaceable in tests
        """
        self.llm = llm
        self.on_status_update = on_status_update
        self.options = options
        self.pace_seconds = pace_seconds
        self.not_relevant_marker = not_relevant_marker
        self.snapshot_chars = snapshot_chars
        self.validator = validator or ValidationEngine()
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Stage primitives
    # ------------------------------------------------------------------

    def _notify(self, label: str) -> None:
        if self.on_status_update is None or not label:
            return
        try:
            self.on_status_update(label)
        except Exception:
            logger.warning("Status callback failed for %r", label, exc_info=True)

    def _enter(self, stage_key: str) -> None:
        """Announce a stage transition and apply the pacing delay."""
        stage = STAGES[stage_key]
        logger.info("Stage: %s", stage.title)
        self._notify(stage.status_label)
        if self.pace_seconds > 0:
            self._sleep(self.pace_seconds)

    def _run_stage(self, stage_key: str, prompt: str, announce: bool = True) -> str:
        """Call the completion service for one stage with no prior turns."""
        if announce:
            self._enter(stage_key)
        response = self.llm.generate(prompt, [], self.options)
        logger.debug("%s: %d prompt chars -> %d response chars", stage_key, len(prompt), len(response))
        return response

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self, instruction: str, document: Optional[SourceDocument]) -> RunResult:
        """Run every stage for ``instruction`` against ``document``.

        Raises:
            UserInputError: Empty instruction or no document; nothing is run
            LLMServiceError: Propagated unchanged from the completion service
        """
        instruction = (instruction or "").strip()
        if not instruction:
            raise UserInputError("The instruction must not be empty.")
        if document is None:
            raise UserInputError("No active file. Open a file first.")

        profile = evaluate_complexity(instruction, document)
        logger.info(
            "Complexity %s (score %d) for %s, %d lines",
            profile.level, profile.score, document.name, document.line_count,
        )
        state = _RunState(instruction=instruction, document=document, profile=profile)
        state.record("profile", describe_profile(profile, document))

        self._plan(state)
        self._context_audit(state)
        self._structure_map(state)
        self._chunk_analysis(state)
        self._strategy(state)

        code, generation_prompt, generation_response = self._generate(state)
        if code is None:
            logger.warning("No fenced code block in the generation response")
            state.record("generation", format_prompt_and_response(generation_prompt, generation_response))
            return self._no_code_result(state)
        state.record("generation", format_prompt_and_response(generation_prompt, GENERATION_PLACEHOLDER))

        notes = self._base_notes(state)
        validation = self.validator.validate_html_structure(code)
        state.record("validation", self.validator.describe(validation))

        if not validation.is_valid:
            logger.info("Validation failed with %d issue(s); attempting repair", len(validation.issues))
            notes.append(f"Initial validation found {len(validation.issues)} issue(s): {' '.join(validation.issues)}")
            repaired = self._repair(state, code, list(validation.issues), notes)
            if isinstance(repaired, RunResult):
                return repaired
            code = repaired

        explanation = self._explain(state, code)
        return RunResult(
            steps=tuple(state.steps),
            summary=explanation.replace("\n", " ").strip(),
            notes=tuple(notes),
            change=PendingChange(full_content=code),
            explanation=explanation,
            code_block=wrap_html_block(code),
        )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _plan(self, state: _RunState) -> None:
        prompt = build_plan_prompt(state.instruction, state.document, state.profile)
        state.plan_response = self._run_stage("plan", prompt)
        state.plan_items = parse_plan(state.plan_response)
        state.plan_outline = format_plan_outline(state.plan_items)
        state.record("plan", format_plan_step_body(prompt, state.plan_response, state.plan_outline))

    def _context_audit(self, state: _RunState) -> None:
        if STAGES["context_audit"].enabled(state.profile):
            prompt = build_context_prompt(state.instruction, state.document, state.plan_outline, state.profile)
            state.context_summary = self._run_stage("context_audit", prompt)
            state.record("context_audit", format_prompt_and_response(prompt, state.context_summary))
            return

        focus = state.plan_items[0] if state.plan_items else "the main goal stated by the user"
        state.context_summary = (
            f"The instruction is simple enough that the in-depth context audit was skipped. Focus on {focus}."
        )
        state.record("context_audit", state.context_summary)

    def _structure_map(self, state: _RunState) -> None:
        self._enter("structure_map")
        chunk_size = state.profile.chunk_size
        state.chunks = make_chunks(state.document.content, chunk_size)
        state.record(
            "structure_map",
            build_structure_summary(state.document, chunk_size, len(state.chunks), state.profile),
        )

    def _is_not_relevant(self, summary: str) -> bool:
        marker = fold_text(self.not_relevant_marker)
        return bool(marker) and marker in fold_text(summary)

    def _chunk_analysis(self, state: _RunState) -> None:
        profile = state.profile
        if not (STAGES["chunk_analysis"].enabled(profile) and state.chunks):
            reason = profile.skip_analysis_reason or "the document has no lines to analyse"
            state.chunk_detail = f"Chunk analysis was skipped because {reason}."
            state.record("chunk_analysis", state.chunk_detail)
            return

        self._enter("chunk_analysis")
        summaries: List[ChunkSummary] = []
        documented: List[str] = []
        limit = profile.documented_chunk_limit

        # One call at a time keeps the step log ordered
        for chunk in state.chunks:
            prompt = build_chunk_prompt(
                chunk,
                state.instruction,
                state.plan_outline,
                state.context_summary,
                profile,
                self.not_relevant_marker,
            )
            response = self._run_stage("chunk_analysis", prompt, announce=False)
            summaries.append(ChunkSummary(chunk.index, chunk.start_line, chunk.end_line, response))
            if len(documented) < limit:
                documented.append(format_chunk_prompt_and_response(chunk, prompt, response))

        relevant = [
            f"• Lines {s.start_line}-{s.end_line}:\n{s.summary_text}"
            for s in summaries
            if not self._is_not_relevant(s.summary_text)
        ]
        state.chunk_detail = "\n\n".join(relevant) if relevant else NO_RELEVANT_CHUNKS
        state.chunk_analysis_ran = True
        logger.info("Analysed %d chunk(s), %d relevant", len(summaries), len(relevant))

        body = "\n\n".join(documented) or NO_DOCUMENTED_CHUNKS
        if len(summaries) > limit:
            omitted = len(summaries) - limit
            body += f"\n\nNote: {omitted} more chunk(s) were analysed but are not shown to keep the log short."
        state.record("chunk_analysis", body)

    def _strategy(self, state: _RunState) -> None:
        prompt = build_strategy_prompt(
            state.instruction,
            state.plan_outline,
            state.context_summary,
            state.chunk_detail,
            state.profile,
        )
        state.strategy = self._run_stage("strategy", prompt)
        state.record("strategy", format_prompt_and_response(prompt, state.strategy))

    def _generate(self, state: _RunState):
        snapshot = make_context_snippet(state.document.content, self.snapshot_chars)
        prompt = build_code_prompt(
            state.instruction,
            state.plan_outline or state.plan_response,
            state.strategy,
            state.context_summary,
            state.chunk_detail,
            snapshot,
            state.profile,
        )
        response = self._run_stage("generation", prompt)
        return extract_html_code(response), prompt, response

    def _repair(self, state: _RunState, code: str, issues: List[str], notes: List[str]):
        """Single repair attempt. Returns the repaired code, or a failure RunResult."""
        prompt = build_repair_prompt(state.instruction, code, issues)
        response = self._run_stage("repair", prompt)
        state.record("repair", format_prompt_and_response(prompt, response))

        repaired = extract_html_code(response)
        if repaired is None:
            logger.warning("No fenced code block in the repair response")
            state.record("revalidation", "The model did not return an HTML code block during the repair attempt.")
            notes.append("The model did not return HTML code during the repair stage.")
            return self._failure_result(state, notes, REPAIR_NO_CODE_MESSAGE, code_block=None)

        revalidation = self.validator.validate_html_structure(repaired)
        state.record("revalidation", self.validator.describe(revalidation))
        if not revalidation.is_valid:
            logger.warning("Repaired HTML still invalid: %s", "; ".join(revalidation.issues))
            notes.append(
                "Automatic repair failed to produce valid HTML: " + " ".join(revalidation.issues)
            )
            return self._failure_result(state, notes, REPAIR_FAILED_MESSAGE, code_block=wrap_html_block(repaired))

        notes.append("Automatic structure repair succeeded.")
        return repaired

    def _explain(self, state: _RunState, code: str) -> str:
        prompt = build_explanation_prompt(code, state.instruction, state.plan_outline, state.profile)
        explanation = self._run_stage("explanation", prompt).strip() or EXPLANATION_FALLBACK
        state.record("explanation", format_prompt_and_response(prompt, explanation))
        return explanation

    # ------------------------------------------------------------------
    # Result assembly
    # ------------------------------------------------------------------

    def _base_notes(self, state: _RunState) -> List[str]:
        profile = state.profile
        audit_ran = STAGES["context_audit"].enabled(profile)
        return [
            f"Task complexity: {LEVEL_LABELS[profile.level]} (score {profile.score}).",
            f"Context audit: {'run' if audit_ran else 'skipped'}.",
            f"Chunk analysis: {'run' if state.chunk_analysis_ran else 'skipped'}.",
            f"Analysis chunk size: {profile.chunk_size} lines.",
        ]

    def _no_code_result(self, state: _RunState) -> RunResult:
        profile = state.profile
        notes = [
            f"Task complexity: {LEVEL_LABELS[profile.level]} (score {profile.score}).",
            "The generation response did not contain a fenced HTML code block.",
        ]
        return self._failure_result(state, notes, NO_CODE_MESSAGE, code_block=None)

    @staticmethod
    def _failure_result(
        state: _RunState,
        notes: List[str],
        message: str,
        code_block: Optional[str],
    ) -> RunResult:
        return RunResult(
            steps=tuple(state.steps),
            summary=message,
            notes=tuple(notes),
            change=PendingChange(),
            explanation=message,
            code_block=code_block,
        )


def run_pipeline(
    instruction: str,
    document: Optional[SourceDocument],
    llm,
    on_status_update: Optional[StatusCallback] = None,
    **kwargs,
) -> RunResult:
    """Convenience wrapper: build an EditPipeline and run it once."""
    return EditPipeline(llm, on_status_update=on_status_update, **kwargs).run(instruction, document)
