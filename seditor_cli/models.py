"""Data models for the editing pipeline and its conversation log."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple

ComplexityLevel = Literal["low", "medium", "high"]

LANGUAGE_NAMES = {
    "html": "HTML",
    "css": "CSS",
    "javascript": "JavaScript",
}

EXTENSION_LANGUAGES = {
    ".html": "html",
    ".htm": "html",
    ".css": "css",
    ".js": "javascript",
    ".mjs": "javascript",
}

INTRO_MESSAGE = (
    "Hi! Describe the change you want for the active file and I will plan, "
    "analyse and rewrite it for you."
)
APPLIED_MESSAGE = "Changes applied to the file."


def count_lines(content: str) -> int:
    """Number of lines in ``content``; an empty string has zero lines."""
    if not content:
        return 0
    return content.count("\n") + 1


@dataclass(frozen=True)
class SourceDocument:
    """The single document targeted by a run."""
    name: str
    language: str
    content: str
    line_count: int = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "line_count", count_lines(self.content))

    @property
    def display_language(self) -> str:
        return LANGUAGE_NAMES.get(self.language, self.language.upper() or "Text")

    @classmethod
    def from_path(cls, path: Path) -> "SourceDocument":
        """Load a document from disk, inferring its language from the extension."""
        language = EXTENSION_LANGUAGES.get(path.suffix.lower(), path.suffix.lstrip(".").lower())
        return cls(name=path.name, language=language, content=path.read_text(encoding="utf-8"))


@dataclass(frozen=True)
class ComplexityProfile:
    """Heuristic classification that gates the pipeline stages."""
    level: ComplexityLevel
    score: int
    word_count: int
    directive_count: int
    file_line_count: int
    chunk_size: int
    requires_context_audit: bool
    requires_chunk_analysis: bool
    documented_chunk_limit: int
    attention_phrases: Tuple[str, ...] = ()
    skip_analysis_reason: str = ""


@dataclass(frozen=True)
class Chunk:
    """A contiguous, 1-indexed inclusive line range of a document."""
    index: int
    start_line: int
    end_line: int
    text: str

    def __str__(self) -> str:
        return f"lines {self.start_line}-{self.end_line}"


@dataclass(frozen=True)
class ChunkSummary:
    """Model analysis of one chunk."""
    index: int
    start_line: int
    end_line: int
    summary_text: str


@dataclass(frozen=True)
class Step:
    """One audit-log record of a pipeline stage."""
    title: str
    body: str

    def to_dict(self) -> Dict[str, str]:
        return {"title": self.title, "body": self.body}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Step":
        return cls(title=data["title"], body=data["body"])


@dataclass(frozen=True)
class ValidationResult:
    """Result of validating a generated document."""
    is_valid: bool
    issues: Tuple[str, ...] = ()

    def __str__(self) -> str:
        if self.is_valid:
            return "✅ Validation passed"
        return f"❌ Validation failed: {', '.join(self.issues)}"


@dataclass(frozen=True)
class CodeEditOperation:
    """Replace lines ``start_line``..``end_line`` (1-indexed, inclusive)."""
    start_line: int
    end_line: int
    replacement: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start_line": self.start_line,
            "end_line": self.end_line,
            "replacement": self.replacement,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CodeEditOperation":
        return cls(
            start_line=int(data["start_line"]),
            end_line=int(data["end_line"]),
            replacement=data.get("replacement", ""),
        )


@dataclass(frozen=True)
class PendingChange:
    """Proposed document mutation: a full replacement or a line-range edit list."""
    edits: Tuple[CodeEditOperation, ...] = ()
    full_content: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.edits and self.full_content is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "edits": [edit.to_dict() for edit in self.edits],
            "full_content": self.full_content,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PendingChange":
        return cls(
            edits=tuple(CodeEditOperation.from_dict(e) for e in data.get("edits") or []),
            full_content=data.get("full_content"),
        )


@dataclass(frozen=True)
class GenerationOptions:
    """Sampling options passed to the completion service."""
    model: str
    temperature: float = 0.4
    top_p: float = 0.95


@dataclass(frozen=True)
class RunResult:
    """Terminal outcome of one pipeline run."""
    steps: Tuple[Step, ...]
    summary: str
    notes: Tuple[str, ...]
    change: PendingChange
    explanation: str
    code_block: Optional[str] = None

    @property
    def has_change(self) -> bool:
        return not self.change.is_empty

    def to_dict(self) -> Dict[str, Any]:
        return {
            "steps": [step.to_dict() for step in self.steps],
            "summary": self.summary,
            "notes": list(self.notes),
            "change": self.change.to_dict(),
            "explanation": self.explanation,
            "code_block": self.code_block,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunResult":
        return cls(
            steps=tuple(Step.from_dict(s) for s in data.get("steps", [])),
            summary=data.get("summary", ""),
            notes=tuple(data.get("notes", [])),
            change=PendingChange.from_dict(data.get("change") or {}),
            explanation=data.get("explanation", ""),
            code_block=data.get("code_block"),
        )


@dataclass
class ApplyResult:
    """Result of applying a pending change to a file."""
    success: bool
    files_changed: List[str]
    backup_id: Optional[str] = None
    error: Optional[str] = None

    def __str__(self) -> str:
        if self.success:
            return f"✅ Applied changes to {len(self.files_changed)} file(s)"
        return f"❌ Failed: {self.error}"


@dataclass
class ConversationMessage:
    """A single entry of the per-document conversation log.

    ``kind`` is one of ``text``, ``status`` (the in-progress placeholder),
    ``run`` (the step log of a finished run) or ``code`` (a proposed change).
    Only ``run`` messages carry the full result; ``code`` messages carry the change.
    """
    role: Literal["user", "assistant"]
    kind: Literal["text", "status", "run", "code"]
    text: str = ""
    result: Optional[RunResult] = None
    change: Optional[PendingChange] = None
    applied: bool = False
    duration: float = 0.0
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __str__(self) -> str:
        return f"[{self.role}/{self.kind}] {self.text[:100]}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role,
            "kind": self.kind,
            "text": self.text,
            "result": self.result.to_dict() if self.result else None,
            "change": self.change.to_dict() if self.change else None,
            "applied": self.applied,
            "duration": self.duration,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConversationMessage":
        result = data.get("result")
        change = data.get("change")
        if change:
            change = PendingChange.from_dict(change)
        elif result and data.get("kind") == "code":
            # Older files kept the whole run result on the proposal
            change = PendingChange.from_dict(result.get("change") or {})
        else:
            change = None
        return cls(
            id=data.get("id") or str(uuid.uuid4()),
            role=data["role"],
            kind=data.get("kind", "text"),
            text=data.get("text", ""),
            result=RunResult.from_dict(result) if result else None,
            change=change,
            applied=data.get("applied", False),
            duration=data.get("duration", 0.0),
            timestamp=data.get("timestamp", ""),
        )


@dataclass
class ConversationState:
    """Ordered conversation for one document plus its last unapplied change."""
    messages: List[ConversationMessage] = field(default_factory=list)
    pending_change: Optional[PendingChange] = None

    @classmethod
    def default(cls) -> "ConversationState":
        return cls(messages=[ConversationMessage(role="assistant", kind="text", text=INTRO_MESSAGE)])

    def find(self, message_id: str) -> Optional[int]:
        for index, message in enumerate(self.messages):
            if message.id == message_id:
                return index
        return None

    def begin_analysis(self, instruction: str, status_label: str = "Preparing the initial analysis...") -> str:
        """Record the user instruction and a status placeholder; return the placeholder id."""
        self.messages.append(ConversationMessage(role="user", kind="text", text=instruction))
        placeholder = ConversationMessage(role="assistant", kind="status", text=status_label)
        self.messages.append(placeholder)
        return placeholder.id

    def update_status(self, message_id: str, label: str) -> None:
        index = self.find(message_id)
        if index is not None and self.messages[index].kind == "status":
            self.messages[index].text = label

    def complete_analysis(self, message_id: str, result: RunResult, duration: float = 0.0) -> None:
        """Replace the placeholder with the run log and queue any proposed change."""
        run_message = ConversationMessage(
            role="assistant",
            kind="run",
            text=result.summary,
            result=result,
            duration=duration,
        )
        self._replace_placeholder(message_id, run_message)

        if result.has_change:
            self.messages.append(ConversationMessage(
                role="assistant",
                kind="code",
                text=result.explanation.strip(),
                change=result.change,
            ))
            self.pending_change = result.change

    def fail_analysis(self, message_id: str, error_text: str) -> None:
        """Replace the placeholder with the failure text; the pending change is kept."""
        self._replace_placeholder(
            message_id,
            ConversationMessage(role="assistant", kind="text", text=error_text),
        )

    def _replace_placeholder(self, message_id: str, replacement: ConversationMessage) -> None:
        index = self.find(message_id)
        if index is None or self.messages[index].kind != "status":
            self.messages.append(replacement)
            return
        replacement.id = message_id
        self.messages[index] = replacement

    def latest_proposal(self) -> Optional[int]:
        """Index of the newest ``code`` message; older proposals are superseded."""
        for index in range(len(self.messages) - 1, -1, -1):
            if self.messages[index].kind == "code":
                return index
        return None

    def pending_change_from_messages(self) -> Optional[PendingChange]:
        """The newest proposal in the log, unless it was already applied."""
        index = self.latest_proposal()
        if index is None or self.messages[index].applied:
            return None
        return self.messages[index].change

    def effective_pending_change(self) -> Optional[PendingChange]:
        change = self.pending_change or self.pending_change_from_messages()
        if change is None or change.is_empty:
            return None
        return change

    def apply_pending(self, message_id: Optional[str] = None) -> Optional[PendingChange]:
        """Mark the pending proposal as applied and return it.

        The caller is responsible for writing the returned change to the document.
        """
        change = self.effective_pending_change()
        if change is None:
            return None

        index = self.find(message_id) if message_id else None
        if index is None:
            index = self.latest_proposal()

        if index is not None and not self.messages[index].applied:
            self.messages[index].applied = True
            # Mark the run log that produced this proposal
            for i in range(index - 1, -1, -1):
                kind = self.messages[i].kind
                if kind == "run":
                    self.messages[i].applied = True
                    break
                if kind != "code":
                    break

        self.messages.append(ConversationMessage(role="assistant", kind="text", text=APPLIED_MESSAGE))
        self.pending_change = None
        return change

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"messages": [m.to_dict() for m in self.messages]}
        change = self.effective_pending_change()
        if change is not None:
            data["pending_change"] = change.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConversationState":
        messages = [ConversationMessage.from_dict(m) for m in data.get("messages", [])]

        pending: Optional[PendingChange] = None
        if data.get("pending_change"):
            pending = PendingChange.from_dict(data["pending_change"])
        else:
            # Older files stored only a bare edit list
            legacy = data.get("pending_edits") or data.get("pendingEdits") or []
            if legacy:
                pending = PendingChange(edits=tuple(CodeEditOperation.from_dict(e) for e in legacy))

        state = cls(messages=messages, pending_change=pending)
        if state.pending_change is None:
            state.pending_change = state.pending_change_from_messages()
        if state.pending_change is not None and state.pending_change.is_empty:
            state.pending_change = None
        return state
