"""Conversation persistence and per-session run exclusivity."""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Set

from .errors import RunInProgressError
from .models import ConversationState

logger = logging.getLogger(__name__)

GLOBAL_KEY = "global"


def storage_key_for(path: Optional[Path]) -> str:
    """Stable storage key for a document path; ``global`` when there is none."""
    if path is None:
        return GLOBAL_KEY
    digest = hashlib.sha1(str(Path(path).resolve()).encode("utf-8")).hexdigest()
    return f"file-{digest[:16]}"


class ConversationStore:
    """Loads and saves one ConversationState per document as JSON."""

    def __init__(self, conversations_dir: Optional[Path] = None):
        """Initialize the store.

        Args:
            conversations_dir: Directory to store conversations (default: ~/.seditor/conversations/)
        """
        if conversations_dir is None:
            from . import config
            conversations_dir = config.CONVERSATIONS_DIR
        self.conversations_dir = conversations_dir
        self.conversations_dir.mkdir(parents=True, exist_ok=True)

    def _file_for(self, key: str) -> Path:
        return self.conversations_dir / f"{key}.json"

    def load(self, key: str) -> ConversationState:
        """Load the conversation for ``key``; a missing or corrupt file gives the default state."""
        session_file = self._file_for(key)
        if not session_file.exists():
            return ConversationState.default()

        try:
            data = json.loads(session_file.read_text(encoding="utf-8"))
            state = ConversationState.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Could not read conversation %s: %s", session_file, exc)
            return ConversationState.default()

        if not state.messages:
            return ConversationState.default()
        return state

    def save(self, key: str, state: ConversationState) -> None:
        session_file = self._file_for(key)
        session_file.write_text(json.dumps(state.to_dict(), indent=2), encoding="utf-8")

    def clear(self, key: str) -> ConversationState:
        """Reset the conversation for ``key`` to the intro message and persist it."""
        state = ConversationState.default()
        self.save(key, state)
        return state

    def delete(self, key: str) -> bool:
        """Delete a conversation.

        Returns:
            True if deleted, False if not found
        """
        session_file = self._file_for(key)
        if session_file.exists():
            session_file.unlink()
            return True
        return False

    def list_keys(self) -> List[str]:
        return sorted(p.stem for p in self.conversations_dir.glob("*.json"))


class RunRegistry:
    """Tracks which sessions have a run in progress; at most one per key."""

    def __init__(self):
        self._lock = threading.Lock()
        self._active: Set[str] = set()

    def is_running(self, key: str) -> bool:
        with self._lock:
            return key in self._active

    @contextmanager
    def running(self, key: str) -> Iterator[None]:
        """Hold the run slot for ``key`` for the duration of the block.

        Raises:
            RunInProgressError: If a run for ``key`` is already active
        """
        with self._lock:
            if key in self._active:
                raise RunInProgressError(key)
            self._active.add(key)
        try:
            yield
        finally:
            with self._lock:
                self._active.discard(key)
