"""DiffEngine for previewing and applying pending changes."""

from __future__ import annotations

import difflib
import json
import logging
import shutil
import uuid
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .models import ApplyResult, CodeEditOperation, PendingChange

logger = logging.getLogger(__name__)


def _apply_edit(lines: List[str], edit: CodeEditOperation) -> List[str]:
    """Apply one line-range edit with out-of-range bounds clamped."""
    total = len(lines)
    start = min(max(edit.start_line, 1), total + 1)
    end = min(max(edit.end_line, start - 1), total)
    replacement = edit.replacement.split("\n") if edit.replacement else []

    if end >= start:
        # Replace lines start..end (appends when start is one past the end)
        return lines[:start - 1] + replacement + lines[end:]
    # Empty range: insert before line ``start``
    return lines[:start - 1] + replacement + lines[start - 1:]


def apply_pending_change(content: str, change: PendingChange) -> str:
    """Return ``content`` with ``change`` applied.

    A full replacement wins over edits. Edits are applied bottom-up (highest
    start line first) so earlier line numbers stay valid.
    """
    if change.full_content is not None:
        return change.full_content
    if not change.edits:
        return content

    lines = content.split("\n") if content else []
    for edit in sorted(change.edits, key=lambda e: e.start_line, reverse=True):
        lines = _apply_edit(lines, edit)
    return "\n".join(lines)


class DiffEngine:
    """Handles previewing and applying pending changes safely."""

    def __init__(self, backup_dir: Optional[Path] = None):
        """Initialize DiffEngine.

        Args:
            backup_dir: Directory to store backups. Defaults to ~/.seditor/backups/
        """
        if backup_dir is None:
            from . import config
            backup_dir = config.BACKUPS_DIR
        self.backup_dir = backup_dir
        self.backup_dir.mkdir(parents=True, exist_ok=True)

    def create_diff(self, original: str, modified: str, filename: str = "file") -> str:
        """Create unified diff between two versions.

        Args:
            original: Original content
            modified: Modified content
            filename: Name of file for diff header

        Returns:
            Unified diff string
        """
        diff = difflib.unified_diff(
            original.splitlines(keepends=True),
            modified.splitlines(keepends=True),
            fromfile=f"a/{filename}",
            tofile=f"b/{filename}",
        )
        return "".join(diff)

    def preview_change(self, file_path: Path, change: PendingChange) -> str:
        """Diff of ``file_path`` against the content ``change`` would produce."""
        original = file_path.read_text(encoding="utf-8")
        return self.create_diff(original, apply_pending_change(original, change), file_path.name)

    def apply_to_file(
        self,
        file_path: Path,
        change: PendingChange,
        backup: bool = True,
        dry_run: bool = False,
    ) -> ApplyResult:
        """Write ``change`` to ``file_path``.

        Args:
            file_path: Target document
            change: Pending change to apply
            backup: Whether to create a backup before writing
            dry_run: If True, don't actually write

        Returns:
            ApplyResult with success status and details
        """
        if change.is_empty:
            return ApplyResult(success=False, files_changed=[], error="There is no pending change to apply.")
        if not file_path.exists():
            return ApplyResult(success=False, files_changed=[], error=f"File not found: {file_path}")
        if dry_run:
            return ApplyResult(success=True, files_changed=[str(file_path)])

        backup_id = self._create_backup(file_path) if backup else None
        try:
            original = file_path.read_text(encoding="utf-8")
            file_path.write_text(apply_pending_change(original, change), encoding="utf-8")
        except OSError as e:
            logger.warning("Writing %s failed: %s", file_path, e)
            if backup_id:
                self.rollback(backup_id)
            return ApplyResult(success=False, files_changed=[], error=str(e))

        logger.info("Applied pending change to %s (backup %s)", file_path, backup_id)
        return ApplyResult(success=True, files_changed=[str(file_path)], backup_id=backup_id)

    def _create_backup(self, file_path: Path) -> str:
        """Copy ``file_path`` into a new backup directory and return its id."""
        backup_id = f"{datetime.now().strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:8]}"
        backup_path = self.backup_dir / backup_id
        backup_path.mkdir(parents=True, exist_ok=True)

        backup_file = backup_path / file_path.name
        shutil.copy2(file_path, backup_file)
        metadata = {
            "timestamp": datetime.now().isoformat(),
            "files": [{"original": str(file_path.resolve()), "backup": str(backup_file)}],
        }
        (backup_path / "metadata.json").write_text(json.dumps(metadata, indent=2))
        return backup_id

    def rollback(self, backup_id: str) -> bool:
        """Restore the files saved under ``backup_id``.

        Returns:
            True if successful, False otherwise
        """
        metadata_file = self.backup_dir / backup_id / "metadata.json"
        if not metadata_file.exists():
            return False

        try:
            metadata = json.loads(metadata_file.read_text())
            for file_info in metadata["files"]:
                backup_file = Path(file_info["backup"])
                if backup_file.exists():
                    shutil.copy2(backup_file, Path(file_info["original"]))
        except (OSError, ValueError, KeyError) as e:
            logger.warning("Rollback of %s failed: %s", backup_id, e)
            return False
        return True

    def list_backups(self) -> List[dict]:
        """List all available backups, newest first."""
        backups = []
        for backup_dir in self.backup_dir.iterdir():
            metadata_file = backup_dir / "metadata.json"
            if backup_dir.is_dir() and metadata_file.exists():
                metadata = json.loads(metadata_file.read_text())
                metadata["backup_id"] = backup_dir.name
                backups.append(metadata)
        return sorted(backups, key=lambda x: x["timestamp"], reverse=True)
