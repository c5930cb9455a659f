"""Tests for applying pending changes, diffs and backups."""

from pathlib import Path

import pytest

from seditor_cli.diff_engine import DiffEngine, apply_pending_change
from seditor_cli.models import CodeEditOperation, PendingChange

DOC = "one\ntwo\nthree\nfour"


def edit(start, end, text):
    return PendingChange(edits=(CodeEditOperation(start, end, text),))


class TestApplyPendingChange:

    def test_full_content_replaces_everything(self):
        assert apply_pending_change(DOC, PendingChange(full_content="new")) == "new"

    def test_empty_change_is_a_no_op(self):
        assert apply_pending_change(DOC, PendingChange()) == DOC

    def test_replace_range(self):
        assert apply_pending_change(DOC, edit(2, 3, "TWO\nTHREE!")) == "one\nTWO\nTHREE!\nfour"

    def test_delete_range(self):
        assert apply_pending_change(DOC, edit(2, 3, "")) == "one\nfour"

    def test_insert_with_empty_range(self):
        assert apply_pending_change(DOC, edit(3, 2, "inserted")) == "one\ntwo\ninserted\nthree\nfour"

    def test_append_past_end(self):
        assert apply_pending_change(DOC, edit(5, 5, "five")) == DOC + "\nfive"

    @pytest.mark.parametrize(
        "start,end,expected",
        [
            (-3, 1, "X\ntwo\nthree\nfour"),
            (4, 99, "one\ntwo\nthree\nX"),
            (50, 60, "one\ntwo\nthree\nfour\nX"),
        ],
    )
    def test_out_of_range_bounds_are_clamped(self, start, end, expected):
        assert apply_pending_change(DOC, edit(start, end, "X")) == expected

    def test_edits_apply_bottom_up(self):
        change = PendingChange(edits=(
            CodeEditOperation(1, 1, "A\nB"),
            CodeEditOperation(2, 2, "X"),
        ))
        # Line 2 refers to the original document, not to the result of the first edit
        assert apply_pending_change(DOC, change) == "A\nB\nX\nthree\nfour"

    def test_edit_on_empty_document(self):
        assert apply_pending_change("", edit(1, 1, "hello")) == "hello"


class TestDiffEngine:

    @pytest.fixture
    def engine(self, temp_dir: Path) -> DiffEngine:
        return DiffEngine(temp_dir / "backups")

    @pytest.fixture
    def target(self, temp_dir: Path) -> Path:
        path = temp_dir / "page.html"
        path.write_text(DOC, encoding="utf-8")
        return path

    def test_create_diff(self, engine):
        diff = engine.create_diff("a\nb\n", "a\nc\n", "page.html")

        assert "--- a/page.html" in diff
        assert "+++ b/page.html" in diff
        assert "-b" in diff and "+c" in diff

    def test_preview_change(self, engine, target):
        diff = engine.preview_change(target, edit(2, 2, "TWO"))
        assert "+TWO" in diff

    def test_apply_creates_backup_and_writes(self, engine, target):
        result = engine.apply_to_file(target, PendingChange(full_content="<html></html>"))

        assert result.success
        assert result.files_changed == [str(target)]
        assert target.read_text() == "<html></html>"
        assert (engine.backup_dir / result.backup_id / "metadata.json").exists()

    def test_rollback_restores_original(self, engine, target):
        result = engine.apply_to_file(target, PendingChange(full_content="changed"))

        assert engine.rollback(result.backup_id)
        assert target.read_text() == DOC

    def test_apply_without_backup(self, engine, target):
        result = engine.apply_to_file(target, edit(1, 1, "ONE"), backup=False)

        assert result.success
        assert result.backup_id is None
        assert engine.list_backups() == []

    def test_dry_run_leaves_file_alone(self, engine, target):
        result = engine.apply_to_file(target, PendingChange(full_content="x"), dry_run=True)

        assert result.success
        assert target.read_text() == DOC

    def test_empty_change_fails(self, engine, target):
        result = engine.apply_to_file(target, PendingChange())
        assert not result.success
        assert "no pending change" in result.error

    def test_missing_file_fails(self, engine, temp_dir):
        result = engine.apply_to_file(temp_dir / "nope.html", PendingChange(full_content="x"))
        assert not result.success

    def test_list_backups(self, engine, target):
        first = engine.apply_to_file(target, PendingChange(full_content="1"))
        second = engine.apply_to_file(target, PendingChange(full_content="2"))

        ids = {b["backup_id"] for b in engine.list_backups()}
        assert ids == {first.backup_id, second.backup_id}

    def test_rollback_unknown_backup(self, engine):
        assert engine.rollback("does-not-exist") is False
