"""Tests for line chunking."""

import pytest

from seditor_cli.chunker import count_lines, make_chunks


class TestMakeChunks:

    def test_chunks_reassemble_to_content(self):
        content = "\n".join(f"line {i}" for i in range(1, 451))
        chunks = make_chunks(content, 200)

        assert [(c.start_line, c.end_line) for c in chunks] == [(1, 200), (201, 400), (401, 450)]
        assert "\n".join(c.text for c in chunks) == content
        assert [c.index for c in chunks] == [0, 1, 2]

    def test_exact_multiple(self):
        chunks = make_chunks("a\nb\nc\nd", 2)
        assert [(c.start_line, c.end_line) for c in chunks] == [(1, 2), (3, 4)]

    def test_trailing_newline_is_an_empty_last_line(self):
        chunks = make_chunks("a\nb\n", 2)

        assert [(c.start_line, c.end_line) for c in chunks] == [(1, 2), (3, 3)]
        assert chunks[-1].text == ""
        assert "\n".join(c.text for c in chunks) == "a\nb\n"

    def test_empty_document_has_no_chunks(self):
        assert make_chunks("", 110) == []

    def test_single_line(self):
        chunks = make_chunks("<html></html>", 150)
        assert len(chunks) == 1
        assert chunks[0].start_line == chunks[0].end_line == 1

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            make_chunks("a", 0)


class TestCountLines:

    @pytest.mark.parametrize("content,expected", [("", 0), ("a", 1), ("a\n", 2), ("a\nb\nc", 3)])
    def test_count(self, content, expected):
        assert count_lines(content) == expected
