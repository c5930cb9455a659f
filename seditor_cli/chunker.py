"""Split a document into bounded line ranges for per-chunk analysis."""

from __future__ import annotations

from typing import List

from .models import Chunk, count_lines

__all__ = ["make_chunks", "count_lines"]


def make_chunks(content: str, chunk_size: int) -> List[Chunk]:
    """Partition ``content`` into runs of at most ``chunk_size`` lines.

    Line ranges are 1-indexed and inclusive. Joining the chunk texts with
    ``"\\n"`` reproduces ``content`` exactly. An empty document yields no
    chunks.

    Args:
        content: Document text
        chunk_size: Maximum number of lines per chunk

    Returns:
        Ordered list of chunks covering every line once
    """
    if chunk_size < 1:
        raise ValueError("chunk_size must be at least 1")

    lines = content.split("\n")
    if len(lines) == 1 and lines[0] == "":
        return []

    chunks: List[Chunk] = []
    start = 0
    while start < len(lines):
        end = min(start + chunk_size, len(lines))
        chunks.append(Chunk(
            index=len(chunks),
            start_line=start + 1,
            end_line=end,
            text="\n".join(lines[start:end]),
        ))
        start = end
    return chunks
