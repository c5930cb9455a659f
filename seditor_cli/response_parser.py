"""Parsing helpers for completion-service responses."""

from __future__ import annotations

import re
from typing import List, Optional, Sequence

_NUMBERED_LINE = re.compile(r"^\d+")
_NUMBER_PREFIX = re.compile(r"^\d+[).:-]?\s*")

HTML_FENCE = "```html"
FENCE = "```"


def parse_plan(response: str) -> List[str]:
    """Extract ordered plan items from a numbered list.

    A line starting with digits opens a new item (number and trailing
    punctuation stripped). Other non-empty lines continue the open item.
    Text before the first numbered line is ignored.

    Args:
        response: Raw plan response

    Returns:
        Plan items, possibly multi-line; empty if no numbered line exists
    """
    items: List[str] = []
    current: Optional[str] = None

    for raw_line in response.split("\n"):
        trimmed = raw_line.strip()
        if _NUMBERED_LINE.match(trimmed):
            if current is not None and current.strip():
                items.append(current.strip())
            current = _NUMBER_PREFIX.sub("", trimmed, count=1)
        elif trimmed and current is not None:
            current += "\n" + trimmed

    if current is not None and current.strip():
        items.append(current.strip())
    return items


def format_plan_outline(items: Sequence[str]) -> str:
    """Render plan items as a ``1. ...`` numbered outline."""
    return "\n".join(f"{i}. {item}" for i, item in enumerate(items, start=1))


def _fenced_body(response: str, start: int) -> Optional[str]:
    end = response.find(FENCE, start)
    if end == -1:
        return None
    return response[start:end].replace("\r\n", "\n").strip()


def extract_html_code(response: str) -> Optional[str]:
    """Return the body of the first ```html block, else of the first generic block.

    Returns None when no closed fenced block is present.
    """
    match = re.search(re.escape(HTML_FENCE), response, re.IGNORECASE)
    if match:
        body = _fenced_body(response, match.end())
        if body is not None:
            return body

    generic = response.find(FENCE)
    if generic != -1:
        return _fenced_body(response, generic + len(FENCE))
    return None


def wrap_html_block(code: str) -> str:
    return f"{HTML_FENCE}\n{code}\n{FENCE}"
