"""Pytest configuration and fixtures for Seditor CLI tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Dict, Generator, List, Optional

import pytest

from seditor_cli.models import SourceDocument

VALID_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
  <title>Landing</title>
</head>
<body>
  <header class="sticky">Welcome</header>
  <p>Hello there.</p>
</body>
</html>"""

BROKEN_HTML = """<html>
<body>
  <p>Missing doctype and head.</p>
</body>
</html>"""

# Phrases that identify which stage a prompt belongs to
STAGE_MARKERS = [
    ("plan", "Write a numbered work plan"),
    ("context", "Summarize the main structure of the file"),
    ("chunk", "Evaluate the code chunk at lines"),
    ("strategy", "Write a structured change strategy"),
    ("code", "Produce the final, tidied HTML file"),
    ("repair", "The HTML you produced is not valid yet"),
    ("explanation", "Explain this code in"),
]

DEFAULT_RESPONSES = {
    "plan": "Here is the plan:\n1. Locate the header element\n2) Add a sticky class\nCheck scroll behaviour.\n3: Verify layout",
    "context": "The file is a single landing page with a header and a paragraph.",
    "chunk": "This chunk contains the header that must change.",
    "strategy": "- Add position: sticky to the header.\n- Keep the paragraph unchanged.",
    "code": f"Here you go:\n```html\n{VALID_HTML}\n```\n",
    "repair": f"```html\n{VALID_HTML}\n```",
    "explanation": "The page now keeps its header visible.\nScrolling no longer hides the navigation.",
}


def stage_of(prompt: str) -> str:
    for stage, marker in STAGE_MARKERS:
        if marker in prompt:
            return stage
    raise AssertionError(f"Unrecognised prompt: {prompt[:80]!r}")


class ScriptedLLM:
    """Fake completion client that answers each stage from a script.

    A script value may be a string, a list of strings (consumed in order,
    the last one repeating) or an exception instance to raise.
    """

    def __init__(self, responses: Optional[Dict[str, object]] = None):
        self.responses = dict(DEFAULT_RESPONSES)
        self.responses.update(responses or {})
        self.calls: List[dict] = []

    def generate(self, prompt, prior_turns=(), options=None):
        stage = stage_of(prompt)
        self.calls.append({
            "stage": stage,
            "prompt": prompt,
            "prior_turns": list(prior_turns),
            "options": options,
        })
        value = self.responses[stage]
        if isinstance(value, list):
            value = value.pop(0) if len(value) > 1 else value[0]
        if isinstance(value, Exception):
            raise value
        return value

    def stages(self) -> List[str]:
        return [call["stage"] for call in self.calls]


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture(autouse=True)
def temp_home(temp_dir: Path, monkeypatch) -> Path:
    """Point every on-disk location at a temporary home directory."""
    home = temp_dir / "home"
    home.mkdir()
    monkeypatch.setattr("seditor_cli.config_manager.CONFIG_FILE", home / "config.toml")
    monkeypatch.setattr("seditor_cli.config.CONVERSATIONS_DIR", home / "conversations")
    monkeypatch.setattr("seditor_cli.config.BACKUPS_DIR", home / "backups")
    monkeypatch.setattr("seditor_cli.config.PACE_SECONDS", 0.0)
    return home


@pytest.fixture
def scripted_llm() -> ScriptedLLM:
    return ScriptedLLM()


@pytest.fixture
def html_document() -> SourceDocument:
    return SourceDocument(name="index.html", language="html", content=VALID_HTML)


@pytest.fixture
def long_html_document() -> SourceDocument:
    """A 298-line document that always triggers chunk analysis."""
    body = "\n".join(f"  <p>Paragraph {i}</p>" for i in range(1, 292))
    content = f"<!DOCTYPE html>\n<html>\n<head><title>Long</title></head>\n<body>\n{body}\n</body>\n</html>\n"
    return SourceDocument(name="long.html", language="html", content=content)


@pytest.fixture
def html_file(temp_dir: Path) -> Path:
    path = temp_dir / "index.html"
    path.write_text(BROKEN_HTML, encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def fake_llm(monkeypatch) -> ScriptedLLM:
    """Replace LLMClient in the CLI with a scripted fake so no test touches the network.

    Constructor keyword arguments are recorded on ``fake_llm.created``.
    """
    llm = ScriptedLLM()
    llm.created = []

    def factory(**kwargs):
        llm.created.append(kwargs)
        return llm

    monkeypatch.setattr("seditor_cli.cli.LLMClient", factory)
    return llm
