"""Resolved configuration for Seditor CLI."""

from __future__ import annotations

import os

from .config_manager import BASE_DIR, load_config, load_pipeline_config

CONVERSATIONS_DIR = BASE_DIR / "conversations"
BACKUPS_DIR = BASE_DIR / "backups"

_llm_config = load_config()
_pipeline_config = load_pipeline_config()

# LLM settings, loaded from ~/.seditor/config.toml (set via `seditor setup` or `seditor set-llm`)
LLM_PROVIDER = _llm_config.get("provider", "gemini")
LLM_MODEL = _llm_config.get("model", "gemini-2.0-flash")
LLM_API_KEY = _llm_config.get("api_key", "") or os.environ.get("SEDITOR_API_KEY", "")
LLM_ENDPOINT = _llm_config.get("endpoint", "")
LLM_TEMPERATURE = float(_llm_config.get("temperature", 0.4))
LLM_TOP_P = float(_llm_config.get("top_p", 0.95))

# Pipeline settings
PACE_SECONDS = float(_pipeline_config.get("pace_seconds", 0.0))
NOT_RELEVANT_MARKER = _pipeline_config.get("not_relevant_marker", "not relevant")
SNAPSHOT_CHARS = int(_pipeline_config.get("snapshot_chars", 8000))
