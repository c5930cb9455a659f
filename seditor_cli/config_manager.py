"""Configuration manager for Seditor CLI using TOML files."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests
import toml

logger = logging.getLogger(__name__)

BASE_DIR = Path(os.environ.get("SEDITOR_HOME", str(Path.home() / ".seditor"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"


# Default configurations for each provider
DEFAULT_CONFIGS: Dict[str, Dict[str, Any]] = {
    "gemini": {
        "provider": "gemini",
        "model": "gemini-2.0-flash",
        "api_key": "",
    },
    "openai": {
        "provider": "openai",
        "model": "gpt-4o",
        "api_key": "",
        "endpoint": "https://api.openai.com/v1/chat/completions",
    },
    "openrouter": {
        "provider": "openrouter",
        "model": "google/gemini-2.0-flash-exp:free",
        "api_key": "",
        "endpoint": "https://openrouter.ai/api/v1/chat/completions",
    },
    "groq": {
        "provider": "groq",
        "model": "llama-3.3-70b-versatile",
        "api_key": "",
    },
    "anthropic": {
        "provider": "anthropic",
        "model": "claude-3-5-sonnet-20241022",
        "api_key": "",
    },
    "ollama": {
        "provider": "ollama",
        "model": "qwen2.5-coder:7b",
        "endpoint": "http://127.0.0.1:11434/api/chat",
    },
}

DEFAULT_PROVIDER = "gemini"

DEFAULT_SAMPLING = {
    "temperature": 0.4,
    "top_p": 0.95,
}

DEFAULT_PIPELINE = {
    "pace_seconds": 0.0,
    "not_relevant_marker": "not relevant",
    "snapshot_chars": 8000,
}


def load_full_config(config_file: Optional[Path] = None) -> Dict[str, Any]:
    """Load the entire TOML config (all sections).

    Returns an empty dict when the file is missing or unreadable.
    """
    path = config_file or CONFIG_FILE
    if not path.exists():
        return {}
    try:
        with open(path, "r") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", path, exc)
        return {}


def _save_full_config(config: Dict[str, Any], config_file: Optional[Path] = None) -> bool:
    """Write entire config dict to TOML file, preserving all sections."""
    path = config_file or CONFIG_FILE
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            toml.dump(config, f)
        return True
    except OSError as exc:
        logger.warning("Could not write config %s: %s", path, exc)
        return False


def load_config(config_file: Optional[Path] = None) -> Dict[str, Any]:
    """Load the ``[llm]`` section merged over provider and sampling defaults.

    Returns:
        Configuration dictionary with provider settings.
    """
    llm = load_full_config(config_file).get("llm", {})
    provider = llm.get("provider", DEFAULT_PROVIDER)
    merged: Dict[str, Any] = {**DEFAULT_SAMPLING, **get_provider_config(provider)}
    merged.update(llm)
    return merged


def save_config(
    provider: str,
    model: str,
    api_key: str = "",
    endpoint: str = "",
    temperature: Optional[float] = None,
    top_p: Optional[float] = None,
    config_file: Optional[Path] = None,
) -> bool:
    """Save LLM configuration to TOML file.

    Preserves other sections (e.g. ``[pipeline]``) in the file.

    Args:
        provider: Provider name (gemini, openai, openrouter, groq, anthropic, ollama)
        model: Model name
        api_key: API key for cloud providers
        endpoint: Custom endpoint (OpenAI-compatible servers, Ollama)
        temperature: Sampling temperature
        top_p: Nucleus sampling threshold

    Returns:
        True if saved successfully, False otherwise
    """
    config = load_full_config(config_file)

    config["llm"] = {
        "provider": provider,
        "model": model,
    }
    if api_key:
        config["llm"]["api_key"] = api_key
    if endpoint:
        config["llm"]["endpoint"] = endpoint
    if temperature is not None:
        config["llm"]["temperature"] = temperature
    if top_p is not None:
        config["llm"]["top_p"] = top_p

    return _save_full_config(config, config_file)


def clear_llm_config(config_file: Optional[Path] = None) -> bool:
    """Remove ``[llm]`` section from config, resetting to defaults."""
    config = load_full_config(config_file)
    config.pop("llm", None)
    return _save_full_config(config, config_file)


def load_pipeline_config(config_file: Optional[Path] = None) -> Dict[str, Any]:
    """Load the ``[pipeline]`` section merged over pipeline defaults."""
    merged = dict(DEFAULT_PIPELINE)
    merged.update(load_full_config(config_file).get("pipeline", {}))
    return merged


def save_pipeline_config(values: Dict[str, Any], config_file: Optional[Path] = None) -> bool:
    """Update ``[pipeline]`` keys, preserving ``[llm]`` and other sections."""
    config = load_full_config(config_file)
    section = config.setdefault("pipeline", {})
    section.update({k: v for k, v in values.items() if k in DEFAULT_PIPELINE})
    return _save_full_config(config, config_file)


def get_provider_config(provider: str) -> Dict[str, Any]:
    """Get default configuration for a specific provider.

    Args:
        provider: Provider name

    Returns:
        Default configuration dictionary
    """
    return DEFAULT_CONFIGS.get(provider, DEFAULT_CONFIGS[DEFAULT_PROVIDER]).copy()


def provider_requires_key(provider: str) -> bool:
    return provider.lower() != "ollama"


def validate_ollama_connection(endpoint: str = "http://127.0.0.1:11434") -> bool:
    """Check if Ollama is running and accessible.

    Args:
        endpoint: Ollama base URL (any ``/api/...`` suffix is ignored)

    Returns:
        True if Ollama is accessible, False otherwise
    """
    base = endpoint.split("/api/")[0].rstrip("/")
    try:
        resp = requests.get(f"{base}/api/tags", timeout=3)
        return resp.status_code == 200
    except requests.RequestException:
        return False


def get_ollama_models(endpoint: str = "http://127.0.0.1:11434") -> List[str]:
    """Fetch available model names from Ollama, or an empty list."""
    base = endpoint.split("/api/")[0].rstrip("/")
    try:
        resp = requests.get(f"{base}/api/tags", timeout=5)
        resp.raise_for_status()
        return [model["name"] for model in resp.json().get("models", [])]
    except (requests.RequestException, ValueError, KeyError):
        return []
