"""Multi-provider completion client supporting Gemini, OpenAI, OpenRouter, Groq, Anthropic, and Ollama.

Every failure (transport, authorization, empty response) is raised as
LLMServiceError with a human-readable message; nothing is swallowed.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import requests

from . import config
from .config_manager import get_provider_config
from .errors import LLMServiceError
from .models import GenerationOptions

logger = logging.getLogger(__name__)

Message = Dict[str, str]

MISSING_KEY = "API key not found."
INVALID_RESPONSE = "Invalid server response."
EMPTY_RESPONSE = "No text was received from the model."


def _post_json(url: str, payload: Dict[str, Any], headers: Dict[str, str], timeout: int) -> Dict[str, Any]:
    """POST ``payload`` and return the decoded JSON body."""
    try:
        response = requests.post(url, json=payload, headers=headers, timeout=timeout)
    except requests.RequestException as exc:
        raise LLMServiceError(f"Request failed: {exc}") from exc

    if not 200 <= response.status_code < 300:
        detail = response.text or f"Status: {response.status_code}"
        raise LLMServiceError(f"Request failed: {detail}")

    try:
        return response.json()
    except ValueError as exc:
        raise LLMServiceError(INVALID_RESPONSE) from exc


def _conversation(prompt: str, prior_turns: Sequence[Message]) -> List[Message]:
    """Prior turns followed by the prompt, unless the last turn is already a user turn."""
    messages = [{"role": t["role"], "content": t["content"]} for t in prior_turns]
    if not messages or messages[-1]["role"] != "user":
        messages.append({"role": "user", "content": prompt})
    return messages


class LLMProvider:
    """Base class for completion providers."""

    def generate(self, prompt: str, prior_turns: Sequence[Message], options: GenerationOptions) -> str:
        """Return the model's text for ``prompt``."""
        raise NotImplementedError


class GeminiProvider(LLMProvider):
    """Google Gemini API provider."""

    base_url = "https://generativelanguage.googleapis.com/v1beta/models"
    timeout = 60

    def __init__(self, api_key: str):
        self.api_key = api_key

    def generate(self, prompt: str, prior_turns: Sequence[Message], options: GenerationOptions) -> str:
        if not self.api_key:
            raise LLMServiceError(MISSING_KEY)

        contents = [
            {
                "role": "model" if m["role"] == "assistant" else "user",
                "parts": [{"text": m["content"]}],
            }
            for m in _conversation(prompt, prior_turns)
        ]
        payload = {
            "contents": contents,
            "generationConfig": {
                "temperature": options.temperature,
                "topP": options.top_p,
            },
        }
        url = f"{self.base_url}/{options.model}:generateContent?key={self.api_key}"
        parsed = _post_json(url, payload, {"Content-Type": "application/json"}, self.timeout)

        try:
            return parsed["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise LLMServiceError(EMPTY_RESPONSE) from exc


class OpenAICompatibleProvider(LLMProvider):
    """OpenAI chat-completions API (also OpenRouter, Groq and other compatible servers)."""

    timeout = 60

    def __init__(self, api_key: str, endpoint: str = "https://api.openai.com/v1/chat/completions"):
        self.api_key = api_key
        self.endpoint = endpoint

    def generate(self, prompt: str, prior_turns: Sequence[Message], options: GenerationOptions) -> str:
        if not self.api_key:
            raise LLMServiceError(MISSING_KEY)

        payload = {
            "model": options.model,
            "messages": _conversation(prompt, prior_turns),
            "temperature": options.temperature,
            "top_p": options.top_p,
            "max_tokens": 8192,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        parsed = _post_json(self.endpoint, payload, headers, self.timeout)

        try:
            text = self._extract_response(parsed)
        except (KeyError, IndexError, TypeError) as exc:
            raise LLMServiceError(EMPTY_RESPONSE) from exc
        if text is None:
            raise LLMServiceError(EMPTY_RESPONSE)
        return text

    @staticmethod
    def _extract_response(parsed: dict) -> Optional[str]:
        """Extract response text, handling reasoning models that return empty content."""
        msg = parsed["choices"][0]["message"]
        content = msg.get("content") or ""
        if content.strip():
            return content
        # Reasoning models put output in 'reasoning' field
        reasoning = msg.get("reasoning") or ""
        if reasoning.strip():
            return reasoning
        for detail in msg.get("reasoning_details") or []:
            if isinstance(detail, dict) and detail.get("text", "").strip():
                return detail["text"]
        return content or None


class AnthropicProvider(LLMProvider):
    """Anthropic Claude API provider."""

    endpoint = "https://api.anthropic.com/v1/messages"
    timeout = 60

    def __init__(self, api_key: str):
        self.api_key = api_key

    def generate(self, prompt: str, prior_turns: Sequence[Message], options: GenerationOptions) -> str:
        if not self.api_key:
            raise LLMServiceError(MISSING_KEY)

        payload = {
            "model": options.model,
            "messages": _conversation(prompt, prior_turns),
            "max_tokens": 8192,
            "temperature": options.temperature,
            "top_p": options.top_p,
        }
        headers = {
            "Content-Type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": "2023-06-01",
        }
        parsed = _post_json(self.endpoint, payload, headers, self.timeout)

        try:
            return parsed["content"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise LLMServiceError(EMPTY_RESPONSE) from exc


class OllamaProvider(LLMProvider):
    """Ollama local LLM provider (chat endpoint)."""

    timeout = 300

    def __init__(self, endpoint: str = "http://127.0.0.1:11434/api/chat"):
        self.endpoint = endpoint

    def generate(self, prompt: str, prior_turns: Sequence[Message], options: GenerationOptions) -> str:
        payload = {
            "model": options.model,
            "messages": _conversation(prompt, prior_turns),
            "stream": False,
            "options": {"temperature": options.temperature, "top_p": options.top_p},
        }
        parsed = _post_json(self.endpoint, payload, {"Content-Type": "application/json"}, self.timeout)

        text = (parsed.get("message") or {}).get("content")
        if not text:
            raise LLMServiceError(EMPTY_RESPONSE)
        return text


class LLMClient:
    """Completion-service client bound to one provider and default sampling options."""

    def __init__(
        self,
        model: Optional[str] = None,
        provider: Optional[str] = None,
        api_key: Optional[str] = None,
        endpoint: Optional[str] = None,
        temperature: Optional[float] = None,
        top_p: Optional[float] = None,
    ):
        """Initialize the client.

        Args:
            model: Model name (defaults to config)
            provider: gemini, openai, openrouter, groq, anthropic or ollama (defaults to config)
            api_key: API key for cloud providers (defaults to config)
            endpoint: Custom endpoint for OpenAI-compatible servers or Ollama
            temperature: Default sampling temperature
            top_p: Default nucleus sampling threshold
        """
        self.provider_name = (provider or config.LLM_PROVIDER).lower()
        configured = self.provider_name == config.LLM_PROVIDER.lower()
        defaults = get_provider_config(self.provider_name)
        self.model = model or (config.LLM_MODEL if configured else defaults["model"])
        # A saved key belongs to the saved provider only
        self.api_key = api_key if api_key is not None else (config.LLM_API_KEY if configured else "")
        self.endpoint = endpoint or (config.LLM_ENDPOINT if configured else "") or defaults.get("endpoint", "")
        self.temperature = config.LLM_TEMPERATURE if temperature is None else temperature
        self.top_p = config.LLM_TOP_P if top_p is None else top_p

        self.provider = self._create_provider()

    def _create_provider(self) -> LLMProvider:
        """Create the appropriate provider based on configuration."""
        name = self.provider_name

        if name == "gemini":
            return GeminiProvider(self.api_key)
        elif name == "openai":
            return OpenAICompatibleProvider(self.api_key, self.endpoint or "https://api.openai.com/v1/chat/completions")
        elif name == "openrouter":
            return OpenAICompatibleProvider(self.api_key, self.endpoint or "https://openrouter.ai/api/v1/chat/completions")
        elif name == "groq":
            return OpenAICompatibleProvider(self.api_key, "https://api.groq.com/openai/v1/chat/completions")
        elif name == "anthropic":
            return AnthropicProvider(self.api_key)
        elif name == "ollama":
            return OllamaProvider(self.endpoint or "http://127.0.0.1:11434/api/chat")
        raise ValueError(f"Unknown provider: {self.provider_name}")

    @property
    def default_options(self) -> GenerationOptions:
        return GenerationOptions(model=self.model, temperature=self.temperature, top_p=self.top_p)

    def generate(
        self,
        prompt: str,
        prior_turns: Sequence[Message] = (),
        options: Optional[GenerationOptions] = None,
    ) -> str:
        """Generate a completion.

        Args:
            prompt: Prompt text for this turn
            prior_turns: Earlier ``{"role", "content"}`` messages, oldest first
            options: Sampling options (defaults to the client's)

        Returns:
            Model text

        Raises:
            LLMServiceError: On any transport, authorization or empty-response failure
        """
        options = options or self.default_options
        logger.debug(
            "Calling %s/%s (%d prompt chars, %d prior turns)",
            self.provider_name, options.model, len(prompt), len(prior_turns),
        )
        return self.provider.generate(prompt, prior_turns, options)
