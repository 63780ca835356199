"""Chat completion clients for the supported model providers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Protocol
from urllib import error as urllib_error
from urllib import request as urllib_request

from app.config import get_settings

ANTHROPIC_VERSION = "2023-06-01"


class LLMError(RuntimeError):
    """Raised when a model provider is misconfigured or the call fails."""


@dataclass(slots=True)
class ChatRequest:
    """Provider-neutral chat completion request."""

    system_prompt: str
    messages: list[dict[str, str]]
    model: str
    temperature: float = 0.7
    max_tokens: int = 500
    image_urls: list[str] = field(default_factory=list)


class ChatCompletionClient(Protocol):
    """Protocol for chat completion providers."""

    def complete(self, request: ChatRequest) -> str:
        """Return assistant text for the request."""


def _post_json(url: str, payload: dict[str, Any], headers: dict[str, str], timeout_seconds: int, label: str) -> Any:
    req = urllib_request.Request(
        url=url,
        data=json.dumps(payload).encode("utf-8"),
        method="POST",
        headers={"Content-Type": "application/json", **headers},
    )
    try:
        with urllib_request.urlopen(req, timeout=timeout_seconds) as resp:
            raw = resp.read().decode("utf-8")
    except urllib_error.HTTPError as exc:
        detail = exc.read().decode("utf-8", errors="replace")
        raise LLMError(f"{label} HTTP {exc.code}: {detail}") from exc
    except urllib_error.URLError as exc:
        raise LLMError(f"{label} request failed: {exc.reason}") from exc
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise LLMError(f"{label} returned invalid JSON") from exc


@dataclass(slots=True)
class OpenAIChatClient:
    """OpenAI-compatible chat completions client (OpenAI, Gemini, Groq)."""

    api_key: str
    base_url: str = "https://api.openai.com/v1"
    timeout_seconds: int = 60
    provider_label: str = "OpenAI"

    def build_payload(self, request: ChatRequest) -> dict[str, Any]:
        messages: list[dict[str, Any]] = [{"role": "system", "content": request.system_prompt}]
        messages.extend({"role": m["role"], "content": m["content"]} for m in request.messages)
        if request.image_urls and messages[-1]["role"] == "user":
            text = messages[-1]["content"]
            messages[-1] = {
                "role": "user",
                "content": [{"type": "text", "text": text}]
                + [{"type": "image_url", "image_url": {"url": url}} for url in request.image_urls],
            }
        return {
            "model": request.model,
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
            "messages": messages,
        }

    def complete(self, request: ChatRequest) -> str:
        decoded = _post_json(
            f"{self.base_url.rstrip('/')}/chat/completions",
            self.build_payload(request),
            {"Authorization": f"Bearer {self.api_key}"},
            self.timeout_seconds,
            self.provider_label,
        )
        try:
            content = decoded["choices"][0]["message"]["content"]
            if not isinstance(content, str) or not content.strip():
                raise TypeError("assistant message content missing")
            return content.strip()
        except (KeyError, IndexError, TypeError) as exc:
            raise LLMError(f"{self.provider_label} returned an unexpected chat response") from exc


@dataclass(slots=True)
class AnthropicChatClient:
    """Anthropic Messages API client."""

    api_key: str
    base_url: str = "https://api.anthropic.com/v1"
    timeout_seconds: int = 60

    def build_payload(self, request: ChatRequest) -> dict[str, Any]:
        messages: list[dict[str, Any]] = []
        for message in request.messages:
            # The Messages API rejects consecutive turns with the same role.
            if messages and messages[-1]["role"] == message["role"]:
                messages[-1]["content"] = f"{messages[-1]['content']}\n{message['content']}"
                continue
            messages.append({"role": message["role"], "content": message["content"]})
        if messages and messages[0]["role"] != "user":
            messages.insert(0, {"role": "user", "content": "(conversation continues)"})
        if request.image_urls and messages and messages[-1]["role"] == "user":
            text = messages[-1]["content"]
            messages[-1] = {
                "role": "user",
                "content": [{"type": "image", "source": {"type": "url", "url": url}} for url in request.image_urls]
                + [{"type": "text", "text": text}],
            }
        return {
            "model": request.model,
            "system": request.system_prompt,
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
            "messages": messages,
        }

    def complete(self, request: ChatRequest) -> str:
        decoded = _post_json(
            f"{self.base_url.rstrip('/')}/messages",
            self.build_payload(request),
            {"x-api-key": self.api_key, "anthropic-version": ANTHROPIC_VERSION},
            self.timeout_seconds,
            "Anthropic",
        )
        try:
            parts = [block["text"] for block in decoded["content"] if block.get("type") == "text"]
        except (KeyError, TypeError, AttributeError) as exc:
            raise LLMError("Anthropic returned an unexpected chat response") from exc
        content = "".join(parts).strip()
        if not content:
            raise LLMError("Anthropic returned an empty response")
        return content


def provider_for_model(model: str) -> str:
    """Map a model id to the provider that serves it."""

    normalized = model.strip().lower()
    if normalized.startswith("claude"):
        return "anthropic"
    if normalized.startswith("gemini"):
        return "gemini"
    if normalized.startswith(("llama", "mixtral", "gemma", "qwen", "deepseek")):
        return "groq"
    return "openai"


def get_chat_client(model: str) -> ChatCompletionClient:
    """Return a configured client for the model's provider."""

    settings = get_settings()
    provider = provider_for_model(model)
    if provider == "anthropic":
        if not settings.anthropic_api_key:
            raise LLMError("ANTHROPIC_API_KEY is not configured.")
        return AnthropicChatClient(
            api_key=settings.anthropic_api_key,
            base_url=settings.anthropic_base_url,
            timeout_seconds=settings.llm_timeout_seconds,
        )
    if provider == "gemini":
        if not settings.gemini_api_key:
            raise LLMError("GEMINI_API_KEY is not configured.")
        return OpenAIChatClient(
            api_key=settings.gemini_api_key,
            base_url=settings.gemini_base_url,
            timeout_seconds=settings.llm_timeout_seconds,
            provider_label="Gemini",
        )
    if provider == "groq":
        if not settings.groq_api_key:
            raise LLMError("GROQ_API_KEY is not configured.")
        return OpenAIChatClient(
            api_key=settings.groq_api_key,
            base_url=settings.groq_base_url,
            timeout_seconds=settings.llm_timeout_seconds,
            provider_label="Groq",
        )
    if not settings.openai_api_key:
        raise LLMError("OPENAI_API_KEY is not configured.")
    return OpenAIChatClient(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        timeout_seconds=settings.llm_timeout_seconds,
    )
