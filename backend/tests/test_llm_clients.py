"""Unit tests for chat completion payloads and provider routing."""

from __future__ import annotations

import json
import unittest
from unittest import mock

from app.config import Settings
from app.services.llm import (
    AnthropicChatClient,
    ChatRequest,
    LLMError,
    OpenAIChatClient,
    get_chat_client,
    provider_for_model,
)


class _FakeResponse:
    def __init__(self, body: dict) -> None:
        self._raw = json.dumps(body).encode("utf-8")

    def read(self) -> bytes:
        return self._raw

    def __enter__(self) -> "_FakeResponse":
        return self

    def __exit__(self, *exc_info) -> None:  # noqa: ANN002
        return None


def _request(**overrides) -> ChatRequest:  # noqa: ANN003
    values = {
        "system_prompt": "You are helpful.",
        "messages": [
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "hello"},
            {"role": "user", "content": "what is this?"},
        ],
        "model": "gpt-4o",
        "temperature": 0.3,
        "max_tokens": 200,
    }
    values.update(overrides)
    return ChatRequest(**values)


class OpenAIChatClientTests(unittest.TestCase):
    def test_payload_prepends_system_prompt(self) -> None:
        payload = OpenAIChatClient(api_key="k").build_payload(_request())

        self.assertEqual(payload["model"], "gpt-4o")
        self.assertEqual(payload["temperature"], 0.3)
        self.assertEqual(payload["max_tokens"], 200)
        self.assertEqual(payload["messages"][0], {"role": "system", "content": "You are helpful."})
        self.assertEqual(payload["messages"][-1], {"role": "user", "content": "what is this?"})

    def test_images_attach_to_last_user_turn(self) -> None:
        payload = OpenAIChatClient(api_key="k").build_payload(_request(image_urls=["https://cdn/1.jpg"]))

        self.assertEqual(
            payload["messages"][-1]["content"],
            [
                {"type": "text", "text": "what is this?"},
                {"type": "image_url", "image_url": {"url": "https://cdn/1.jpg"}},
            ],
        )
        self.assertEqual(payload["messages"][1], {"role": "user", "content": "hi"})

    def test_complete_parses_choice_content(self) -> None:
        response = _FakeResponse({"choices": [{"message": {"content": "  It is a tote.  "}}]})
        with mock.patch("app.services.llm.urllib_request.urlopen", return_value=response) as urlopen:
            reply = OpenAIChatClient(api_key="sk-test").complete(_request())

        self.assertEqual(reply, "It is a tote.")
        sent = urlopen.call_args.args[0]
        self.assertEqual(sent.full_url, "https://api.openai.com/v1/chat/completions")
        self.assertEqual(sent.get_header("Authorization"), "Bearer sk-test")

    def test_empty_choice_raises(self) -> None:
        response = _FakeResponse({"choices": []})
        with mock.patch("app.services.llm.urllib_request.urlopen", return_value=response):
            with self.assertRaises(LLMError):
                OpenAIChatClient(api_key="k").complete(_request())


class AnthropicChatClientTests(unittest.TestCase):
    def test_payload_merges_consecutive_roles_and_uses_system_field(self) -> None:
        request = _request(
            messages=[
                {"role": "assistant", "content": "Welcome!"},
                {"role": "user", "content": "hi"},
                {"role": "user", "content": "anyone there?"},
            ],
            image_urls=["https://cdn/1.jpg"],
        )

        payload = AnthropicChatClient(api_key="k").build_payload(request)

        self.assertEqual(payload["system"], "You are helpful.")
        self.assertEqual([m["role"] for m in payload["messages"]], ["user", "assistant", "user"])
        last = payload["messages"][-1]["content"]
        self.assertEqual(last[0], {"type": "image", "source": {"type": "url", "url": "https://cdn/1.jpg"}})
        self.assertEqual(last[-1], {"type": "text", "text": "hi\nanyone there?"})

    def test_complete_joins_text_blocks(self) -> None:
        response = _FakeResponse({"content": [{"type": "text", "text": "Sure, "}, {"type": "text", "text": "yes."}]})
        with mock.patch("app.services.llm.urllib_request.urlopen", return_value=response) as urlopen:
            reply = AnthropicChatClient(api_key="ak").complete(_request(model="claude-3-5-sonnet"))

        self.assertEqual(reply, "Sure, yes.")
        sent = urlopen.call_args.args[0]
        self.assertEqual(sent.get_header("X-api-key"), "ak")


class ProviderRoutingTests(unittest.TestCase):
    def test_provider_for_model(self) -> None:
        self.assertEqual(provider_for_model("gpt-4o-mini"), "openai")
        self.assertEqual(provider_for_model("claude-3-5-haiku"), "anthropic")
        self.assertEqual(provider_for_model("gemini-1.5-flash"), "gemini")
        self.assertEqual(provider_for_model("llama-3.1-70b-versatile"), "groq")

    def test_missing_key_raises(self) -> None:
        with mock.patch("app.services.llm.get_settings", return_value=Settings(_env_file=None, openai_api_key="")):
            with self.assertRaises(LLMError):
                get_chat_client("gpt-4o")

    def test_configured_clients(self) -> None:
        settings = Settings(_env_file=None, anthropic_api_key="ak", groq_api_key="gk")
        with mock.patch("app.services.llm.get_settings", return_value=settings):
            self.assertIsInstance(get_chat_client("claude-3-5-haiku"), AnthropicChatClient)
            groq = get_chat_client("llama-3.1-8b-instant")
        self.assertIsInstance(groq, OpenAIChatClient)
        self.assertEqual(groq.provider_label, "Groq")


if __name__ == "__main__":
    unittest.main()
