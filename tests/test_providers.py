"""Tests for api/providers/ - request shapes, response probing and single-attempt errors.

Covers:
- api/providers/base.py               (extract_error_message, BaseProvider.generate)
- api/providers/openai_provider.py    (OpenAIProvider)
- api/providers/anthropic_provider.py (ClaudeProvider)
- api/providers/xai_provider.py       (XAIProvider)
- api/providers/gemini_provider.py    (request shape, extract_candidate_text)
- api/providers/factory.py and __init__.py
"""

from __future__ import annotations

import json

import httpx
import pytest

from api.providers.anthropic_provider import ClaudeProvider, extract_messages_text
from api.providers.base import UNKNOWN_ERROR, extract_error_message
from api.providers.factory import (
    ProviderType,
    create_provider,
    get_provider_class,
    parse_provider_type,
)
from api.providers.gemini_provider import (
    GeminiProvider,
    extract_candidate_text,
    is_quota_message,
)
from api.providers.openai_provider import OpenAIProvider, extract_chat_completion_text
from api.providers.xai_provider import XAIProvider
from modules.constants import CONVERTER_SYSTEM_PROMPT
from modules.error_handler import ConfigurationError, FailureKind
from modules.types import ProviderSettings


def _body(request: httpx.Request) -> dict:
    return json.loads(request.content)


def _chat_response(text: str) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": text}}]})


# ============================================================================
# Error Message Extraction
# ============================================================================
class TestExtractErrorMessage:

    @pytest.mark.parametrize(
        "data, expected",
        [
            ({"error": {"message": "bad key", "code": 401}}, "bad key"),
            ({"error": "Overloaded"}, "Overloaded"),
            ({"message": "Not found"}, "Not found"),
            ({"error": {"code": 500}}, UNKNOWN_ERROR),
            ({}, UNKNOWN_ERROR),
            (None, UNKNOWN_ERROR),
            (["error"], UNKNOWN_ERROR),
        ],
    )
    def test_probe_order(self, data, expected):
        assert extract_error_message(data) == expected


# ============================================================================
# Response Probing
# ============================================================================
class TestResponseProbing:

    def test_gemini_joins_parts(self):
        data = {"candidates": [{"content": {"parts": [{"text": "INT. "}, {"text": "HOUSE"}]}}]}
        assert extract_candidate_text(data) == "INT. HOUSE"

    def test_gemini_serializes_first_part_without_text(self):
        data = {"candidates": [{"content": {"parts": [{"inlineData": {"mimeType": "text/plain"}}]}}]}
        assert json.loads(extract_candidate_text(data)) == {"inlineData": {"mimeType": "text/plain"}}

    def test_gemini_falls_back_to_candidate_text(self):
        data = {"candidates": [{"text": "Fallback script"}]}
        assert extract_candidate_text(data) == "Fallback script"

    @pytest.mark.parametrize(
        "data",
        [{}, {"candidates": []}, {"candidates": [None]}, {"candidates": [{"content": {"parts": []}}]}],
    )
    def test_gemini_empty_shapes(self, data):
        assert extract_candidate_text(data) == ""

    def test_chat_completion_string_content(self):
        assert extract_chat_completion_text({"choices": [{"message": {"content": "Hi"}}]}) == "Hi"

    def test_chat_completion_list_content(self):
        data = {"choices": [{"message": {"content": [{"type": "text", "text": "A"}, {"type": "text", "text": "B"}]}}]}
        assert extract_chat_completion_text(data) == "AB"

    def test_chat_completion_legacy_text(self):
        assert extract_chat_completion_text({"choices": [{"text": "legacy"}]}) == "legacy"

    def test_chat_completion_no_choices(self):
        assert extract_chat_completion_text({"choices": []}) == ""

    def test_claude_joins_text_blocks_only(self):
        data = {
            "content": [
                {"type": "thinking", "thinking": "..."},
                {"type": "text", "text": "NARRATOR: "},
                {"type": "text", "text": "Night falls."},
            ]
        }
        assert extract_messages_text(data) == "NARRATOR: Night falls."

    def test_quota_message_detection(self):
        assert is_quota_message("Resource has been exhausted (e.g. check QUOTA).")
        assert is_quota_message("Daily limit reached")
        assert not is_quota_message("Too many requests, slow down")


# ============================================================================
# Request Shapes
# ============================================================================
class TestRequestShapes:

    @pytest.mark.asyncio
    async def test_gemini_request(self, http_client, transport, governor, sleep):
        transport.queue(httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": " script "}]}}]}))
        provider = GeminiProvider(
            ProviderSettings("gemini", "gemini-2.5-flash", "g-key"),
            http_client,
            governor=governor,
            sleep=sleep,
        )

        result = await provider.generate("Once upon a time", "Convert this")

        assert result.success is True
        assert result.text == "script"
        request = transport.requests[0]
        assert request.url.path == "/v1beta/models/gemini-2.5-flash:generateContent"
        assert request.url.params["key"] == "g-key"
        body = _body(request)
        assert body["contents"] == [{"parts": [{"text": "Convert this\n\nOriginal text:\nOnce upon a time"}]}]
        assert body["generationConfig"] == {
            "temperature": 0.7,
            "topK": 40,
            "topP": 0.95,
            "maxOutputTokens": 8192,
        }

    @pytest.mark.asyncio
    async def test_openai_reasoning_model_request(self, http_client, transport):
        transport.queue(_chat_response("script"))
        provider = OpenAIProvider(ProviderSettings("openai", "gpt-5-2025-08-07", "sk-1"), http_client)

        result = await provider.generate("text", "prompt")

        assert result.success is True
        request = transport.requests[0]
        assert str(request.url) == "https://api.openai.com/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer sk-1"
        body = _body(request)
        assert body["model"] == "gpt-5-2025-08-07"
        assert body["max_completion_tokens"] == 8192
        assert "max_tokens" not in body
        assert "temperature" not in body
        assert body["messages"] == [
            {"role": "system", "content": CONVERTER_SYSTEM_PROMPT},
            {"role": "user", "content": "prompt\n\nOriginal text:\ntext"},
        ]

    @pytest.mark.asyncio
    async def test_openai_model_without_system_role(self, http_client, transport):
        transport.queue(_chat_response("script"))
        provider = OpenAIProvider(ProviderSettings("openai", "o1-mini", "sk-1"), http_client)

        await provider.generate("text", "prompt")

        assert _body(transport.requests[0])["messages"] == [
            {"role": "user", "content": f"{CONVERTER_SYSTEM_PROMPT}\n\nprompt\n\nOriginal text:\ntext"},
        ]

    @pytest.mark.asyncio
    async def test_openai_legacy_model_request(self, http_client, transport):
        transport.queue(_chat_response("script"))
        provider = OpenAIProvider(ProviderSettings("openai", "gpt-4o", "sk-1"), http_client)

        await provider.generate("text", "prompt")

        body = _body(transport.requests[0])
        assert body["max_tokens"] == 8192
        assert body["temperature"] == 0.7
        assert "max_completion_tokens" not in body

    @pytest.mark.asyncio
    async def test_claude_request(self, http_client, transport):
        transport.queue(httpx.Response(200, json={"content": [{"type": "text", "text": "script"}]}))
        provider = ClaudeProvider(ProviderSettings("claude", "claude-sonnet-4-20250514", "ak-1"), http_client)

        result = await provider.generate("text", "prompt")

        assert result.text == "script"
        request = transport.requests[0]
        assert str(request.url) == "https://api.anthropic.com/v1/messages"
        assert request.headers["x-api-key"] == "ak-1"
        assert request.headers["anthropic-version"] == "2023-06-01"
        body = _body(request)
        assert body["max_tokens"] == 8192
        assert body["messages"] == [{"role": "user", "content": "prompt\n\nOriginal text:\ntext"}]

    @pytest.mark.asyncio
    async def test_xai_request(self, http_client, transport):
        transport.queue(_chat_response("script"))
        provider = XAIProvider(ProviderSettings("xai", "grok-4", "xk-1"), http_client)

        result = await provider.generate("text", "prompt")

        assert result.provider == "xai"
        request = transport.requests[0]
        assert str(request.url) == "https://api.x.ai/v1/chat/completions"
        body = _body(request)
        assert body["max_tokens"] == 8192
        assert body["temperature"] == 0.7


# ============================================================================
# Single-Attempt Failures
# ============================================================================
class TestSingleAttemptFailures:

    @pytest.fixture
    def provider(self, http_client):
        return OpenAIProvider(ProviderSettings("openai", "gpt-4o", "sk-1"), http_client)

    @pytest.mark.asyncio
    async def test_http_error(self, provider, transport):
        transport.queue(httpx.Response(401, json={"error": {"message": "Invalid API key"}}))

        result = await provider.generate("text", "prompt")

        assert result.success is False
        assert result.kind is FailureKind.PROVIDER_HTTP_ERROR
        assert result.error == "OpenAI API Error: 401 - Invalid API key"
        assert result.details["status_code"] == 401
        assert len(transport.requests) == 1

    @pytest.mark.asyncio
    async def test_http_error_without_json_body(self, provider, transport):
        transport.queue(httpx.Response(502, text="Bad Gateway"))

        result = await provider.generate("text", "prompt")

        assert result.error == f"OpenAI API Error: 502 - {UNKNOWN_ERROR}"

    @pytest.mark.asyncio
    async def test_empty_response(self, provider, transport):
        transport.queue(_chat_response("   "))

        result = await provider.generate("text", "prompt")

        assert result.kind is FailureKind.EMPTY_RESPONSE
        assert result.error == "No response generated by OpenAI"

    @pytest.mark.asyncio
    async def test_unparseable_response(self, provider, transport):
        transport.queue(httpx.Response(200, text="<html>oops</html>"))

        result = await provider.generate("text", "prompt")

        assert result.kind is FailureKind.EMPTY_RESPONSE

    @pytest.mark.asyncio
    async def test_network_error(self, provider, transport):
        transport.queue(httpx.ConnectError("connection refused"))

        result = await provider.generate("text", "prompt")

        assert result.kind is FailureKind.NETWORK_ERROR
        assert "connection refused" in result.error
        assert len(transport.requests) == 1


# ============================================================================
# Factory
# ============================================================================
class TestFactory:

    def test_parse_provider_type(self):
        assert parse_provider_type(" Gemini ") is ProviderType.GEMINI

    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError, match="Unknown provider 'openrouter'"):
            parse_provider_type("openrouter")

    @pytest.mark.parametrize(
        "provider_type, cls",
        [
            (ProviderType.GEMINI, GeminiProvider),
            (ProviderType.OPENAI, OpenAIProvider),
            (ProviderType.CLAUDE, ClaudeProvider),
            (ProviderType.XAI, XAIProvider),
        ],
    )
    def test_lookup_table(self, provider_type, cls):
        assert get_provider_class(provider_type) is cls

    def test_gemini_requires_governor(self, http_client):
        with pytest.raises(ConfigurationError):
            create_provider("gemini", ProviderSettings("gemini", "gemini-2.5-flash", "k"), http_client)

    def test_creates_governed_gemini(self, http_client, governor):
        provider = create_provider(
            "gemini", ProviderSettings("gemini", "gemini-2.5-flash", "k"), http_client, governor=governor
        )
        assert isinstance(provider, GeminiProvider)
        assert provider.governor is governor

    def test_lazy_package_exports(self):
        import api.providers as providers

        assert providers.ClaudeProvider is ClaudeProvider
        assert providers.create_provider is create_provider
        with pytest.raises(AttributeError):
            providers.OpenRouterProvider  # noqa: B018
