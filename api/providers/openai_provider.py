"""OpenAI Chat Completions provider.

Newer model families (GPT-5, GPT-4.1, o-series) take ``max_completion_tokens``
and reject ``temperature``; older ones take ``max_tokens`` with temperature.
The rule comes from ``api.model_capabilities``.
"""

from __future__ import annotations

from typing import Any, Dict

from api.providers.base import BaseProvider, ProviderRequest, join_text_parts
from modules.constants import (
    CONVERTER_SYSTEM_PROMPT,
    DEFAULT_TEMPERATURE,
    OPENAI_CHAT_URL,
)


def extract_chat_completion_text(data: Dict[str, Any]) -> str:
    """Read text from an OpenAI-shaped chat completion body."""
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""
    first = choices[0]
    message = first.get("message")
    if isinstance(message, dict):
        content = message.get("content")
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            return join_text_parts(content)
    text = first.get("text")
    return text if isinstance(text, str) else ""


class OpenAIProvider(BaseProvider):
    """OpenAI provider using the Chat Completions endpoint."""

    display_name = "OpenAI"
    endpoint = OPENAI_CHAT_URL

    @property
    def provider_name(self) -> str:
        return "openai"

    def build_messages(self, user_message: str) -> list[Dict[str, str]]:
        if not self.get_capabilities().supports_system_message:
            return [{"role": "user", "content": f"{CONVERTER_SYSTEM_PROMPT}\n\n{user_message}"}]
        return [
            {"role": "system", "content": CONVERTER_SYSTEM_PROMPT},
            {"role": "user", "content": user_message},
        ]

    def build_request(self, user_message: str) -> ProviderRequest:
        caps = self.get_capabilities()
        body: Dict[str, Any] = {
            "model": self.model,
            "messages": self.build_messages(user_message),
        }
        if caps.uses_max_completion_tokens:
            body["max_completion_tokens"] = caps.max_output_tokens
        else:
            body["max_tokens"] = caps.max_output_tokens
        if caps.supports_temperature:
            body["temperature"] = DEFAULT_TEMPERATURE

        return ProviderRequest(
            url=self.endpoint,
            body=body,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
        )

    def extract_text(self, data: Dict[str, Any]) -> str:
        return extract_chat_completion_text(data)
