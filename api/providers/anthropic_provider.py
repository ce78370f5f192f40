"""Anthropic Claude provider using the Messages API."""

from __future__ import annotations

from typing import Any, Dict

from api.providers.base import BaseProvider, ProviderRequest
from modules.constants import ANTHROPIC_MESSAGES_URL, ANTHROPIC_VERSION


def extract_messages_text(data: Dict[str, Any]) -> str:
    """Join the text blocks of a Messages API response."""
    content = data.get("content")
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return ""
    texts = []
    for block in content:
        if not isinstance(block, dict):
            continue
        # Skip tool_use / thinking blocks; only text blocks carry output.
        if block.get("type", "text") != "text":
            continue
        text = block.get("text")
        if isinstance(text, str):
            texts.append(text)
    return "".join(texts)


class ClaudeProvider(BaseProvider):
    """Claude provider; a single user message and ``max_tokens``."""

    display_name = "Claude"

    @property
    def provider_name(self) -> str:
        return "claude"

    def build_request(self, user_message: str) -> ProviderRequest:
        return ProviderRequest(
            url=ANTHROPIC_MESSAGES_URL,
            body={
                "model": self.model,
                "max_tokens": self.get_capabilities().max_output_tokens,
                "messages": [{"role": "user", "content": user_message}],
            },
            headers={
                "x-api-key": self.api_key,
                "anthropic-version": ANTHROPIC_VERSION,
                "Content-Type": "application/json",
            },
        )

    def extract_text(self, data: Dict[str, Any]) -> str:
        return extract_messages_text(data)
