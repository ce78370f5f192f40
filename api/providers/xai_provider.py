"""xAI (Grok) provider.

xAI exposes an OpenAI-compatible Chat Completions endpoint, so only the URL
and the token/temperature parameters differ from ``OpenAIProvider``.
"""

from __future__ import annotations

from api.providers.openai_provider import OpenAIProvider
from modules.constants import XAI_CHAT_URL


class XAIProvider(OpenAIProvider):
    """Grok models over the OpenAI wire format."""

    display_name = "xAI"
    endpoint = XAI_CHAT_URL

    @property
    def provider_name(self) -> str:
        return "xai"
