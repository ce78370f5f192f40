"""Multi-provider LLM integration package.

One module per vendor, all speaking the vendor's native JSON over httpx:
- Gemini (governed, retried)
- OpenAI (GPT-5, GPT-4.1, GPT-4o, o-series)
- Claude (Anthropic Messages API)
- xAI (Grok, OpenAI-compatible)

Usage:
    >>> from api.providers import create_provider
    >>> provider = create_provider("openai", settings, client)
    >>> result = await provider.generate(text, prompt)

Lazy imports keep the vendor modules out of ``import api`` until needed.
"""

from __future__ import annotations


def __getattr__(name: str):
    """Lazy import of provider classes and factory helpers."""

    if name in ("BaseProvider", "ProviderRequest", "extract_error_message"):
        from api.providers import base
        return getattr(base, name)

    if name in (
        "ProviderType",
        "PROVIDER_CLASSES",
        "create_provider",
        "get_provider_class",
        "parse_provider_type",
    ):
        from api.providers import factory
        return getattr(factory, name)

    if name == "GeminiProvider":
        from api.providers.gemini_provider import GeminiProvider
        return GeminiProvider

    if name == "OpenAIProvider":
        from api.providers.openai_provider import OpenAIProvider
        return OpenAIProvider

    if name == "ClaudeProvider":
        from api.providers.anthropic_provider import ClaudeProvider
        return ClaudeProvider

    if name == "XAIProvider":
        from api.providers.xai_provider import XAIProvider
        return XAIProvider

    raise AttributeError(f"module 'api.providers' has no attribute '{name}'")


__all__ = [
    "BaseProvider",
    "ProviderRequest",
    "extract_error_message",
    "ProviderType",
    "PROVIDER_CLASSES",
    "create_provider",
    "get_provider_class",
    "parse_provider_type",
    "GeminiProvider",
    "OpenAIProvider",
    "ClaudeProvider",
    "XAIProvider",
]
