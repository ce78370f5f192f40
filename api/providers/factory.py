"""Provider factory for routing requests to an LLM vendor.

Maps a provider name to its ``BaseProvider`` subclass and builds instances
with the collaborators each one needs. Only Gemini is governed, so only it
receives the rate governor and the retry policy.
"""

from __future__ import annotations

import asyncio
import importlib
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional, Type

import httpx

from api.providers.base import BaseProvider
from api.rate_governor import RateGovernor
from modules.constants import DEFAULT_REQUEST_TIMEOUT
from modules.error_handler import ConfigurationError
from modules.logger import setup_logger
from modules.types import ProviderSettings, RetryPolicy

logger = setup_logger(__name__)


class ProviderType(str, Enum):
    """Supported LLM provider types."""
    GEMINI = "gemini"
    OPENAI = "openai"
    CLAUDE = "claude"
    XAI = "xai"


# Dotted paths, imported on first use
PROVIDER_CLASSES: Dict[ProviderType, str] = {
    ProviderType.GEMINI: "api.providers.gemini_provider.GeminiProvider",
    ProviderType.OPENAI: "api.providers.openai_provider.OpenAIProvider",
    ProviderType.CLAUDE: "api.providers.anthropic_provider.ClaudeProvider",
    ProviderType.XAI: "api.providers.xai_provider.XAIProvider",
}

GOVERNED_PROVIDERS = frozenset({ProviderType.GEMINI})


def parse_provider_type(name: str) -> ProviderType:
    """Turn a configured provider name into a ``ProviderType``."""
    try:
        return ProviderType(name.lower().strip())
    except ValueError:
        raise ConfigurationError(
            f"Unknown provider '{name}'. "
            f"Supported: {', '.join(p.value for p in ProviderType)}"
        ) from None


def get_provider_class(provider_type: ProviderType) -> Type[BaseProvider]:
    """Import and return the class registered for ``provider_type``."""
    module_name, class_name = PROVIDER_CLASSES[provider_type].rsplit(".", 1)
    module = importlib.import_module(module_name)
    return getattr(module, class_name)


def create_provider(
    name: str,
    settings: ProviderSettings,
    client: httpx.AsyncClient,
    *,
    governor: Optional[RateGovernor] = None,
    retry: Optional[RetryPolicy] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    timeout: float = DEFAULT_REQUEST_TIMEOUT,
) -> BaseProvider:
    """
    Build a provider instance.

    Args:
        name: Provider name (gemini, openai, claude, xai)
        settings: Credentials and model for the provider
        client: Shared HTTP client
        governor: Required for governed providers
        retry: Retry policy for governed providers
        sleep: Coroutine used between governed attempts
        timeout: Per-request timeout in seconds

    Raises:
        ConfigurationError: Unknown provider, or a governed provider without
            a governor
    """
    provider_type = parse_provider_type(name)
    provider_class = get_provider_class(provider_type)

    if provider_type in GOVERNED_PROVIDERS:
        if governor is None:
            raise ConfigurationError(f"Provider '{name}' requires a rate governor")
        return provider_class(
            settings,
            client,
            governor=governor,
            retry=retry,
            sleep=sleep,
            timeout=timeout,
        )

    logger.debug(f"Creating ungoverned provider {provider_type.value} ({settings.model})")
    return provider_class(settings, client, timeout=timeout)


__all__ = [
    "ProviderType",
    "PROVIDER_CLASSES",
    "GOVERNED_PROVIDERS",
    "parse_provider_type",
    "get_provider_class",
    "create_provider",
]
