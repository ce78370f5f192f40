"""Route conversion requests to a configured LLM provider.

``ProviderRouter.process()`` is the single entry point the rest of the
application uses to turn source text into an audio-drama script. It resolves
the prompt, picks a configured provider (falling back in priority order when
the requested one has no key), and returns an ``LLMResult``. Failures never
escape as exceptions; every branch yields a tagged result.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Awaitable, Callable, Dict, Optional

import httpx

from api.providers.base import BaseProvider
from api.providers.factory import create_provider
from api.rate_governor import RateGovernor
from modules.app_config import Settings
from modules.config_loader import PROMPTS_DIR
from modules.error_handler import FailureKind, LLMResult
from modules.logger import setup_logger
from modules.prompt_utils import resolve_prompt

logger = setup_logger(__name__)

NOT_CONFIGURED_MESSAGE = (
    "No AI provider is configured. Set an API key for Gemini, OpenAI, Claude or xAI."
)


class ProviderRouter:
    """
    Multi-provider request orchestration.

    Args:
        settings: Provider credentials, models and retry policy
        governor: Rate governor applied to governed (Gemini) calls
        client: Shared HTTP client; one is created lazily when omitted
        sleep: Coroutine used between retry attempts, taking seconds
        prompts_dir: Directory holding ``current_prompt.txt``
    """

    def __init__(
        self,
        settings: Settings,
        governor: RateGovernor,
        client: Optional[httpx.AsyncClient] = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        prompts_dir: Path = PROMPTS_DIR,
    ) -> None:
        self.settings = settings
        self.governor = governor
        self.sleep = sleep
        self.prompts_dir = prompts_dir
        self._client = client
        self._owns_client = client is None
        self._providers: Dict[str, BaseProvider] = {}

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.settings.request_timeout)
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if this router created it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> ProviderRouter:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def get_provider(self, name: str) -> BaseProvider:
        """Return the (cached) provider instance for ``name``."""
        provider = self._providers.get(name)
        if provider is None:
            provider = create_provider(
                name,
                self.settings.provider(name),
                self.client,
                governor=self.governor,
                retry=self.settings.retry,
                sleep=self.sleep,
                timeout=self.settings.request_timeout,
            )
            self._providers[name] = provider
        return provider

    def select_provider(self, requested: Optional[str] = None) -> Optional[str]:
        """
        Pick the provider that will serve a request.

        Returns the requested (or default) provider when it is configured,
        otherwise the first configured provider in priority order, or None
        when nothing is configured.
        """
        name = requested or self.settings.default_provider
        if self.settings.provider(name).is_configured:
            return name
        configured = self.settings.configured_providers()
        return configured[0] if configured else None

    async def process(
        self,
        text: str,
        content_type: str,
        provider: Optional[str] = None,
        custom_prompt: Optional[str] = None,
    ) -> LLMResult:
        """
        Convert ``text`` with the chosen provider.

        Args:
            text: Chapter or scene source text
            content_type: ``novel`` or ``screenplay``
            provider: Provider override; the configured default when None
            custom_prompt: Prompt override for this request

        Returns:
            ``LLMResult`` with the stripped script on success, or a tagged
            failure (NOT_CONFIGURED, QUOTA_EXCEEDED, RATE_LIMITED,
            PROVIDER_HTTP_ERROR, EMPTY_RESPONSE, NETWORK_ERROR)
        """
        configured = self.settings.configured_providers()
        if not configured:
            logger.error("No AI provider configured")
            return LLMResult.fail(FailureKind.NOT_CONFIGURED, NOT_CONFIGURED_MESSAGE)

        name = provider or self.settings.default_provider
        if not self.settings.provider(name).is_configured:
            fallback = configured[0]
            logger.warning(f"Provider {name} not configured, using {fallback}")
            return await self.process(text, content_type, fallback, custom_prompt)

        prompt = resolve_prompt(
            content_type,
            custom_prompt=custom_prompt,
            current_prompt=self.settings.current_prompt,
            prompts_dir=self.prompts_dir,
        )

        selected = self.get_provider(name)
        logger.info(f"Processing {content_type} text with {name} ({selected.model})")
        result = await selected.generate(text, prompt)
        if result.success:
            logger.info(f"{name} returned {len(result.text or '')} characters")
        else:
            logger.warning(f"{name} request failed ({result.kind.value}): {result.error}")
        return result


__all__ = ["ProviderRouter", "NOT_CONFIGURED_MESSAGE"]
