"""Base provider abstraction for LLM integrations.

Every provider speaks its vendor's native JSON over ``httpx`` and exposes the
same capability: ``generate(text, prompt) -> LLMResult``. Subclasses supply
the request shape and the response probing; the base class owns the HTTP
round trip and the classification of its failures.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict

import httpx

from api.model_capabilities import ProviderCapabilities, detect_capabilities
from modules.constants import DEFAULT_REQUEST_TIMEOUT
from modules.error_handler import (
    EmptyResponseError,
    FailureKind,
    LLMResult,
    ProviderHTTPError,
)
from modules.logger import setup_logger
from modules.prompt_utils import build_user_message
from modules.types import ProviderSettings

logger = setup_logger(__name__)

UNKNOWN_ERROR = "Unknown error"


@dataclass
class ProviderRequest:
    """One fully-built HTTP request to a provider."""
    url: str
    body: Dict[str, Any]
    headers: Dict[str, str] = field(default_factory=dict)
    params: Dict[str, str] = field(default_factory=dict)


def extract_error_message(data: Any) -> str:
    """Find the human-readable message in a provider error body."""
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict):
            message = error.get("message")
            if isinstance(message, str) and message:
                return message
        if isinstance(error, str) and error:
            return error
        message = data.get("message")
        if isinstance(message, str) and message:
            return message
    return UNKNOWN_ERROR


def join_text_parts(parts: Any) -> str:
    """Concatenate ``text`` fields from a list of content parts/blocks."""
    if not isinstance(parts, list):
        return ""
    texts = []
    for part in parts:
        if isinstance(part, str):
            texts.append(part)
        elif isinstance(part, dict):
            text = part.get("text")
            if isinstance(text, str):
                texts.append(text)
    return "".join(texts)


class BaseProvider(ABC):
    """
    Abstract base class for all LLM providers.

    Args:
        settings: Credentials and model for this provider
        client: Shared HTTP client
        timeout: Per-request timeout in seconds
    """

    display_name: str = "LLM"

    def __init__(
        self,
        settings: ProviderSettings,
        client: httpx.AsyncClient,
        *,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        self.settings = settings
        self.client = client
        self.timeout = timeout
        self._capabilities = detect_capabilities(self.provider_name, settings.model)

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name (e.g. 'gemini', 'openai')."""

    @property
    def model(self) -> str:
        return self.settings.model

    @property
    def api_key(self) -> str:
        return (self.settings.api_key or "").strip()

    def get_capabilities(self) -> ProviderCapabilities:
        return self._capabilities

    @abstractmethod
    def build_request(self, user_message: str) -> ProviderRequest:
        """Build the vendor-specific request for one user message."""

    @abstractmethod
    def extract_text(self, data: Dict[str, Any]) -> str:
        """Pull the generated text out of a successful response body."""

    async def send(self, user_message: str) -> str:
        """
        Perform one HTTP round trip and return the generated text.

        Raises:
            ProviderHTTPError: Non-2xx status
            EmptyResponseError: 2xx with an unparseable body or no text
            httpx.HTTPError: Transport-level failure
        """
        request = self.build_request(user_message)
        response = await self.client.post(
            request.url,
            json=request.body,
            headers=request.headers,
            params=request.params or None,
            timeout=self.timeout,
        )

        if not response.is_success:
            try:
                error_data = response.json()
            except ValueError:
                error_data = None
            raise ProviderHTTPError(
                response.status_code, extract_error_message(error_data), self.provider_name
            )

        try:
            data = response.json()
        except ValueError as e:
            raise EmptyResponseError(f"Unparseable response from {self.display_name} API: {e}") from e

        text = self.extract_text(data) if isinstance(data, dict) else ""
        if not text or not text.strip():
            raise EmptyResponseError(f"No response generated by {self.display_name}")
        return text

    async def generate(self, text: str, prompt: str) -> LLMResult:
        """Single-attempt generation; failures come back as tagged results."""
        meta = {"provider": self.provider_name, "model": self.model}
        try:
            generated = await self.send(build_user_message(prompt, text))
        except ProviderHTTPError as e:
            return LLMResult.fail(
                FailureKind.PROVIDER_HTTP_ERROR,
                f"{self.display_name} API Error: {e.status_code} - {e.message}",
                status_code=e.status_code,
                **meta,
            )
        except EmptyResponseError as e:
            return LLMResult.fail(FailureKind.EMPTY_RESPONSE, str(e), **meta)
        except httpx.HTTPError as e:
            logger.error(f"{self.display_name} API Error: {e}")
            return LLMResult.fail(
                FailureKind.NETWORK_ERROR, str(e) or type(e).__name__, **meta
            )
        except Exception as e:
            # Request construction failures, e.g. a non-ASCII key in a header.
            logger.error(f"{self.display_name} request could not be sent: {type(e).__name__}: {e}")
            return LLMResult.fail(
                FailureKind.NETWORK_ERROR, f"{type(e).__name__}: {e}", **meta
            )
        return LLMResult.ok(generated.strip(), attempts=1, **meta)

    @staticmethod
    def dump_part(part: Any) -> str:
        """Serialize an unexpected content part so it is not silently lost."""
        try:
            return json.dumps(part, ensure_ascii=False)
        except (TypeError, ValueError):
            return str(part)


__all__ = [
    "BaseProvider",
    "ProviderRequest",
    "extract_error_message",
    "join_text_parts",
    "UNKNOWN_ERROR",
]
