"""Google Gemini provider with governed retries.

Gemini is the only provider whose calls pass through the ``RateGovernor``:
before every attempt the governor is consulted, and every successful call is
recorded against the model's minute window and daily quota.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from api.providers.base import BaseProvider, ProviderRequest, join_text_parts
from api.rate_governor import RateGovernor
from modules.constants import (
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_TEMPERATURE,
    GEMINI_API_BASE,
    GEMINI_TOP_K,
    GEMINI_TOP_P,
    QUOTA_ERROR_MARKERS,
)
from modules.error_handler import (
    EmptyResponseError,
    FailureKind,
    LLMResult,
    ProviderHTTPError,
)
from modules.logger import setup_logger
from modules.prompt_utils import build_user_message
from modules.types import ProviderSettings, RetryPolicy

logger = setup_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]


def is_quota_message(message: str) -> bool:
    """True when a 429 body talks about quota rather than a transient burst."""
    lowered = message.lower()
    return any(marker in lowered for marker in QUOTA_ERROR_MARKERS)


def extract_candidate_text(data: Dict[str, Any]) -> str:
    """
    Probe a generateContent body for the generated text.

    Tries, in order: the joined ``candidates[0].content.parts[*].text``, the
    first part serialized as JSON, then ``candidates[0].text``.
    """
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return ""
    candidate = candidates[0]
    if not isinstance(candidate, dict):
        return ""

    content = candidate.get("content")
    parts = content.get("parts") if isinstance(content, dict) else None
    if isinstance(parts, list) and parts:
        text = join_text_parts(parts)
        if text.strip():
            return text
        first = parts[0]
        if first not in (None, "", {}):
            return BaseProvider.dump_part(first)

    text = candidate.get("text")
    return text if isinstance(text, str) else ""


class GeminiProvider(BaseProvider):
    """
    Gemini provider using the ``generateContent`` REST endpoint.

    Args:
        settings: Credentials and model
        client: Shared HTTP client
        governor: Rate governor shared by every governed call
        retry: Attempt ceiling and backoff timings
        sleep: Coroutine used between attempts, taking seconds
        timeout: Per-request timeout in seconds
    """

    display_name = "Gemini"

    def __init__(
        self,
        settings: ProviderSettings,
        client: httpx.AsyncClient,
        *,
        governor: RateGovernor,
        retry: Optional[RetryPolicy] = None,
        sleep: Sleep = asyncio.sleep,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        super().__init__(settings, client, timeout=timeout)
        self.governor = governor
        self.retry = retry or RetryPolicy()
        self.sleep = sleep

    @property
    def provider_name(self) -> str:
        return "gemini"

    def build_request(self, user_message: str) -> ProviderRequest:
        return ProviderRequest(
            url=f"{GEMINI_API_BASE}/models/{self.model}:generateContent",
            params={"key": self.api_key},
            headers={"Content-Type": "application/json"},
            body={
                "contents": [{"parts": [{"text": user_message}]}],
                "generationConfig": {
                    "temperature": DEFAULT_TEMPERATURE,
                    "topK": GEMINI_TOP_K,
                    "topP": GEMINI_TOP_P,
                    "maxOutputTokens": self.get_capabilities().max_output_tokens,
                },
            },
        )

    def extract_text(self, data: Dict[str, Any]) -> str:
        return extract_candidate_text(data)

    def _quota_failure(self, error: str) -> LLMResult:
        status = self.governor.get_rate_limit_status(self.model)
        return LLMResult.fail(
            FailureKind.QUOTA_EXCEEDED,
            error,
            provider=self.provider_name,
            model=self.model,
            alternative_model=self.governor.get_alternative_model(self.model),
            daily_requests=status.daily_requests,
            daily_quota=status.daily_quota,
            wait_time_ms=status.wait_time_ms,
        )

    async def generate(self, text: str, prompt: str) -> LLMResult:
        """Run up to ``retry.max_attempts`` governed attempts."""
        model = self.model
        max_attempts = self.retry.max_attempts
        user_message = build_user_message(prompt, text)
        last_error = "Unknown error"
        last_kind = FailureKind.NETWORK_ERROR

        for attempt in range(1, max_attempts + 1):
            if not self.governor.can_make_request(model):
                status = self.governor.get_rate_limit_status(model)
                if status.quota_exceeded:
                    logger.warning(f"Daily quota exhausted locally for {model}")
                    return self._quota_failure(self.governor.get_status_message(model))
                if attempt == max_attempts:
                    return LLMResult.fail(
                        FailureKind.RATE_LIMITED,
                        self.governor.get_status_message(model),
                        provider=self.provider_name,
                        model=model,
                        current_requests=status.current_requests,
                        max_requests=status.max_requests,
                        wait_time_ms=status.wait_time_ms,
                        attempts=attempt - 1,
                    )
                await self.governor.wait_for_rate_limit(model)

            try:
                generated = await self.send(user_message)
            except ProviderHTTPError as e:
                if e.is_rate_limit:
                    if is_quota_message(e.message):
                        logger.warning(f"Gemini quota exceeded for {model}: {e.message}")
                        return self._quota_failure(f"Gemini API quota exceeded: {e.message}")
                    last_error = f"Gemini API Error: 429 - {e.message}"
                    last_kind = FailureKind.RATE_LIMITED
                    if attempt < max_attempts:
                        delay = self.retry.rate_limit_delay(attempt)
                        logger.warning(
                            f"Rate limited by Gemini (attempt {attempt}/{max_attempts}), "
                            f"retrying in {delay}s"
                        )
                        await self.sleep(delay)
                    continue
                return LLMResult.fail(
                    FailureKind.PROVIDER_HTTP_ERROR,
                    f"Gemini API Error: {e.status_code} - {e.message}",
                    provider=self.provider_name,
                    model=model,
                    status_code=e.status_code,
                    attempts=attempt,
                )
            except EmptyResponseError as e:
                last_error = str(e)
                last_kind = FailureKind.EMPTY_RESPONSE
                if attempt < max_attempts:
                    logger.warning(
                        f"Empty Gemini response (attempt {attempt}/{max_attempts}), retrying"
                    )
                    await self.sleep(self.retry.empty_response_delay)
                continue
            except httpx.HTTPError as e:
                last_error = str(e) or type(e).__name__
                last_kind = FailureKind.NETWORK_ERROR
                logger.error(f"Gemini request failed (attempt {attempt}/{max_attempts}): {last_error}")
                if attempt < max_attempts:
                    await self.sleep(self.retry.network_delay(attempt))
                continue
            except Exception as e:
                last_error = f"{type(e).__name__}: {e}"
                last_kind = FailureKind.NETWORK_ERROR
                logger.error(f"Gemini request could not be sent (attempt {attempt}/{max_attempts}): {last_error}")
                if attempt < max_attempts:
                    await self.sleep(self.retry.network_delay(attempt))
                continue

            self.governor.record_request(model)
            return LLMResult.ok(
                generated.strip(),
                provider=self.provider_name,
                model=model,
                attempts=attempt,
            )

        return LLMResult.fail(
            last_kind,
            f"Failed after {max_attempts} attempts. Last error: {last_error}",
            provider=self.provider_name,
            model=model,
            attempts=max_attempts,
        )


__all__ = ["GeminiProvider", "extract_candidate_text", "is_quota_message"]
