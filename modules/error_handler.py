"""Error taxonomy and result values for NarraForm.

Two layers live here:

1. Exceptions (``ProcessingError`` and subclasses) used *inside* a component
   to signal a failed step.
2. ``LLMResult``, the tagged value every public entry point returns, so the
   caller can render a message without knowing which branch produced it.
   Exceptions are converted to ``LLMResult.fail`` at the component boundary.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from modules.logger import setup_logger

logger = setup_logger(__name__)


# ============================================================================
# Exceptions
# ============================================================================
class ProcessingError(Exception):
    """Base exception for NarraForm failures."""


class ConfigurationError(ProcessingError):
    """No usable configuration (e.g. no provider has an API key)."""


class APIError(ProcessingError):
    """A call to an external AI provider failed."""


class ProviderHTTPError(APIError):
    """Provider answered with a non-success HTTP status."""

    def __init__(self, status_code: int, message: str, provider: str = "") -> None:
        self.status_code = status_code
        self.message = message
        self.provider = provider
        super().__init__(f"{status_code} - {message}")

    @property
    def is_rate_limit(self) -> bool:
        return self.status_code == 429


class EmptyResponseError(APIError):
    """Provider answered successfully but produced no usable text."""


class StorageError(ProcessingError):
    """The persistence service failed to answer a query."""


# ============================================================================
# Result Values
# ============================================================================
class FailureKind(str, Enum):
    """Kinds of failure surfaced to callers."""

    NOT_CONFIGURED = "not_configured"
    QUOTA_EXCEEDED = "quota_exceeded"
    RATE_LIMITED = "rate_limited"
    PROVIDER_HTTP_ERROR = "provider_http_error"
    EMPTY_RESPONSE = "empty_response"
    NETWORK_ERROR = "network_error"
    NOT_FOUND = "not_found"


@dataclass
class LLMResult:
    """
    Outcome of one logical generation request.

    Attributes:
        success: Whether usable text was produced
        text: Generated text (stripped) on success
        error: Human-readable failure message
        kind: Failure classification, ``None`` on success
        provider: Provider that served (or failed) the request
        model: Model identifier used
        details: Structured extras for the UI: ``status_code``,
            ``alternative_model``, ``daily_requests``, ``daily_quota``,
            ``current_requests``, ``max_requests``, ``wait_time_ms``,
            ``attempts``
    """

    success: bool
    text: Optional[str] = None
    error: Optional[str] = None
    kind: Optional[FailureKind] = None
    provider: Optional[str] = None
    model: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(
        cls,
        text: str,
        *,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        **details: Any,
    ) -> "LLMResult":
        return cls(success=True, text=text, provider=provider, model=model, details=details)

    @classmethod
    def fail(
        cls,
        kind: FailureKind,
        error: str,
        *,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        **details: Any,
    ) -> "LLMResult":
        return cls(
            success=False,
            error=error,
            kind=kind,
            provider=provider,
            model=model,
            details=details,
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"success": self.success}
        if self.text is not None:
            result["text"] = self.text
        if self.error is not None:
            result["error"] = self.error
        if self.kind is not None:
            result["kind"] = self.kind.value
        if self.provider:
            result["provider"] = self.provider
        if self.model:
            result["model"] = self.model
        if self.details:
            result["details"] = dict(self.details)
        return result


# ============================================================================
# Error Handlers
# ============================================================================
def handle_recoverable_error(error: Exception, context: str) -> None:
    """Log an error that the caller chooses to survive."""
    logger.warning(f"Recoverable error in {context}: {error}")
    logger.debug(traceback.format_exc())


def validate_config_value(
    value: Any,
    expected_type: type,
    name: str,
    allow_none: bool = False,
) -> None:
    """Raise ConfigurationError if ``value`` is not of ``expected_type``."""
    if value is None and allow_none:
        return

    if not isinstance(value, expected_type):
        raise ConfigurationError(
            f"Invalid configuration for '{name}': expected {expected_type.__name__}, "
            f"got {type(value).__name__}"
        )


# ============================================================================
# Public API
# ============================================================================
__all__ = [
    "ProcessingError",
    "ConfigurationError",
    "APIError",
    "ProviderHTTPError",
    "EmptyResponseError",
    "StorageError",
    "FailureKind",
    "LLMResult",
    "handle_recoverable_error",
    "validate_config_value",
]
