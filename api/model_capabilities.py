"""Model capability detection for request-shape gating.

Providers differ in which sampling and token parameters a model accepts: the
GPT-5 family, GPT-4.1 and the o-series reject ``temperature`` and expect
``max_completion_tokens`` instead of ``max_tokens``. This module is the
single place that knows those rules.

Architecture:
=============
1. ``_PROVIDER_BASE`` holds the typical profile for each provider.
2. ``_MODEL_REGISTRY`` lists (prefix, overrides) pairs; the first matching
   prefix wins.
3. ``detect_capabilities()`` merges both into a frozen ``ProviderCapabilities``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from modules.constants import MAX_OUTPUT_TOKENS
from modules.logger import setup_logger

logger = setup_logger(__name__)


@dataclass(frozen=True, slots=True)
class ProviderCapabilities:
    """
    Request-shape capabilities of a provider/model pair.

    Attributes:
        provider_name: gemini, openai, claude or xai
        model_name: Model identifier as configured
        family: Matched registry family, or ``unknown``
        supports_temperature: Whether ``temperature`` may be sent
        uses_max_completion_tokens: Send ``max_completion_tokens`` rather
            than ``max_tokens`` (OpenAI reasoning-era models)
        supports_system_message: Whether a system role message is accepted
        max_output_tokens: Output token limit requested
    """

    provider_name: str
    model_name: str
    family: str = "unknown"
    supports_temperature: bool = True
    uses_max_completion_tokens: bool = False
    supports_system_message: bool = True
    max_output_tokens: int = MAX_OUTPUT_TOKENS


_PROVIDER_BASE: Dict[str, Dict[str, Any]] = {
    "gemini": {"supports_system_message": False},
    "openai": {},
    "claude": {"supports_system_message": False},
    "xai": {},
}

_REASONING_ERA: Dict[str, Any] = {
    "supports_temperature": False,
    "uses_max_completion_tokens": True,
}

# Longest prefixes first where one is a prefix of another.
_MODEL_REGISTRY: Dict[str, List[Tuple[str, Dict[str, Any]]]] = {
    "openai": [
        ("gpt-5", {"family": "gpt-5", **_REASONING_ERA}),
        ("gpt-4.1", {"family": "gpt-4.1", **_REASONING_ERA}),
        ("o1", {"family": "o1", **_REASONING_ERA, "supports_system_message": False}),
        ("o3", {"family": "o3", **_REASONING_ERA}),
        ("o4", {"family": "o4", **_REASONING_ERA}),
        ("gpt-4o", {"family": "gpt-4o"}),
        ("gpt-4", {"family": "gpt-4"}),
        ("gpt-3.5", {"family": "gpt-3.5"}),
    ],
    "xai": [
        ("grok", {"family": "grok"}),
    ],
    "claude": [
        ("claude", {"family": "claude"}),
    ],
    "gemini": [
        ("gemini", {"family": "gemini"}),
    ],
}


def detect_capabilities(provider: str, model: str) -> ProviderCapabilities:
    """Return capabilities for ``model`` served by ``provider``."""
    params: Dict[str, Any] = dict(_PROVIDER_BASE.get(provider, {}))
    normalized = model.lower().strip()

    for prefix, overrides in _MODEL_REGISTRY.get(provider, []):
        if normalized.startswith(prefix):
            params.update(overrides)
            break
    else:
        logger.debug(f"No capability entry for {provider}/{model}; using provider defaults")

    return ProviderCapabilities(provider_name=provider, model_name=model, **params)


__all__ = ["ProviderCapabilities", "detect_capabilities"]
