"""API layer for NarraForm.

- **rate_governor**: sliding-window and daily-quota limiter for Gemini
- **provider_router**: chooses a configured provider and runs the request
- **providers**: one module per LLM vendor behind a uniform ``generate``
- **model_capabilities**: per-model request-shape rules

Example:
    >>> governor = RateGovernor(settings.rate_limits, JsonFileStore(path))
    >>> router = ProviderRouter(settings, governor)
    >>> result = await router.process(text, "novel")
"""

from api.model_capabilities import ProviderCapabilities, detect_capabilities
from api.provider_router import ProviderRouter
from api.rate_governor import RateGovernor, RateLimitStatus, RequestRecord

__all__ = [
    "ProviderCapabilities",
    "detect_capabilities",
    "ProviderRouter",
    "RateGovernor",
    "RateLimitStatus",
    "RequestRecord",
]
