"""Type definitions and data structures for NarraForm.

Dataclasses for configuration blocks and for the chapter records exchanged
with the persistence service.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Optional

from modules.constants import (
    DEFAULT_ALTERNATIVE_MODELS,
    DEFAULT_BASE_DELAY,
    DEFAULT_DAILY_QUOTAS,
    DEFAULT_EMPTY_RESPONSE_DELAY,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_NETWORK_BACKOFF_CAP,
    DEFAULT_PER_MINUTE_LIMITS,
    DEFAULT_RATE_LIMIT_BACKOFF_CAP,
    FALLBACK_DAILY_QUOTA,
    FALLBACK_PER_MINUTE_LIMIT,
)


# ============================================================================
# Configuration Data Classes
# ============================================================================
@dataclass(frozen=True)
class RetryPolicy:
    """Retry ceiling and backoff timings (seconds) for governed provider calls."""
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_delay: float = DEFAULT_BASE_DELAY
    rate_limit_cap: float = DEFAULT_RATE_LIMIT_BACKOFF_CAP
    network_cap: float = DEFAULT_NETWORK_BACKOFF_CAP
    empty_response_delay: float = DEFAULT_EMPTY_RESPONSE_DELAY

    def backoff(self, attempt: int, cap: float) -> float:
        """Delay after the 1-based ``attempt``: base doubled per attempt, capped."""
        return min(self.base_delay * (2 ** (attempt - 1)), cap)

    def rate_limit_delay(self, attempt: int) -> float:
        return self.backoff(attempt, self.rate_limit_cap)

    def network_delay(self, attempt: int) -> float:
        return self.backoff(attempt, self.network_cap)

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> RetryPolicy:
        defaults = cls()
        return cls(
            max_attempts=max(1, int(config.get("max_attempts", defaults.max_attempts))),
            base_delay=float(config.get("base_delay", defaults.base_delay)),
            rate_limit_cap=float(config.get("rate_limit_cap", defaults.rate_limit_cap)),
            network_cap=float(config.get("network_cap", defaults.network_cap)),
            empty_response_delay=float(
                config.get("empty_response_delay", defaults.empty_response_delay)
            ),
        )


@dataclass(frozen=True)
class RateLimitConfig:
    """Per-model request caps used by the rate governor."""
    per_minute: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_PER_MINUTE_LIMITS))
    daily: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_DAILY_QUOTAS))
    alternatives: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_ALTERNATIVE_MODELS))
    default_per_minute: int = FALLBACK_PER_MINUTE_LIMIT
    default_daily: int = FALLBACK_DAILY_QUOTA

    def limit_for(self, model: str) -> int:
        return self.per_minute.get(model) or self.default_per_minute

    def quota_for(self, model: str) -> int:
        return self.daily.get(model) or self.default_daily

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> RateLimitConfig:
        """Merge YAML overrides on top of the built-in tables."""
        base = cls()
        per_minute = dict(base.per_minute)
        per_minute.update(_int_mapping(config.get("per_minute")))
        daily = dict(base.daily)
        daily.update(_int_mapping(config.get("daily")))
        alternatives = dict(base.alternatives)
        raw_alternatives = config.get("alternatives")
        if isinstance(raw_alternatives, dict):
            alternatives.update({str(k): str(v) for k, v in raw_alternatives.items()})
        return cls(
            per_minute=per_minute,
            daily=daily,
            alternatives=alternatives,
            default_per_minute=max(1, int(config.get("default_per_minute", base.default_per_minute))),
            default_daily=max(1, int(config.get("default_daily", base.default_daily))),
        )


def _int_mapping(value: Any) -> Dict[str, int]:
    if not isinstance(value, dict):
        return {}
    out: Dict[str, int] = {}
    for key, raw in value.items():
        try:
            parsed = int(raw)
        except (TypeError, ValueError):
            continue  # Skip malformed entries
        if parsed > 0:
            out[str(key)] = parsed
    return out


@dataclass(frozen=True)
class ProviderSettings:
    """Credentials and model choice for one LLM provider."""
    name: str
    model: str
    api_key: Optional[str] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_key.strip())


# ============================================================================
# Chapter Records
# ============================================================================
@dataclass
class ChapterMetadata:
    """Lightweight chapter row kept in memory for the whole project."""
    id: str
    project_id: str
    title: str
    type: str = "chapter"
    content_type: str = "novel"
    episode_id: Optional[str] = None
    chapter_order: Optional[int] = None
    position: Optional[str] = None
    relative_to_episode: Optional[str] = None
    is_orphaned: Optional[bool] = None
    character_count: Optional[int] = None
    processing_count: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    processed_text: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> ChapterMetadata:
        """Build from a persistence row, ignoring columns this type doesn't know."""
        known = {f.name for f in fields(cls)}
        data = {k: v for k, v in row.items() if k in known}
        # Ordering is driven by chapter_order alone.
        data["position"] = None
        data["processing_count"] = data.get("processing_count") or 0
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ChapterContent:
    """Full text of one chapter, loaded on demand."""
    id: str
    original_text: str
    processed_text: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> ChapterContent:
        return cls(
            id=row["id"],
            original_text=row.get("original_text") or "",
            processed_text=row.get("processed_text"),
        )


@dataclass
class Chapter(ChapterMetadata):
    """Metadata and content combined."""
    original_text: str = ""

    @classmethod
    def combine(cls, metadata: ChapterMetadata, content: ChapterContent) -> Chapter:
        data = metadata.to_dict()
        data["original_text"] = content.original_text
        data["processed_text"] = content.processed_text
        return cls(**data)


# ============================================================================
# Public API
# ============================================================================
__all__ = [
    "RetryPolicy",
    "RateLimitConfig",
    "ProviderSettings",
    "ChapterMetadata",
    "ChapterContent",
    "Chapter",
]
