"""Centralized constants for NarraForm.

Single source of truth for default limits, retry timings, provider endpoints
and cache sizing. Everything here can be overridden through
``modules/config/app.yaml``; see ``modules.app_config``.
"""

from __future__ import annotations

# ============================================================================
# Time
# ============================================================================
MS_PER_SECOND = 1000
RATE_WINDOW_MS = 60 * MS_PER_SECOND
HISTORY_RETENTION_MS = 24 * 60 * 60 * MS_PER_SECOND

# ============================================================================
# Rate Governor Defaults (Gemini free tier)
# ============================================================================
DEFAULT_PER_MINUTE_LIMITS: dict[str, int] = {
    "gemini-2.5-pro": 2,
    "gemini-2.5-flash": 15,
    "gemini-2.5-flash-8b": 15,
    "gemini-2.0-flash-exp": 15,
}
DEFAULT_DAILY_QUOTAS: dict[str, int] = {
    "gemini-2.5-pro": 50,
    "gemini-2.5-flash": 1500,
    "gemini-2.5-flash-8b": 1500,
    "gemini-2.0-flash-exp": 1500,
}
FALLBACK_PER_MINUTE_LIMIT = 2
FALLBACK_DAILY_QUOTA = 50
DEFAULT_ALTERNATIVE_MODELS: dict[str, str] = {
    "gemini-2.5-pro": "gemini-2.5-flash",
}
RATE_HISTORY_STORAGE_KEY = "narraform.rate_governor.requests.v1"

# ============================================================================
# Retry Policy Defaults
# ============================================================================
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 1.0
DEFAULT_RATE_LIMIT_BACKOFF_CAP = 30.0
DEFAULT_NETWORK_BACKOFF_CAP = 10.0
DEFAULT_EMPTY_RESPONSE_DELAY = 1.0
DEFAULT_REQUEST_TIMEOUT = 120.0

QUOTA_ERROR_MARKERS = ("quota", "daily")

# ============================================================================
# Provider Defaults
# ============================================================================
PROVIDER_PRIORITY: tuple[str, ...] = ("gemini", "openai", "claude", "xai")
DEFAULT_PROVIDER = "gemini"
DEFAULT_MODELS: dict[str, str] = {
    "gemini": "gemini-2.5-flash",
    "openai": "gpt-5-2025-08-07",
    "claude": "claude-sonnet-4-20250514",
    "xai": "grok-4",
}
API_KEY_ENV_VARS: dict[str, tuple[str, ...]] = {
    "gemini": ("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    "openai": ("OPENAI_API_KEY",),
    "claude": ("ANTHROPIC_API_KEY",),
    "xai": ("XAI_API_KEY",),
}

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"
ANTHROPIC_MESSAGES_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
XAI_CHAT_URL = "https://api.x.ai/v1/chat/completions"

MAX_OUTPUT_TOKENS = 8192
DEFAULT_TEMPERATURE = 0.7
GEMINI_TOP_K = 40
GEMINI_TOP_P = 0.95
CONVERTER_SYSTEM_PROMPT = "You are an expert script writer and content converter."

CONTENT_TYPES = ("novel", "screenplay")

# ============================================================================
# Chapter Cache
# ============================================================================
DEFAULT_CACHE_MAX_SIZE = 5
CHAPTERS_TABLE = "chapters"

# ============================================================================
# Local Storage
# ============================================================================
DEFAULT_STORAGE_PATH = "~/.narraform/local_storage.json"

# ============================================================================
# CLI Constants
# ============================================================================
DIVIDER_CHAR = "─"
DIVIDER_LENGTH = 70

# ============================================================================
# Public API
# ============================================================================
__all__ = [
    "MS_PER_SECOND",
    "RATE_WINDOW_MS",
    "HISTORY_RETENTION_MS",
    "DEFAULT_PER_MINUTE_LIMITS",
    "DEFAULT_DAILY_QUOTAS",
    "FALLBACK_PER_MINUTE_LIMIT",
    "FALLBACK_DAILY_QUOTA",
    "DEFAULT_ALTERNATIVE_MODELS",
    "RATE_HISTORY_STORAGE_KEY",
    "DEFAULT_MAX_ATTEMPTS",
    "DEFAULT_BASE_DELAY",
    "DEFAULT_RATE_LIMIT_BACKOFF_CAP",
    "DEFAULT_NETWORK_BACKOFF_CAP",
    "DEFAULT_EMPTY_RESPONSE_DELAY",
    "DEFAULT_REQUEST_TIMEOUT",
    "QUOTA_ERROR_MARKERS",
    "PROVIDER_PRIORITY",
    "DEFAULT_PROVIDER",
    "DEFAULT_MODELS",
    "API_KEY_ENV_VARS",
    "GEMINI_API_BASE",
    "OPENAI_CHAT_URL",
    "ANTHROPIC_MESSAGES_URL",
    "ANTHROPIC_VERSION",
    "XAI_CHAT_URL",
    "MAX_OUTPUT_TOKENS",
    "DEFAULT_TEMPERATURE",
    "GEMINI_TOP_K",
    "GEMINI_TOP_P",
    "CONVERTER_SYSTEM_PROMPT",
    "CONTENT_TYPES",
    "DEFAULT_CACHE_MAX_SIZE",
    "CHAPTERS_TABLE",
    "DEFAULT_STORAGE_PATH",
    "DIVIDER_CHAR",
    "DIVIDER_LENGTH",
]
