"""Application settings assembled from YAML and the environment.

``load_settings()`` reads ``modules/config/app.yaml`` through the config
loader, pulls API keys from environment variables, and normalizes everything
into a frozen ``Settings`` object. Unlike a module-level constant block, the
result is an explicit value the composition root passes around, so tests can
build isolated settings with ``load_settings(config_dict=..., environ=...)``.

YAML layout (all sections optional):

    default_provider: gemini
    providers:
      gemini: {model: gemini-2.5-flash}
      openai: {model: gpt-5-2025-08-07}
    rate_limits:
      per_minute: {gemini-2.5-pro: 2}
      daily: {gemini-2.5-pro: 50}
      alternatives: {gemini-2.5-pro: gemini-2.5-flash}
    retry: {max_attempts: 3, base_delay: 1.0, rate_limit_cap: 30, network_cap: 10}
    cache: {max_size: 5}
    storage: {path: ~/.narraform/local_storage.json}
    supabase: {url: https://xyz.supabase.co}
    prompts: {current_prompt: "..."}
    logging: {verbose: false, log_file: null}
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from modules.config_loader import ConfigLoader
from modules.constants import (
    API_KEY_ENV_VARS,
    DEFAULT_CACHE_MAX_SIZE,
    DEFAULT_MODELS,
    DEFAULT_PROVIDER,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_STORAGE_PATH,
    PROVIDER_PRIORITY,
)
from modules.error_handler import ConfigurationError, validate_config_value
from modules.logger import setup_logger
from modules.types import ProviderSettings, RateLimitConfig, RetryPolicy

logger = setup_logger(__name__)

SUPABASE_URL_ENV_VAR = "SUPABASE_URL"
SUPABASE_KEY_ENV_VAR = "SUPABASE_ANON_KEY"


@dataclass(frozen=True)
class Settings:
    """Everything the core components need to run."""
    default_provider: str = DEFAULT_PROVIDER
    providers: Dict[str, ProviderSettings] = field(default_factory=dict)
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    rate_limits: RateLimitConfig = field(default_factory=RateLimitConfig)
    cache_max_size: int = DEFAULT_CACHE_MAX_SIZE
    storage_path: Path = Path(DEFAULT_STORAGE_PATH).expanduser()
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    current_prompt: Optional[str] = None
    verbose: bool = False
    log_file: Optional[str] = None

    def provider(self, name: str) -> ProviderSettings:
        """Return settings for ``name``; unknown names yield an unconfigured entry."""
        return self.providers.get(
            name, ProviderSettings(name=name, model=DEFAULT_MODELS.get(name, ""))
        )

    def configured_providers(self) -> list[str]:
        """Providers with credentials, in fixed priority order."""
        return [name for name in PROVIDER_PRIORITY if self.provider(name).is_configured]


# ============================================================================
# Value Helpers
# ============================================================================
def _get_int(data: Mapping[str, Any], key: str, default: int) -> int:
    try:
        return int(data.get(key, default))
    except (ValueError, TypeError):
        logger.warning(f"Invalid integer for '{key}', using default: {default}")
        return default


def _get_float(data: Mapping[str, Any], key: str, default: float) -> float:
    try:
        return float(data.get(key, default))
    except (ValueError, TypeError):
        logger.warning(f"Invalid number for '{key}', using default: {default}")
        return default


def _section(data: Mapping[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key)
    return dict(value) if isinstance(value, dict) else {}


def _resolve_api_key(provider: str, section: Mapping[str, Any], environ: Mapping[str, str]) -> Optional[str]:
    for env_var in API_KEY_ENV_VARS.get(provider, ()):
        key = environ.get(env_var)
        if key and key.strip():
            return key
    # Keys in YAML are accepted for local setups but the environment wins.
    key = section.get("api_key")
    return str(key) if key else None


def _build_retry(section: Dict[str, Any]) -> RetryPolicy:
    try:
        return RetryPolicy.from_dict(section)
    except (TypeError, ValueError) as e:
        logger.warning(f"Invalid retry config ({e}); using defaults")
        return RetryPolicy()


def _build_rate_limits(section: Dict[str, Any]) -> RateLimitConfig:
    try:
        return RateLimitConfig.from_dict(section)
    except (TypeError, ValueError) as e:
        logger.warning(f"Invalid rate_limits config ({e}); using defaults")
        return RateLimitConfig()


# ============================================================================
# Loading
# ============================================================================
def load_settings(
    config_dict: Optional[Dict[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    Build Settings from a config mapping and environment.

    Args:
        config_dict: Parsed app config. Loaded from ``app.yaml`` when None.
        environ: Environment mapping. ``os.environ`` when None.

    Raises:
        ConfigurationError: If ``default_provider`` names an unknown provider.
    """
    if config_dict is None:
        loader = ConfigLoader()
        loader.load_configs()
        config_dict = loader.get_app_config()
    if environ is None:
        environ = os.environ

    default_provider = str(config_dict.get("default_provider", DEFAULT_PROVIDER)).lower()
    if default_provider not in PROVIDER_PRIORITY:
        raise ConfigurationError(
            f"Unknown default_provider '{default_provider}'. "
            f"Supported: {', '.join(PROVIDER_PRIORITY)}"
        )

    providers_cfg = _section(config_dict, "providers")
    providers: Dict[str, ProviderSettings] = {}
    for name in PROVIDER_PRIORITY:
        section = _section(providers_cfg, name)
        model = section.get("model") or DEFAULT_MODELS[name]
        validate_config_value(model, str, f"providers.{name}.model")
        providers[name] = ProviderSettings(
            name=name,
            model=model,
            api_key=_resolve_api_key(name, section, environ),
        )

    cache_cfg = _section(config_dict, "cache")
    cache_max_size = _get_int(cache_cfg, "max_size", DEFAULT_CACHE_MAX_SIZE)
    if cache_max_size < 1:
        logger.warning(f"cache.max_size must be >= 1, got {cache_max_size}; using default")
        cache_max_size = DEFAULT_CACHE_MAX_SIZE

    storage_cfg = _section(config_dict, "storage")
    storage_path = Path(str(storage_cfg.get("path") or DEFAULT_STORAGE_PATH)).expanduser()

    supabase_cfg = _section(config_dict, "supabase")
    prompts_cfg = _section(config_dict, "prompts")
    logging_cfg = _section(config_dict, "logging")

    settings = Settings(
        default_provider=default_provider,
        providers=providers,
        retry=_build_retry(_section(config_dict, "retry")),
        rate_limits=_build_rate_limits(_section(config_dict, "rate_limits")),
        cache_max_size=cache_max_size,
        storage_path=storage_path,
        request_timeout=_get_float(config_dict, "request_timeout", DEFAULT_REQUEST_TIMEOUT),
        supabase_url=environ.get(SUPABASE_URL_ENV_VAR) or supabase_cfg.get("url"),
        supabase_key=environ.get(SUPABASE_KEY_ENV_VAR) or supabase_cfg.get("anon_key"),
        current_prompt=prompts_cfg.get("current_prompt") or None,
        verbose=bool(logging_cfg.get("verbose", False)),
        log_file=logging_cfg.get("log_file") or None,
    )

    logger.debug(
        f"Settings loaded: default_provider={settings.default_provider}, "
        f"configured={settings.configured_providers()}, cache_max_size={settings.cache_max_size}"
    )
    return settings


__all__ = ["Settings", "load_settings", "SUPABASE_URL_ENV_VAR", "SUPABASE_KEY_ENV_VAR"]
