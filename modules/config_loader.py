"""Configuration loader for YAML-based settings.

Loads ``app.yaml`` from ``modules/config/`` (or the file named by the
``NARRAFORM_CONFIG`` environment variable) and hands out plain dictionaries.
Interpretation of individual values lives in ``modules.app_config``.

Usage Pattern:
    >>> from modules.config_loader import ConfigLoader
    >>> loader = ConfigLoader()
    >>> loader.load_configs()
    >>> app_cfg = loader.get_app_config()

Missing files and invalid YAML never raise: the loader logs the problem and
returns an empty dictionary so the built-in defaults apply.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

import yaml

from modules.logger import setup_logger

logger = setup_logger(__name__)

# ============================================================================
# Path Resolution
# ============================================================================
PROJECT_ROOT = Path(__file__).resolve().parents[1]
MODULES_DIR = Path(__file__).resolve().parent
CONFIG_DIR = MODULES_DIR / "config"
PROMPTS_DIR = MODULES_DIR / "prompts"

APP_CONFIG_FILENAME = "app.yaml"
CONFIG_PATH_ENV_VAR = "NARRAFORM_CONFIG"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load one YAML file, returning ``{}`` when it is absent or unusable."""
    if not path.exists():
        logger.debug(f"Config file not found: {path}")
        return {}

    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error(f"YAML parsing error in {path.name}: {e}")
        return {}
    except OSError as e:
        logger.error(f"Error loading config {path.name}: {e}")
        return {}

    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Config file {path.name} did not contain a mapping. Using empty config.")
        return {}
    return data


# ============================================================================
# Configuration Loader Class
# ============================================================================
class ConfigLoader:
    """
    Loader for the application YAML config.

    Args:
        config_path: Explicit file to load. Defaults to ``$NARRAFORM_CONFIG``
            if set, else ``modules/config/app.yaml``.
    """

    def __init__(self, config_path: Optional[Path] = None) -> None:
        if config_path is None:
            env_path = os.environ.get(CONFIG_PATH_ENV_VAR)
            config_path = Path(env_path) if env_path else CONFIG_DIR / APP_CONFIG_FILENAME
        self.config_path = Path(config_path)
        self._app: dict[str, Any] = {}
        self._loaded = False

    def load_configs(self) -> None:
        self._app = load_yaml_file(self.config_path)
        self._loaded = True
        logger.debug(f"Loaded config from {self.config_path} ({len(self._app)} sections)")

    def get_app_config(self) -> dict[str, Any]:
        """Return a shallow copy of the whole app config."""
        return dict(self._app)

    def get_section(self, name: str) -> dict[str, Any]:
        """Return one top-level section, or ``{}`` if absent or not a mapping."""
        section = self._app.get(name)
        return dict(section) if isinstance(section, dict) else {}

    def is_loaded(self) -> bool:
        return self._loaded


# ============================================================================
# Public API
# ============================================================================
__all__ = [
    "ConfigLoader",
    "load_yaml_file",
    "PROJECT_ROOT",
    "MODULES_DIR",
    "CONFIG_DIR",
    "PROMPTS_DIR",
    "APP_CONFIG_FILENAME",
    "CONFIG_PATH_ENV_VAR",
]
