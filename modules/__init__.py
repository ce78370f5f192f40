"""Modules package for NarraForm.

Shared functionality for configuration, logging, types, error handling,
local storage, prompts and console output.
"""

__all__ = [
    "app_config",
    "config_loader",
    "constants",
    "error_handler",
    "local_storage",
    "logger",
    "prompt_utils",
    "types",
    "user_prompts",
]
