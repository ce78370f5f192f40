"""Conversion prompt selection.

The prompt sent to a provider is chosen in this order:

1. A custom prompt passed by the caller
2. The user's current prompt, from settings or ``modules/prompts/current_prompt.txt``
3. The built-in default for the content type
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from modules.config_loader import PROMPTS_DIR
from modules.logger import setup_logger

logger = setup_logger(__name__)

# Public API
__all__ = [
    "DEFAULT_PROMPTS",
    "CURRENT_PROMPT_FILENAME",
    "USER_MESSAGE_TEMPLATE",
    "default_prompt_for",
    "load_current_prompt",
    "resolve_prompt",
    "build_user_message",
]

CURRENT_PROMPT_FILENAME = "current_prompt.txt"
USER_MESSAGE_TEMPLATE = "{prompt}\n\nOriginal text:\n{text}"

DEFAULT_PROMPTS: dict[str, str] = {
    "novel": (
        "Convert the entire chapter into an audio drama script. To do this, you will need "
        "to identify the character speaking each line, split up the text by narrator and "
        "character. Try to identify and tag inflection and direction for parentheticals to "
        "provide guidance for how dialogue should be delivered. Use proper Fountain "
        "screenplay format with character names in ALL CAPS, parentheticals in "
        "(parentheses), and scene headings. When you see details in the text that lend "
        "themselves to be sound effects, please leave the text intact in the new script "
        "format, but also call it out on a new line after the relevant text block as a "
        "sound effect in brackets and all caps, for example: "
        "[EXPLOSION, FEET POUND PAVEMENT AS THEY RUN]"
    ),
    "screenplay": (
        "Convert the entire scene into an audio drama script. To do this, you will need "
        "to expand the scene description a little bit, into present tense novel prose "
        "type narration, while staying true to the intent of the action lines. Use proper "
        "Fountain screenplay format. When you see details in the text that lend themselves "
        "to be sound effects, please leave the text intact in the new script format, but "
        "also call it out on a new line after the relevant text block as a sound effect in "
        "brackets and all caps, for example: [EXPLOSION, FEET POUND PAVEMENT AS THEY RUN]"
    ),
}


def default_prompt_for(content_type: str) -> str:
    """Built-in prompt; anything other than ``novel`` gets the screenplay prompt."""
    if content_type == "novel":
        return DEFAULT_PROMPTS["novel"]
    return DEFAULT_PROMPTS["screenplay"]


def load_current_prompt(prompts_dir: Path = PROMPTS_DIR) -> Optional[str]:
    """Read the user's saved prompt file, or None if absent, blank or unreadable."""
    path = prompts_dir / CURRENT_PROMPT_FILENAME
    if not path.exists():
        return None
    try:
        text = path.read_text(encoding="utf-8").strip()
    except OSError as e:
        logger.warning(f"Error loading current prompt from {path}: {e}")
        return None
    return text or None


def resolve_prompt(
    content_type: str,
    custom_prompt: Optional[str] = None,
    current_prompt: Optional[str] = None,
    prompts_dir: Path = PROMPTS_DIR,
) -> str:
    """
    Pick the prompt for one conversion request.

    Args:
        content_type: ``novel`` or ``screenplay``
        custom_prompt: Caller-supplied prompt, wins when non-blank
        current_prompt: Prompt from settings, used before the prompt file
        prompts_dir: Directory holding ``current_prompt.txt``
    """
    if custom_prompt and custom_prompt.strip():
        return custom_prompt
    if current_prompt and current_prompt.strip():
        return current_prompt
    saved = load_current_prompt(prompts_dir)
    if saved:
        return saved
    return default_prompt_for(content_type)


def build_user_message(prompt: str, text: str) -> str:
    return USER_MESSAGE_TEMPLATE.format(prompt=prompt, text=text)
