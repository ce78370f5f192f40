"""Console output helpers for the NarraForm CLI.

Color-coded messages, headers and a yes/no confirmation prompt, so every
command formats its output the same way.
"""

from __future__ import annotations

import sys
from typing import Callable, Optional

from modules.constants import DIVIDER_CHAR, DIVIDER_LENGTH


# ============================================================================
# ANSI Color Codes
# ============================================================================
class Colors:
    """ANSI color codes for terminal output formatting."""
    HEADER = '\033[95m'
    OKCYAN = '\033[96m'
    ENDC = '\033[0m'
    BOLD = '\033[1m'

    INFO = '\033[0;36m'
    SUCCESS = '\033[1;32m'
    WARNING = '\033[93m'
    ERROR = '\033[1;31m'
    PROMPT = '\033[1;37m'
    DIM = '\033[2;37m'
    RESET = '\033[0m'


# ============================================================================
# Output Functions
# ============================================================================
def print_header(message: str, subtitle: str = "") -> None:
    print(f"\n{Colors.BOLD}{Colors.HEADER}{DIVIDER_CHAR * DIVIDER_LENGTH}{Colors.ENDC}")
    print(f"{Colors.BOLD}{Colors.HEADER}  {message}{Colors.ENDC}")
    if subtitle:
        print(f"{Colors.OKCYAN}  {subtitle}{Colors.ENDC}")
    print(f"{Colors.BOLD}{Colors.HEADER}{DIVIDER_CHAR * DIVIDER_LENGTH}{Colors.ENDC}\n")


def print_success(message: str) -> None:
    print(f"{Colors.SUCCESS}✓ {message}{Colors.RESET}")


def print_warning(message: str) -> None:
    print(f"{Colors.WARNING}⚠ {message}{Colors.RESET}")


def print_error(message: str) -> None:
    print(f"{Colors.ERROR}✗ {message}{Colors.RESET}", file=sys.stderr)


def print_info(message: str) -> None:
    print(f"{Colors.INFO}{message}{Colors.RESET}")


def print_dim(message: str) -> None:
    print(f"{Colors.DIM}{message}{Colors.RESET}")


def print_key_value(key: str, value: object, width: int = 22) -> None:
    """Print an aligned ``key: value`` line."""
    print(f"  {Colors.BOLD}{key + ':':<{width}}{Colors.RESET} {value}")


# ============================================================================
# Input Functions
# ============================================================================
def prompt_yes_no(
    question: str,
    default: bool = False,
    input_fn: Optional[Callable[[str], str]] = None,
) -> bool:
    """
    Ask a yes/no question.

    Args:
        question: Text shown to the user
        default: Answer used when the user just presses Enter
        input_fn: Replacement for ``input`` (tests)
    """
    read = input_fn or input
    suffix = "[Y/n]" if default else "[y/N]"
    while True:
        try:
            answer = read(f"{Colors.PROMPT}{question} {suffix}: {Colors.RESET}").strip().lower()
        except EOFError:
            return default
        if not answer:
            return default
        if answer in ("y", "yes"):
            return True
        if answer in ("n", "no"):
            return False
        print_warning("Please answer 'y' or 'n'.")


__all__ = [
    "Colors",
    "print_header",
    "print_success",
    "print_warning",
    "print_error",
    "print_info",
    "print_dim",
    "print_key_value",
    "prompt_yes_no",
]
