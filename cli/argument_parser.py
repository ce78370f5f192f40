"""CLI argument parsing for the NarraForm command line."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional, Sequence

from modules.constants import CONTENT_TYPES, PROVIDER_PRIORITY


def _non_blank(value: str) -> str:
    """Argparse type validator for identifiers that must not be empty."""
    value = value.strip()
    if not value:
        raise argparse.ArgumentTypeError("must not be blank")
    return value


def _existing_file(value: str) -> Path:
    path = Path(value).expanduser()
    if not path.is_file():
        raise argparse.ArgumentTypeError(f"file not found: {value}")
    return path


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="narraform",
        description="Convert novels and screenplays into audio-drama scripts",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to an app.yaml overriding the bundled configuration.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show debug logging on the console.",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Append detailed logs to this file.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # process
    process = subparsers.add_parser(
        "process",
        help="Convert a text file with the configured AI provider.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    process.add_argument("input_file", type=_existing_file, help="Text file to convert.")
    process.add_argument(
        "--content-type",
        choices=CONTENT_TYPES,
        default="novel",
        help="Kind of source text; selects the default prompt.",
    )
    process.add_argument(
        "--provider",
        choices=PROVIDER_PRIORITY,
        default=None,
        help="Provider to use instead of the configured default.",
    )
    process.add_argument(
        "--prompt-file",
        type=_existing_file,
        default=None,
        help="File holding a custom conversion prompt.",
    )
    process.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the script here instead of printing it.",
    )
    process.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON.",
    )

    # quota
    quota = subparsers.add_parser("quota", help="Inspect or reset Gemini rate limits.")
    quota_commands = quota.add_subparsers(dest="quota_command", required=True)

    status = quota_commands.add_parser("status", help="Show usage for a model.")
    status.add_argument("--model", default=None, help="Model to report; the configured Gemini model by default.")
    status.add_argument("--json", action="store_true", help="Print the counters as JSON.")

    reset = quota_commands.add_parser("reset", help="Forget recorded requests.")
    reset.add_argument("--model", default=None, help="Only reset this model.")
    reset.add_argument(
        "--daily",
        action="store_true",
        help="Only forget today's requests.",
    )
    reset.add_argument(
        "-y",
        "--yes",
        action="store_true",
        help="Do not ask for confirmation.",
    )

    # chapters
    chapters = subparsers.add_parser("chapters", help="List the chapters of a project.")
    chapters.add_argument("project_id", type=_non_blank, help="Project identifier.")

    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)
