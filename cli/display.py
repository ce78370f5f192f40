"""CLI rendering of results, quota status and chapter lists."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional, Sequence

from api.rate_governor import RateLimitStatus
from modules.error_handler import FailureKind, LLMResult
from modules.types import ChapterMetadata
from modules.user_prompts import (
    print_dim,
    print_error,
    print_header,
    print_info,
    print_key_value,
    print_success,
    print_warning,
)

_FAILURE_TITLES = {
    FailureKind.NOT_CONFIGURED: "No AI provider configured",
    FailureKind.QUOTA_EXCEEDED: "Daily quota exceeded",
    FailureKind.RATE_LIMITED: "Rate limited",
    FailureKind.PROVIDER_HTTP_ERROR: "Provider error",
    FailureKind.EMPTY_RESPONSE: "Empty response",
    FailureKind.NETWORK_ERROR: "Network error",
    FailureKind.NOT_FOUND: "Not found",
}


def format_wait(wait_time_ms: int) -> str:
    """Render a millisecond wait as ``45s``, ``12m`` or ``3h 5m``."""
    seconds = max(0, -(-wait_time_ms // 1000))
    if seconds < 60:
        return f"{seconds}s"
    minutes = -(-seconds // 60)
    if minutes < 60:
        return f"{minutes}m"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m" if minutes else f"{hours}h"


def display_failure(result: LLMResult) -> None:
    """Print a failed result with whatever guidance its details allow."""
    title = _FAILURE_TITLES.get(result.kind, "Request failed")
    print_error(f"{title}: {result.error}")

    details = result.details
    if "daily_requests" in details and "daily_quota" in details:
        print_key_value("Used today", f"{details['daily_requests']}/{details['daily_quota']}")
    if "current_requests" in details and "max_requests" in details:
        print_key_value("Last minute", f"{details['current_requests']}/{details['max_requests']}")
    if details.get("wait_time_ms"):
        print_key_value("Try again in", format_wait(details["wait_time_ms"]))
    if details.get("alternative_model"):
        print_warning(f"Switch to {details['alternative_model']} to keep working today.")
    if details.get("status_code"):
        print_key_value("HTTP status", details["status_code"])


def display_success(result: LLMResult, output_path: Optional[str] = None) -> None:
    label = f"{result.provider} ({result.model})" if result.model else str(result.provider)
    if output_path:
        print_success(f"Script written to {output_path} by {label}")
    else:
        print_dim(f"Generated by {label}")
        print(result.text)


def display_json(payload: Dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def display_rate_status(model: str, status: RateLimitStatus, message: str) -> None:
    print_header("Rate limit status", model)
    print_key_value("Last minute", f"{status.current_requests}/{status.max_requests}")
    print_key_value("Today", f"{status.daily_requests}/{status.daily_quota}")
    if status.wait_time_ms:
        print_key_value("Wait", format_wait(status.wait_time_ms))
    print()
    if status.quota_exceeded:
        print_error(message)
    elif status.can_request:
        print_success(message)
    else:
        print_warning(message)


def display_chapters(chapters: Sequence[ChapterMetadata], unprocessed: int) -> None:
    if not chapters:
        print_info("No chapters found for this project.")
        return

    print_header("Chapters", f"{len(chapters)} total, {unprocessed} unprocessed")
    for chapter in chapters:
        order = "-" if chapter.chapter_order is None else str(chapter.chapter_order)
        marker = "*" if chapter.processing_count == 0 else " "
        size = f"{chapter.character_count:,} chars" if chapter.character_count else ""
        print(f" {marker} {order:>4}  {chapter.title}  [{chapter.type}/{chapter.content_type}] {size}".rstrip())
    print()
    print_dim("* not yet processed")
