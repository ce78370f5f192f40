"""Pytest fixtures and configuration for NarraForm tests.

Shared fixtures: a controllable clock, a sleep that records instead of
waiting, in-memory storage, settings builders and a counting chapter store.
"""

from __future__ import annotations

import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional

import httpx
import pytest

from api.rate_governor import RateGovernor
from modules.app_config import Settings, load_settings
from modules.local_storage import MemoryStore
from modules.types import RateLimitConfig


# ============================================================================
# Time Fixtures
# ============================================================================
class FakeClock:
    """Epoch-millisecond clock advanced by hand."""

    def __init__(self, now: int) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class RecordingSleep:
    """Async sleep that records delays and optionally advances a clock."""

    def __init__(self, clock: Optional[FakeClock] = None) -> None:
        self.clock = clock
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        if self.clock is not None:
            self.clock.advance(int(seconds * 1000))


def local_ms(year: int, month: int, day: int, hour: int = 0, minute: int = 0, second: int = 0) -> int:
    """Epoch milliseconds for a local wall-clock time."""
    return int(datetime(year, month, day, hour, minute, second).timestamp() * 1000)


@pytest.fixture
def clock() -> FakeClock:
    """Clock starting at 10:00 local time, well away from midnight."""
    return FakeClock(local_ms(2025, 3, 12, 10, 0, 0))


@pytest.fixture
def sleep(clock: FakeClock) -> RecordingSleep:
    return RecordingSleep(clock)


# ============================================================================
# Storage Fixtures
# ============================================================================
@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


# ============================================================================
# Governor and Settings Fixtures
# ============================================================================
@pytest.fixture
def limits() -> RateLimitConfig:
    return RateLimitConfig(
        per_minute={"model-x": 2, "gemini-2.5-flash": 15},
        daily={"model-y": 50, "gemini-2.5-flash": 1500},
        alternatives={"gemini-2.5-pro": "gemini-2.5-flash"},
    )


@pytest.fixture
def governor(limits: RateLimitConfig, memory_store: MemoryStore, clock: FakeClock, sleep: RecordingSleep) -> RateGovernor:
    return RateGovernor(limits, memory_store, clock=clock, sleep=sleep)


def make_settings(
    keys: Optional[Dict[str, str]] = None,
    config: Optional[Dict[str, Any]] = None,
) -> Settings:
    """Build Settings from a config dict and a fake environment of API keys."""
    env_names = {
        "gemini": "GEMINI_API_KEY",
        "openai": "OPENAI_API_KEY",
        "claude": "ANTHROPIC_API_KEY",
        "xai": "XAI_API_KEY",
    }
    environ = {env_names[name]: key for name, key in (keys or {}).items()}
    return load_settings(config_dict=config or {}, environ=environ)


@pytest.fixture
def settings_factory():
    return make_settings


# ============================================================================
# HTTP Fixtures
# ============================================================================
class RecordingTransport:
    """Replays queued responses and records every request."""

    def __init__(self, responses: Optional[List[Any]] = None) -> None:
        self.responses = list(responses or [])
        self.requests: List[httpx.Request] = []

    def queue(self, *responses: Any) -> None:
        self.responses.extend(responses)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError(f"Unexpected request to {request.url}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def http_client(transport: RecordingTransport) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(transport))


# ============================================================================
# Chapter Store Fixtures
# ============================================================================
class FakeChapterStore:
    """In-memory ChapterStore that counts fetches."""

    def __init__(self, metadata: Optional[List[Dict[str, Any]]] = None, contents: Optional[Dict[str, Dict[str, Any]]] = None) -> None:
        self.metadata = list(metadata or [])
        self.contents = dict(contents or {})
        self.metadata_fetches = 0
        self.content_fetches: Dict[str, int] = {}

    async def fetch_metadata(self, project_id: str) -> List[Dict[str, Any]]:
        self.metadata_fetches += 1
        return [dict(row) for row in self.metadata if row.get("project_id") == project_id]

    async def fetch_content(self, chapter_id: str) -> Optional[Dict[str, Any]]:
        self.content_fetches[chapter_id] = self.content_fetches.get(chapter_id, 0) + 1
        row = self.contents.get(chapter_id)
        return dict(row) if row is not None else None

    def total_content_fetches(self) -> int:
        return sum(self.content_fetches.values())


def content_row(chapter_id: str, text: str = "") -> Dict[str, Any]:
    return {"id": chapter_id, "original_text": text or f"Text of {chapter_id}", "processed_text": None}


@pytest.fixture
def chapter_store() -> FakeChapterStore:
    ids = ["a", "b", "c", "d", "e", "f", "g"]
    return FakeChapterStore(
        metadata=[
            {
                "id": chapter_id,
                "project_id": "p1",
                "title": f"Chapter {chapter_id.upper()}",
                "chapter_order": index,
                "type": "chapter",
                "content_type": "novel",
                "processing_count": 0 if index % 2 else 2,
            }
            for index, chapter_id in enumerate(ids)
        ],
        contents={chapter_id: content_row(chapter_id) for chapter_id in ids},
    )
