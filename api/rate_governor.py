"""Per-model request governance for LLM providers.

Two independent limits are enforced for every model:

- a sliding 60-second window (``per_minute``), and
- a calendar-day quota (``daily``) that resets at local midnight, not 24 hours
  after the first request.

Request history is mirrored to a ``KeyValueStore`` under a versioned key so
that quotas survive process restarts. Storage problems are logged and
ignored; the in-memory history keeps working for the life of the process.
"""

from __future__ import annotations

import asyncio
import json
import math
import threading
import time
from dataclasses import dataclass
from datetime import datetime, time as dtime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional

from modules.constants import (
    HISTORY_RETENTION_MS,
    MS_PER_SECOND,
    RATE_HISTORY_STORAGE_KEY,
    RATE_WINDOW_MS,
)
from modules.error_handler import handle_recoverable_error
from modules.local_storage import KeyValueStore, MemoryStore
from modules.logger import setup_logger
from modules.types import RateLimitConfig

logger = setup_logger(__name__)

Clock = Callable[[], int]
Sleep = Callable[[float], Awaitable[None]]


def wall_clock_ms() -> int:
    return int(time.time() * MS_PER_SECOND)


def local_date_string(timestamp_ms: int) -> str:
    """Calendar date (YYYY-MM-DD) of ``timestamp_ms`` in the local zone."""
    return datetime.fromtimestamp(timestamp_ms / MS_PER_SECOND).strftime("%Y-%m-%d")


def ms_until_local_midnight(timestamp_ms: int) -> int:
    """Milliseconds from ``timestamp_ms`` to the start of the next local day."""
    now = datetime.fromtimestamp(timestamp_ms / MS_PER_SECOND)
    midnight = datetime.combine(now.date() + timedelta(days=1), dtime.min)
    return max(0, int(round(midnight.timestamp() * MS_PER_SECOND)) - timestamp_ms)


@dataclass(frozen=True)
class RequestRecord:
    """One governed call: when it happened, to which model, on which local date."""
    timestamp: int
    model: str
    date: str

    def to_dict(self) -> Dict[str, Any]:
        return {"timestamp": self.timestamp, "model": self.model, "date": self.date}

    @classmethod
    def from_dict(cls, data: Any) -> Optional[RequestRecord]:
        """Parse a stored entry; returns None for anything malformed."""
        if not isinstance(data, dict):
            return None
        timestamp = data.get("timestamp")
        model = data.get("model")
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            return None
        if not isinstance(model, str) or not model:
            return None
        date = data.get("date")
        if not isinstance(date, str) or not date:
            # Entries written before the date field existed.
            date = local_date_string(int(timestamp))
        return cls(timestamp=int(timestamp), model=model, date=date)


@dataclass(frozen=True)
class RateLimitStatus:
    """Snapshot of a model's counters, recomputed on every query."""
    current_requests: int
    max_requests: int
    daily_requests: int
    daily_quota: int
    wait_time_ms: int
    can_request: bool
    quota_exceeded: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_requests": self.current_requests,
            "max_requests": self.max_requests,
            "daily_requests": self.daily_requests,
            "daily_quota": self.daily_quota,
            "wait_time_ms": self.wait_time_ms,
            "can_request": self.can_request,
            "quota_exceeded": self.quota_exceeded,
        }


class RateGovernor:
    """
    Sliding-window and daily-quota limiter shared by all governed calls.

    Args:
        limits: Per-model caps and fallback-model rules
        storage: Durable mirror of the request history
        clock: Current time in epoch milliseconds
        sleep: Coroutine used to wait, taking seconds
        storage_key: Key the history is stored under
    """

    def __init__(
        self,
        limits: Optional[RateLimitConfig] = None,
        storage: Optional[KeyValueStore] = None,
        *,
        clock: Clock = wall_clock_ms,
        sleep: Sleep = asyncio.sleep,
        storage_key: str = RATE_HISTORY_STORAGE_KEY,
    ) -> None:
        self.limits = limits or RateLimitConfig()
        self.storage = storage if storage is not None else MemoryStore()
        self.clock = clock
        self.sleep = sleep
        self.storage_key = storage_key
        self.lock = threading.Lock()
        self.requests: List[RequestRecord] = []
        self._load_request_history()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def _load_request_history(self) -> None:
        try:
            stored = self.storage.get_item(self.storage_key)
        except Exception as e:
            handle_recoverable_error(e, "loading rate limiter history")
            self.requests = []
            return
        if not stored:
            self.requests = []
            return

        try:
            parsed = json.loads(stored)
        except (TypeError, ValueError) as e:
            logger.warning(f"Discarding unreadable rate limiter history: {e}")
            self.requests = []
            return
        if not isinstance(parsed, list):
            logger.warning("Discarding rate limiter history that is not a list")
            self.requests = []
            return

        cutoff = self.clock() - HISTORY_RETENTION_MS
        records = (RequestRecord.from_dict(item) for item in parsed)
        self.requests = [r for r in records if r is not None and r.timestamp > cutoff]
        logger.debug(f"Loaded {len(self.requests)} request records from storage")

    def _save_request_history(self) -> None:
        cutoff = self.clock() - HISTORY_RETENTION_MS
        self.requests = [r for r in self.requests if r.timestamp > cutoff]
        try:
            payload = json.dumps([r.to_dict() for r in self.requests])
            self.storage.set_item(self.storage_key, payload)
        except Exception as e:
            handle_recoverable_error(e, "saving rate limiter history")

    # ------------------------------------------------------------------
    # Counting
    # ------------------------------------------------------------------
    def get_limit(self, model: str) -> int:
        return self.limits.limit_for(model)

    def get_daily_quota(self, model: str) -> int:
        return self.limits.quota_for(model)

    def _recent_requests(self, model: str, now: int) -> List[RequestRecord]:
        window_start = now - RATE_WINDOW_MS
        return [r for r in self.requests if r.model == model and r.timestamp > window_start]

    def _todays_requests(self, model: str, now: int) -> List[RequestRecord]:
        today = local_date_string(now)
        return [r for r in self.requests if r.model == model and r.date == today]

    def _window_wait_at(self, model: str, now: int) -> int:
        recent = self._recent_requests(model, now)
        limit = self.get_limit(model)
        if len(recent) < limit:
            return 0
        # The window reopens once enough of its oldest records have aged out to
        # leave limit - 1 behind; with exactly ``limit`` records that is the oldest.
        timestamps = sorted(r.timestamp for r in recent)
        expiring = timestamps[len(timestamps) - limit]
        return max(0, expiring + RATE_WINDOW_MS - now)

    def _wait_time_at(self, model: str, now: int) -> int:
        window_wait = self._window_wait_at(model, now)
        if len(self._todays_requests(model, now)) >= self.get_daily_quota(model):
            return max(ms_until_local_midnight(now), window_wait)
        return window_wait

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def can_make_request(self, model: str) -> bool:
        with self.lock:
            now = self.clock()
            within_rate_limit = len(self._recent_requests(model, now)) < self.get_limit(model)
            within_daily_quota = len(self._todays_requests(model, now)) < self.get_daily_quota(model)
            return within_rate_limit and within_daily_quota

    def get_wait_time(self, model: str) -> int:
        """Milliseconds until ``model`` may be called again (0 if it may now)."""
        with self.lock:
            return self._wait_time_at(model, self.clock())

    def record_request(self, model: str) -> None:
        with self.lock:
            now = self.clock()
            self.requests.append(
                RequestRecord(timestamp=now, model=model, date=local_date_string(now))
            )
            self._save_request_history()

    def get_rate_limit_status(self, model: str) -> RateLimitStatus:
        with self.lock:
            now = self.clock()
            current = len(self._recent_requests(model, now))
            max_requests = self.get_limit(model)
            daily = len(self._todays_requests(model, now))
            quota = self.get_daily_quota(model)
            return RateLimitStatus(
                current_requests=current,
                max_requests=max_requests,
                daily_requests=daily,
                daily_quota=quota,
                wait_time_ms=self._wait_time_at(model, now),
                can_request=current < max_requests and daily < quota,
                quota_exceeded=daily >= quota,
            )

    async def wait_for_rate_limit(self, model: str) -> None:
        """Suspend the caller once for the current wait time, if any."""
        wait_ms = self.get_wait_time(model)
        if wait_ms > 0:
            logger.info(f"Rate limit reached for {model}, waiting {wait_ms}ms")
            await self.sleep(wait_ms / MS_PER_SECOND)

    def get_status_message(self, model: str) -> str:
        """One-line summary of ``model``'s limits for display."""
        status = self.get_rate_limit_status(model)

        if status.quota_exceeded:
            wait_hours = math.ceil(status.wait_time_ms / (MS_PER_SECOND * 60 * 60))
            message = (
                f"Daily quota exceeded ({status.daily_requests}/{status.daily_quota}). "
                f"Try again in {wait_hours}h"
            )
            alternative = self.get_alternative_model(model)
            if alternative:
                message += f" or switch to {alternative}"
            return message

        if status.can_request:
            return (
                f"{status.current_requests}/{status.max_requests} per minute, "
                f"{status.daily_requests}/{status.daily_quota} today"
            )

        wait_seconds = math.ceil(status.wait_time_ms / MS_PER_SECOND)
        return (
            f"Rate limit reached ({status.current_requests}/{status.max_requests}). "
            f"Wait {wait_seconds}s"
        )

    def get_alternative_model(self, model: str) -> Optional[str]:
        """Cheaper model to suggest once ``model``'s quota is gone."""
        return self.limits.alternatives.get(model)

    def reset_quota(self, model: Optional[str] = None) -> None:
        """Forget all recorded requests, for one model or for every model."""
        with self.lock:
            if model:
                self.requests = [r for r in self.requests if r.model != model]
                logger.info(f"Reset quota for {model}")
            else:
                self.requests = []
                logger.info("Reset all quotas")
            self._save_request_history()

    def reset_daily_quota(self, model: Optional[str] = None) -> None:
        """Forget today's requests only, keeping earlier history."""
        with self.lock:
            today = local_date_string(self.clock())
            if model:
                self.requests = [
                    r for r in self.requests if not (r.model == model and r.date == today)
                ]
                logger.info(f"Reset daily quota for {model}")
            else:
                self.requests = [r for r in self.requests if r.date != today]
                logger.info("Reset all daily quotas")
            self._save_request_history()


__all__ = [
    "RateGovernor",
    "RequestRecord",
    "RateLimitStatus",
    "local_date_string",
    "ms_until_local_midnight",
    "wall_clock_ms",
]
