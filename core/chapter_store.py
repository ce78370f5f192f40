"""Persistence collaborator for chapter rows.

``ChapterCache`` depends only on the ``ChapterStore`` protocol: one query for
a project's metadata rows and one for a single chapter's text. The Supabase
implementation talks to PostgREST directly over ``httpx``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol

import httpx

from modules.constants import CHAPTERS_TABLE, DEFAULT_REQUEST_TIMEOUT
from modules.error_handler import StorageError
from modules.logger import setup_logger

logger = setup_logger(__name__)

METADATA_COLUMNS = (
    "id",
    "project_id",
    "episode_id",
    "title",
    "chapter_order",
    "type",
    "content_type",
    "character_count",
    "processing_count",
    "position",
    "relative_to_episode",
    "is_orphaned",
    "created_at",
    "updated_at",
    "processed_text",
)
CONTENT_COLUMNS = ("id", "original_text", "processed_text")
METADATA_ORDER = "chapter_order.asc.nullslast,created_at.asc"


class ChapterStore(Protocol):
    """Queries the chapter cache needs from persistence."""

    async def fetch_metadata(self, project_id: str) -> List[Dict[str, Any]]:
        """Rows for a project, ordered by chapter_order (nulls last), then created_at."""
        ...

    async def fetch_content(self, chapter_id: str) -> Optional[Dict[str, Any]]:
        """The single row for ``chapter_id``, or None when it does not exist."""
        ...


class SupabaseChapterStore:
    """
    ``ChapterStore`` backed by a Supabase project's REST interface.

    Args:
        url: Project URL, e.g. ``https://xyz.supabase.co``
        key: Anon (or service) key sent as ``apikey`` and bearer token
        client: Shared HTTP client
        table: Table holding chapter rows
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        url: str,
        key: str,
        client: httpx.AsyncClient,
        *,
        table: str = CHAPTERS_TABLE,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        self.base_url = url.rstrip("/")
        self.key = key
        self.client = client
        self.table = table
        self.timeout = timeout

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/rest/v1/{self.table}"

    def _headers(self) -> Dict[str, str]:
        return {
            "apikey": self.key,
            "Authorization": f"Bearer {self.key}",
            "Accept": "application/json",
        }

    async def _select(self, params: Dict[str, str]) -> List[Dict[str, Any]]:
        try:
            response = await self.client.get(
                self.endpoint, params=params, headers=self._headers(), timeout=self.timeout
            )
        except httpx.HTTPError as e:
            raise StorageError(f"Chapter query failed: {e}") from e

        if not response.is_success:
            raise StorageError(
                f"Chapter query failed with status {response.status_code}: {response.text}"
            )
        try:
            rows = response.json()
        except ValueError as e:
            raise StorageError(f"Chapter query returned invalid JSON: {e}") from e
        if not isinstance(rows, list):
            raise StorageError("Chapter query returned a non-list body")
        return rows

    async def fetch_metadata(self, project_id: str) -> List[Dict[str, Any]]:
        rows = await self._select(
            {
                "select": ",".join(METADATA_COLUMNS),
                "project_id": f"eq.{project_id}",
                "order": METADATA_ORDER,
            }
        )
        logger.debug(f"Fetched {len(rows)} chapter rows for project {project_id}")
        return rows

    async def fetch_content(self, chapter_id: str) -> Optional[Dict[str, Any]]:
        rows = await self._select(
            {"select": ",".join(CONTENT_COLUMNS), "id": f"eq.{chapter_id}"}
        )
        if not rows:
            return None
        if len(rows) > 1:
            raise StorageError(f"Expected one chapter row for {chapter_id}, got {len(rows)}")
        return rows[0]


__all__ = [
    "ChapterStore",
    "SupabaseChapterStore",
    "METADATA_COLUMNS",
    "CONTENT_COLUMNS",
    "METADATA_ORDER",
]
