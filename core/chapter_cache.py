"""Two-tier chapter storage for a loaded project.

Metadata for every chapter of the current project is held in memory as a
plain list; full chapter text is loaded on demand into a small LRU cache.
``ChapterStore`` is the source of truth; both tiers are caches of it.
"""

from __future__ import annotations

import asyncio
import itertools
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from core.chapter_store import ChapterStore
from modules.constants import DEFAULT_CACHE_MAX_SIZE
from modules.logger import setup_logger
from modules.types import Chapter, ChapterContent, ChapterMetadata

logger = setup_logger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class CacheEntry:
    """A cached chapter body and its recency."""
    content: ChapterContent
    last_accessed: int
    sequence: int


class ChapterCache:
    """
    Metadata list plus bounded LRU content cache.

    Args:
        store: Persistence collaborator
        max_size: Maximum number of chapter bodies kept in memory
        clock: Current time in epoch milliseconds
        coalesce_inflight: Share one fetch between concurrent loads of the
            same chapter
    """

    def __init__(
        self,
        store: ChapterStore,
        max_size: int = DEFAULT_CACHE_MAX_SIZE,
        *,
        clock: Callable[[], int] = _now_ms,
        coalesce_inflight: bool = True,
    ) -> None:
        self.store = store
        self.max_size = max(1, max_size)
        self.clock = clock
        self.coalesce_inflight = coalesce_inflight
        self.metadata_loading = False
        self._chapters: List[ChapterMetadata] = []
        self._entries: Dict[str, CacheEntry] = {}
        self._loading: Dict[str, bool] = {}
        self._inflight: Dict[str, asyncio.Future] = {}
        self._sequence = itertools.count()

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------
    @property
    def chapter_list(self) -> List[ChapterMetadata]:
        return list(self._chapters)

    @property
    def cache_size(self) -> int:
        return len(self._entries)

    @property
    def loading_states(self) -> Dict[str, bool]:
        return dict(self._loading)

    def is_loading(self, chapter_id: str) -> bool:
        return self._loading.get(chapter_id, False)

    def is_cached(self, chapter_id: str) -> bool:
        return chapter_id in self._entries

    def unprocessed_count(self) -> int:
        """Loaded chapters that have never been through a provider."""
        return sum(1 for chapter in self._chapters if chapter.processing_count == 0)

    def get_metadata(self, chapter_id: str) -> Optional[ChapterMetadata]:
        for chapter in self._chapters:
            if chapter.id == chapter_id:
                return chapter
        return None

    # ------------------------------------------------------------------
    # Metadata tier
    # ------------------------------------------------------------------
    async def load_metadata(self, project_id: str) -> List[ChapterMetadata]:
        """Replace the metadata list with a fresh fetch for ``project_id``."""
        self.metadata_loading = True
        try:
            rows = await self.store.fetch_metadata(project_id)
        finally:
            self.metadata_loading = False

        self._chapters = [ChapterMetadata.from_row(row) for row in rows]
        logger.info(
            f"Loaded {len(self._chapters)} chapters for project {project_id} "
            f"({self.unprocessed_count()} unprocessed)"
        )
        return self.chapter_list

    # ------------------------------------------------------------------
    # Content tier
    # ------------------------------------------------------------------
    def _touch(self, entry: CacheEntry) -> None:
        entry.last_accessed = self.clock()
        entry.sequence = next(self._sequence)

    def _insert(self, content: ChapterContent) -> None:
        self._entries[content.id] = CacheEntry(
            content=content,
            last_accessed=self.clock(),
            sequence=next(self._sequence),
        )
        if len(self._entries) > self.max_size:
            self._evict()

    def _evict(self) -> None:
        ranked = sorted(
            self._entries.items(),
            key=lambda item: (item[1].last_accessed, item[1].sequence),
            reverse=True,
        )
        kept = dict(ranked[: self.max_size])
        for chapter_id in self._entries.keys() - kept.keys():
            logger.debug(f"Evicting chapter {chapter_id} from content cache")
        self._entries = kept

    async def _fetch_content(self, chapter_id: str) -> Optional[ChapterContent]:
        self._loading[chapter_id] = True
        try:
            row = await self.store.fetch_content(chapter_id)
            if row is None:
                logger.warning(f"Chapter {chapter_id} not found")
                return None
            content = ChapterContent.from_row(row)
            self._insert(content)
            return content
        finally:
            self._loading.pop(chapter_id, None)

    async def load_content(self, chapter_id: str) -> Optional[ChapterContent]:
        """Return the chapter body, from cache when present."""
        entry = self._entries.get(chapter_id)
        if entry is not None:
            self._touch(entry)
            return entry.content

        if not self.coalesce_inflight:
            return await self._fetch_content(chapter_id)

        task = self._inflight.get(chapter_id)
        if task is None:
            task = asyncio.ensure_future(self._fetch_content(chapter_id))
            self._inflight[chapter_id] = task

            def _forget(done: asyncio.Future, key: str = chapter_id) -> None:
                if self._inflight.get(key) is done:
                    del self._inflight[key]

            task.add_done_callback(_forget)
        return await asyncio.shield(task)

    async def get_full_chapter(self, chapter_id: str) -> Optional[Chapter]:
        """Metadata merged with content, or None if the chapter is unknown."""
        metadata = self.get_metadata(chapter_id)
        if metadata is None:
            logger.warning(f"Chapter {chapter_id} is not in the loaded metadata")
            return None

        content = await self.load_content(chapter_id)
        if content is None:
            return None
        return Chapter.combine(metadata, content)

    def clear_cache(self, chapter_id: Optional[str] = None) -> None:
        """Drop one cached body, or all of them."""
        if chapter_id is None:
            self._entries.clear()
            logger.debug("Cleared chapter content cache")
        else:
            self._entries.pop(chapter_id, None)


__all__ = ["ChapterCache", "CacheEntry"]
