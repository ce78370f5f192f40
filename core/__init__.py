"""Core package for NarraForm.

- **chapter_cache**: metadata list plus bounded LRU cache of chapter text
- **chapter_store**: persistence collaborator (Supabase REST)
"""

from core.chapter_cache import CacheEntry, ChapterCache
from core.chapter_store import ChapterStore, SupabaseChapterStore

__all__ = [
    "CacheEntry",
    "ChapterCache",
    "ChapterStore",
    "SupabaseChapterStore",
]
