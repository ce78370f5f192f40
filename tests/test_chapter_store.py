"""Tests for core/chapter_store.py - Supabase PostgREST queries."""

from __future__ import annotations

import httpx
import pytest

from core.chapter_store import METADATA_COLUMNS, METADATA_ORDER, SupabaseChapterStore
from modules.error_handler import StorageError


@pytest.fixture
def store(http_client) -> SupabaseChapterStore:
    return SupabaseChapterStore("https://demo.supabase.co/", "anon-key", http_client)


class TestQueries:

    @pytest.mark.asyncio
    async def test_metadata_query(self, store, transport):
        rows = [{"id": "a", "project_id": "p1", "title": "One"}]
        transport.queue(httpx.Response(200, json=rows))

        result = await store.fetch_metadata("p1")

        assert result == rows
        request = transport.requests[0]
        assert request.method == "GET"
        assert request.url.path == "/rest/v1/chapters"
        assert request.url.params["project_id"] == "eq.p1"
        assert request.url.params["order"] == METADATA_ORDER
        assert request.url.params["select"] == ",".join(METADATA_COLUMNS)
        assert request.headers["apikey"] == "anon-key"
        assert request.headers["Authorization"] == "Bearer anon-key"

    def test_order_sorts_nulls_last_then_creation(self):
        assert METADATA_ORDER == "chapter_order.asc.nullslast,created_at.asc"

    @pytest.mark.asyncio
    async def test_content_query(self, store, transport):
        row = {"id": "a", "original_text": "Call me Ishmael.", "processed_text": None}
        transport.queue(httpx.Response(200, json=[row]))

        result = await store.fetch_content("a")

        assert result == row
        params = transport.requests[0].url.params
        assert params["id"] == "eq.a"
        assert params["select"] == "id,original_text,processed_text"

    @pytest.mark.asyncio
    async def test_content_not_found(self, store, transport):
        transport.queue(httpx.Response(200, json=[]))

        assert await store.fetch_content("missing") is None

    @pytest.mark.asyncio
    async def test_duplicate_rows_rejected(self, store, transport):
        transport.queue(httpx.Response(200, json=[{"id": "a"}, {"id": "a"}]))

        with pytest.raises(StorageError, match="Expected one chapter row"):
            await store.fetch_content("a")


class TestErrors:

    @pytest.mark.asyncio
    async def test_http_error_raises_storage_error(self, store, transport):
        transport.queue(httpx.Response(401, json={"message": "Invalid API key"}))

        with pytest.raises(StorageError, match="401"):
            await store.fetch_metadata("p1")

    @pytest.mark.asyncio
    async def test_transport_error_raises_storage_error(self, store, transport):
        transport.queue(httpx.ConnectError("dns failure"))

        with pytest.raises(StorageError, match="dns failure"):
            await store.fetch_metadata("p1")

    @pytest.mark.asyncio
    async def test_non_list_body(self, store, transport):
        transport.queue(httpx.Response(200, json={"id": "a"}))

        with pytest.raises(StorageError):
            await store.fetch_content("a")
