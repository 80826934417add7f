"""Tests for the record store client and the sync engine."""

import datetime as dt

import httpx
import pytest

from servers.show_sync.errors import StoreError
from servers.show_sync.models import City, Show
from servers.show_sync.store import RecordStore
from servers.show_sync.sync import SyncEngine, identity_of, inserted_id

from tests.factories import InMemoryStore


def make_shows(count: int) -> list[Show]:
    return [
        Show(
            title=f"Show {i}",
            venue="Fernando's Pub",
            city=City.KELOWNA,
            date=dt.date(2025, 11, 1 + i),
        )
        for i in range(count)
    ]


async def run_sync(store_settings, memory_store, shows, batch_lookup: bool = False):
    async with RecordStore(store_settings, client=memory_store.client()) as store:
        return await SyncEngine(store, batch_lookup=batch_lookup).sync(shows)


class TestRecordStore:
    """Tests for RecordStore."""

    @pytest.mark.asyncio
    async def test_sends_credentials(self, store_settings, memory_store: InMemoryStore):
        async with RecordStore(store_settings, client=memory_store.client()) as store:
            await store.query("shows", {"city": "Kelowna"})

        headers = memory_store.headers[0]
        assert headers["Authorization"] == "Bearer test-key"
        assert headers["X-Project-ID"] == "project-123"
        assert memory_store.calls == [
            ("query", {"collection": "shows", "query": {"city": "Kelowna"}})
        ]

    @pytest.mark.asyncio
    async def test_http_error_raises_store_error(self, store_settings, memory_store):
        memory_store.fail_operations.add("insert")

        async with RecordStore(store_settings, client=memory_store.client()) as store:
            with pytest.raises(StoreError) as exc:
                await store.insert("shows", {"title": "X"})

        assert exc.value.operation == "insert"
        assert exc.value.status_code == 500

    @pytest.mark.asyncio
    async def test_transport_error_raises_store_error(self, store_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        async with RecordStore(store_settings, client=client) as store:
            with pytest.raises(StoreError, match="query failed"):
                await store.query("shows", {})

    @pytest.mark.asyncio
    async def test_invalid_json(self, store_settings):
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>"))
        )
        async with RecordStore(store_settings, client=client) as store:
            with pytest.raises(StoreError, match="not valid JSON"):
                await store.query("shows", {})

    @pytest.mark.asyncio
    async def test_must_be_entered(self, store_settings):
        with pytest.raises(RuntimeError):
            await RecordStore(store_settings).query("shows", {})


class TestSyncEngine:
    """Tests for SyncEngine upserts."""

    @pytest.mark.asyncio
    async def test_second_run_updates(self, store_settings, memory_store: InMemoryStore):
        """Syncing the same list twice inserts once, then updates."""
        first = await run_sync(store_settings, memory_store, make_shows(3))
        second = await run_sync(store_settings, memory_store, make_shows(3))

        assert first.model_dump() == {"added": 3, "updated": 0, "skipped": 0, "total": 3}
        assert second.model_dump() == {"added": 0, "updated": 3, "skipped": 0, "total": 3}
        assert len(memory_store.documents()) == 3

    @pytest.mark.asyncio
    async def test_inserted_documents_are_public(self, store_settings, memory_store):
        show = make_shows(1)[0]
        show.is_public = False

        await run_sync(store_settings, memory_store, [show])

        [document] = memory_store.documents()
        assert document["isPublic"] is True
        assert document["date"] == "2025-11-01"
        assert document["city"] == "Kelowna"
        assert show.id == document["_id"]

    @pytest.mark.asyncio
    async def test_update_replaces_all_fields(self, store_settings, memory_store):
        show = make_shows(1)[0]
        await run_sync(store_settings, memory_store, [show])
        original_id = memory_store.documents()[0]["_id"]

        changed = make_shows(1)[0]
        changed.genre = ["Blues"]
        changed.time = "9:00 pm"
        await run_sync(store_settings, memory_store, [changed])

        [document] = memory_store.documents()
        assert document["_id"] == original_id
        assert document["genre"] == ["Blues"]
        assert document["time"] == "9:00 pm"
        update_call = next(payload for op, payload in memory_store.calls if op == "update")
        assert update_call["filter"] == {"_id": original_id}

    @pytest.mark.asyncio
    async def test_identity_includes_city(self, store_settings, memory_store):
        kelowna_show = make_shows(1)[0]
        nelson_show = kelowna_show.model_copy(update={"city": City.NELSON})

        stats = await run_sync(store_settings, memory_store, [kelowna_show, nelson_show])

        assert stats.added == 2

    @pytest.mark.asyncio
    async def test_failed_item_skipped(self, store_settings, memory_store: InMemoryStore):
        """A failing store call skips that show and the loop continues."""
        memory_store.fail_titles.add("Show 1")

        stats = await run_sync(store_settings, memory_store, make_shows(3))

        assert stats.model_dump() == {"added": 2, "updated": 0, "skipped": 1, "total": 3}
        assert [d["title"] for d in memory_store.documents()] == ["Show 0", "Show 2"]

    @pytest.mark.asyncio
    async def test_empty_list(self, store_settings, memory_store):
        stats = await run_sync(store_settings, memory_store, [])
        assert stats.model_dump() == {"added": 0, "updated": 0, "skipped": 0, "total": 0}
        assert memory_store.calls == []


class TestBatchLookup:
    """Tests for batched identity resolution."""

    @pytest.mark.asyncio
    async def test_one_query_per_city(self, store_settings, memory_store: InMemoryStore):
        await run_sync(store_settings, memory_store, make_shows(2))
        memory_store.calls.clear()

        stats = await run_sync(store_settings, memory_store, make_shows(4), batch_lookup=True)

        assert stats.model_dump() == {"added": 2, "updated": 2, "skipped": 0, "total": 4}
        assert memory_store.count("query") == 1
        _, payload = memory_store.calls[0]
        assert payload["query"] == {
            "city": "Kelowna",
            "date": {"$in": ["2025-11-01", "2025-11-02", "2025-11-03", "2025-11-04"]},
        }

    @pytest.mark.asyncio
    async def test_repeated_identity_in_batch(self, store_settings, memory_store):
        """A show inserted earlier in the same batch is updated, not inserted twice."""
        shows = make_shows(1) + make_shows(1)

        stats = await run_sync(store_settings, memory_store, shows, batch_lookup=True)

        assert stats.added == 1
        assert stats.updated == 1
        assert len(memory_store.documents()) == 1

    @pytest.mark.asyncio
    async def test_falls_back_to_item_queries(self, store_settings, memory_store):
        await run_sync(store_settings, memory_store, make_shows(1))
        memory_store.calls.clear()

        queries = {"count": 0}
        original = memory_store.handler

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/query"):
                queries["count"] += 1
                if queries["count"] == 1:
                    return httpx.Response(500, json={"error": "boom"})
            return original(request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        async with RecordStore(store_settings, client=client) as store:
            stats = await SyncEngine(store, batch_lookup=True).sync(make_shows(2))

        assert stats.model_dump() == {"added": 1, "updated": 1, "skipped": 0, "total": 2}
        assert queries["count"] == 3  # failed batch query + one per show


class TestHelpers:
    """Tests for sync helpers."""

    def test_identity_of_matches_show(self):
        show = make_shows(1)[0]
        assert identity_of(show.to_document()) == show.identity_key

    def test_inserted_id_shapes(self):
        assert inserted_id({"_id": "a"}) == "a"
        assert inserted_id({"data": {"_id": "b"}}) == "b"
        assert inserted_id({}) is None
