"""
Unit Tests for CacheOrchestrator

Tests the read-through flow against the in-memory stores:
- Verdict classification and the EMPTY_QUERY short circuit
- Miss -> persist -> hit for fetch, fetch_one and fetch_by_id
- Wide-match promotion and its fallbacks
- Incomplete cache entries and error propagation
- Streaming and hydration
"""

from unittest.mock import AsyncMock

import orjson
import pytest

from fireferret.core.config import CacheVerdict
from fireferret.core.config.constants import EMPTY_QUERY, NULL_DOCUMENT
from fireferret.core.exceptions import (
    CacheOperationError,
    DocumentCodecError,
    DocumentStoreOperationError,
    InvalidArgumentsError,
)
from fireferret.services.cache_orchestrator import CacheOrchestrator, verdict_of
from tests.test_fixtures import (
    InMemoryDocumentStore,
    InMemoryKeyValueStore,
    make_documents,
    make_object_id,
)

BASE_KEY = "ff:db::coll:query={}"
ONE_KEY = "ff:db::coll:findOne"


def page(number: int, size: int) -> dict:
    return {"pagination": {"page": number, "size": size}}


def ranged_key(start: int, end: int) -> str:
    return f'{BASE_KEY}::{{"start":{start},"end":{end}}}'


def hex_ids(documents) -> list[str]:
    return [str(document["_id"]) for document in documents]


@pytest.mark.unit
class TestVerdict:
    """Test verdict_of()."""

    @pytest.mark.parametrize(
        "entries, verdict",
        [
            ([], CacheVerdict.CACHE_MISS),
            ([EMPTY_QUERY], CacheVerdict.EMPTY_QUERY),
            (["5f1d7c2ea1b2c3d4e5000001"], CacheVerdict.CACHE_HIT),
            ([EMPTY_QUERY, "5f1d7c2ea1b2c3d4e5000001"], CacheVerdict.CACHE_HIT),
        ],
    )
    def test_classification(self, entries, verdict):
        assert verdict_of(entries) is verdict


@pytest.mark.unit
class TestFetch:
    """Test fetch() for materialized results."""

    @pytest.mark.asyncio
    async def test_miss_then_hit(self, orchestrator, kv_store, document_store, sample_documents):
        """First call queries MongoDB and caches; the second is served from Redis."""
        first = await orchestrator.fetch({})

        assert first == sample_documents
        assert kv_store.lists[BASE_KEY] == hex_ids(sample_documents)
        assert set(kv_store.hashes["0"]) == set(hex_ids(sample_documents))

        second = await orchestrator.fetch({})

        assert second == sample_documents
        assert document_store.calls["find"] == 1

    @pytest.mark.asyncio
    async def test_paginated_miss_uses_window(self, orchestrator, kv_store, sample_documents):
        result = await orchestrator.fetch({}, page(2, 5))

        assert result == sample_documents[5:10]
        assert kv_store.lists[ranged_key(5, 10)] == hex_ids(sample_documents[5:10])

    @pytest.mark.asyncio
    async def test_order_is_preserved_across_buckets(self, test_settings):
        documents = make_documents(6, step=300)
        kv_store = InMemoryKeyValueStore()
        orchestrator = CacheOrchestrator(kv_store, InMemoryDocumentStore(documents), settings=test_settings)

        await orchestrator.fetch({})
        kv_store.calls.clear()
        result = await orchestrator.fetch({})

        assert result == documents
        assert set(kv_store.hashes) == {"0", "1", "2"}
        assert kv_store.calls["hmget"] == 3

    @pytest.mark.asyncio
    async def test_empty_result_is_cached(self, orchestrator, kv_store, document_store):
        assert await orchestrator.fetch({"name": "nobody"}) == []
        assert kv_store.lists['ff:db::coll:query={"name":"nobody"}'] == [EMPTY_QUERY]

        assert await orchestrator.fetch({"name": "nobody"}) == []
        assert document_store.calls["find"] == 1

    @pytest.mark.asyncio
    async def test_empty_query_sentinel_skips_all_other_io(self, orchestrator, kv_store, document_store):
        kv_store.lists[BASE_KEY] = [EMPTY_QUERY]

        assert await orchestrator.fetch({}) == []
        assert document_store.query_count == 0
        assert kv_store.calls["hmget"] == 0
        assert kv_store.calls["scan"] == 0

    @pytest.mark.asyncio
    async def test_invalid_options_fail_before_io(self, orchestrator, kv_store, document_store):
        with pytest.raises(InvalidArgumentsError):
            await orchestrator.fetch({}, page(0, 10))

        assert sum(kv_store.calls.values()) == 0
        assert document_store.query_count == 0

    @pytest.mark.asyncio
    async def test_incomplete_bucket_falls_back_to_store(self, orchestrator, kv_store, document_store, sample_documents):
        await orchestrator.fetch({})
        del kv_store.hashes["0"][hex_ids(sample_documents)[3]]

        result = await orchestrator.fetch({})

        assert result == sample_documents
        assert document_store.calls["find"] == 2
        assert hex_ids(sample_documents)[3] in kv_store.hashes["0"]

    @pytest.mark.asyncio
    async def test_null_document_in_list_falls_back_to_store(self, orchestrator, kv_store, document_store, sample_documents):
        await orchestrator.fetch({})
        kv_store.hashes["0"][hex_ids(sample_documents)[0]] = NULL_DOCUMENT

        assert await orchestrator.fetch({}) == sample_documents
        assert document_store.calls["find"] == 2

    @pytest.mark.asyncio
    async def test_bucket_read_failure_propagates(self, orchestrator, kv_store):
        await orchestrator.fetch({})
        kv_store.fail("hmget")

        with pytest.raises(CacheOperationError):
            await orchestrator.fetch({})

    @pytest.mark.asyncio
    async def test_cache_write_failure_propagates(self, orchestrator, kv_store):
        kv_store.fail("replace_list")

        with pytest.raises(CacheOperationError):
            await orchestrator.fetch({})

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, orchestrator, document_store, kv_store):
        document_store.find = AsyncMock(
            side_effect=DocumentStoreOperationError("find failed", scope="memory::find")
        )

        with pytest.raises(DocumentStoreOperationError):
            await orchestrator.fetch({})

        assert BASE_KEY not in kv_store.lists

    @pytest.mark.asyncio
    async def test_hydrate_false_returns_string_ids(self, orchestrator, sample_documents):
        fresh = await orchestrator.fetch({}, {"hydrate": False})
        cached = await orchestrator.fetch({}, {"hydrate": False})

        assert [document["_id"] for document in fresh] == hex_ids(sample_documents)
        assert fresh == cached


@pytest.mark.unit
class TestUncacheableIds:
    """Store documents whose _id cannot be bucketed."""

    @pytest.fixture
    def string_id_orchestrator(self, test_settings):
        kv_store = InMemoryKeyValueStore()
        document_store = InMemoryDocumentStore([{"_id": "user-1", "n": 1}, {"_id": "user-2", "n": 2}])
        return CacheOrchestrator(kv_store, document_store, settings=test_settings), kv_store

    @pytest.mark.asyncio
    async def test_fetch_raises_codec_error_without_writing(self, string_id_orchestrator):
        orchestrator, kv_store = string_id_orchestrator

        with pytest.raises(DocumentCodecError) as exc_info:
            await orchestrator.fetch({})

        assert exc_info.value.details["document_id"] == "'user-1'"
        assert kv_store.lists == {}
        assert kv_store.hashes == {}

    @pytest.mark.asyncio
    async def test_fetch_one_raises_codec_error_without_writing(self, string_id_orchestrator):
        orchestrator, kv_store = string_id_orchestrator

        with pytest.raises(DocumentCodecError):
            await orchestrator.fetch_one({"n": 2})

        assert kv_store.hashes == {}

    @pytest.mark.asyncio
    async def test_hex_string_ids_are_cached(self, test_settings):
        documents = [{"_id": str(make_object_id(counter)), "n": counter} for counter in (3, 700)]
        kv_store = InMemoryKeyValueStore()
        orchestrator = CacheOrchestrator(kv_store, InMemoryDocumentStore(documents), settings=test_settings)

        await orchestrator.fetch({})
        cached = await orchestrator.fetch({}, {"hydrate": False})

        assert cached == documents
        assert set(kv_store.hashes) == {"0", "1"}


@pytest.mark.unit
class TestWideMatch:
    """Test wide-match reuse inside fetch()."""

    @pytest.mark.asyncio
    async def test_page_cut_from_whole_result(self, orchestrator, kv_store, document_store, sample_documents):
        await orchestrator.fetch({})

        result = await orchestrator.fetch({}, page(2, 5))

        assert result == sample_documents[5:10]
        assert document_store.calls["find"] == 1
        assert kv_store.lists[ranged_key(5, 10)] == hex_ids(sample_documents[5:10])

    @pytest.mark.asyncio
    async def test_first_page_cut_from_ranged_result(self, orchestrator, kv_store, document_store, sample_documents):
        await orchestrator.fetch({}, page(1, 20))

        result = await orchestrator.fetch({}, page(1, 5))

        assert result == sample_documents[:5]
        assert document_store.calls["find"] == 1
        assert kv_store.lists[ranged_key(0, 5)] == hex_ids(sample_documents[:5])

    @pytest.mark.asyncio
    async def test_page_cut_from_larger_page(self, orchestrator, kv_store, document_store, sample_documents):
        await orchestrator.fetch({}, page(1, 10))

        result = await orchestrator.fetch({}, page(2, 5))

        assert result == sample_documents[5:10]
        assert document_store.calls["find"] == 1

    @pytest.mark.asyncio
    async def test_promoted_key_hits_directly(self, orchestrator, kv_store):
        await orchestrator.fetch({})
        await orchestrator.fetch({}, page(2, 5))
        kv_store.calls.clear()

        await orchestrator.fetch({}, page(2, 5))

        assert kv_store.calls["scan"] == 0
        assert kv_store.calls["replace_list"] == 0

    @pytest.mark.asyncio
    async def test_window_past_end_queries_store(self, orchestrator, kv_store, document_store):
        await orchestrator.fetch({})

        assert await orchestrator.fetch({}, page(5, 5)) == []
        assert document_store.calls["find"] == 2
        assert kv_store.lists[ranged_key(20, 25)] == [EMPTY_QUERY]

    @pytest.mark.asyncio
    async def test_disabled_wide_match_always_queries_store(self, test_settings, sample_documents):
        settings = test_settings.model_copy(update={"CACHE_WIDE_MATCH": False})
        kv_store = InMemoryKeyValueStore()
        document_store = InMemoryDocumentStore(sample_documents)
        orchestrator = CacheOrchestrator(kv_store, document_store, settings=settings)

        await orchestrator.fetch({})
        await orchestrator.fetch({}, page(2, 5))

        assert document_store.calls["find"] == 2
        assert kv_store.calls["scan"] == 0

    @pytest.mark.asyncio
    async def test_unpaginated_miss_does_not_scan(self, orchestrator, kv_store):
        await orchestrator.fetch({"active": True})

        assert kv_store.calls["scan"] == 0


@pytest.mark.unit
class TestFetchOne:
    """Test fetch_one()."""

    @pytest.mark.asyncio
    async def test_miss_then_hit(self, orchestrator, kv_store, document_store, sample_documents):
        expected = sample_documents[3]

        assert await orchestrator.fetch_one({"name": "user-3"}) == expected
        hex_id = str(expected["_id"])
        assert kv_store.hashes[ONE_KEY]['{"name":"user-3"}'] == hex_id
        assert hex_id in kv_store.hashes["0"]

        assert await orchestrator.fetch_one({"name": "user-3"}) == expected
        assert document_store.calls["find_one"] == 1

    @pytest.mark.asyncio
    async def test_no_match_is_cached(self, orchestrator, kv_store, document_store):
        assert await orchestrator.fetch_one({"name": "nobody"}) is None
        assert kv_store.hashes[ONE_KEY]['{"name":"nobody"}'] == EMPTY_QUERY

        assert await orchestrator.fetch_one({"name": "nobody"}) is None
        assert document_store.calls["find_one"] == 1

    @pytest.mark.asyncio
    async def test_null_document_body(self, orchestrator, kv_store, document_store):
        hex_id = str(make_object_id(900))
        kv_store.hashes[ONE_KEY] = {"{}": hex_id}
        kv_store.hashes["1"] = {hex_id: NULL_DOCUMENT}

        assert await orchestrator.fetch_one({}) is None
        assert document_store.query_count == 0

    @pytest.mark.asyncio
    async def test_evicted_body_is_refetched(self, orchestrator, kv_store, document_store, sample_documents):
        await orchestrator.fetch_one({"name": "user-1"})
        kv_store.hashes["0"].clear()

        assert await orchestrator.fetch_one({"name": "user-1"}) == sample_documents[1]
        assert document_store.calls["find_one"] == 2

    @pytest.mark.asyncio
    async def test_body_cached_by_fetch_is_reused(self, orchestrator, kv_store, document_store, sample_documents):
        await orchestrator.fetch({})
        kv_store.hashes[ONE_KEY] = {'{"name":"user-7"}': str(sample_documents[7]["_id"])}

        assert await orchestrator.fetch_one({"name": "user-7"}) == sample_documents[7]
        assert document_store.calls["find_one"] == 0


@pytest.mark.unit
class TestFetchById:
    """Test fetch_by_id()."""

    @pytest.mark.asyncio
    async def test_miss_then_hit(self, orchestrator, kv_store, document_store, sample_documents):
        target = sample_documents[4]

        assert await orchestrator.fetch_by_id(str(target["_id"])) == target
        assert await orchestrator.fetch_by_id(target["_id"]) == target
        assert document_store.calls["find_by_id"] == 1

    @pytest.mark.asyncio
    async def test_shares_buckets_with_fetch(self, orchestrator, document_store, sample_documents):
        await orchestrator.fetch({})

        assert await orchestrator.fetch_by_id(sample_documents[7]["_id"]) == sample_documents[7]
        assert document_store.calls["find_by_id"] == 0

    @pytest.mark.asyncio
    async def test_missing_document_is_cached_as_null(self, orchestrator, kv_store, document_store):
        hex_id = str(make_object_id(4096))

        assert await orchestrator.fetch_by_id(hex_id) is None
        assert kv_store.hashes["8"][hex_id] == NULL_DOCUMENT

        assert await orchestrator.fetch_by_id(hex_id) is None
        assert document_store.calls["find_by_id"] == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad_id", ["xyz", "5f1d7c2e", 123, None])
    async def test_invalid_id_fails_before_io(self, orchestrator, kv_store, document_store, bad_id):
        with pytest.raises(InvalidArgumentsError):
            await orchestrator.fetch_by_id(bad_id)

        assert sum(kv_store.calls.values()) == 0
        assert document_store.query_count == 0

    @pytest.mark.asyncio
    async def test_hydrate_false(self, orchestrator, sample_documents):
        target = sample_documents[2]

        fresh = await orchestrator.fetch_by_id(target["_id"], {"hydrate": False})
        cached = await orchestrator.fetch_by_id(target["_id"], {"hydrate": False})

        assert fresh["_id"] == str(target["_id"])
        assert cached == fresh


@pytest.mark.unit
class TestStreamingFetch:
    """Test fetch() with stream=True."""

    @staticmethod
    async def drain(stream) -> str:
        return "".join([chunk async for chunk in stream])

    @pytest.mark.asyncio
    async def test_stream_miss_caches_after_exhaustion(self, orchestrator, kv_store, document_store, sample_documents):
        stream = await orchestrator.fetch({}, {"stream": True})

        body = await self.drain(stream)

        assert [document["_id"] for document in orjson.loads(body)] == hex_ids(sample_documents)
        assert kv_store.lists[BASE_KEY] == hex_ids(sample_documents)
        assert document_store.calls["find_stream"] == 1

    @pytest.mark.asyncio
    async def test_stream_hit_skips_store(self, orchestrator, document_store):
        await orchestrator.fetch({})

        body = await self.drain(await orchestrator.fetch({}, {"stream": True, **page(1, 3)}))

        assert [document["index"] for document in orjson.loads(body)] == [0, 1, 2]
        assert document_store.calls["find_stream"] == 0

    @pytest.mark.asyncio
    async def test_empty_stream(self, orchestrator, kv_store):
        body = await self.drain(await orchestrator.fetch({"name": "nobody"}, {"stream": True}))

        assert body == "[]"
        assert kv_store.lists['ff:db::coll:query={"name":"nobody"}'] == [EMPTY_QUERY]

    @pytest.mark.asyncio
    async def test_stream_abandoned_early_is_not_cached(self, orchestrator, kv_store):
        stream = await orchestrator.fetch({}, {"stream": True})

        async for _ in stream:
            break
        await stream.aclose()

        assert BASE_KEY not in kv_store.lists

    @pytest.mark.asyncio
    async def test_ndjson_framing(self, test_settings, sample_documents):
        settings = test_settings.model_copy(update={"CACHE_STREAM_NDJSON": True})
        orchestrator = CacheOrchestrator(
            InMemoryKeyValueStore(), InMemoryDocumentStore(sample_documents[:3]), settings=settings
        )

        body = await self.drain(await orchestrator.fetch({}, {"stream": True}))

        lines = body.splitlines()
        assert [orjson.loads(line)["index"] for line in lines] == [0, 1, 2]
