"""
Cache Orchestrator Service

The read-through entry point: every fetch goes to Redis first and only
reaches MongoDB on a miss.

THE FETCH LIFECYCLE:
--------------------
┌─────────────────────────────────────────────────────────────────┐
│ STAGE 1: OPTIONS VALIDATION                                     │
│ - Parse options, build the frozen QueryKey (no I/O yet)         │
└─────────────────────────────────────────────────────────────────┘
                            ↓
┌─────────────────────────────────────────────────────────────────┐
│ STAGE 2: QUERY LIST LOOKUP                                      │
│ - LRANGE the requested key -> CACHE_HIT / CACHE_MISS / EMPTY    │
│ - STAGE 2.1: on a paginated miss, try a wide match and promote  │
└─────────────────────────────────────────────────────────────────┘
                            ↓
┌─────────────────────────────────────────────────────────────────┐
│ STAGE 3: BUCKET READ (hit)                                      │
│ - One HMGET per bucket, all concurrent                          │
│ - Any missing body -> the entry is incomplete, treat as a miss  │
└─────────────────────────────────────────────────────────────────┘
                            ↓
┌─────────────────────────────────────────────────────────────────┐
│ STAGE 4: DOCUMENT STORE QUERY (miss)                            │
│ - find(query, skip=start, limit=size)                           │
└─────────────────────────────────────────────────────────────────┘
                            ↓
┌─────────────────────────────────────────────────────────────────┐
│ STAGE 5: CACHE WRITE                                            │
│ - One HSET per bucket + the QueryList replace, all concurrent   │
│ - Zero documents -> [EMPTY_QUERY]                               │
└─────────────────────────────────────────────────────────────────┘

Concurrent misses for the same query may both hit MongoDB and write the
same entries; the writes are idempotent.

Author: System Architect
Date: 2026-10-14
"""

import asyncio
from collections.abc import AsyncIterator, Mapping, Sequence
from typing import Any

from bson import ObjectId

from fireferret.core.config import CacheVerdict, Settings, Stage, get_settings
from fireferret.core.config.constants import EMPTY_QUERY, NULL_DOCUMENT
from fireferret.core.interfaces import Document, DocumentStore, KeyValueStore
from fireferret.core.logging import get_logger, log_stage
from fireferret.indexing.bucket import assign, bucket_of, document_id_of, normalize_id, partition
from fireferret.indexing.codec import DocumentCodec
from fireferret.indexing.options import QueryOptions, parse_options
from fireferret.indexing.query_key import QueryKey
from fireferret.indexing.wide_match import WideMatchResolver
from fireferret.services.streaming import frame_documents

logger = get_logger(__name__)


def verdict_of(entries: Sequence[str]) -> CacheVerdict:
    """Classify a QueryList by its content alone."""
    if not entries:
        return CacheVerdict.CACHE_MISS
    if len(entries) == 1 and entries[0] == EMPTY_QUERY:
        return CacheVerdict.EMPTY_QUERY
    return CacheVerdict.CACHE_HIT


# ============================================================================
# CACHE ORCHESTRATOR CLASS
# ============================================================================


class CacheOrchestrator:
    """
    Coordinates QueryKey, buckets, codec and wide-match against the two stores.

    Both stores are injected; the orchestrator never opens or closes them.

    Usage:
        orchestrator = CacheOrchestrator(cache=redis_client, store=mongo_store)
        docs = await orchestrator.fetch({"status": "active"}, {"pagination": {"page": 1, "size": 20}})
        doc = await orchestrator.fetch_by_id("5f1d7c2e9b1e8a0001000200")
    """

    def __init__(
        self,
        cache: KeyValueStore,
        store: DocumentStore,
        settings: Settings | None = None,
        codec: DocumentCodec | None = None,
    ):
        self._cache = cache
        self._store = store
        self.settings = settings or get_settings()
        self._codec = codec or DocumentCodec()

        self._namespace = self.settings.cache.CACHE_NAMESPACE
        self._wide_match_enabled = self.settings.cache.CACHE_WIDE_MATCH
        self._ndjson = self.settings.cache.CACHE_STREAM_NDJSON
        self._resolver = WideMatchResolver(cache, scan_count=self.settings.redis.REDIS_SCAN_COUNT)

    def build_key(self, query: Any, options: QueryOptions | Mapping[str, Any] | None = None) -> QueryKey:
        """QueryKey for the injected store's database and collection."""
        return QueryKey(
            self._store.db_name,
            self._store.collection_name,
            query,
            options,
            namespace=self._namespace,
        )

    # ========================================================================
    # fetch
    # ========================================================================

    async def fetch(
        self, query: Any, options: QueryOptions | Mapping[str, Any] | None = None
    ) -> list[Document] | AsyncIterator[str]:
        """
        Fetch every document matching query (one page when paginated).

        Args:
            query: MongoDB filter, passed through unchanged
            options: {hydrate, stream, pagination: {page, size}}

        Returns:
            list of documents, or an async iterator of framed JSON chunks
            when options.stream is set

        Raises:
            InvalidArgumentsError: Bad options (before any I/O)
            StoreConnectionError / StoreOperationError: Store failures
            SerializationError: A document could not be encoded or decoded
        """
        # STAGE 1: Options validation
        opts = parse_options(options)
        query_key = self.build_key(query, opts)

        if opts.stream:
            log_stage(logger, Stage.OPTIONS_VALIDATION, "Streaming fetch", key=query_key.key)
            return frame_documents(
                self._iter_documents(query, query_key, opts.hydrate), ndjson=self._ndjson
            )

        return await self._fetch_documents(query, query_key, opts.hydrate)

    async def _fetch_documents(self, query: Any, query_key: QueryKey, hydrate: bool) -> list[Document]:
        # STAGE 2: QueryList lookup (+ wide match)
        verdict, ids = await self._resolve_ids(query_key)

        if verdict is CacheVerdict.EMPTY_QUERY:
            return []

        # STAGE 3: Bucket read
        if verdict is CacheVerdict.CACHE_HIT:
            documents = await self._read_documents(ids, hydrate)
            if documents is not None:
                if query_key.pagination is not None:
                    documents = documents[:query_key.pagination.size]
                return documents

            log_stage(
                logger,
                Stage.BUCKET_READ,
                "Cached entry incomplete, refetching",
                level="warning",
                key=query_key.key,
            )

        # STAGE 4: Document store query
        skip, limit = self._window(query_key)
        documents = await self._store.find(query, skip=skip, limit=limit)
        log_stage(
            logger,
            Stage.DOCUMENT_STORE_QUERY,
            "Fetched from document store",
            key=query_key.key,
            documents=len(documents),
        )

        # STAGE 5: Cache write
        await self._persist(query_key, documents)
        return [self._present(document, hydrate) for document in documents]

    async def _iter_documents(self, query: Any, query_key: QueryKey, hydrate: bool) -> AsyncIterator[Document]:
        verdict, ids = await self._resolve_ids(query_key)

        if verdict is CacheVerdict.EMPTY_QUERY:
            return

        if verdict is CacheVerdict.CACHE_HIT:
            documents = await self._read_documents(ids, hydrate)
            if documents is not None:
                if query_key.pagination is not None:
                    documents = documents[:query_key.pagination.size]
                for document in documents:
                    yield document
                return

        skip, limit = self._window(query_key)
        captured: list[Document] = []
        async for document in self._store.find_stream(query, skip=skip, limit=limit):
            captured.append(document)
            yield self._present(document, hydrate)

        # cursor exhausted; a consumer that stops early leaves nothing cached
        await self._persist(query_key, captured)

    # ========================================================================
    # fetch_one / fetch_by_id
    # ========================================================================

    async def fetch_one(
        self, query: Any, options: QueryOptions | Mapping[str, Any] | None = None
    ) -> Document | None:
        """
        Fetch the first document matching query.

        The findOne hash maps the canonical query to a document ID (or
        EMPTY_QUERY); the body itself lives in the document's bucket.
        """
        opts = parse_options(options)
        query_key = self.build_key(query)

        cached_id = await self._cache.hget(query_key.one_key, query_key.query_string)

        if cached_id == EMPTY_QUERY:
            log_stage(logger, Stage.QUERY_LIST_LOOKUP, "findOne empty query", key=query_key.one_key)
            return None

        if cached_id is not None:
            body = await self._cache.hget(bucket_of(cached_id), cached_id)
            if body == NULL_DOCUMENT:
                return None
            if body is not None:
                log_stage(logger, Stage.QUERY_LIST_LOOKUP, "findOne cache hit", key=query_key.one_key)
                return self._codec.decode(body, hydrate=opts.hydrate)

        document = await self._store.find_one(query)

        if document is None:
            await self._cache.hset_many(query_key.one_key, {query_key.query_string: EMPTY_QUERY})
            return None

        hex_id = document_id_of(document)
        body = self._codec.encode(document)
        await asyncio.gather(
            self._cache.hset_many(query_key.one_key, {query_key.query_string: hex_id}),
            self._cache.hset_many(bucket_of(hex_id), {hex_id: body}),
        )
        log_stage(logger, Stage.CACHE_WRITE, "findOne cached", key=query_key.one_key, document_id=hex_id)
        return self._present(document, opts.hydrate)

    async def fetch_by_id(
        self, document_id: str | ObjectId, options: QueryOptions | Mapping[str, Any] | None = None
    ) -> Document | None:
        """
        Fetch one document by ID straight from its bucket.

        A NULL_DOCUMENT body means the ID was looked up before and did not
        exist; it is answered without touching MongoDB.

        Raises:
            InvalidArgumentsError: Malformed ID or options (before any I/O)
        """
        opts = parse_options(options)
        hex_id = normalize_id(document_id)
        bucket = bucket_of(hex_id)

        body = await self._cache.hget(bucket, hex_id)
        if body == NULL_DOCUMENT:
            return None
        if body is not None:
            log_stage(logger, Stage.BUCKET_READ, "findById cache hit", bucket=bucket, document_id=hex_id)
            return self._codec.decode(body, hydrate=opts.hydrate)

        document = await self._store.find_by_id(hex_id)
        await self._cache.hset_many(
            bucket, {hex_id: self._codec.encode(document) if document is not None else NULL_DOCUMENT}
        )
        log_stage(
            logger,
            Stage.CACHE_WRITE,
            "findById cached",
            bucket=bucket,
            document_id=hex_id,
            found=document is not None,
        )
        return self._present(document, opts.hydrate) if document is not None else None

    # ========================================================================
    # Internals
    # ========================================================================

    async def _resolve_ids(self, query_key: QueryKey) -> tuple[CacheVerdict, list[str]]:
        entries = await self._cache.lrange(query_key.key, 0, -1)
        verdict = verdict_of(entries)
        log_stage(logger, Stage.QUERY_LIST_LOOKUP, "Query list lookup", key=query_key.key, verdict=verdict.value)

        if verdict is not CacheVerdict.CACHE_MISS:
            return verdict, entries

        if not self._wide_match_enabled or query_key.pagination is None:
            return verdict, entries

        # STAGE 2.1: Wide match
        match = await self._resolver.resolve(query_key)
        if match is None:
            return verdict, entries

        local = match.local_range
        entries = await self._cache.lrange(match.target_key, local.start, local.end - 1)
        verdict = verdict_of(entries)
        if verdict is CacheVerdict.CACHE_MISS:
            # window lies past the end of the cached list
            return verdict, entries

        # Promotion: the next identical request hits directly
        await self._cache.replace_list(query_key.key, entries)
        log_stage(
            logger,
            Stage.WIDE_MATCH,
            "Promoted wide match",
            key=query_key.key,
            target_key=match.target_key,
            entries=len(entries),
        )
        return verdict, entries

    async def _read_documents(self, ids: Sequence[str], hydrate: bool) -> list[Document] | None:
        """
        Read and decode the documents of a QueryList in order.

        Returns:
            Decoded documents, or None if any body is missing or NULL_DOCUMENT
        """
        groups = partition(ids)
        names = list(groups)

        results = await asyncio.gather(*(self._cache.hmget(name, groups[name]) for name in names))

        bodies: dict[str, str | None] = {}
        for name, values in zip(names, results):
            bodies.update(zip(groups[name], values))

        log_stage(logger, Stage.BUCKET_READ, "Buckets read", buckets=len(names), documents=len(ids))

        documents = []
        for document_id in ids:
            body = bodies.get(document_id)
            if body is None or body == NULL_DOCUMENT:
                return None
            documents.append(self._codec.decode(body, hydrate=hydrate))
        return documents

    async def _persist(self, query_key: QueryKey, documents: Sequence[Document]) -> None:
        if not documents:
            await self._cache.replace_list(query_key.key, [EMPTY_QUERY])
            log_stage(logger, Stage.CACHE_WRITE, "Cached empty query", key=query_key.key)
            return

        assignment = assign(documents)

        # encode everything before the first write
        writes = {
            name: {document_id_of(document): self._codec.encode(document) for document in bucket.documents}
            for name, bucket in assignment.buckets.items()
        }

        await asyncio.gather(
            *(self._cache.hset_many(name, mapping) for name, mapping in writes.items()),
            self._cache.replace_list(query_key.key, assignment.ids),
        )
        log_stage(
            logger,
            Stage.CACHE_WRITE,
            "Cached query result",
            key=query_key.key,
            buckets=len(writes),
            documents=len(assignment.ids),
        )

    @staticmethod
    def _window(query_key: QueryKey) -> tuple[int, int]:
        pagination = query_key.pagination
        if pagination is None:
            return 0, 0
        return pagination.start, pagination.size

    @staticmethod
    def _present(document: Document, hydrate: bool) -> Document:
        if hydrate or not isinstance(document.get("_id"), ObjectId):
            return document
        return {**document, "_id": str(document["_id"])}
