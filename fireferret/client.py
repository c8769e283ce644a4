"""
FireFerret Client

Wires the Redis and MongoDB drivers from settings and exposes the
read-through API.

Usage:
    async with FireFerret() as ferret:
        docs = await ferret.fetch({"status": "active"}, {"pagination": {"page": 1, "size": 20}})
        one = await ferret.fetch_one({"email": "ada@example.com"})
        doc = await ferret.fetch_by_id("5f1d7c2e9b1e8a0001000200")

Author: System Architect
Date: 2026-10-14
"""

import asyncio
import uuid
from collections.abc import AsyncIterator, Mapping
from typing import Any

from bson import ObjectId

from fireferret.core.config import Settings, Stage, get_settings
from fireferret.core.interfaces import Document, DocumentStore, KeyValueStore
from fireferret.core.logging import clear_operation_id, get_logger, log_stage, set_operation_id
from fireferret.indexing.options import QueryOptions
from fireferret.infrastructure.cache import RedisClient
from fireferret.infrastructure.document_store import MongoDocumentStore
from fireferret.services.cache_orchestrator import CacheOrchestrator

logger = get_logger(__name__)

Options = QueryOptions | Mapping[str, Any] | None


class FireFerret:
    """
    Read-through cache client for one MongoDB collection.

    Args:
        settings: Application settings (defaults to get_settings())
        cache: KeyValueStore to use instead of a RedisClient built from settings
        store: DocumentStore to use instead of a MongoDocumentStore built from settings
    """

    def __init__(
        self,
        settings: Settings | None = None,
        cache: KeyValueStore | None = None,
        store: DocumentStore | None = None,
    ):
        self.settings = settings or get_settings()
        self.cache = cache if cache is not None else RedisClient(self.settings)
        self.store = store if store is not None else MongoDocumentStore(self.settings)
        self.orchestrator = CacheOrchestrator(self.cache, self.store, settings=self.settings)

    async def connect(self) -> None:
        """
        STAGE-0: Connect both stores.

        Raises:
            StoreConnectionError: If either store fails to connect
        """
        await self.cache.connect()
        await self.store.connect()
        log_stage(
            logger,
            Stage.INITIALIZATION,
            "FireFerret connected",
            app=self.settings.app.APP_NAME,
            environment=self.settings.app.ENVIRONMENT,
            db=self.store.db_name,
            collection=self.store.collection_name,
        )

    async def close(self) -> None:
        """
        Close both stores; the first failure is raised after both were attempted.

        Raises:
            StoreConnectionError: If either store fails to close
        """
        results = await asyncio.gather(
            self.cache.disconnect(), self.store.close(), return_exceptions=True
        )
        errors = [result for result in results if isinstance(result, BaseException)]
        if errors:
            raise errors[0]
        log_stage(logger, Stage.INITIALIZATION, "FireFerret closed")

    async def __aenter__(self) -> "FireFerret":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def health_check(self) -> dict[str, Any]:
        cache_health, store_health = await asyncio.gather(
            self.cache.health_check(), self.store.health_check()
        )
        healthy = cache_health.get("status") == "healthy" and store_health.get("status") == "healthy"
        return {
            "status": "healthy" if healthy else "unhealthy",
            "cache": cache_health,
            "document_store": store_health,
        }

    # -------------------------------------------------------------------------
    # Delegate to CacheOrchestrator
    # -------------------------------------------------------------------------

    async def fetch(self, query: Any, options: Options = None) -> list[Document] | AsyncIterator[str]:
        """Documents matching query, or framed JSON chunks when streaming."""
        operation_id = uuid.uuid4().hex[:12]
        set_operation_id(operation_id)
        try:
            result = await self.orchestrator.fetch(query, options)
        finally:
            clear_operation_id()

        if isinstance(result, list):
            return result
        return self._with_operation_id(result, operation_id)

    @staticmethod
    async def _with_operation_id(chunks: AsyncIterator[str], operation_id: str) -> AsyncIterator[str]:
        # the stream does its I/O while the caller iterates, after fetch() returned
        set_operation_id(operation_id)
        try:
            async for chunk in chunks:
                yield chunk
        finally:
            clear_operation_id()

    async def fetch_one(self, query: Any, options: Options = None) -> Document | None:
        """First document matching query."""
        set_operation_id(uuid.uuid4().hex[:12])
        try:
            return await self.orchestrator.fetch_one(query, options)
        finally:
            clear_operation_id()

    async def fetch_by_id(self, document_id: str | ObjectId, options: Options = None) -> Document | None:
        """Document with the given ID."""
        set_operation_id(uuid.uuid4().hex[:12])
        try:
            return await self.orchestrator.fetch_by_id(document_id, options)
        finally:
            clear_operation_id()
