"""
MongoDB Document Store

Architecture:
    MongoDocumentStore (Public API, satisfies DocumentStore)
        ├── connect / close (AsyncMongoClient lifecycle, bounded ping)
        ├── find / find_stream / find_one / find_by_id (read-only queries)
        └── health_check (ping latency)

Queries are passed to the driver unchanged. Driver failures are wrapped in
DocumentStoreOperationError; nothing is retried here.

Author: System Architect
Date: 2026-10-13
"""

import asyncio
import time
from collections.abc import AsyncIterator
from typing import Any

from bson import ObjectId
from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from fireferret.core.config import Settings, Stage, get_settings
from fireferret.core.exceptions import (
    DocumentStoreConnectionError,
    DocumentStoreOperationError,
)
from fireferret.core.interfaces import Document
from fireferret.core.logging import get_logger
from fireferret.indexing.bucket import normalize_id

logger = get_logger(__name__)


class MongoDocumentStore:
    """
    Read-only view of one MongoDB collection.

    Usage:
        store = MongoDocumentStore(settings)
        await store.connect()
        docs = await store.find({"status": "active"}, skip=20, limit=10)
        await store.close()
    """

    def __init__(
        self,
        settings: Settings | None = None,
        db_name: str | None = None,
        collection_name: str | None = None,
    ):
        self._settings = settings or get_settings()
        cfg = self._settings.mongo

        self.db_name = db_name or cfg.MONGO_DB_NAME
        self.collection_name = collection_name or cfg.MONGO_COLLECTION_NAME

        self._client: AsyncMongoClient | None = None
        self._is_connected = False

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def connect(self) -> None:
        """
        STAGE-MONGO.1: Connection establishment

        Raises:
            DocumentStoreConnectionError: If the ping fails or times out
        """
        if self._is_connected and self._client:
            return

        cfg = self._settings.mongo
        timeout_ms = cfg.MONGO_CONNECT_TIMEOUT * 1000

        try:
            self._client = AsyncMongoClient(
                cfg.MONGO_URI,
                connectTimeoutMS=timeout_ms,
                serverSelectionTimeoutMS=timeout_ms,
            )
            await asyncio.wait_for(
                self._client.admin.command("ping"), timeout=cfg.MONGO_CONNECT_TIMEOUT
            )
            self._is_connected = True

            logger.info(
                "MongoDB connected successfully",
                stage=Stage.MONGO.value,
                db=self.db_name,
                collection=self.collection_name,
            )

        except (PyMongoError, asyncio.TimeoutError) as e:
            logger.error("Failed to connect to MongoDB", stage=Stage.MONGO.value, error=str(e))
            raise DocumentStoreConnectionError.from_exception(
                e,
                message=f"Failed to connect to MongoDB: {e}",
                scope="mongo::connect",
                db=self.db_name,
            ) from e

    async def close(self) -> None:
        """
        STAGE-MONGO.2: Connection cleanup

        Raises:
            DocumentStoreConnectionError: If the client fails to close
        """
        client, self._client = self._client, None
        self._is_connected = False
        if client is None:
            return

        try:
            await client.close()
        except PyMongoError as e:
            logger.error("Failed to close MongoDB client", stage=Stage.MONGO.value, error=str(e))
            raise DocumentStoreConnectionError.from_exception(
                e, message="Failed to close MongoDB client", scope="mongo::close"
            ) from e

        logger.info("MongoDB disconnected", stage=Stage.MONGO.value)

    @property
    def is_connected(self) -> bool:
        return self._is_connected

    def _collection(self):
        if self._client is None:
            raise DocumentStoreConnectionError(
                "MongoDB client is not connected",
                scope="mongo::collection",
            ).with_suggestion("Call connect() before querying")
        return self._client[self.db_name][self.collection_name]

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def find(self, query: Any, skip: int = 0, limit: int = 0) -> list[Document]:
        """
        Materialize all documents matching query.

        limit=0 means no limit.
        """
        collection = self._collection()
        try:
            cursor = collection.find(query, skip=skip, limit=limit)
            return await cursor.to_list()
        except PyMongoError as e:
            logger.error("MongoDB find failed", stage=Stage.MONGO.value, error=str(e))
            raise DocumentStoreOperationError.from_exception(
                e, message=f"MongoDB find failed: {e}", scope="mongo::find", skip=skip, limit=limit
            ) from e

    async def find_stream(self, query: Any, skip: int = 0, limit: int = 0) -> AsyncIterator[Document]:
        """Yield matching documents as the cursor produces them."""
        collection = self._collection()
        cursor = collection.find(query, skip=skip, limit=limit)
        try:
            async for document in cursor:
                yield document
        except PyMongoError as e:
            logger.error("MongoDB cursor failed", stage=Stage.MONGO.value, error=str(e))
            raise DocumentStoreOperationError.from_exception(
                e, message=f"MongoDB cursor failed: {e}", scope="mongo::find_stream"
            ) from e
        finally:
            await cursor.close()

    async def find_one(self, query: Any) -> Document | None:
        collection = self._collection()
        try:
            return await collection.find_one(query)
        except PyMongoError as e:
            logger.error("MongoDB find_one failed", stage=Stage.MONGO.value, error=str(e))
            raise DocumentStoreOperationError.from_exception(
                e, message=f"MongoDB find_one failed: {e}", scope="mongo::find_one"
            ) from e

    async def find_by_id(self, document_id: str | ObjectId) -> Document | None:
        """
        Raises:
            InvalidArgumentsError: If document_id is not a valid ObjectId
        """
        object_id = ObjectId(normalize_id(document_id))
        collection = self._collection()
        try:
            return await collection.find_one({"_id": object_id})
        except PyMongoError as e:
            logger.error(
                "MongoDB find_by_id failed",
                stage=Stage.MONGO.value,
                document_id=str(object_id),
                error=str(e),
            )
            raise DocumentStoreOperationError.from_exception(
                e,
                message=f"MongoDB find_by_id failed: {e}",
                scope="mongo::find_by_id",
                document_id=str(object_id),
            ) from e

    # -------------------------------------------------------------------------
    # Health
    # -------------------------------------------------------------------------

    async def health_check(self) -> dict[str, Any]:
        health = {
            "status": "healthy",
            "connected": self._is_connected,
            "db": self.db_name,
            "collection": self.collection_name,
            "ping_latency_ms": None,
        }

        if self._client is None:
            health["status"] = "unhealthy"
            health["error"] = "Client not initialized"
            return health

        try:
            start = time.perf_counter()
            await self._client.admin.command("ping")
            health["ping_latency_ms"] = round((time.perf_counter() - start) * 1000, 2)
        except PyMongoError as e:
            health["status"] = "unhealthy"
            health["error"] = str(e)

        return health
