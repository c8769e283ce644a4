"""
Document Store Protocol

The read-only surface of the backing document database consumed by the
cache orchestrator. Queries are opaque payloads passed through unchanged.
"""

from collections.abc import AsyncIterator
from typing import Any, Protocol, runtime_checkable

Document = dict[str, Any]


@runtime_checkable
class DocumentStore(Protocol):
    """
    Protocol for document store implementations.

    Implementations:
    - MongoDocumentStore: pymongo async client
    - In-memory doubles in tests

    ``limit=0`` means "no limit", matching the MongoDB driver.
    """

    db_name: str
    collection_name: str

    async def connect(self) -> None:
        """
        Raises:
            DocumentStoreConnectionError: If connection fails or times out
        """
        ...

    async def close(self) -> None:
        ...

    async def find(self, query: Any, skip: int = 0, limit: int = 0) -> list[Document]:
        """Materialize all documents matching query."""
        ...

    def find_stream(self, query: Any, skip: int = 0, limit: int = 0) -> AsyncIterator[Document]:
        """Iterate matching documents as the cursor yields them."""
        ...

    async def find_one(self, query: Any) -> Document | None:
        ...

    async def find_by_id(self, document_id: str) -> Document | None:
        ...

    async def health_check(self) -> dict[str, Any]:
        ...
