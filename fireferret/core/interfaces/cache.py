"""
Key-Value Store Protocol

This module defines the protocol the cache orchestrator needs from a
key-value store, enabling dependency injection and testability.

Architectural Decision: Protocol-based abstraction
- RedisClient is the production implementation
- In-memory doubles satisfy the same protocol in tests
- Type-safe interface with runtime checking

Author: System Architect
Date: 2026-10-12
"""

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """
    Protocol for the list, hash and scan operations used by the indexing engine.

    Lists hold QueryLists (ordered document IDs). Hashes hold buckets
    (document ID -> serialized body) and the findOne index
    (query string -> document ID).
    """

    async def connect(self) -> None:
        """
        Establish connection to the store.

        Raises:
            CacheConnectionError: If connection fails or times out
        """
        ...

    async def disconnect(self) -> None:
        """Close connection to the store."""
        ...

    async def ping(self) -> bool:
        """Return True if the store answers."""
        ...

    # -------------------------------------------------------------------------
    # Lists
    # -------------------------------------------------------------------------

    async def lrange(self, key: str, start: int = 0, stop: int = -1) -> list[str]:
        """
        Read list elements between start and stop (both inclusive, Redis semantics).

        Returns:
            list[str]: Elements, empty if the key does not exist
        """
        ...

    async def replace_list(self, key: str, values: Sequence[str]) -> None:
        """
        Atomically replace the list at key with values, preserving their order.
        """
        ...

    # -------------------------------------------------------------------------
    # Hashes
    # -------------------------------------------------------------------------

    async def hget(self, name: str, field: str) -> str | None:
        """Get one hash field."""
        ...

    async def hmget(self, name: str, fields: Sequence[str]) -> list[str | None]:
        """Get several fields of one hash, None for absent fields."""
        ...

    async def hset_many(self, name: str, mapping: Mapping[str, str]) -> int:
        """Set several fields of one hash; returns the number of new fields."""
        ...

    async def hgetall(self, name: str) -> dict[str, str]:
        """Get every field of a hash."""
        ...

    # -------------------------------------------------------------------------
    # Keyspace
    # -------------------------------------------------------------------------

    async def scan(self, cursor: int, pattern: str, count: int | None = None) -> tuple[int, list[str]]:
        """
        One SCAN step.

        Returns:
            tuple: (next_cursor, matched_keys); next_cursor 0 ends the iteration
        """
        ...

    async def scan_keys(self, pattern: str, count: int | None = None) -> list[str]:
        """Iterate SCAN to completion and return the distinct matching keys."""
        ...

    async def exists(self, *keys: str) -> int:
        """Number of the given keys that exist."""
        ...

    async def health_check(self) -> dict[str, Any]:
        """Health status of the store."""
        ...
