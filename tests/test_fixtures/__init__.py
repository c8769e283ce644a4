"""
Test Fixtures Package

Shared test utilities and helpers for consistent testing across all modules.
"""

from .store_factory import (
    InMemoryDocumentStore,
    InMemoryKeyValueStore,
    StoreTestFactory,
    make_documents,
    make_object_id,
)

__all__ = [
    "InMemoryDocumentStore",
    "InMemoryKeyValueStore",
    "StoreTestFactory",
    "make_documents",
    "make_object_id",
]
