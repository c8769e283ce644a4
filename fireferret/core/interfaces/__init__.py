"""
Core Interfaces

Protocol definitions for the two external collaborators, enabling
dependency injection and testability.

Protocols:
----------
- **KeyValueStore**: List, hash and scan operations (Redis)
- **DocumentStore**: find / findOne / findById against the document database (MongoDB)

Usage:
------
```python
from fireferret.core.interfaces import DocumentStore, KeyValueStore

def build(cache: KeyValueStore, store: DocumentStore) -> CacheOrchestrator:
    return CacheOrchestrator(cache=cache, store=store)
```
"""

from fireferret.core.interfaces.cache import KeyValueStore
from fireferret.core.interfaces.document_store import Document, DocumentStore

__all__ = [
    "Document",
    "DocumentStore",
    "KeyValueStore",
]
