"""
Service Layer

- **cache_orchestrator**: read-through fetch / fetch_one / fetch_by_id
- **streaming**: JSON array and NDJSON framing of document streams
"""

from fireferret.services.cache_orchestrator import CacheOrchestrator, verdict_of
from fireferret.services.streaming import dumps_document, frame_documents, frame_json_array, frame_ndjson

__all__ = [
    "CacheOrchestrator",
    "verdict_of",
    "dumps_document",
    "frame_documents",
    "frame_json_array",
    "frame_ndjson",
]
