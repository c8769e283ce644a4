"""
FireFerret

Read-through cache between MongoDB and Redis.
"""

from fireferret.client import FireFerret
from fireferret.core.exceptions import FerretError
from fireferret.indexing.options import PaginationOptions, QueryOptions
from fireferret.services.cache_orchestrator import CacheOrchestrator

__version__ = "1.0.0"

__all__ = [
    "CacheOrchestrator",
    "FerretError",
    "FireFerret",
    "PaginationOptions",
    "QueryOptions",
]
