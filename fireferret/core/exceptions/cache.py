"""
Cache-Related Exceptions

All exceptions related to key-value cache (Redis) operations.

Author: System Architect
Date: 2026-10-12
"""

from fireferret.core.exceptions.base import StoreConnectionError, StoreOperationError


class CacheConnectionError(StoreConnectionError):
    """
    Raised when unable to connect to the cache (Redis).

    Common causes:
    - Redis server is down
    - Connection did not complete before the connect timeout
    - Incorrect host/port configuration
    - Authentication failure
    """
    pass


class CacheOperationError(StoreOperationError):
    """
    Raised when a cache command fails.

    Common causes:
    - WRONGTYPE (a key holds a different structure than expected)
    - Operation timeout
    - Memory limit exceeded
    """
    pass
