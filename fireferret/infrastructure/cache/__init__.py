"""
Cache Module

Redis driver implementing the KeyValueStore protocol.
"""

from .redis_client import ConnectionManager, HealthMonitor, OperationExecutor, RedisClient

__all__ = [
    "ConnectionManager",
    "HealthMonitor",
    "OperationExecutor",
    "RedisClient",
]
