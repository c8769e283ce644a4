"""
Redis Client with Connection Pooling

Architecture:
    RedisClient (Public API, satisfies KeyValueStore)
        ├── ConnectionManager (Connection lifecycle)
        ├── OperationExecutor (Command execution with error handling)
        └── HealthMonitor (Health checks and metrics)

Commands used by the cache layout:
    - Lists: LRANGE, and DEL + RPUSH batches inside one MULTI for QueryLists
    - Hashes: HGET / HMGET / HSET / HGETALL for buckets and the findOne index
    - Keyspace: SCAN (wide-match candidates), EXISTS

Each instance owns its pool; there is no module-level client.

Author: System Architect
Date: 2026-10-13
"""

import asyncio
import time
from collections.abc import Mapping, Sequence
from typing import Any

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import ConnectionError, RedisError, TimeoutError

from fireferret.core.config import Settings, Stage, get_settings
from fireferret.core.exceptions import CacheConnectionError, CacheOperationError
from fireferret.core.logging import get_logger

logger = get_logger(__name__)


# =============================================================================
# LAYER 1: CONNECTION MANAGEMENT
# Handles connection lifecycle and pooling
# =============================================================================


class ConnectionManager:
    """
    Manages Redis connection lifecycle and pooling.

    Responsibility: Connection establishment, pooling, and cleanup.

    Pool Configuration (from settings):
    - Max connections: REDIS_MAX_CONNECTIONS
    - Socket timeout: REDIS_SOCKET_TIMEOUT
    - Connect timeout: REDIS_SOCKET_CONNECT_TIMEOUT (also bounds the initial PING)
    - Health check interval: REDIS_HEALTH_CHECK_INTERVAL
    """

    def __init__(self, settings: Settings):
        self._settings = settings
        self._pool: ConnectionPool | None = None
        self._client: redis.Redis | None = None
        self._is_connected = False

    async def connect(self) -> redis.Redis:
        """
        Establish connection to Redis with connection pooling.

        STAGE-REDIS.2: Connection establishment

        Returns:
            redis.Redis: Connected Redis client

        Raises:
            CacheConnectionError: If connection fails or the PING times out
        """
        if self._is_connected and self._client:
            return self._client

        cfg = self._settings.redis

        try:
            # STAGE-REDIS.2.1: Create connection pool
            self._pool = ConnectionPool(
                host=cfg.REDIS_HOST,
                port=cfg.REDIS_PORT,
                db=cfg.REDIS_DB,
                password=cfg.REDIS_PASSWORD,
                max_connections=cfg.REDIS_MAX_CONNECTIONS,
                socket_connect_timeout=cfg.REDIS_SOCKET_CONNECT_TIMEOUT,
                socket_timeout=cfg.REDIS_SOCKET_TIMEOUT,
                health_check_interval=cfg.REDIS_HEALTH_CHECK_INTERVAL,
                decode_responses=True,  # Return strings instead of bytes
            )

            # STAGE-REDIS.2.2: Create Redis client with pool
            self._client = redis.Redis(connection_pool=self._pool)

            # STAGE-REDIS.2.3: Verify connection with a bounded ping
            await asyncio.wait_for(self._client.ping(), timeout=cfg.REDIS_SOCKET_CONNECT_TIMEOUT)

            self._is_connected = True

            logger.info(
                "Redis connected successfully",
                stage=Stage.REDIS.value,
                host=cfg.REDIS_HOST,
                port=cfg.REDIS_PORT,
                max_connections=cfg.REDIS_MAX_CONNECTIONS,
            )

            return self._client

        except (ConnectionError, TimeoutError, asyncio.TimeoutError) as e:
            logger.error("Failed to connect to Redis", stage=Stage.REDIS.value, error=str(e))
            raise CacheConnectionError(
                f"Failed to connect to Redis: {e}",
                scope="redis::connect",
                details={"host": cfg.REDIS_HOST, "port": cfg.REDIS_PORT},
            ) from e

    async def disconnect(self) -> None:
        """
        Close Redis connection and pool.

        STAGE-REDIS.3: Connection cleanup

        Raises:
            CacheConnectionError: If closing the client or pool fails
        """
        try:
            if self._client:
                await self._client.aclose()

            if self._pool:
                await self._pool.disconnect()
        except RedisError as e:
            logger.error("Failed to disconnect from Redis", stage=Stage.REDIS.value, error=str(e))
            raise CacheConnectionError.from_exception(
                e, message="Failed to disconnect from Redis", scope="redis::disconnect"
            ) from e
        finally:
            self._client = None
            self._pool = None
            self._is_connected = False

        logger.info("Redis disconnected", stage=Stage.REDIS.value)

    async def ping(self) -> bool:
        """
        Check Redis connection health.

        Returns:
            True if healthy, False otherwise
        """
        try:
            if self._client and self._is_connected:
                await self._client.ping()
                return True
        except (ConnectionError, TimeoutError):
            pass
        return False

    def get_client(self) -> redis.Redis | None:
        """Get the Redis client instance."""
        return self._client

    def get_pool(self) -> ConnectionPool | None:
        """Get the connection pool instance."""
        return self._pool

    def is_connected(self) -> bool:
        """Check if connected to Redis."""
        return self._is_connected


# =============================================================================
# LAYER 2: OPERATION EXECUTOR
# Executes Redis commands with error handling and logging
# =============================================================================


class OperationExecutor:
    """
    Executes Redis operations with consistent error handling.

    Error Handling Strategy:
    - Catch RedisError exceptions
    - Log error with context (stage, key, etc.)
    - Raise CacheOperationError with details (no retries here)
    """

    def __init__(self, redis_client: redis.Redis, batch_size: int = 1000):
        """
        Args:
            redis_client: Redis client instance
            batch_size: Maximum values per RPUSH in replace_list
        """
        self._redis = redis_client
        self._batch_size = batch_size

    # -------------------------------------------------------------------------
    # List Operations (QueryLists)
    # -------------------------------------------------------------------------

    async def lrange(self, key: str, start: int = 0, stop: int = -1) -> list[str]:
        """
        Read a list slice.

        STAGE-REDIS.LRANGE: both bounds inclusive
        """
        try:
            return await self._redis.lrange(key, start, stop)
        except RedisError as e:
            logger.error("Redis LRANGE failed", stage=Stage.REDIS.value, key=key, error=str(e))
            raise CacheOperationError.from_exception(
                e, message=f"Redis LRANGE failed: {e}", scope="redis::lrange", key=key
            ) from e

    async def replace_list(self, key: str, values: Sequence[str]) -> None:
        """
        Replace a list atomically, keeping the order of values.

        STAGE-REDIS.REPLACE: MULTI / DEL / RPUSH x N / EXEC

        Values are pushed in batches of batch_size so a single command
        never carries an unbounded argument list.
        """
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.delete(key)
                for offset in range(0, len(values), self._batch_size):
                    pipe.rpush(key, *values[offset:offset + self._batch_size])
                await pipe.execute()
        except RedisError as e:
            logger.error(
                "Redis list replace failed",
                stage=Stage.REDIS.value,
                key=key,
                size=len(values),
                error=str(e),
            )
            raise CacheOperationError.from_exception(
                e, message=f"Redis list replace failed: {e}", scope="redis::replace_list", key=key
            ) from e

    # -------------------------------------------------------------------------
    # Hash Operations (buckets and the findOne index)
    # -------------------------------------------------------------------------

    async def hget(self, name: str, field: str) -> str | None:
        try:
            return await self._redis.hget(name, field)
        except RedisError as e:
            logger.error(
                "Redis HGET failed",
                stage=Stage.REDIS.value,
                name=name,
                field=field,
                error=str(e),
            )
            raise CacheOperationError.from_exception(
                e, message=f"Redis HGET failed: {e}", scope="redis::hget", name=name, field=field
            ) from e

    async def hmget(self, name: str, fields: Sequence[str]) -> list[str | None]:
        if not fields:
            return []
        try:
            return await self._redis.hmget(name, list(fields))
        except RedisError as e:
            logger.error(
                "Redis HMGET failed",
                stage=Stage.REDIS.value,
                name=name,
                fields=len(fields),
                error=str(e),
            )
            raise CacheOperationError.from_exception(
                e, message=f"Redis HMGET failed: {e}", scope="redis::hmget", name=name
            ) from e

    async def hset_many(self, name: str, mapping: Mapping[str, str]) -> int:
        """
        Set several hash fields in one HSET.

        Returns:
            Number of fields that were newly created
        """
        if not mapping:
            return 0
        try:
            return await self._redis.hset(name, mapping=dict(mapping))
        except RedisError as e:
            logger.error(
                "Redis HSET failed",
                stage=Stage.REDIS.value,
                name=name,
                fields=len(mapping),
                error=str(e),
            )
            raise CacheOperationError.from_exception(
                e, message=f"Redis HSET failed: {e}", scope="redis::hset", name=name
            ) from e

    async def hgetall(self, name: str) -> dict[str, str]:
        try:
            return await self._redis.hgetall(name)
        except RedisError as e:
            logger.error("Redis HGETALL failed", stage=Stage.REDIS.value, name=name, error=str(e))
            raise CacheOperationError.from_exception(
                e, message=f"Redis HGETALL failed: {e}", scope="redis::hgetall", name=name
            ) from e

    # -------------------------------------------------------------------------
    # Keyspace Operations
    # -------------------------------------------------------------------------

    async def scan(self, cursor: int, pattern: str, count: int | None = None) -> tuple[int, list[str]]:
        """
        One SCAN step.

        STAGE-REDIS.SCAN: used to enumerate wide-match candidates
        """
        try:
            next_cursor, keys = await self._redis.scan(cursor=cursor, match=pattern, count=count)
            return int(next_cursor), list(keys)
        except RedisError as e:
            logger.error(
                "Redis SCAN failed",
                stage=Stage.REDIS.value,
                pattern=pattern,
                cursor=cursor,
                error=str(e),
            )
            raise CacheOperationError.from_exception(
                e, message=f"Redis SCAN failed: {e}", scope="redis::scan", pattern=pattern
            ) from e

    async def scan_keys(self, pattern: str, count: int | None = None) -> list[str]:
        """
        Run SCAN until the cursor comes back to 0.

        SCAN may return a key more than once; duplicates are dropped and the
        first-seen order is kept.
        """
        seen: dict[str, None] = {}
        cursor = 0
        while True:
            cursor, keys = await self.scan(cursor, pattern, count)
            for key in keys:
                seen.setdefault(key, None)
            if cursor == 0:
                return list(seen)

    async def exists(self, *keys: str) -> int:
        try:
            return await self._redis.exists(*keys)
        except RedisError as e:
            logger.error("Redis EXISTS failed", stage=Stage.REDIS.value, keys=keys, error=str(e))
            raise CacheOperationError.from_exception(
                e, message=f"Redis EXISTS failed: {e}", scope="redis::exists", keys=list(keys)
            ) from e


# =============================================================================
# LAYER 3: HEALTH MONITORING
# Health checks and connection pool metrics
# =============================================================================


class HealthMonitor:
    """
    Monitors Redis health and connection pool metrics.

    Metrics Tracked:
    - Connection status
    - Ping latency
    - Pool size and utilization
    - Pool exhaustion warnings (>80% utilized)
    """

    def __init__(self, connection_manager: ConnectionManager, settings: Settings):
        self._conn_mgr = connection_manager
        self._settings = settings

    async def health_check(self) -> dict[str, Any]:
        """
        Perform health check on Redis connection.

        STAGE-REDIS.HEALTH: Redis health check

        Returns:
            Dict with health status and metrics
        """
        health = {
            "status": "healthy",
            "connected": self._conn_mgr.is_connected(),
            "host": self._settings.redis.REDIS_HOST,
            "port": self._settings.redis.REDIS_PORT,
            "pool_size": 0,
            "pool_available": 0,
            "pool_utilization_pct": 0,
            "pool_warning": False,
            "ping_latency_ms": None,
        }

        try:
            client = self._conn_mgr.get_client()
            if not client:
                health["status"] = "unhealthy"
                health["error"] = "Client not initialized"
                return health

            start = time.perf_counter()
            await client.ping()
            health["ping_latency_ms"] = round((time.perf_counter() - start) * 1000, 2)

            pool = self._conn_mgr.get_pool()
            if pool:
                health["pool_size"] = pool.max_connections

                if hasattr(pool, "_available_connections"):
                    available = len(pool._available_connections)
                    health["pool_available"] = available

                    utilization = 100.0 * (
                        (pool.max_connections - available) / pool.max_connections
                    )
                    health["pool_utilization_pct"] = round(utilization, 1)

                    if utilization > 80:
                        health["pool_warning"] = True
                        logger.warning(
                            "Redis pool utilization high",
                            stage=Stage.REDIS.value,
                            pool_utilization=utilization,
                            max_connections=pool.max_connections,
                        )

        except RedisError as e:
            health["status"] = "unhealthy"
            health["error"] = str(e)

        return health


# =============================================================================
# LAYER 4: PUBLIC API
# Clean interface that coordinates all layers
# =============================================================================


class RedisClient:
    """
    Async Redis client implementing the KeyValueStore protocol.

    Usage:
        client = RedisClient(settings)
        await client.connect()

        ids = await client.lrange("ff:db::users:query={}", 0, -1)
        bodies = await client.hmget("12", ids)

        await client.disconnect()

    Architecture:
        RedisClient (this class)
            ├── ConnectionManager (connection lifecycle)
            ├── OperationExecutor (command execution)
            └── HealthMonitor (health checks)
    """

    def __init__(self, settings: Settings | None = None):
        """
        Initialize Redis client.

        STAGE-REDIS.1: Client initialization
        """
        self._settings = settings or get_settings()

        self._conn_mgr = ConnectionManager(self._settings)
        self._executor: OperationExecutor | None = None
        self._health_monitor = HealthMonitor(self._conn_mgr, self._settings)

        logger.debug(
            "Redis client initialized",
            stage=Stage.REDIS.value,
            host=self._settings.redis.REDIS_HOST,
            port=self._settings.redis.REDIS_PORT,
        )

    async def connect(self) -> None:
        """
        Raises:
            CacheConnectionError: If connection fails
        """
        client = await self._conn_mgr.connect()
        self._executor = OperationExecutor(client, batch_size=self._settings.redis.REDIS_BATCH_SIZE)

    async def disconnect(self) -> None:
        self._executor = None
        await self._conn_mgr.disconnect()

    async def ping(self) -> bool:
        return await self._conn_mgr.ping()

    @property
    def is_connected(self) -> bool:
        return self._conn_mgr.is_connected()

    def _require_executor(self) -> OperationExecutor:
        if self._executor is None:
            raise CacheConnectionError(
                "Redis client is not connected",
                scope="redis::executor",
            ).with_suggestion("Call connect() before issuing commands")
        return self._executor

    # -------------------------------------------------------------------------
    # Delegate to OperationExecutor
    # -------------------------------------------------------------------------

    async def lrange(self, key: str, start: int = 0, stop: int = -1) -> list[str]:
        """Read list elements between start and stop (inclusive)."""
        return await self._require_executor().lrange(key, start, stop)

    async def replace_list(self, key: str, values: Sequence[str]) -> None:
        """Atomically replace a list."""
        await self._require_executor().replace_list(key, values)

    async def hget(self, name: str, field: str) -> str | None:
        """Get a hash field value."""
        return await self._require_executor().hget(name, field)

    async def hmget(self, name: str, fields: Sequence[str]) -> list[str | None]:
        """Get several hash field values."""
        return await self._require_executor().hmget(name, fields)

    async def hset_many(self, name: str, mapping: Mapping[str, str]) -> int:
        """Set several hash field values."""
        return await self._require_executor().hset_many(name, mapping)

    async def hgetall(self, name: str) -> dict[str, str]:
        """Get all hash fields."""
        return await self._require_executor().hgetall(name)

    async def scan(self, cursor: int, pattern: str, count: int | None = None) -> tuple[int, list[str]]:
        """One SCAN step."""
        return await self._require_executor().scan(cursor, pattern, count)

    async def scan_keys(self, pattern: str, count: int | None = None) -> list[str]:
        """All keys matching pattern."""
        return await self._require_executor().scan_keys(pattern, count)

    async def exists(self, *keys: str) -> int:
        """Check if keys exist in Redis."""
        return await self._require_executor().exists(*keys)

    async def health_check(self) -> dict[str, Any]:
        """Perform health check on Redis connection."""
        return await self._health_monitor.health_check()
