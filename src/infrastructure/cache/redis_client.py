# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Redis client backing the aggregate cache.

This module provides an async Redis client wrapper with connection pooling
and JSON serialization. It knows nothing about grades: key layout and TTL
policy live in ``src.domains.academics.cache``.

Example:
    from src.infrastructure.cache import init_redis, get_redis

    # Initialize at startup
    await init_redis(settings)

    redis = get_redis()
    await redis.set("grades:42:T1", snapshot_dict, expire_seconds=3600)
"""

import json
from typing import TYPE_CHECKING, Any, Optional

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError as BaseRedisError
from redis.exceptions import WatchError

if TYPE_CHECKING:
    from src.core.config.settings import Settings

# Module-level state
_redis_client: Optional["RedisClient"] = None


class RedisError(Exception):
    """Exception raised for Redis operation failures.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying Redis error.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


class RedisClient:
    """Async Redis client with JSON values.

    Attributes:
        pool: The Redis connection pool.

    Example:
        client = RedisClient(settings)
        await client.connect()

        await client.set("key", {"a": 1}, expire_seconds=60)
        value = await client.get("key")

        await client.close()
    """

    def __init__(self, settings: "Settings") -> None:
        """Initialize the Redis client.

        Args:
            settings: Application settings containing Redis configuration.
        """
        self._settings = settings
        self._pool: Optional[ConnectionPool] = None
        self._redis: Optional[Redis] = None

    async def connect(self) -> None:
        """Create the Redis connection pool.

        Raises:
            RedisError: If connection fails.
        """
        try:
            self._pool = ConnectionPool.from_url(
                self._settings.redis.url,
                max_connections=self._settings.redis.max_connections,
                socket_timeout=self._settings.redis.socket_timeout,
                socket_connect_timeout=self._settings.redis.socket_timeout,
                decode_responses=True,
            )
            self._redis = Redis(connection_pool=self._pool)

            # Verify connection
            await self._redis.ping()
        except BaseRedisError as e:
            raise RedisError("Failed to connect to Redis", e) from e

    async def close(self) -> None:
        """Close the Redis connection pool."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

        if self._pool is not None:
            await self._pool.disconnect()
            self._pool = None

    def _ensure_connected(self) -> Redis:
        if self._redis is None:
            raise RedisError("Redis client not connected. Call connect() first.")
        return self._redis

    @staticmethod
    def _serialize(value: Any) -> str:
        if isinstance(value, str):
            return value
        return json.dumps(value, ensure_ascii=False, default=str)

    @staticmethod
    def _deserialize(value: Optional[str]) -> Any:
        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value

    async def set(
        self,
        key: str,
        value: Any,
        expire_seconds: Optional[int] = None,
    ) -> None:
        """Set a key-value pair, replacing any previous value.

        Args:
            key: The key.
            value: The value (will be JSON serialized if not a string).
            expire_seconds: Optional expiration time in seconds.

        Raises:
            RedisError: If the operation fails.
        """
        redis = self._ensure_connected()
        try:
            await redis.set(key, self._serialize(value), ex=expire_seconds)
        except BaseRedisError as e:
            raise RedisError(f"Failed to set key: {key}", e) from e

    async def get(self, key: str) -> Any:
        """Get a value by key.

        Args:
            key: The key.

        Returns:
            The deserialized value or None if not found.

        Raises:
            RedisError: If the operation fails.
        """
        redis = self._ensure_connected()
        try:
            value = await redis.get(key)
            return self._deserialize(value)
        except BaseRedisError as e:
            raise RedisError(f"Failed to get key: {key}", e) from e

    async def delete(self, key: str) -> bool:
        """Delete a key.

        Args:
            key: The key to delete.

        Returns:
            True if the key was deleted, False if it didn't exist.

        Raises:
            RedisError: If the operation fails.
        """
        redis = self._ensure_connected()
        try:
            result = await redis.delete(key)
            return result > 0
        except BaseRedisError as e:
            raise RedisError(f"Failed to delete key: {key}", e) from e

    async def incr(self, key: str, expire_seconds: Optional[int] = None) -> int:
        """Increment an integer counter, creating it at 1.

        Args:
            key: The counter key.
            expire_seconds: Optional expiration refreshed on every increment.

        Returns:
            The counter value after the increment.

        Raises:
            RedisError: If the operation fails.
        """
        redis = self._ensure_connected()
        try:
            async with redis.pipeline(transaction=True) as pipe:
                pipe.incr(key)
                if expire_seconds:
                    pipe.expire(key, expire_seconds)
                results = await pipe.execute()
            return int(results[0])
        except BaseRedisError as e:
            raise RedisError(f"Failed to increment key: {key}", e) from e

    async def set_if_unchanged(
        self,
        key: str,
        value: Any,
        guard_key: str,
        expected: int,
        expire_seconds: Optional[int] = None,
    ) -> bool:
        """Set a key only while a guard counter still holds the expected value.

        The guard is WATCHed, so an increment landing between the check and
        the write aborts the transaction. An absent guard counts as 0.

        Args:
            key: The key.
            value: The value (will be JSON serialized if not a string).
            guard_key: Counter that must be unchanged.
            expected: Guard value read before the value was computed.
            expire_seconds: Optional expiration time in seconds.

        Returns:
            True if the value was written, False if the guard moved.

        Raises:
            RedisError: If the operation fails.
        """
        redis = self._ensure_connected()
        try:
            async with redis.pipeline(transaction=True) as pipe:
                await pipe.watch(guard_key)
                current = await pipe.get(guard_key)
                if int(current or 0) != expected:
                    return False
                pipe.multi()
                pipe.set(key, self._serialize(value), ex=expire_seconds)
                await pipe.execute()
            return True
        except WatchError:
            return False
        except BaseRedisError as e:
            raise RedisError(f"Failed to set key: {key}", e) from e

    async def ping(self) -> bool:
        """Check if Redis is reachable.

        Returns:
            True if Redis responds to ping, False otherwise.
        """
        try:
            redis = self._ensure_connected()
            await redis.ping()
            return True
        except (RedisError, BaseRedisError):
            return False


# ========== Module-level functions ==========


async def init_redis(settings: "Settings") -> None:
    """Initialize the global Redis client.

    This should be called once at application startup.

    Raises:
        RedisError: If connection fails.
    """
    global _redis_client

    _redis_client = RedisClient(settings)
    await _redis_client.connect()


async def close_redis() -> None:
    """Close the global Redis client at application shutdown."""
    global _redis_client

    if _redis_client is not None:
        await _redis_client.close()
        _redis_client = None


def get_redis() -> RedisClient:
    """Get the global Redis client.

    Raises:
        RedisError: If Redis has not been initialized.
    """
    if _redis_client is None:
        raise RedisError("Redis not initialized. Call init_redis() first.")
    return _redis_client
