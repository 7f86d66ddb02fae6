# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Cache infrastructure using Redis.

This package provides the Redis client backing the student aggregate cache.

Example:
    from src.infrastructure.cache import init_redis, get_redis, close_redis

    # Initialize at application startup
    await init_redis(settings)

    redis = get_redis()
    await redis.set("grades:42:T1", {"overall_average": 15.17}, expire_seconds=3600)

    # Cleanup at shutdown
    await close_redis()
"""

from src.infrastructure.cache.redis_client import (
    RedisClient,
    RedisError,
    close_redis,
    get_redis,
    init_redis,
)

__all__ = [
    "RedisClient",
    "RedisError",
    "close_redis",
    "get_redis",
    "init_redis",
]
