"""Redis connection shared by the per-client locks.

The pool is created on first use, so deployments running with the local
lock backend never open a Redis connection.
"""

from typing import Optional

import redis.asyncio as aioredis

from mytaxi.config import settings

_pool: Optional[aioredis.ConnectionPool] = None


async def get_redis() -> aioredis.Redis:
    global _pool
    if _pool is None:
        _pool = aioredis.ConnectionPool.from_url(
            settings.redis_url,
            decode_responses=True,
            max_connections=settings.redis_max_connections,
        )
    return aioredis.Redis(connection_pool=_pool)


async def close_redis() -> None:
    """Drop pooled connections; the next ``get_redis`` builds a new pool."""
    global _pool
    if _pool is not None:
        await _pool.disconnect()
        _pool = None
