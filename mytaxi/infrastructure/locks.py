"""
Per-client exclusive sections.

Every lifecycle operation runs inside the owning client's section so that
check-then-act sequences (single active order, terminal transition, ledger
update) cannot interleave.

* ``DistributedLock`` -- Redis-based, for several API processes.  Uses
  SET NX EX for acquire and a Lua script for atomic check-and-delete on
  release.  The TTL bounds how long a crashed holder can block others.
* ``LocalLockProvider`` -- ``asyncio.Lock`` per key, for a single process.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable

import redis.asyncio as aioredis

from mytaxi.domain.errors import LockTimeout

from .redis_client import get_redis

logger = logging.getLogger(__name__)

_RELEASE_LUA = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class DistributedLock:
    def __init__(
        self,
        client: aioredis.Redis,
        key: str,
        ttl_seconds: int = 30,
        wait_seconds: float = 0.0,
        poll_seconds: float = 0.05,
    ):
        self.redis = client
        self.key = f"lock:{key}"
        self.ttl = ttl_seconds
        self.wait = wait_seconds
        self.poll = poll_seconds
        self.token = str(uuid.uuid4())

    async def try_acquire(self) -> bool:
        """One attempt. Returns True on success."""
        return bool(
            await self.redis.set(self.key, self.token, nx=True, ex=self.ttl)
        )

    async def acquire(self) -> bool:
        """Retry until acquired or ``wait_seconds`` elapsed."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.wait
        while True:
            if await self.try_acquire():
                return True
            if loop.time() >= deadline:
                return False
            await asyncio.sleep(self.poll)

    async def release(self) -> None:
        """Release only if we still own the lock (atomic via Lua)."""
        await self.redis.eval(_RELEASE_LUA, 1, self.key, self.token)

    # context-manager support
    async def __aenter__(self):
        acquired = await self.acquire()
        if not acquired:
            raise LockTimeout(f"Could not acquire lock: {self.key}")
        return self

    async def __aexit__(self, *args):
        await self.release()


class RedisLockProvider:
    def __init__(
        self,
        redis_factory: Callable[[], Awaitable[aioredis.Redis]],
        ttl_seconds: int = 30,
        wait_seconds: float = 5.0,
        poll_seconds: float = 0.05,
    ):
        self.redis_factory = redis_factory
        self.ttl = ttl_seconds
        self.wait = wait_seconds
        self.poll = poll_seconds

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        client = await self.redis_factory()
        async with DistributedLock(
            client, key, self.ttl, self.wait, self.poll
        ):
            yield


class LocalLockProvider:
    """One ``asyncio.Lock`` per key, dropped once nobody holds or awaits it."""

    def __init__(self, wait_seconds: float = 5.0):
        self.wait = wait_seconds
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=self.wait)
            except asyncio.TimeoutError as exc:
                raise LockTimeout(f"Could not acquire lock: lock:{key}") from exc
            try:
                yield
            finally:
                lock.release()
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]


def client_lock_key(client_id: int) -> str:
    return f"client:{client_id}"


def lock_provider_from_settings(settings):
    if settings.lock_backend == "local":
        return LocalLockProvider(settings.lock_wait_seconds)
    logger.info("Using Redis locks at %s", settings.redis_url)
    return RedisLockProvider(
        get_redis,
        ttl_seconds=settings.lock_ttl_seconds,
        wait_seconds=settings.lock_wait_seconds,
        poll_seconds=settings.lock_poll_seconds,
    )
