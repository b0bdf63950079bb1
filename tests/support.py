"""Shared builders and fakes for the test suite."""
import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError

from dam.core.config import Settings
from dam.repositories.memory import MemoryCacheClient

ACCESS_SECRET = "test-access-secret-0123456789abcdef"
REFRESH_SECRET = "test-refresh-secret-0123456789abcdef"


def make_settings(**overrides) -> Settings:
    values = {
        "ENVIRONMENT": "dev",
        "LOG_LEVEL": "WARNING",
        "JWT_ACCESS_TOKEN_SECRET": ACCESS_SECRET,
        "JWT_REFRESH_TOKEN_SECRET": REFRESH_SECRET,
        "BCRYPT_ROUNDS": 4,
        "STORE_BACKEND": "memory",
        "CACHE_BACKEND": "memory",
        "RATE_LIMIT_ENABLED": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeClock:
    """Settable wall clock for ``TokenCodec``."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeMonotonic:
    """Settable monotonic clock for ``CacheManager`` and ``MemoryCacheClient``."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FlakyCacheClient(MemoryCacheClient):
    """Memory cache that can be switched off, made to error, or made slow."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.down = False
        self.broken = False
        self.delay = 0.0
        self.writes: list[str] = []

    async def _check(self) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.down:
            raise RedisConnectionError("Connection refused")
        if self.broken:
            raise RedisError("WRONGTYPE Operation against a key holding the wrong kind of value")

    async def ping(self) -> bool:
        if self.down:
            raise RedisConnectionError("Connection refused")
        return True

    async def get(self, key):
        await self._check()
        return await super().get(key)

    async def set(self, key, value, ex=None):
        await self._check()
        self.writes.append(key)
        return await super().set(key, value, ex=ex)

    async def delete(self, key):
        await self._check()
        return await super().delete(key)

    async def compare_and_set(self, key, expected, value, ex):
        await self._check()
        return await super().compare_and_set(key, expected, value, ex)
