"""Redis client wrapper and the cache connection lifecycle."""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import StrEnum
from typing import Awaitable, Callable, Generic, Optional, Protocol, TypeVar

import redis.asyncio as aioredis
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError
from redis.retry import Retry

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheClient(Protocol):
    async def ping(self) -> bool:
        ...

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        ...

    async def delete(self, key: str) -> int:
        ...

    async def compare_and_set(self, key: str, expected: str, value: str, ex: int) -> bool:
        ...

    async def close(self) -> None:
        ...


class RedisCacheClient:
    """Thin wrapper over ``redis.asyncio`` exposing the primitives the app uses."""

    # Atomic compare-and-swap: replace the value only if it still matches.
    _COMPARE_AND_SET_SCRIPT = """
local current = redis.call('GET', KEYS[1])
if current == ARGV[1] then
  redis.call('SET', KEYS[1], ARGV[2], 'EX', tonumber(ARGV[3]))
  return 1
end
return 0
"""

    def __init__(
        self,
        redis_url: str,
        *,
        socket_timeout: float = 5.0,
        connect_timeout: float = 10.0,
        retry_attempts: int = 10,
    ) -> None:
        self.redis_url = redis_url
        self.client = aioredis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=connect_timeout,
            retry=Retry(ExponentialBackoff(cap=3.0, base=0.1), retry_attempts),
            retry_on_error=[RedisConnectionError],
        )
        self._compare_and_set = self.client.register_script(self._COMPARE_AND_SET_SCRIPT)

    async def ping(self) -> bool:
        return bool(await self.client.ping())

    async def get(self, key: str) -> Optional[str]:
        return await self.client.get(key)

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        return bool(await self.client.set(key, value, ex=ex))

    async def delete(self, key: str) -> int:
        return int(await self.client.delete(key))

    async def compare_and_set(self, key: str, expected: str, value: str, ex: int) -> bool:
        swapped = await self._compare_and_set(keys=[key], args=[expected, value, ex])
        return bool(int(swapped))

    async def close(self) -> None:
        await self.client.aclose()


class CacheStatus(StrEnum):
    OK = "ok"
    DEGRADED = "degraded"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class CacheResult(Generic[T]):
    """Outcome of a cache operation that never raises.

    ``value`` holds the operation's result when ``status`` is OK and the
    caller-supplied fallback otherwise.
    """
    status: CacheStatus
    value: T

    @property
    def ok(self) -> bool:
        return self.status is CacheStatus.OK


class CacheManager:
    """Owns the cache client for the lifetime of the process.

    Every cache call goes through :meth:`run`, which consults the liveness
    probe, applies the per-operation timeout and converts failures into a
    ``CacheResult`` carrying the fallback value.
    """

    def __init__(
        self,
        *,
        operation_timeout: float = 5.0,
        reconnect_interval: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client: CacheClient | None = None
        self._connected = False
        self._last_probe = 0.0
        self.operation_timeout = operation_timeout
        self.reconnect_interval = reconnect_interval
        self._clock = clock

    @property
    def client(self) -> CacheClient | None:
        return self._client if self._connected else None

    @property
    def is_connected(self) -> bool:
        return self._client is not None and self._connected

    async def connect(self, client: CacheClient) -> bool:
        """Attach a client and verify it answers. Failure leaves the cache unavailable."""
        self._client = client
        self._connected = await self._probe()
        if self._connected:
            logger.info("Cache client connected")
        else:
            logger.warning("Cache unavailable at startup; refresh tokens cannot be confirmed until it recovers")
        return self._connected

    async def disconnect(self) -> None:
        if self._client is None:
            return
        try:
            await self._client.close()
            logger.info("Cache client disconnected")
        except (RedisError, OSError) as e:
            logger.error(f"Error disconnecting from cache: {e}")
        finally:
            self._client = None
            self._connected = False

    async def _probe(self) -> bool:
        self._last_probe = self._clock()
        try:
            return bool(await asyncio.wait_for(self._client.ping(), timeout=self.operation_timeout))
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            logger.warning(f"Cache liveness probe failed: {e}")
            return False

    async def is_available(self) -> bool:
        """Report whether the cache can be used, re-probing a down cache at a bounded rate."""
        if self._client is None:
            return False
        if self._connected:
            return True
        if self._clock() - self._last_probe < self.reconnect_interval:
            return False
        self._connected = await self._probe()
        if self._connected:
            logger.info("Cache connection recovered")
        return self._connected

    async def run(
        self,
        operation_name: str,
        operation: Callable[[CacheClient], Awaitable[T]],
        fallback: T,
    ) -> CacheResult[T]:
        if not await self.is_available():
            return CacheResult(CacheStatus.UNAVAILABLE, fallback)

        try:
            value = await asyncio.wait_for(operation(self._client), timeout=self.operation_timeout)
        # TimeoutError subclasses OSError, so it must be matched first.
        except (asyncio.TimeoutError, RedisTimeoutError):
            logger.warning(f"Cache {operation_name} timed out after {self.operation_timeout}s")
            return CacheResult(CacheStatus.DEGRADED, fallback)
        except (RedisConnectionError, ConnectionError, OSError) as e:
            self._connected = False
            self._last_probe = self._clock()
            logger.warning(f"Cache connection lost during {operation_name}: {e}")
            return CacheResult(CacheStatus.UNAVAILABLE, fallback)
        except RedisError as e:
            logger.warning(f"Cache {operation_name} failed: {e}")
            return CacheResult(CacheStatus.DEGRADED, fallback)

        return CacheResult(CacheStatus.OK, value)
