"""Refresh-token revocation store backed by the cache."""
import hmac
import logging
from typing import Optional

from dam.core.cache import CacheClient, CacheManager, CacheResult

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_TTL_SECONDS = 7 * 24 * 60 * 60


class RevocationStore:
    """Maps an identity to its single live refresh token.

    Absence of the key means the identity holds no valid refresh token.
    Every call returns a ``CacheResult``; cache failures are never raised.
    """

    def __init__(
        self,
        cache: CacheManager,
        key_prefix: str = "refresh_token:",
        default_ttl: int = DEFAULT_REFRESH_TTL_SECONDS,
    ):
        self._cache = cache
        self._key_prefix = key_prefix
        self._default_ttl = default_ttl

    def _key(self, identity: str) -> str:
        return f"{self._key_prefix}{identity}"

    async def is_available(self) -> bool:
        return await self._cache.is_available()

    async def put(self, identity: str, token: str, ttl_seconds: Optional[int] = None) -> CacheResult[bool]:
        """Store ``token`` as the identity's current refresh token, replacing any previous one."""
        key = self._key(identity)
        ttl = ttl_seconds or self._default_ttl

        async def op(client: CacheClient) -> bool:
            return await client.set(key, token, ex=ttl)

        result = await self._cache.run("put", op, False)
        if not result.ok:
            logger.warning(f"Refresh token for {identity} not stored ({result.status})")
        return result

    async def get(self, identity: str) -> CacheResult[Optional[str]]:
        key = self._key(identity)

        async def op(client: CacheClient) -> Optional[str]:
            return await client.get(key)

        return await self._cache.run("get", op, None)

    async def validate(self, identity: str, token: str) -> CacheResult[bool]:
        """True iff the stored token equals ``token``. Unconfirmable state reads as False."""
        key = self._key(identity)

        async def op(client: CacheClient) -> bool:
            stored = await client.get(key)
            if stored is None:
                return False
            return hmac.compare_digest(stored.encode("utf-8"), token.encode("utf-8"))

        return await self._cache.run("validate", op, False)

    async def invalidate(self, identity: str) -> CacheResult[bool]:
        """Remove the identity's refresh token. Returns True only if something was removed."""
        key = self._key(identity)

        async def op(client: CacheClient) -> bool:
            return await client.delete(key) > 0

        result = await self._cache.run("invalidate", op, False)
        if result.ok and not result.value:
            logger.debug(f"No refresh token to invalidate for {identity}")
        return result

    async def rotate(
        self,
        identity: str,
        expected: str,
        token: str,
        ttl_seconds: Optional[int] = None,
    ) -> CacheResult[bool]:
        """Atomically replace ``expected`` with ``token``; False if another writer got there first."""
        key = self._key(identity)
        ttl = ttl_seconds or self._default_ttl

        async def op(client: CacheClient) -> bool:
            return await client.compare_and_set(key, expected, token, ex=ttl)

        return await self._cache.run("rotate", op, False)
