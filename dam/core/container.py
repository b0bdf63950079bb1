"""Process-wide wiring of handles and services.

Built once during the FastAPI lifespan and stored on ``app.state``; endpoints
reach services through ``dam.core.dependencies``.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from dam.core.cache import CacheClient, CacheManager, RedisCacheClient
from dam.core.config import Settings
from dam.core.database import DatabaseManager
from dam.core.security import TokenCodec
from dam.core.transaction import TransactionCoordinator
from dam.interfaces.asset_repository import IAssetRepository
from dam.interfaces.user_repository import IUserRepository
from dam.repositories.asset_repository import AssetRepository
from dam.repositories.memory import (
    MemoryAssetRepository,
    MemoryCacheClient,
    MemoryDocumentClient,
    MemoryUserRepository,
)
from dam.repositories.revocation_store import RevocationStore
from dam.repositories.user_repository import UserRepository
from dam.services.asset import AssetService
from dam.services.auth import AuthService
from dam.services.health import HealthCheckService
from dam.services.storage import LocalFileStorage

logger = logging.getLogger(__name__)


@dataclass
class Container:
    settings: Settings
    token_codec: TokenCodec
    cache: CacheManager
    revocation_store: RevocationStore
    transactions: TransactionCoordinator
    user_repository: IUserRepository
    asset_repository: IAssetRepository
    storage: LocalFileStorage
    auth_service: AuthService
    asset_service: AssetService
    health_service: HealthCheckService
    database: Optional[DatabaseManager] = None

    async def close(self) -> None:
        await self.cache.disconnect()
        if self.database is not None:
            await self.database.close()


def build_token_codec(settings: Settings) -> TokenCodec:
    return TokenCodec(
        settings.JWT_ACCESS_TOKEN_SECRET,
        settings.JWT_REFRESH_TOKEN_SECRET,
        algorithm=settings.ALGORITHM,
        access_ttl=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        refresh_ttl=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )


def build_cache_client(settings: Settings) -> CacheClient:
    if settings.CACHE_BACKEND == "memory":
        return MemoryCacheClient()
    return RedisCacheClient(
        settings.REDIS_URL,
        socket_timeout=settings.REDIS_OPERATION_TIMEOUT_SECONDS,
        connect_timeout=settings.REDIS_CONNECT_TIMEOUT_SECONDS,
        retry_attempts=settings.REDIS_RETRY_ATTEMPTS,
    )


async def build_container(settings: Settings) -> Container:
    """
    Construct every handle and service for one process.

    A database that cannot be reached aborts startup. A cache that cannot be
    reached only leaves the revocation store unavailable.
    """
    database: Optional[DatabaseManager] = None

    if settings.STORE_BACKEND == "memory":
        logger.warning("Using in-memory document store; data is lost on restart")
        document_client = MemoryDocumentClient()
        transactions = TransactionCoordinator(document_client)
        user_repository: IUserRepository = MemoryUserRepository(document_client)
        asset_repository: IAssetRepository = MemoryAssetRepository(document_client)
        database_check = document_client.ping
    else:
        database = DatabaseManager()
        await database.connect(
            settings.MONGO_URI,
            settings.MONGO_DB_NAME,
            server_selection_timeout_ms=settings.MONGO_SERVER_SELECTION_TIMEOUT_MS,
            socket_timeout_ms=settings.MONGO_SOCKET_TIMEOUT_MS,
            max_pool_size=settings.MONGO_MAX_POOL_SIZE,
        )
        transactions = TransactionCoordinator(database.client)
        user_repository = UserRepository(database.db)
        asset_repository = AssetRepository(database.db)
        await user_repository.ensure_indexes()
        await asset_repository.ensure_indexes()
        database_check = database.check_connection

    cache = CacheManager(
        operation_timeout=settings.REDIS_OPERATION_TIMEOUT_SECONDS,
        reconnect_interval=settings.REDIS_RECONNECT_INTERVAL_SECONDS,
    )
    await cache.connect(build_cache_client(settings))

    token_codec = build_token_codec(settings)
    revocation_store = RevocationStore(
        cache,
        key_prefix=settings.REFRESH_TOKEN_KEY_PREFIX,
        default_ttl=settings.refresh_token_ttl_seconds,
    )
    storage = LocalFileStorage(settings.UPLOAD_DIR, settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024)

    return Container(
        settings=settings,
        token_codec=token_codec,
        cache=cache,
        revocation_store=revocation_store,
        transactions=transactions,
        user_repository=user_repository,
        asset_repository=asset_repository,
        storage=storage,
        auth_service=AuthService(
            user_repository=user_repository,
            token_codec=token_codec,
            revocation_store=revocation_store,
            transactions=transactions,
            bcrypt_rounds=settings.BCRYPT_ROUNDS,
        ),
        asset_service=AssetService(asset_repository, storage, transactions),
        health_service=HealthCheckService(
            database_check=database_check,
            database_type=settings.STORE_BACKEND,
            cache=cache,
        ),
        database=database,
    )
