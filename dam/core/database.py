"""MongoDB connection management."""
import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Owns the Motor client for the lifetime of the process."""

    def __init__(self):
        self._client: Optional[AsyncIOMotorClient] = None
        self._db: Optional[AsyncIOMotorDatabase] = None

    async def connect(
        self,
        uri: str,
        db_name: str,
        server_selection_timeout_ms: int = 5000,
        socket_timeout_ms: int = 45000,
        max_pool_size: int = 10,
    ) -> None:
        """
        Create the client and verify the server answers.

        Raises:
            PyMongoError: if the server cannot be reached. Startup treats this as fatal.
        """
        if self._client is not None:
            logger.warning("Database already connected, skipping re-initialization")
            return

        logger.info("Connecting to MongoDB...")
        client = AsyncIOMotorClient(
            uri,
            serverSelectionTimeoutMS=server_selection_timeout_ms,
            socketTimeoutMS=socket_timeout_ms,
            maxPoolSize=max_pool_size,
        )
        try:
            await client.admin.command("ping")
        except PyMongoError as e:
            logger.error(f"MongoDB connection failed: {e}")
            client.close()
            raise

        self._client = client
        self._db = client[db_name]
        logger.info(f"MongoDB connected (database '{db_name}')")

    @property
    def client(self) -> AsyncIOMotorClient:
        if self._client is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._client

    @property
    def db(self) -> AsyncIOMotorDatabase:
        if self._db is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._db

    @property
    def is_initialized(self) -> bool:
        return self._client is not None

    async def check_connection(self) -> bool:
        if self._client is None:
            return False
        try:
            await self._client.admin.command("ping")
            return True
        except PyMongoError as e:
            logger.error(f"Database connection check failed: {e}")
            return False

    async def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            self._db = None
            logger.info("MongoDB connection closed")
