"""In-memory document store, repositories and cache client.

Used when ``STORE_BACKEND``/``CACHE_BACKEND`` is ``memory`` (local development
and tests). Sessions mirror the Motor session surface closely enough for
``TransactionCoordinator``: writes made under an active transaction are staged
and only become visible when the transaction commits.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from bson import ObjectId

from dam.core.constants import AssetErrorDetails, AssetStatus, AuthErrorDetails, UserRole
from dam.core.exceptions import ConflictError
from dam.interfaces.asset_repository import IAssetRepository
from dam.interfaces.user_repository import IUserRepository
from dam.repositories.asset_repository import asset_document_to_dict, build_asset_document, parse_object_id
from dam.repositories.user_repository import normalize_email, user_document_to_dict

Collections = dict[str, dict[str, dict[str, Any]]]
WriteOp = Callable[[Collections], None]


class MemorySession:
    def __init__(self, client: MemoryDocumentClient) -> None:
        self._client = client
        self._staged: list[WriteOp] = []
        self.in_transaction = False
        self.has_ended = False

    def start_transaction(self) -> None:
        if self.in_transaction:
            raise RuntimeError("Transaction already in progress")
        self._staged = []
        self.in_transaction = True

    def stage(self, op: WriteOp) -> None:
        self._staged.append(op)

    async def commit_transaction(self) -> None:
        if not self.in_transaction:
            raise RuntimeError("No transaction started")
        staged, self._staged = self._staged, []
        self.in_transaction = False
        await self._client.apply(staged)
        self._client.commits += 1

    async def abort_transaction(self) -> None:
        if not self.in_transaction:
            raise RuntimeError("No transaction started")
        self._staged = []
        self.in_transaction = False
        self._client.aborts += 1

    async def end_session(self) -> None:
        if self.in_transaction:
            await self.abort_transaction()
        self.has_ended = True


class MemoryDocumentClient:
    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self.collections: Collections = {}
        self.commits = 0
        self.aborts = 0

    async def ping(self) -> bool:
        return True

    async def start_session(self) -> MemorySession:
        return MemorySession(self)

    def collection(self, name: str) -> dict[str, dict[str, Any]]:
        return self.collections.setdefault(name, {})

    async def apply(self, ops: list[WriteOp]) -> None:
        """Apply ``ops`` all-or-nothing against a working copy of the collections."""
        async with self._lock:
            working = {name: dict(docs) for name, docs in self.collections.items()}
            for op in ops:
                op(working)
            self.collections = working

    async def write(self, op: WriteOp, session: Optional[MemorySession] = None) -> None:
        if session is not None and session.in_transaction:
            session.stage(op)
        else:
            await self.apply([op])


class MemoryUserRepository(IUserRepository):
    collection_name = "users"

    def __init__(self, client: MemoryDocumentClient) -> None:
        self._client = client

    def _users(self) -> dict[str, dict[str, Any]]:
        return self._client.collection(self.collection_name)

    async def get_by_email(self, email: str, session: Any = None) -> Optional[dict]:
        email = normalize_email(email)
        for doc in self._users().values():
            if doc["email"] == email:
                return user_document_to_dict(doc)
        return None

    async def get_by_id(self, user_id: str, session: Any = None) -> Optional[dict]:
        doc = self._users().get(user_id)
        return user_document_to_dict(doc) if doc else None

    async def create(self, user_data: dict, session: Any = None) -> dict:
        now = datetime.now(timezone.utc)
        doc = {
            "_id": str(ObjectId()),
            "email": normalize_email(user_data["email"]),
            "password_hash": user_data["password_hash"],
            "role": str(user_data.get("role", UserRole.USER)),
            "created_at": now,
            "updated_at": now,
        }

        def insert(collections: Collections) -> None:
            users = collections.setdefault(self.collection_name, {})
            # Unique email index equivalent, checked when the write is applied.
            if any(existing["email"] == doc["email"] for existing in users.values()):
                raise ConflictError(AuthErrorDetails.USER_ALREADY_EXISTS)
            users[doc["_id"]] = dict(doc)

        await self._client.write(insert, session)
        return user_document_to_dict(doc)


class MemoryAssetRepository(IAssetRepository):
    collection_name = "assets"

    def __init__(self, client: MemoryDocumentClient) -> None:
        self._client = client

    def _assets(self) -> dict[str, dict[str, Any]]:
        return self._client.collection(self.collection_name)

    @staticmethod
    def _copy(doc: dict) -> dict:
        asset = asset_document_to_dict(doc)
        asset["tags"] = list(asset["tags"])
        return asset

    def _find_active(self, asset_id: str, owner_id: str) -> Optional[dict]:
        parse_object_id(asset_id, AssetErrorDetails.INVALID_ASSET_ID)
        parse_object_id(owner_id, AssetErrorDetails.INVALID_OWNER_ID)
        doc = self._assets().get(asset_id)
        if doc is None or doc["owner_id"] != owner_id or doc["status"] != AssetStatus.ACTIVE:
            return None
        return doc

    async def create(self, asset_data: dict, session: Any = None) -> dict:
        parse_object_id(asset_data["owner_id"], AssetErrorDetails.INVALID_OWNER_ID)
        doc = build_asset_document(asset_data)
        doc["_id"] = str(ObjectId())
        doc["owner_id"] = asset_data["owner_id"]

        def insert(collections: Collections) -> None:
            collections.setdefault(self.collection_name, {})[doc["_id"]] = dict(doc)

        await self._client.write(insert, session)
        return self._copy(doc)

    async def list_by_owner(self, owner_id: str) -> list[dict]:
        parse_object_id(owner_id, AssetErrorDetails.INVALID_OWNER_ID)
        owned = [
            doc for doc in reversed(list(self._assets().values()))
            if doc["owner_id"] == owner_id and doc["status"] == AssetStatus.ACTIVE
        ]
        owned.sort(key=lambda doc: doc["created_at"], reverse=True)
        return [self._copy(doc) for doc in owned]

    async def get(self, asset_id: str, owner_id: str) -> Optional[dict]:
        doc = self._find_active(asset_id, owner_id)
        return self._copy(doc) if doc else None

    async def soft_delete(self, asset_id: str, owner_id: str) -> bool:
        if self._find_active(asset_id, owner_id) is None:
            return False

        def mark_deleted(collections: Collections) -> None:
            assets = collections[self.collection_name]
            assets[asset_id] = {**assets[asset_id], "status": AssetStatus.DELETED.value}

        await self._client.write(mark_deleted)
        return True


class MemoryCacheClient:
    """Dictionary-backed stand-in for ``RedisCacheClient`` with per-key expiry."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._lock = asyncio.Lock()
        self._data: dict[str, tuple[str, float | None]] = {}
        self._clock = clock

    def _live(self, key: str) -> Optional[str]:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and expires_at <= self._clock():
            del self._data[key]
            return None
        return value

    async def ping(self) -> bool:
        return True

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            return self._live(key)

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        async with self._lock:
            expires_at = self._clock() + ex if ex else None
            self._data[key] = (value, expires_at)
            return True

    async def delete(self, key: str) -> int:
        async with self._lock:
            if self._live(key) is None:
                return 0
            del self._data[key]
            return 1

    async def compare_and_set(self, key: str, expected: str, value: str, ex: int) -> bool:
        async with self._lock:
            if self._live(key) != expected:
                return False
            self._data[key] = (value, self._clock() + ex)
            return True

    async def close(self) -> None:
        pass
