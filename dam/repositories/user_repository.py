"""User repository implementation using MongoDB."""
from datetime import datetime, timezone
from typing import Any, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError

from dam.core.constants import AuthErrorDetails, UserRole
from dam.core.exceptions import ConflictError
from dam.interfaces.user_repository import IUserRepository


def normalize_email(email: str) -> str:
    return email.strip().lower()


def user_document_to_dict(doc: dict) -> dict:
    """Convert a stored document into the dict shape the services use."""
    user = dict(doc)
    user["id"] = str(user.pop("_id"))
    return user


class UserRepository(IUserRepository):
    """MongoDB implementation of user repository using Motor."""

    collection_name = "users"

    def __init__(self, db: AsyncIOMotorDatabase):
        self._collection = db[self.collection_name]

    async def ensure_indexes(self) -> None:
        await self._collection.create_index([("email", ASCENDING)], unique=True)

    async def get_by_email(self, email: str, session: Any = None) -> Optional[dict]:
        doc = await self._collection.find_one({"email": normalize_email(email)}, session=session)
        return user_document_to_dict(doc) if doc else None

    async def get_by_id(self, user_id: str, session: Any = None) -> Optional[dict]:
        if not ObjectId.is_valid(user_id):
            return None
        doc = await self._collection.find_one({"_id": ObjectId(user_id)}, session=session)
        return user_document_to_dict(doc) if doc else None

    async def create(self, user_data: dict, session: Any = None) -> dict:
        """Insert a credential. The unique email index turns races into conflicts."""
        now = datetime.now(timezone.utc)
        doc = {
            "email": normalize_email(user_data["email"]),
            "password_hash": user_data["password_hash"],
            "role": str(user_data.get("role", UserRole.USER)),
            "created_at": now,
            "updated_at": now,
        }
        try:
            result = await self._collection.insert_one(doc, session=session)
        except DuplicateKeyError:
            raise ConflictError(AuthErrorDetails.USER_ALREADY_EXISTS)

        doc["_id"] = result.inserted_id
        return user_document_to_dict(doc)
