"""Asset repository implementation using MongoDB."""
from datetime import datetime, timezone
from typing import Any, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument

from dam.core.constants import AssetErrorDetails, AssetStatus
from dam.core.exceptions import ValidationError
from dam.interfaces.asset_repository import IAssetRepository


def parse_object_id(value: str, message: str) -> ObjectId:
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        raise ValidationError(message)
    return ObjectId(value)


def asset_document_to_dict(doc: dict) -> dict:
    asset = dict(doc)
    asset["id"] = str(asset.pop("_id"))
    asset["owner_id"] = str(asset["owner_id"])
    return asset


def build_asset_document(asset_data: dict) -> dict:
    """Fill defaults shared by every store implementation."""
    return {
        "title": asset_data["title"],
        "description": asset_data.get("description", ""),
        "file_path": asset_data["file_path"],
        "file_type": asset_data["file_type"],
        "file_size": asset_data["file_size"],
        "tags": list(asset_data.get("tags") or []),
        "status": AssetStatus.ACTIVE.value,
        "thumbnail_url": None,
        "created_at": datetime.now(timezone.utc),
    }


class AssetRepository(IAssetRepository):
    """MongoDB implementation of asset repository using Motor."""

    collection_name = "assets"

    def __init__(self, db: AsyncIOMotorDatabase):
        self._collection = db[self.collection_name]

    async def ensure_indexes(self) -> None:
        await self._collection.create_index([("owner_id", 1), ("status", 1), ("created_at", DESCENDING)])

    async def create(self, asset_data: dict, session: Any = None) -> dict:
        doc = build_asset_document(asset_data)
        doc["owner_id"] = parse_object_id(asset_data["owner_id"], AssetErrorDetails.INVALID_OWNER_ID)
        result = await self._collection.insert_one(doc, session=session)
        doc["_id"] = result.inserted_id
        return asset_document_to_dict(doc)

    async def list_by_owner(self, owner_id: str) -> list[dict]:
        owner = parse_object_id(owner_id, AssetErrorDetails.INVALID_OWNER_ID)
        cursor = self._collection.find(
            {"owner_id": owner, "status": AssetStatus.ACTIVE.value}
        ).sort("created_at", DESCENDING)
        return [asset_document_to_dict(doc) async for doc in cursor]

    async def get(self, asset_id: str, owner_id: str) -> Optional[dict]:
        doc = await self._collection.find_one({
            "_id": parse_object_id(asset_id, AssetErrorDetails.INVALID_ASSET_ID),
            "owner_id": parse_object_id(owner_id, AssetErrorDetails.INVALID_OWNER_ID),
            "status": AssetStatus.ACTIVE.value,
        })
        return asset_document_to_dict(doc) if doc else None

    async def soft_delete(self, asset_id: str, owner_id: str) -> bool:
        doc = await self._collection.find_one_and_update(
            {
                "_id": parse_object_id(asset_id, AssetErrorDetails.INVALID_ASSET_ID),
                "owner_id": parse_object_id(owner_id, AssetErrorDetails.INVALID_OWNER_ID),
                "status": AssetStatus.ACTIVE.value,
            },
            {"$set": {"status": AssetStatus.DELETED.value}},
            return_document=ReturnDocument.AFTER,
        )
        return doc is not None
