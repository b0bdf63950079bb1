import logging
from typing import Any, Iterable, Optional

from dam.core.constants import AssetErrorDetails
from dam.core.exceptions import NotFoundError
from dam.core.transaction import TransactionCoordinator
from dam.interfaces.asset_repository import IAssetRepository
from dam.services.storage import LocalFileStorage, StoredFile

logger = logging.getLogger(__name__)


def parse_tags(tags: str | Iterable[str] | None) -> list[str]:
    """Accept a comma-separated string or a list; drop blanks and duplicates, keep order."""
    if not tags:
        return []
    items = tags.split(",") if isinstance(tags, str) else tags
    seen: dict[str, None] = {}
    for item in items:
        tag = item.strip()
        if tag:
            seen.setdefault(tag, None)
    return list(seen)


class AssetService:
    def __init__(
        self,
        asset_repository: IAssetRepository,
        storage: LocalFileStorage,
        transactions: TransactionCoordinator,
    ):
        self.asset_repository = asset_repository
        self.storage = storage
        self.transactions = transactions

    async def create_asset(
        self,
        owner_id: str,
        stored_file: StoredFile,
        description: str = "",
        tags: str | Iterable[str] | None = None,
    ) -> dict[str, Any]:
        """Record an uploaded file as an asset. The file is removed if the record is not committed."""
        asset_data = {
            "title": stored_file.original_name,
            "description": description or "",
            "file_path": stored_file.path,
            "file_type": stored_file.mime_type,
            "file_size": stored_file.size,
            "owner_id": owner_id,
            "tags": parse_tags(tags),
        }
        try:
            async with self.transactions.transaction() as session:
                asset = await self.asset_repository.create(asset_data, session=session)
        except BaseException:
            self.storage.delete(stored_file.path)
            raise

        logger.info(f"Created asset {asset['id']} for {owner_id}")
        return asset

    async def list_assets(self, owner_id: str) -> list[dict[str, Any]]:
        return await self.asset_repository.list_by_owner(owner_id)

    async def get_asset(self, asset_id: str, owner_id: str) -> dict[str, Any]:
        asset: Optional[dict] = await self.asset_repository.get(asset_id, owner_id)
        if not asset:
            raise NotFoundError(AssetErrorDetails.ASSET_NOT_FOUND, data={"asset_id": asset_id})
        return asset

    async def delete_asset(self, asset_id: str, owner_id: str) -> None:
        deleted = await self.asset_repository.soft_delete(asset_id, owner_id)
        if not deleted:
            raise NotFoundError(AssetErrorDetails.ASSET_ALREADY_DELETED, data={"asset_id": asset_id})
        logger.info(f"Soft-deleted asset {asset_id}")
