from abc import ABC, abstractmethod
from typing import Any, Optional


class IAssetRepository(ABC):
    @abstractmethod
    async def create(self, asset_data: dict, session: Any = None) -> dict:
        """Insert a new asset record and return it."""
        pass

    @abstractmethod
    async def list_by_owner(self, owner_id: str) -> list[dict]:
        """Active assets of an owner, newest first."""
        pass

    @abstractmethod
    async def get(self, asset_id: str, owner_id: str) -> Optional[dict]:
        """Retrieve an active asset owned by ``owner_id``."""
        pass

    @abstractmethod
    async def soft_delete(self, asset_id: str, owner_id: str) -> bool:
        """Mark an active asset as deleted. Returns False if nothing matched."""
        pass
