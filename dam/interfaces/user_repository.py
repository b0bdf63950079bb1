from abc import ABC, abstractmethod
from typing import Any, Optional


class IUserRepository(ABC):
    @abstractmethod
    async def get_by_email(self, email: str, session: Any = None) -> Optional[dict]:
        """Retrieve a user by email."""
        pass

    @abstractmethod
    async def get_by_id(self, user_id: str, session: Any = None) -> Optional[dict]:
        """Retrieve a user by id."""
        pass

    @abstractmethod
    async def create(self, user_data: dict, session: Any = None) -> dict:
        """Insert a new user and return it."""
        pass
