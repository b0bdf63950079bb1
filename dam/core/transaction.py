"""Scoped database transactions."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any, AsyncIterator, Awaitable, Callable, Protocol, TypeVar

from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_active_session: ContextVar[Any | None] = ContextVar("active_transaction_session", default=None)


class SessionClient(Protocol):
    """Anything that can hand out a transactional session (Motor client or the memory client)."""

    async def start_session(self) -> Any:
        ...


class TransactionCoordinator:
    """Runs a unit of work inside a single database transaction.

    The session is committed on normal exit, aborted on any exception
    (cancellation included) and always ended. Nesting within one task is
    rejected.
    """

    def __init__(self, client: SessionClient) -> None:
        self._client = client

    @staticmethod
    def in_transaction() -> bool:
        return _active_session.get() is not None

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Any]:
        if _active_session.get() is not None:
            raise RuntimeError("Nested transactions are not supported")

        session = await self._client.start_session()
        token = _active_session.set(session)
        try:
            session.start_transaction()
            try:
                yield session
                await session.commit_transaction()
            except BaseException:
                await self._abort(session)
                raise
        finally:
            _active_session.reset(token)
            await session.end_session()

    async def run(self, unit_of_work: Callable[[Any], Awaitable[T]]) -> T:
        """Invoke ``unit_of_work(session)`` inside a transaction and return its result."""
        async with self.transaction() as session:
            return await unit_of_work(session)

    @staticmethod
    async def _abort(session: Any) -> None:
        if not session.in_transaction:
            return
        try:
            await session.abort_transaction()
        except PyMongoError as e:
            # The original failure is what the caller needs to see.
            logger.error(f"Failed to abort transaction: {e}")
