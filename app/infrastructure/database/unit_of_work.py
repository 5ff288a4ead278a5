"""Unit of work pattern implementation."""
from contextlib import asynccontextmanager
from types import TracebackType
from typing import AsyncGenerator, Optional, Type

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import IndexStoreError
from app.domain.interfaces.storage import IndexUnitOfWork
from app.infrastructure.database.repositories import IndexedFaceRepository


class UnitOfWork(IndexUnitOfWork):
    """Unit of work for managing face index transactions and repositories."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize unit of work.

        Args:
            session: Database session
        """
        self._session = session
        self.faces = IndexedFaceRepository(session)

    async def __aenter__(self) -> "UnitOfWork":
        """Enter async context manager.

        Returns:
            UnitOfWork: Self
        """
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        """Exit async context manager.

        Args:
            exc_type: Exception type if an error occurred
            exc_val: Exception value if an error occurred
            exc_tb: Exception traceback if an error occurred
        """
        if exc_type is not None:
            await self.rollback()
        else:
            await self.commit()

    async def commit(self) -> None:
        """Commit the current transaction."""
        try:
            await self._session.commit()
        except SQLAlchemyError as e:
            raise IndexStoreError(f"Failed to commit face index transaction: {e}") from e

    async def rollback(self) -> None:
        """Rollback the current transaction."""
        await self._session.rollback()

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator["UnitOfWork", None]:
        """Create a new transaction scope.

        Example:
            ```python
            async with uow.transaction():
                # committed if no exceptions, rolled back otherwise
                await uow.faces.deactivate(entry_id)
            ```
        """
        try:
            yield self
            await self.commit()
        except Exception:
            await self.rollback()
            raise
