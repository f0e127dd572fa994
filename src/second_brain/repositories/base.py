"""
Base Repository

Generic repository pattern implementation for async SQLAlchemy operations.
Translates driver failures into ``PersistenceError`` so callers never see
SQLAlchemy exceptions.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from second_brain.core.exceptions import PersistenceError
from second_brain.models.base import Base

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Generic repository providing common write/count operations.

    All methods expect an externally managed session (injected via FastAPI
    dependency). Writes commit immediately; the store's own atomicity is
    the only transaction discipline.

    Usage:
        class NoteRepository(BaseRepository[Note]):
            def __init__(self):
                super().__init__(Note)
    """

    def __init__(self, model: type[ModelType]):
        self.model = model

    @asynccontextmanager
    async def _guard(self, session: AsyncSession, operation: str) -> AsyncIterator[None]:
        """Roll back and re-raise driver errors as ``PersistenceError``."""
        try:
            yield
        except SQLAlchemyError as e:
            logger.error("%s failed on %s: %s", operation, self.model.__tablename__, e)
            await session.rollback()
            raise PersistenceError(str(e)) from e

    async def create(self, session: AsyncSession, obj_in: Any) -> ModelType:
        """
        Create a new record.

        Args:
            session: Active database session.
            obj_in: Pydantic schema or dict with entity data.

        Returns:
            The created entity with database-generated fields populated.

        Raises:
            PersistenceError: On constraint violation or connectivity failure.
        """
        data = obj_in.model_dump() if hasattr(obj_in, "model_dump") else obj_in
        db_obj = self.model(**data)
        async with self._guard(session, "insert"):
            session.add(db_obj)
            await session.commit()
            await session.refresh(db_obj)  # Load DB-generated fields (created_at)
        return db_obj

    async def count(self, session: AsyncSession, *criteria: Any) -> int:
        """Count rows matching the given WHERE criteria."""
        stmt = select(func.count()).select_from(self.model).where(*criteria)
        async with self._guard(session, "count"):
            result = await session.execute(stmt)
        return int(result.scalar_one())
