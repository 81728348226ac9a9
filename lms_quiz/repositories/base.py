"""
Base Repository

Abstract base class for all repositories.
Provides common database operations.
"""

from typing import Generic, TypeVar, Type, Optional, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

ModelType = TypeVar("ModelType")


class BaseRepository(Generic[ModelType]):
    """
    Base repository class with common CRUD operations.

    All repositories should inherit from this class.
    Methods here never commit; the calling service owns the transaction.
    """
    def __init__(self, model: Type[ModelType], db: AsyncSession):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            db: Database session
        """
        self.model = model
        self.db = db

    # -----------------------------
    # Get Element By id
    # -----------------------------
    async def get_by_id(self, id: Any) -> Optional[ModelType]:
        """Get a record by ID."""
        result = await self.db.execute(
            select(self.model).where(self.model.id == id)
        )
        return result.scalar_one_or_none()

    # -----------------------------
    # Add Single Record
    # -----------------------------
    async def add(self, instance: ModelType) -> ModelType:
        """Stage a new record and flush so generated values are available."""
        self.db.add(instance)
        await self.db.flush()
        return instance

    async def create(self, **kwargs) -> ModelType:
        return await self.add(self.model(**kwargs))

    # -----------------------------
    # Delete record
    # -----------------------------
    async def delete(self, instance: ModelType) -> None:
        await self.db.delete(instance)
        await self.db.flush()

    # -----------------------------
    # Count records
    # -----------------------------
    async def count(self, *criteria) -> int:
        """Count records matching the given where-clauses."""
        result = await self.db.execute(
            select(func.count(self.model.id)).where(*criteria)
        )
        return result.scalar() or 0
