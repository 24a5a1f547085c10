"""
Base Repository

Base class for all repositories.
Provides common database operations.
"""

from typing import Generic, TypeVar, Type, Optional, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from quizflow.db.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Base repository class with common CRUD operations.

    All repositories should inherit from this class.
    """
    def __init__(self, model: Type[ModelType], db: AsyncSession):
        """
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
        result = await self.db.execute(
            select(self.model).where(self.model.id == id)
        )
        return result.scalar_one_or_none()

    # -----------------------------
    # Create Single Record
    # -----------------------------
    async def create(self, **kwargs) -> ModelType:
        """Insert one record, commit, and return it refreshed."""
        instance = self.model(**kwargs)
        self.db.add(instance)
        await self.db.commit()
        await self.db.refresh(instance)
        return instance
