"""
Base repository class with common CRUD operations.
Repositories handle database access using async SQLAlchemy sessions.
Every tenant-owned table carries a ``business_id``; the scoped helpers
never return rows of another business.
"""

from typing import Generic, TypeVar, Type, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete

from ollie_invoice.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Base repository with CRUD and business-scoped lookups."""

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            session: Async database session
        """
        self.model = model
        self.session = session

    async def create(self, **kwargs) -> ModelType:
        """
        Create a new record and load its server-side defaults.

        Args:
            **kwargs: Model attributes

        Returns:
            Created model instance
        """
        instance = self.model(**kwargs)
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def get(self, id: UUID) -> Optional[ModelType]:
        result = await self.session.execute(
            select(self.model).where(self.model.id == id)
        )
        return result.scalar_one_or_none()

    async def get_for_business(self, id: UUID, business_id: UUID) -> Optional[ModelType]:
        """
        Get a record only if it belongs to the business.

        Returns:
            Model instance, or None when missing or owned by someone else
        """
        result = await self.session.execute(
            select(self.model).where(
                self.model.id == id,
                self.model.business_id == business_id,
            )
        )
        return result.scalar_one_or_none()

    async def update(self, instance: ModelType, **kwargs) -> ModelType:
        """
        Update attributes of a loaded record.

        Args:
            instance: Model instance
            **kwargs: Attributes to update

        Returns:
            Updated model instance
        """
        for key, value in kwargs.items():
            setattr(instance, key, value)
        await self.session.flush()
        return instance

    async def delete(self, id: UUID) -> bool:
        """
        Delete a record.

        Returns:
            True if deleted, False if not found
        """
        result = await self.session.execute(
            delete(self.model).where(self.model.id == id)
        )
        await self.session.flush()
        return result.rowcount > 0
