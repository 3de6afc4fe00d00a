"""
Tax type repository for database operations.
"""

from typing import List
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update

from ollie_invoice.db.repositories.base_repository import BaseRepository
from ollie_invoice.models.tax_type import TaxType


class TaxTypeRepository(BaseRepository[TaxType]):
    """Repository for tax type operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(TaxType, session)

    async def list_by_business(self, business_id: UUID) -> List[TaxType]:
        """List a business's tax catalog, default first."""
        result = await self.session.execute(
            select(TaxType)
            .where(TaxType.business_id == business_id)
            .order_by(TaxType.is_default.desc(), TaxType.name)
        )
        return list(result.scalars().all())

    async def clear_default(self, business_id: UUID) -> int:
        """Unset the default flag on every tax type of a business."""
        result = await self.session.execute(
            update(TaxType)
            .where(TaxType.business_id == business_id, TaxType.is_default == True)
            .values(is_default=False)
            .execution_options(synchronize_session="fetch")
        )
        await self.session.flush()
        return result.rowcount
