"""
Tax type service with business logic.
"""

from typing import List, Tuple
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession

from ollie_invoice.core.exceptions import NotFoundError
from ollie_invoice.db.repositories.tax_type_repository import TaxTypeRepository
from ollie_invoice.models.business import Business
from ollie_invoice.schemas.tax_type import TaxTypeCreate, TaxTypeUpdate, TaxTypeResponse
from ollie_invoice.services.base_service import BaseService


class TaxTypeService(BaseService):
    """Service for a business's tax catalog. At most one tax type is the default."""

    def __init__(self, session: AsyncSession):
        super().__init__(session)
        self.tax_type_repo = TaxTypeRepository(session)

    async def list_tax_types(self, business: Business) -> Tuple[List[TaxTypeResponse], int]:
        tax_types = await self.tax_type_repo.list_by_business(business.id)
        return [TaxTypeResponse.model_validate(tax_type) for tax_type in tax_types], len(tax_types)

    async def create_tax_type(self, business: Business, tax_type_data: TaxTypeCreate) -> TaxTypeResponse:
        """Create a tax type, taking over the default flag if requested."""
        if tax_type_data.is_default:
            await self.tax_type_repo.clear_default(business.id)
        tax_type = await self.tax_type_repo.create(business_id=business.id, **tax_type_data.model_dump())
        await self.session.commit()
        return TaxTypeResponse.model_validate(tax_type)

    async def update_tax_type(
        self,
        business: Business,
        tax_type_id: UUID,
        tax_type_data: TaxTypeUpdate,
    ) -> TaxTypeResponse:
        """
        Update a tax type.

        Rate changes apply to invoices computed afterwards; stored invoice
        amounts are not rewritten.
        """
        tax_type = await self.tax_type_repo.get_for_business(tax_type_id, business.id)
        if not tax_type:
            raise NotFoundError("Tax type not found")

        data = tax_type_data.model_dump(exclude_unset=True)
        if data.get("is_default"):
            await self.tax_type_repo.clear_default(business.id)
        tax_type = await self.tax_type_repo.update(
            tax_type, **{key: value for key, value in data.items() if value is not None}
        )
        await self.session.commit()
        return TaxTypeResponse.model_validate(tax_type)

    async def delete_tax_type(self, business: Business, tax_type_id: UUID) -> None:
        tax_type = await self.tax_type_repo.get_for_business(tax_type_id, business.id)
        if not tax_type:
            raise NotFoundError("Tax type not found")
        await self.tax_type_repo.delete(tax_type.id)
        await self.session.commit()
