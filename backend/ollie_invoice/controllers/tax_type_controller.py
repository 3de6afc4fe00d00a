"""
Tax type controller.
"""

from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession

from ollie_invoice.controllers.base_controller import BaseController
from ollie_invoice.models.business import Business
from ollie_invoice.schemas.tax_type import TaxTypeCreate, TaxTypeUpdate, TaxTypeResponse, TaxTypeListResponse
from ollie_invoice.services.tax_type_service import TaxTypeService


class TaxTypeController(BaseController):
    """Controller for tax type operations."""

    def __init__(self, session: AsyncSession):
        self.tax_type_service = TaxTypeService(session)

    async def list_tax_types(self, business: Business) -> TaxTypeListResponse:
        tax_types, total = await self.tax_type_service.list_tax_types(business)
        return TaxTypeListResponse(items=tax_types, total=total)

    async def create_tax_type(self, business: Business, tax_type_data: TaxTypeCreate) -> TaxTypeResponse:
        return await self.tax_type_service.create_tax_type(business, tax_type_data)

    async def update_tax_type(
        self,
        business: Business,
        tax_type_id: UUID,
        tax_type_data: TaxTypeUpdate,
    ) -> TaxTypeResponse:
        return await self.tax_type_service.update_tax_type(business, tax_type_id, tax_type_data)

    async def delete_tax_type(self, business: Business, tax_type_id: UUID) -> None:
        await self.tax_type_service.delete_tax_type(business, tax_type_id)
