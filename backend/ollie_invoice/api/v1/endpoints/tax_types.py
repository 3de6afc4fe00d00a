"""
Tax type API endpoints.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from ollie_invoice.api.v1.middleware import require_business
from ollie_invoice.controllers.tax_type_controller import TaxTypeController
from ollie_invoice.db.session import get_db
from ollie_invoice.models.business import Business
from ollie_invoice.schemas.tax_type import (
    TaxTypeCreate,
    TaxTypeUpdate,
    TaxTypeResponse,
    TaxTypeListResponse,
)

router = APIRouter()


@router.get("", response_model=TaxTypeListResponse)
async def list_tax_types(
    business: Business = Depends(require_business),
    db: AsyncSession = Depends(get_db),
) -> TaxTypeListResponse:
    """List the business's tax types, default first."""
    controller = TaxTypeController(db)
    return await controller.list_tax_types(business)


@router.post("", response_model=TaxTypeResponse, status_code=status.HTTP_201_CREATED)
async def create_tax_type(
    tax_type_data: TaxTypeCreate,
    business: Business = Depends(require_business),
    db: AsyncSession = Depends(get_db),
) -> TaxTypeResponse:
    """Create a tax type."""
    controller = TaxTypeController(db)
    return await controller.create_tax_type(business, tax_type_data)


@router.patch("/{tax_type_id}", response_model=TaxTypeResponse)
async def update_tax_type(
    tax_type_id: UUID,
    tax_type_data: TaxTypeUpdate,
    business: Business = Depends(require_business),
    db: AsyncSession = Depends(get_db),
) -> TaxTypeResponse:
    """Update a tax type."""
    controller = TaxTypeController(db)
    return await controller.update_tax_type(business, tax_type_id, tax_type_data)


@router.delete("/{tax_type_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tax_type(
    tax_type_id: UUID,
    business: Business = Depends(require_business),
    db: AsyncSession = Depends(get_db),
):
    """Delete a tax type."""
    controller = TaxTypeController(db)
    await controller.delete_tax_type(business, tax_type_id)
