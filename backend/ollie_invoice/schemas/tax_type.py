"""
Tax type Pydantic schemas for request/response validation.
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from decimal import Decimal
from uuid import UUID


class TaxTypeBase(BaseModel):
    """Base tax type schema with common fields."""
    name: str = Field(..., min_length=1, max_length=100)
    rate: Decimal = Field(..., ge=0, le=100, max_digits=5, decimal_places=2)
    is_default: bool = False


class TaxTypeCreate(TaxTypeBase):
    """Schema for creating a tax type."""
    pass


class TaxTypeUpdate(BaseModel):
    """Schema for updating a tax type (all fields optional)."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    rate: Optional[Decimal] = Field(None, ge=0, le=100, max_digits=5, decimal_places=2)
    is_default: Optional[bool] = None


class TaxTypeResponse(TaxTypeBase):
    """Schema for tax type response."""
    id: UUID
    business_id: UUID

    class Config:
        from_attributes = True


class TaxTypeListResponse(BaseModel):
    """Schema for tax type list response."""
    items: List[TaxTypeResponse]
    total: int
