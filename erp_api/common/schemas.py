"""
Schema pieces shared by priced documents (quotations, invoices)
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional
from uuid import UUID
from decimal import Decimal


class PricedLineBase(BaseModel):
    inventory_item_id: Optional[UUID] = None
    description: str = Field(..., max_length=255)
    quantity: Decimal = Field(..., gt=0, description="Quantity must be greater than zero")
    unit_price: Decimal = Field(..., ge=0)
    tax_rate: Decimal = Field(Decimal("0"), ge=0, le=100, description="Percent")
    discount_rate: Decimal = Field(Decimal("0"), ge=0, le=100, description="Percent")

    @field_validator('description')
    @classmethod
    def validate_description(cls, v):
        if not v.strip():
            raise ValueError('Item description is required')
        return v.strip()


class PricedLineOut(BaseModel):
    id: UUID
    inventory_item_id: Optional[UUID] = None
    description: str
    quantity: Decimal
    unit_price: Decimal
    tax_rate: Decimal
    discount_rate: Decimal
    total: Decimal

    class Config:
        from_attributes = True
