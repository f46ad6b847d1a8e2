from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from uuid import UUID
from datetime import date, datetime
from decimal import Decimal

from erp_api.common.validators import normalize_code
from erp_api.modules.inventory.models import MovementType


# ===== ITEMS =====

class InventoryItemBase(BaseModel):
    sku: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., max_length=200)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    unit_of_measure: str = Field("unit", min_length=1, max_length=20)
    cost_price: Decimal = Field(Decimal("0"), ge=0, description="Cost price must be zero or positive")
    selling_price: Decimal = Field(Decimal("0"), ge=0)
    quantity: Decimal = Field(Decimal("0"), ge=0)
    reorder_level: Decimal = Field(Decimal("0"), ge=0)
    location: Optional[str] = Field(None, max_length=100)
    is_active: bool = True

    @field_validator('sku')
    @classmethod
    def validate_sku(cls, v):
        v = normalize_code(v)
        if not v:
            raise ValueError('SKU is required')
        return v

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if len(v.strip()) < 2:
            raise ValueError('Item name must be at least 2 characters')
        return v.strip()


class InventoryItemCreate(InventoryItemBase):
    pass


class InventoryItemUpdate(BaseModel):
    """Stock quantity changes go through movements, so quantity is not editable here."""
    sku: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    unit_of_measure: Optional[str] = Field(None, min_length=1, max_length=20)
    cost_price: Optional[Decimal] = Field(None, ge=0)
    selling_price: Optional[Decimal] = Field(None, ge=0)
    reorder_level: Optional[Decimal] = Field(None, ge=0)
    location: Optional[str] = Field(None, max_length=100)
    is_active: Optional[bool] = None

    @field_validator('sku')
    @classmethod
    def validate_sku(cls, v):
        if v is None:
            return v
        v = normalize_code(v)
        if not v:
            raise ValueError('SKU is required')
        return v

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if v is not None and len(v.strip()) < 2:
            raise ValueError('Item name must be at least 2 characters')
        return v.strip() if v else v


class InventoryItemOut(BaseModel):
    id: UUID
    sku: str
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    unit_of_measure: str
    cost_price: Decimal
    selling_price: Decimal
    quantity: Decimal
    reorder_level: Decimal
    location: Optional[str] = None
    is_active: bool
    needs_reorder: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class InventoryItemSummary(BaseModel):
    id: UUID
    sku: str
    name: str

    class Config:
        from_attributes = True


class InventoryItemList(BaseModel):
    items: List[InventoryItemOut]
    total: int
    limit: int
    offset: int


class ReplenishmentAlert(BaseModel):
    item_id: UUID
    sku: str
    name: str
    location: Optional[str] = None
    quantity: Decimal
    reorder_level: Decimal
    shortfall: Decimal


# ===== MOVEMENTS =====

class InventoryMovementCreate(BaseModel):
    date: date
    type: MovementType
    reference: Optional[str] = Field(None, max_length=100)
    inventory_item_id: UUID
    quantity: Decimal = Field(..., gt=0, description="Positive magnitude; the sign follows the movement type")
    unit_cost: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None


class InventoryMovementOut(BaseModel):
    id: UUID
    date: date
    type: MovementType
    reference: Optional[str] = None
    inventory_item_id: UUID
    item: Optional[InventoryItemSummary] = None
    quantity: Decimal
    unit_cost: Decimal
    total_cost: Decimal
    notes: Optional[str] = None
    delivery_note_id: Optional[UUID] = None
    created_at: datetime

    class Config:
        from_attributes = True


class InventoryMovementList(BaseModel):
    movements: List[InventoryMovementOut]
    total: int
    limit: int
    offset: int
