from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from uuid import UUID
from datetime import datetime
from datetime import date as DateType
from decimal import Decimal

from erp_api.common.schemas import PricedLineBase, PricedLineOut
from erp_api.modules.customers.schemas import CustomerSummary
from erp_api.modules.quotations.models import QuotationStatus


# ===== QUOTATIONS =====

class QuotationItemCreate(PricedLineBase):
    pass


class QuotationCreate(BaseModel):
    customer_id: UUID
    date: DateType = Field(default_factory=DateType.today)
    valid_until: Optional[DateType] = Field(None, description="Defaults to the date plus the validity period")
    notes: Optional[str] = None
    terms: Optional[str] = None
    items: List[QuotationItemCreate] = Field(..., min_length=1)

    @model_validator(mode='after')
    def validate_validity(self):
        if self.valid_until and self.valid_until < self.date:
            raise ValueError('Valid until date must be on or after the quotation date')
        return self


class QuotationUpdate(BaseModel):
    customer_id: Optional[UUID] = None
    date: Optional[DateType] = None
    valid_until: Optional[DateType] = None
    notes: Optional[str] = None
    terms: Optional[str] = None
    items: Optional[List[QuotationItemCreate]] = Field(None, min_length=1)


class QuotationStatusUpdate(BaseModel):
    status: QuotationStatus


class QuotationItemOut(PricedLineOut):
    pass


class QuotationOut(BaseModel):
    id: UUID
    number: str
    date: DateType
    valid_until: DateType
    customer_id: UUID
    customer: Optional[CustomerSummary] = None
    status: QuotationStatus
    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    total: Decimal
    notes: Optional[str] = None
    terms: Optional[str] = None
    template_id: Optional[UUID] = None
    items: List[QuotationItemOut] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class QuotationList(BaseModel):
    quotations: List[QuotationOut]
    total: int
    limit: int
    offset: int


# ===== TEMPLATES =====

class TemplateItemCreate(PricedLineBase):
    pass


class TemplateItemOut(BaseModel):
    id: UUID
    inventory_item_id: Optional[UUID] = None
    description: str
    quantity: Decimal
    unit_price: Decimal
    tax_rate: Decimal
    discount_rate: Decimal

    class Config:
        from_attributes = True


class TemplateCreate(BaseModel):
    name: str = Field(..., max_length=200)
    description: Optional[str] = None
    notes: Optional[str] = None
    terms: Optional[str] = None
    items: List[TemplateItemCreate] = Field(..., min_length=1)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if len(v.strip()) < 2:
            raise ValueError('Template name must be at least 2 characters')
        return v.strip()


class TemplateUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    notes: Optional[str] = None
    terms: Optional[str] = None
    items: Optional[List[TemplateItemCreate]] = Field(None, min_length=1)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if v is not None and len(v.strip()) < 2:
            raise ValueError('Template name must be at least 2 characters')
        return v.strip() if v else v


class TemplateOut(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    notes: Optional[str] = None
    terms: Optional[str] = None
    items: List[TemplateItemOut] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class QuotationFromTemplate(BaseModel):
    customer_id: UUID
    date: DateType = Field(default_factory=DateType.today)
    valid_until: Optional[DateType] = None

    @model_validator(mode='after')
    def validate_validity(self):
        if self.valid_until and self.valid_until < self.date:
            raise ValueError('Valid until date must be on or after the quotation date')
        return self
