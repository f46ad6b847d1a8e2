from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from uuid import UUID
from datetime import datetime
from datetime import date as DateType
from decimal import Decimal

from erp_api.common.schemas import PricedLineBase, PricedLineOut
from erp_api.modules.customers.schemas import CustomerSummary
from erp_api.modules.delivery_invoicing.models import DeliveryStatus, InvoiceStatus, PaymentMethod


# ===== DELIVERY NOTES =====

class DeliveryItemCreate(BaseModel):
    inventory_item_id: Optional[UUID] = None
    description: str = Field(..., max_length=255)
    quantity: Decimal = Field(..., gt=0, description="Quantity must be greater than zero")
    unit_price: Decimal = Field(Decimal("0"), ge=0)

    @field_validator('description')
    @classmethod
    def validate_description(cls, v):
        if not v.strip():
            raise ValueError('Item description is required')
        return v.strip()


class DeliveryNoteCreate(BaseModel):
    customer_id: UUID
    project_id: Optional[UUID] = None
    date: DateType = Field(default_factory=DateType.today)
    notes: Optional[str] = None
    items: List[DeliveryItemCreate] = Field(..., min_length=1)


class DeliveryNoteUpdate(BaseModel):
    customer_id: Optional[UUID] = None
    project_id: Optional[UUID] = None
    date: Optional[DateType] = None
    notes: Optional[str] = None
    items: Optional[List[DeliveryItemCreate]] = Field(None, min_length=1)


class DeliveryItemOut(BaseModel):
    id: UUID
    inventory_item_id: Optional[UUID] = None
    description: str
    quantity: Decimal
    unit_price: Decimal
    total: Decimal

    class Config:
        from_attributes = True


class DeliveryNoteOut(BaseModel):
    id: UUID
    number: str
    date: DateType
    customer_id: UUID
    customer: Optional[CustomerSummary] = None
    project_id: Optional[UUID] = None
    status: DeliveryStatus
    notes: Optional[str] = None
    total: Decimal
    delivered_at: Optional[datetime] = None
    items: List[DeliveryItemOut] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DeliveryNoteList(BaseModel):
    delivery_notes: List[DeliveryNoteOut]
    total: int
    limit: int
    offset: int


# ===== INVOICES =====

class InvoiceItemCreate(PricedLineBase):
    delivery_item_id: Optional[UUID] = None


class InvoiceCreate(BaseModel):
    customer_id: UUID
    project_id: Optional[UUID] = None
    date: DateType = Field(default_factory=DateType.today)
    due_date: Optional[DateType] = Field(None, description="Defaults to the date plus the payment term")
    notes: Optional[str] = None
    terms: Optional[str] = None
    items: List[InvoiceItemCreate] = Field(..., min_length=1)

    @model_validator(mode='after')
    def validate_due_date(self):
        if self.due_date and self.due_date < self.date:
            raise ValueError('Due date must be on or after the invoice date')
        return self


class InvoiceUpdate(BaseModel):
    customer_id: Optional[UUID] = None
    project_id: Optional[UUID] = None
    date: Optional[DateType] = None
    due_date: Optional[DateType] = None
    notes: Optional[str] = None
    terms: Optional[str] = None
    items: Optional[List[InvoiceItemCreate]] = Field(None, min_length=1)


class InvoiceFromDeliveryNote(BaseModel):
    date: DateType = Field(default_factory=DateType.today)
    due_date: Optional[DateType] = None
    tax_rate: Decimal = Field(Decimal("0"), ge=0, le=100, description="Applied to every line")

    @model_validator(mode='after')
    def validate_due_date(self):
        if self.due_date and self.due_date < self.date:
            raise ValueError('Due date must be on or after the invoice date')
        return self


class InvoiceItemOut(PricedLineOut):
    delivery_item_id: Optional[UUID] = None


# ===== PAYMENTS =====

class PaymentCreate(BaseModel):
    date: DateType = Field(default_factory=DateType.today)
    amount: Decimal = Field(..., gt=0, description="Payment amount must be greater than zero")
    method: PaymentMethod
    reference: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None


class PaymentOut(BaseModel):
    id: UUID
    invoice_id: UUID
    date: DateType
    amount: Decimal
    method: PaymentMethod
    reference: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class InvoiceOut(BaseModel):
    id: UUID
    number: str
    date: DateType
    due_date: DateType
    customer_id: UUID
    customer: Optional[CustomerSummary] = None
    project_id: Optional[UUID] = None
    delivery_note_id: Optional[UUID] = None
    status: InvoiceStatus
    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    total: Decimal
    amount_paid: Decimal
    amount_due: Decimal
    notes: Optional[str] = None
    terms: Optional[str] = None
    sent_at: Optional[datetime] = None
    items: List[InvoiceItemOut] = []
    payments: List[PaymentOut] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class InvoiceList(BaseModel):
    invoices: List[InvoiceOut]
    total: int
    limit: int
    offset: int
