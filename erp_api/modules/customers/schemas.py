from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List
from uuid import UUID
from datetime import datetime

from erp_api.common.validators import validate_phone, format_phone, validate_tax_id


class CustomerBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=200)
    contact_person: Optional[str] = Field(None, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    tax_id: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None

    @field_validator('phone')
    @classmethod
    def validate_phone_number(cls, v):
        if v is None or v.strip() == "":
            return None
        if not validate_phone(v):
            raise ValueError('Invalid phone number. Use digits with optional +, spaces, dashes or parentheses')
        return format_phone(v)

    @field_validator('tax_id')
    @classmethod
    def validate_tax_identifier(cls, v):
        if v is None or v.strip() == "":
            return None
        if not validate_tax_id(v):
            raise ValueError('Invalid tax id')
        return v.strip()


class CustomerCreate(CustomerBase):
    pass


class CustomerUpdate(CustomerBase):
    name: Optional[str] = Field(None, min_length=2, max_length=200)


class CustomerOut(CustomerBase):
    id: UUID
    email: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CustomerSummary(BaseModel):
    """Compact projection embedded in documents"""
    id: UUID
    name: str
    email: Optional[str] = None

    class Config:
        from_attributes = True


class CustomerList(BaseModel):
    customers: List[CustomerOut]
    total: int
    limit: int
    offset: int
