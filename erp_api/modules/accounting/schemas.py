from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from uuid import UUID
from datetime import date, datetime
from datetime import date as DateType
from decimal import Decimal

from erp_api.common.validators import validate_currency_code, normalize_code
from erp_api.modules.accounting.models import AccountType, JournalEntryStatus


# ===== ACCOUNTS =====

class AccountBase(BaseModel):
    code: str = Field(..., min_length=1, max_length=20)
    name: str = Field(..., max_length=200)
    type: AccountType
    parent_id: Optional[UUID] = None
    currency: str = Field("USD", description="Three letter currency code")
    description: Optional[str] = None
    is_active: bool = True

    @field_validator('code')
    @classmethod
    def validate_code(cls, v):
        v = normalize_code(v)
        if not v:
            raise ValueError('Account code is required')
        return v

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if v is None or len(v.strip()) < 2:
            raise ValueError('Account name must be at least 2 characters')
        return v.strip()

    @field_validator('currency')
    @classmethod
    def validate_currency(cls, v):
        if not validate_currency_code(v):
            raise ValueError('Currency must be a three letter code')
        return v.upper()


class AccountCreate(AccountBase):
    balance: Decimal = Field(Decimal("0"), description="Opening balance")


class AccountUpdate(BaseModel):
    code: Optional[str] = Field(None, min_length=1, max_length=20)
    name: Optional[str] = Field(None, max_length=200)
    type: Optional[AccountType] = None
    parent_id: Optional[UUID] = None
    currency: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator('code')
    @classmethod
    def validate_code(cls, v):
        if v is None:
            return v
        v = normalize_code(v)
        if not v:
            raise ValueError('Account code is required')
        return v

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if v is not None and len(v.strip()) < 2:
            raise ValueError('Account name must be at least 2 characters')
        return v.strip() if v else v

    @field_validator('currency')
    @classmethod
    def validate_currency(cls, v):
        if v is not None and not validate_currency_code(v):
            raise ValueError('Currency must be a three letter code')
        return v.upper() if v else v


class AccountOut(BaseModel):
    id: UUID
    code: str
    name: str
    type: AccountType
    parent_id: Optional[UUID] = None
    balance: Decimal
    currency: str
    description: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AccountTreeNode(BaseModel):
    id: UUID
    code: str
    name: str
    type: AccountType
    parent_id: Optional[UUID] = None
    balance: Decimal
    currency: str
    children: List["AccountTreeNode"] = []

    class Config:
        from_attributes = True


class AccountList(BaseModel):
    accounts: List[AccountOut]
    total: int
    limit: int
    offset: int


# ===== CURRENCIES =====

class CurrencyBase(BaseModel):
    code: str
    name: str = Field(..., max_length=100)
    symbol: str = Field(..., min_length=1, max_length=10)
    exchange_rate: Decimal = Field(Decimal("1"), gt=0, description="Units of this currency per base unit")
    is_base_currency: bool = False
    is_active: bool = True

    @field_validator('code')
    @classmethod
    def validate_code(cls, v):
        if not validate_currency_code(v):
            raise ValueError('Currency code must be exactly 3 letters')
        return v.upper()

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if len(v.strip()) < 2:
            raise ValueError('Currency name must be at least 2 characters')
        return v.strip()


class CurrencyCreate(CurrencyBase):
    pass


class CurrencyUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    symbol: Optional[str] = Field(None, min_length=1, max_length=10)
    exchange_rate: Optional[Decimal] = Field(None, gt=0)
    is_base_currency: Optional[bool] = None
    is_active: Optional[bool] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if v is not None and len(v.strip()) < 2:
            raise ValueError('Currency name must be at least 2 characters')
        return v.strip() if v else v


class CurrencyOut(BaseModel):
    id: UUID
    code: str
    name: str
    symbol: str
    exchange_rate: Decimal
    is_base_currency: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ConversionOut(BaseModel):
    amount: Decimal
    from_currency: str
    to_currency: str
    rate: Decimal
    converted_amount: Decimal


# ===== JOURNAL ENTRIES =====

class JournalLineCreate(BaseModel):
    account_id: UUID
    description: Optional[str] = Field(None, max_length=255)
    debit: Decimal = Field(Decimal("0"), ge=0)
    credit: Decimal = Field(Decimal("0"), ge=0)
    project_id: Optional[UUID] = None
    customer_id: Optional[UUID] = None

    @model_validator(mode='after')
    def validate_sides(self):
        if self.debit > 0 and self.credit > 0:
            raise ValueError('A line cannot carry both a debit and a credit')
        return self


class JournalLineOut(BaseModel):
    id: UUID
    account_id: UUID
    description: Optional[str] = None
    debit: Decimal
    credit: Decimal
    project_id: Optional[UUID] = None
    customer_id: Optional[UUID] = None

    class Config:
        from_attributes = True


class JournalEntryCreate(BaseModel):
    date: date
    reference: Optional[str] = Field(None, max_length=50)
    description: str = Field(..., min_length=1)
    status: JournalEntryStatus = JournalEntryStatus.DRAFT
    lines: List[JournalLineCreate] = []

    @field_validator('description')
    @classmethod
    def validate_description(cls, v):
        if not v.strip():
            raise ValueError('Description is required')
        return v.strip()


class JournalEntryUpdate(BaseModel):
    date: Optional[DateType] = None
    reference: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = None
    status: Optional[JournalEntryStatus] = None
    lines: Optional[List[JournalLineCreate]] = None

    @field_validator('description')
    @classmethod
    def validate_description(cls, v):
        if v is not None and not v.strip():
            raise ValueError('Description is required')
        return v.strip() if v else v


class JournalEntryOut(BaseModel):
    id: UUID
    date: date
    reference: str
    description: str
    status: JournalEntryStatus
    debit_total: Decimal
    credit_total: Decimal
    is_balanced: bool
    warnings: List[str] = []
    posted_at: Optional[datetime] = None
    lines: List[JournalLineOut] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class JournalEntryList(BaseModel):
    journal_entries: List[JournalEntryOut]
    total: int
    limit: int
    offset: int


AccountTreeNode.model_rebuild()
