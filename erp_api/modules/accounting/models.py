from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, ForeignKey, Numeric, Enum, Text, Uuid
from sqlalchemy.orm import relationship
from decimal import Decimal
from datetime import date
import enum

from erp_api.database.database import Base
from erp_api.common.mixins import BaseMixin


class AccountType(str, enum.Enum):
    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"


# Accounts whose balance grows with debits
DEBIT_NORMAL_TYPES = (AccountType.ASSET, AccountType.EXPENSE)


class JournalEntryStatus(str, enum.Enum):
    DRAFT = "draft"      # Saved, balances untouched
    POSTED = "posted"    # Applied to account balances, immutable


class Account(Base, BaseMixin):
    __tablename__ = "accounts"

    code = Column(String(20), nullable=False, unique=True, index=True)
    name = Column(String(200), nullable=False)
    type = Column(Enum(AccountType), nullable=False)
    parent_id = Column(Uuid(as_uuid=True), ForeignKey("accounts.id"), nullable=True, index=True)
    balance = Column(Numeric(15, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="USD")
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    # Relationships
    parent = relationship("Account", remote_side="Account.id", back_populates="children")
    children = relationship("Account", back_populates="parent", order_by="Account.code")
    journal_lines = relationship("JournalLine", back_populates="account")

    @property
    def is_debit_normal(self) -> bool:
        return self.type in DEBIT_NORMAL_TYPES

    def apply_movement(self, debit: Decimal, credit: Decimal) -> None:
        """Apply a posted debit/credit pair to the running balance."""
        current = Decimal(self.balance or 0)
        if self.is_debit_normal:
            self.balance = current + debit - credit
        else:
            self.balance = current + credit - debit


class Currency(Base, BaseMixin):
    __tablename__ = "currencies"

    code = Column(String(3), nullable=False, unique=True, index=True)
    name = Column(String(100), nullable=False)
    symbol = Column(String(10), nullable=False)
    exchange_rate = Column(Numeric(18, 6), nullable=False, default=1)  # units per 1 base unit
    is_base_currency = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)


class JournalEntry(Base, BaseMixin):
    __tablename__ = "journal_entries"

    date = Column(Date, nullable=False, default=date.today, index=True)
    reference = Column(String(50), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=False)
    status = Column(Enum(JournalEntryStatus), nullable=False, default=JournalEntryStatus.DRAFT)
    debit_total = Column(Numeric(15, 2), nullable=False, default=0)
    credit_total = Column(Numeric(15, 2), nullable=False, default=0)
    posted_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True)

    # Relationships
    lines = relationship(
        "JournalLine",
        back_populates="journal_entry",
        cascade="all, delete-orphan",
        order_by="JournalLine.position"
    )

    @property
    def is_balanced(self) -> bool:
        return Decimal(self.debit_total or 0) == Decimal(self.credit_total or 0)

    @property
    def warnings(self) -> list:
        if not self.is_balanced:
            return ["Debits must equal credits"]
        return []


class JournalLine(Base, BaseMixin):
    __tablename__ = "journal_lines"

    journal_entry_id = Column(
        Uuid(as_uuid=True), ForeignKey("journal_entries.id", ondelete="CASCADE"), nullable=False, index=True
    )
    account_id = Column(Uuid(as_uuid=True), ForeignKey("accounts.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    description = Column(String(255), nullable=True)
    debit = Column(Numeric(15, 2), nullable=False, default=0)
    credit = Column(Numeric(15, 2), nullable=False, default=0)

    # Optional analytic dimensions
    project_id = Column(Uuid(as_uuid=True), ForeignKey("projects.id"), nullable=True)
    customer_id = Column(Uuid(as_uuid=True), ForeignKey("customers.id"), nullable=True)

    # Relationships
    journal_entry = relationship("JournalEntry", back_populates="lines")
    account = relationship("Account", back_populates="journal_lines")
