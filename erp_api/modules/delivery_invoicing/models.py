from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, Numeric, Enum, Text, Uuid
from sqlalchemy.orm import relationship
from decimal import Decimal
from datetime import date
import enum

from erp_api.database.database import Base
from erp_api.common.mixins import BaseMixin


class DeliveryStatus(str, enum.Enum):
    DRAFT = "draft"            # Editable, stock untouched
    DELIVERED = "delivered"    # Stock issued, immutable
    CANCELLED = "cancelled"


class InvoiceStatus(str, enum.Enum):
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    PARTIALLY_PAID = "partially-paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


# Invoices that accept payments
PAYABLE_STATUSES = (InvoiceStatus.SENT, InvoiceStatus.PARTIALLY_PAID, InvoiceStatus.OVERDUE)

# Issued invoices that count towards sales
ISSUED_STATUSES = (
    InvoiceStatus.SENT, InvoiceStatus.PAID, InvoiceStatus.PARTIALLY_PAID, InvoiceStatus.OVERDUE
)


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank-transfer"
    CREDIT_CARD = "credit-card"
    CHECK = "check"
    OTHER = "other"


class DeliveryNote(Base, BaseMixin):
    __tablename__ = "delivery_notes"

    number = Column(String(50), nullable=False, unique=True, index=True)
    date = Column(Date, nullable=False, default=date.today, index=True)
    customer_id = Column(Uuid(as_uuid=True), ForeignKey("customers.id"), nullable=False, index=True)
    project_id = Column(Uuid(as_uuid=True), ForeignKey("projects.id"), nullable=True, index=True)
    status = Column(Enum(DeliveryStatus), nullable=False, default=DeliveryStatus.DRAFT, index=True)
    notes = Column(Text, nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True)

    # Relationships
    customer = relationship("Customer")
    project = relationship("Project")
    items = relationship(
        "DeliveryItem",
        back_populates="delivery_note",
        cascade="all, delete-orphan",
        order_by="DeliveryItem.position"
    )

    @property
    def total(self) -> Decimal:
        return sum((Decimal(item.total or 0) for item in self.items), Decimal("0.00"))


class DeliveryItem(Base, BaseMixin):
    __tablename__ = "delivery_items"

    delivery_note_id = Column(
        Uuid(as_uuid=True), ForeignKey("delivery_notes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    inventory_item_id = Column(Uuid(as_uuid=True), ForeignKey("inventory_items.id"), nullable=True)
    position = Column(Integer, nullable=False, default=0)
    description = Column(String(255), nullable=False)
    quantity = Column(Numeric(12, 3), nullable=False)
    unit_price = Column(Numeric(15, 2), nullable=False)
    total = Column(Numeric(15, 2), nullable=False, default=0)  # quantity * unit_price

    # Relationships
    delivery_note = relationship("DeliveryNote", back_populates="items")


class Invoice(Base, BaseMixin):
    __tablename__ = "invoices"

    number = Column(String(50), nullable=False, unique=True, index=True)
    date = Column(Date, nullable=False, default=date.today, index=True)
    due_date = Column(Date, nullable=False)
    customer_id = Column(Uuid(as_uuid=True), ForeignKey("customers.id"), nullable=False, index=True)
    project_id = Column(Uuid(as_uuid=True), ForeignKey("projects.id"), nullable=True, index=True)
    delivery_note_id = Column(Uuid(as_uuid=True), ForeignKey("delivery_notes.id"), nullable=True)
    status = Column(Enum(InvoiceStatus), nullable=False, default=InvoiceStatus.DRAFT, index=True)

    # Totals (calculated)
    subtotal = Column(Numeric(15, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(15, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(15, 2), nullable=False, default=0)
    total = Column(Numeric(15, 2), nullable=False, default=0)
    amount_paid = Column(Numeric(15, 2), nullable=False, default=0)
    amount_due = Column(Numeric(15, 2), nullable=False, default=0)

    notes = Column(Text, nullable=True)
    terms = Column(Text, nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True)

    # Relationships
    customer = relationship("Customer")
    project = relationship("Project")
    delivery_note = relationship("DeliveryNote")
    items = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.position"
    )
    payments = relationship(
        "Payment",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="Payment.date"
    )


class InvoiceItem(Base, BaseMixin):
    __tablename__ = "invoice_items"

    invoice_id = Column(
        Uuid(as_uuid=True), ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    inventory_item_id = Column(Uuid(as_uuid=True), ForeignKey("inventory_items.id"), nullable=True)
    delivery_item_id = Column(Uuid(as_uuid=True), ForeignKey("delivery_items.id"), nullable=True)
    position = Column(Integer, nullable=False, default=0)
    description = Column(String(255), nullable=False)
    quantity = Column(Numeric(12, 3), nullable=False)
    unit_price = Column(Numeric(15, 2), nullable=False)
    tax_rate = Column(Numeric(5, 2), nullable=False, default=0)
    discount_rate = Column(Numeric(5, 2), nullable=False, default=0)
    total = Column(Numeric(15, 2), nullable=False, default=0)

    # Relationships
    invoice = relationship("Invoice", back_populates="items")


class Payment(Base, BaseMixin):
    __tablename__ = "payments"

    invoice_id = Column(
        Uuid(as_uuid=True), ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    date = Column(Date, nullable=False, default=date.today, index=True)
    amount = Column(Numeric(15, 2), nullable=False)
    method = Column(Enum(PaymentMethod), nullable=False)
    reference = Column(String(100), nullable=True)  # Transfer id, check number, ...
    notes = Column(Text, nullable=True)

    # Relationships
    invoice = relationship("Invoice", back_populates="payments")
