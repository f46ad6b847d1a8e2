from sqlalchemy import Column, Integer, String, Date, ForeignKey, Numeric, Enum, Text, Uuid
from sqlalchemy.orm import relationship
from datetime import date
import enum

from erp_api.database.database import Base
from erp_api.common.mixins import BaseMixin


class QuotationStatus(str, enum.Enum):
    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


# Allowed status changes
QUOTATION_TRANSITIONS = {
    QuotationStatus.DRAFT: (QuotationStatus.SENT, QuotationStatus.EXPIRED),
    QuotationStatus.SENT: (QuotationStatus.ACCEPTED, QuotationStatus.REJECTED, QuotationStatus.EXPIRED),
    QuotationStatus.ACCEPTED: (),
    QuotationStatus.REJECTED: (),
    QuotationStatus.EXPIRED: (),
}

EDITABLE_QUOTATION_STATUSES = (QuotationStatus.DRAFT, QuotationStatus.SENT)


class Quotation(Base, BaseMixin):
    __tablename__ = "quotations"

    number = Column(String(50), nullable=False, unique=True, index=True)
    date = Column(Date, nullable=False, default=date.today, index=True)
    valid_until = Column(Date, nullable=False)
    customer_id = Column(Uuid(as_uuid=True), ForeignKey("customers.id"), nullable=False, index=True)
    status = Column(Enum(QuotationStatus), nullable=False, default=QuotationStatus.DRAFT, index=True)

    # Totals (calculated)
    subtotal = Column(Numeric(15, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(15, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(15, 2), nullable=False, default=0)
    total = Column(Numeric(15, 2), nullable=False, default=0)

    notes = Column(Text, nullable=True)
    terms = Column(Text, nullable=True)
    template_id = Column(Uuid(as_uuid=True), ForeignKey("quotation_templates.id", ondelete="SET NULL"), nullable=True)
    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True)

    # Relationships
    customer = relationship("Customer")
    items = relationship(
        "QuotationItem",
        back_populates="quotation",
        cascade="all, delete-orphan",
        order_by="QuotationItem.position"
    )


class QuotationItem(Base, BaseMixin):
    __tablename__ = "quotation_items"

    quotation_id = Column(
        Uuid(as_uuid=True), ForeignKey("quotations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    inventory_item_id = Column(Uuid(as_uuid=True), ForeignKey("inventory_items.id"), nullable=True)
    position = Column(Integer, nullable=False, default=0)
    description = Column(String(255), nullable=False)
    quantity = Column(Numeric(12, 3), nullable=False)
    unit_price = Column(Numeric(15, 2), nullable=False)
    tax_rate = Column(Numeric(5, 2), nullable=False, default=0)        # percent
    discount_rate = Column(Numeric(5, 2), nullable=False, default=0)   # percent
    total = Column(Numeric(15, 2), nullable=False, default=0)

    # Relationships
    quotation = relationship("Quotation", back_populates="items")


class QuotationTemplate(Base, BaseMixin):
    __tablename__ = "quotation_templates"

    name = Column(String(200), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    terms = Column(Text, nullable=True)

    # Relationships
    items = relationship(
        "QuotationTemplateItem",
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="QuotationTemplateItem.position"
    )


class QuotationTemplateItem(Base, BaseMixin):
    __tablename__ = "quotation_template_items"

    template_id = Column(
        Uuid(as_uuid=True), ForeignKey("quotation_templates.id", ondelete="CASCADE"), nullable=False, index=True
    )
    inventory_item_id = Column(Uuid(as_uuid=True), ForeignKey("inventory_items.id"), nullable=True)
    position = Column(Integer, nullable=False, default=0)
    description = Column(String(255), nullable=False)
    quantity = Column(Numeric(12, 3), nullable=False)
    unit_price = Column(Numeric(15, 2), nullable=False)
    tax_rate = Column(Numeric(5, 2), nullable=False, default=0)
    discount_rate = Column(Numeric(5, 2), nullable=False, default=0)

    # Relationships
    template = relationship("QuotationTemplate", back_populates="items")
