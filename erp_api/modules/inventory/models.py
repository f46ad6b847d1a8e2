from sqlalchemy import Column, String, Boolean, Date, ForeignKey, Numeric, Enum, Text, Uuid
from sqlalchemy.orm import relationship
from decimal import Decimal
from datetime import date
import enum

from erp_api.database.database import Base
from erp_api.common.mixins import BaseMixin


class MovementType(str, enum.Enum):
    PURCHASE = "purchase"        # Stock in
    SALE = "sale"                # Stock out
    ADJUSTMENT = "adjustment"    # Write-off, shrinkage (stock out)
    TRANSFER = "transfer"        # Received from another location (stock in)


# Movement types that take stock out of the item
OUTBOUND_TYPES = (MovementType.SALE, MovementType.ADJUSTMENT)


def signed_quantity(movement_type: MovementType, quantity) -> Decimal:
    """Map a positive magnitude to the stored sign for the movement type."""
    magnitude = abs(Decimal(str(quantity)))
    return -magnitude if movement_type in OUTBOUND_TYPES else magnitude


class InventoryItem(Base, BaseMixin):
    __tablename__ = "inventory_items"

    sku = Column(String(50), nullable=False, unique=True, index=True)
    name = Column(String(200), nullable=False, index=True)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True, index=True)
    unit_of_measure = Column(String(20), nullable=False, default="unit")

    cost_price = Column(Numeric(15, 2), nullable=False, default=0)
    selling_price = Column(Numeric(15, 2), nullable=False, default=0)

    quantity = Column(Numeric(12, 3), nullable=False, default=0)
    reorder_level = Column(Numeric(12, 3), nullable=False, default=0)
    location = Column(String(100), nullable=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)

    # Relationships
    movements = relationship("InventoryMovement", back_populates="item", order_by="InventoryMovement.date")

    @property
    def needs_reorder(self) -> bool:
        return Decimal(self.quantity or 0) <= Decimal(self.reorder_level or 0)

    @property
    def stock_value(self) -> Decimal:
        return (Decimal(self.quantity or 0) * Decimal(self.cost_price or 0)).quantize(Decimal("0.01"))


class InventoryMovement(Base, BaseMixin):
    __tablename__ = "inventory_movements"

    date = Column(Date, nullable=False, default=date.today, index=True)
    type = Column(Enum(MovementType), nullable=False, index=True)
    reference = Column(String(100), nullable=True)
    inventory_item_id = Column(Uuid(as_uuid=True), ForeignKey("inventory_items.id"), nullable=False, index=True)
    quantity = Column(Numeric(12, 3), nullable=False)  # Signed
    unit_cost = Column(Numeric(15, 2), nullable=False, default=0)
    total_cost = Column(Numeric(15, 2), nullable=False, default=0)
    notes = Column(Text, nullable=True)

    # Set when the movement was generated by a delivered delivery note
    delivery_note_id = Column(Uuid(as_uuid=True), ForeignKey("delivery_notes.id"), nullable=True, index=True)

    # Relationships
    item = relationship("InventoryItem", back_populates="movements")
