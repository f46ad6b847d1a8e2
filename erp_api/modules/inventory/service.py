from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import IntegrityError
from sqlalchemy import or_
from fastapi import HTTPException, status
from uuid import UUID
from datetime import date
from decimal import Decimal
from typing import Dict, Any, List, Optional
import logging

from erp_api.common.calculator import to_money
from erp_api.common.pagination import paginate
from erp_api.modules.inventory.models import InventoryItem, InventoryMovement, MovementType, signed_quantity
from erp_api.modules.inventory.schemas import InventoryItemCreate, InventoryItemUpdate, InventoryMovementCreate
from erp_api.modules.quotations.models import QuotationItem, QuotationTemplateItem
from erp_api.modules.delivery_invoicing.models import DeliveryItem, InvoiceItem

logger = logging.getLogger(__name__)


class InventoryService:
    """Inventory items and the stock movements that change their quantity"""

    def __init__(self, db: Session):
        self.db = db

    # ===== ITEMS =====

    def _sku_taken(self, sku: str, exclude_id: Optional[UUID] = None) -> bool:
        query = self.db.query(InventoryItem).filter(InventoryItem.sku == sku)
        if exclude_id:
            query = query.filter(InventoryItem.id != exclude_id)
        return query.first() is not None

    def create_item(self, item_data: InventoryItemCreate) -> InventoryItem:
        """
        Create an inventory item

        Raises:
            HTTPException: 409 if the SKU already exists
        """
        try:
            if self._sku_taken(item_data.sku):
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f"An item with SKU '{item_data.sku}' already exists"
                )

            item = InventoryItem(**item_data.model_dump())
            self.db.add(item)
            self.db.commit()
            self.db.refresh(item)

            logger.info(f"Inventory item created: {item.sku} {item.name}")
            return item

        except HTTPException:
            raise
        except IntegrityError:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Database integrity error"
            )
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creating inventory item: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Internal error: {str(e)}"
            )

    def list_items(
        self,
        limit: int = 20,
        offset: int = 0,
        search: Optional[str] = None,
        category: Optional[str] = None,
        location: Optional[str] = None,
        is_active: Optional[bool] = None
    ) -> Dict[str, Any]:
        query = self.db.query(InventoryItem)

        if search:
            term = f"%{search}%"
            query = query.filter(or_(InventoryItem.name.ilike(term), InventoryItem.sku.ilike(term)))
        if category:
            query = query.filter(InventoryItem.category == category)
        if location:
            query = query.filter(InventoryItem.location == location)
        if is_active is not None:
            query = query.filter(InventoryItem.is_active == is_active)

        page = paginate(query.order_by(InventoryItem.name), limit, offset)
        return {
            "items": page["items"],
            "total": page["total"],
            "limit": limit,
            "offset": offset
        }

    def get_item(self, item_id: UUID) -> InventoryItem:
        item = self.db.query(InventoryItem).filter(InventoryItem.id == item_id).first()
        if not item:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Inventory item not found"
            )
        return item

    def update_item(self, item_id: UUID, update_data: InventoryItemUpdate) -> InventoryItem:
        try:
            item = self.get_item(item_id)
            update_dict = {k: v for k, v in update_data.model_dump(exclude_unset=True).items() if v is not None}

            if "sku" in update_dict and self._sku_taken(update_dict["sku"], exclude_id=item_id):
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f"An item with SKU '{update_dict['sku']}' already exists"
                )

            for field, value in update_dict.items():
                setattr(item, field, value)

            self.db.commit()
            self.db.refresh(item)

            logger.info(f"Inventory item updated: {item.sku}")
            return item

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error updating inventory item {item_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error updating inventory item: {str(e)}"
            )

    def delete_item(self, item_id: UUID) -> Dict[str, str]:
        try:
            item = self.get_item(item_id)

            in_use = (
                self.db.query(InventoryMovement).filter(InventoryMovement.inventory_item_id == item_id).first()
                or self.db.query(QuotationItem).filter(QuotationItem.inventory_item_id == item_id).first()
                or self.db.query(QuotationTemplateItem).filter(QuotationTemplateItem.inventory_item_id == item_id).first()
                or self.db.query(DeliveryItem).filter(DeliveryItem.inventory_item_id == item_id).first()
                or self.db.query(InvoiceItem).filter(InvoiceItem.inventory_item_id == item_id).first()
            )
            if in_use:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="This item has stock movements or document lines and cannot be deleted. Deactivate it instead."
                )

            self.db.delete(item)
            self.db.commit()

            logger.info(f"Inventory item deleted: {item.sku}")
            return {"message": "The inventory item has been successfully deleted"}

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error deleting inventory item: {str(e)}"
            )

    def get_replenishment_alerts(self) -> List[Dict[str, Any]]:
        """Active items at or below their reorder level, largest shortfall first."""
        items = self.db.query(InventoryItem).filter(
            InventoryItem.is_active.is_(True),
            InventoryItem.quantity <= InventoryItem.reorder_level
        ).all()

        alerts = [
            {
                "item_id": item.id,
                "sku": item.sku,
                "name": item.name,
                "location": item.location,
                "quantity": item.quantity,
                "reorder_level": item.reorder_level,
                "shortfall": Decimal(item.reorder_level) - Decimal(item.quantity)
            }
            for item in items
        ]
        alerts.sort(key=lambda alert: (-alert["shortfall"], alert["name"]))
        return alerts

    # ===== MOVEMENTS =====

    @staticmethod
    def _apply_quantity(item: InventoryItem, delta: Decimal) -> None:
        new_quantity = Decimal(item.quantity or 0) + delta
        if new_quantity < 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Insufficient stock for {item.sku}: available {item.quantity}, requested {abs(delta)}"
            )
        item.quantity = new_quantity

    def record_movement(
        self,
        item: InventoryItem,
        movement_type: MovementType,
        quantity: Decimal,
        movement_date: Optional[date] = None,
        unit_cost: Optional[Decimal] = None,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
        delivery_note_id: Optional[UUID] = None
    ) -> InventoryMovement:
        """
        Sign the quantity, apply it to the item and add the movement to the
        session. The caller commits.
        """
        delta = signed_quantity(movement_type, quantity)
        cost = to_money(item.cost_price if unit_cost is None else unit_cost)

        self._apply_quantity(item, delta)

        movement = InventoryMovement(
            date=movement_date or date.today(),
            type=movement_type,
            reference=reference,
            inventory_item_id=item.id,
            quantity=delta,
            unit_cost=cost,
            total_cost=to_money(abs(delta) * cost),
            notes=notes,
            delivery_note_id=delivery_note_id
        )
        self.db.add(movement)
        return movement

    def create_movement(self, movement_data: InventoryMovementCreate) -> InventoryMovement:
        try:
            item = self.get_item(movement_data.inventory_item_id)

            movement = self.record_movement(
                item,
                movement_data.type,
                movement_data.quantity,
                movement_date=movement_data.date,
                unit_cost=movement_data.unit_cost,
                reference=movement_data.reference,
                notes=movement_data.notes
            )
            self.db.commit()
            self.db.refresh(movement)

            logger.info(
                f"Inventory movement recorded: {movement.type.value} {movement.quantity} of {item.sku} "
                f"(stock now {item.quantity})"
            )
            return movement

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error recording inventory movement: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Internal error: {str(e)}"
            )

    def list_movements(
        self,
        limit: int = 20,
        offset: int = 0,
        item_id: Optional[UUID] = None,
        movement_type: Optional[MovementType] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        search: Optional[str] = None
    ) -> Dict[str, Any]:
        query = self.db.query(InventoryMovement).options(joinedload(InventoryMovement.item))

        if item_id:
            query = query.filter(InventoryMovement.inventory_item_id == item_id)
        if movement_type:
            query = query.filter(InventoryMovement.type == movement_type)
        if start_date:
            query = query.filter(InventoryMovement.date >= start_date)
        if end_date:
            query = query.filter(InventoryMovement.date <= end_date)
        if search:
            term = f"%{search}%"
            query = query.join(InventoryItem).filter(
                or_(
                    InventoryMovement.reference.ilike(term),
                    InventoryItem.name.ilike(term),
                    InventoryItem.sku.ilike(term)
                )
            )

        page = paginate(
            query.order_by(InventoryMovement.date.desc(), InventoryMovement.created_at.desc()), limit, offset
        )
        return {
            "movements": page["items"],
            "total": page["total"],
            "limit": limit,
            "offset": offset
        }

    def get_movement(self, movement_id: UUID) -> InventoryMovement:
        movement = self.db.query(InventoryMovement).filter(InventoryMovement.id == movement_id).first()
        if not movement:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Inventory movement not found"
            )
        return movement

    def delete_movement(self, movement_id: UUID) -> Dict[str, str]:
        """Delete a movement and reverse its effect on the item quantity."""
        try:
            movement = self.get_movement(movement_id)
            if movement.delivery_note_id:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="This movement belongs to a delivered delivery note and cannot be deleted"
                )

            item = self.get_item(movement.inventory_item_id)
            self._apply_quantity(item, -Decimal(movement.quantity))

            self.db.delete(movement)
            self.db.commit()

            logger.info(f"Inventory movement deleted: {movement_id} (stock of {item.sku} now {item.quantity})")
            return {"message": "The inventory movement has been successfully deleted"}

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error deleting inventory movement: {str(e)}"
            )
