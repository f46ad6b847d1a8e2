from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import Optional, List
from uuid import UUID
from datetime import date

from erp_api.database.database import get_db
from erp_api.common.pagination import PageParams, page_params, MessageResponse
from erp_api.modules.auth.dependencies import AuthDependencies
from erp_api.modules.auth.models import Permission, User
from erp_api.modules.inventory.models import MovementType
from erp_api.modules.inventory.service import InventoryService
from erp_api.modules.inventory.schemas import (
    InventoryItemCreate, InventoryItemUpdate, InventoryItemOut, InventoryItemList,
    InventoryMovementCreate, InventoryMovementOut, InventoryMovementList, ReplenishmentAlert
)

require_inventory = AuthDependencies.require_permission(Permission.INVENTORY)

inventory_router = APIRouter(prefix="/inventory", tags=["Inventory"])


# ===== ITEMS =====

@inventory_router.post("/items", response_model=InventoryItemOut, status_code=status.HTTP_201_CREATED)
def create_item(
    item: InventoryItemCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_inventory)
):
    return InventoryService(db).create_item(item)


@inventory_router.get("/items", response_model=InventoryItemList)
def list_items(
    search: Optional[str] = Query(None, description="Search by name or SKU"),
    category: Optional[str] = Query(None),
    location: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    page: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_inventory)
):
    return InventoryService(db).list_items(page.limit, page.offset, search, category, location, is_active)


@inventory_router.get("/items/{item_id}", response_model=InventoryItemOut)
def get_item(
    item_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_inventory)
):
    return InventoryService(db).get_item(item_id)


@inventory_router.patch("/items/{item_id}", response_model=InventoryItemOut)
def update_item(
    item_id: UUID,
    update: InventoryItemUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_inventory)
):
    return InventoryService(db).update_item(item_id, update)


@inventory_router.delete("/items/{item_id}", response_model=MessageResponse)
def delete_item(
    item_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_inventory)
):
    return InventoryService(db).delete_item(item_id)


@inventory_router.get("/replenishment-alerts", response_model=List[ReplenishmentAlert])
def get_replenishment_alerts(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_inventory)
):
    """Active items at or below their reorder level."""
    return InventoryService(db).get_replenishment_alerts()


# ===== MOVEMENTS =====

@inventory_router.post("/movements", response_model=InventoryMovementOut, status_code=status.HTTP_201_CREATED)
def create_movement(
    movement: InventoryMovementCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_inventory)
):
    """
    Record a stock movement. Quantity is a positive magnitude: sales and
    adjustments decrease stock, purchases and transfers increase it.
    """
    return InventoryService(db).create_movement(movement)


@inventory_router.get("/movements", response_model=InventoryMovementList)
def list_movements(
    item_id: Optional[UUID] = Query(None),
    type: Optional[MovementType] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    search: Optional[str] = Query(None, description="Search by reference, item name or SKU"),
    page: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_inventory)
):
    return InventoryService(db).list_movements(
        page.limit, page.offset, item_id, type, start_date, end_date, search
    )


@inventory_router.get("/movements/{movement_id}", response_model=InventoryMovementOut)
def get_movement(
    movement_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_inventory)
):
    return InventoryService(db).get_movement(movement_id)


@inventory_router.delete("/movements/{movement_id}", response_model=MessageResponse)
def delete_movement(
    movement_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_inventory)
):
    return InventoryService(db).delete_movement(movement_id)
