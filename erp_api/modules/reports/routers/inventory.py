"""
Inventory Reports Router

FastAPI router for all inventory report endpoints. Every endpoint can be
narrowed to one category and/or one location.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from erp_api.database.database import get_db
from erp_api.modules.auth.dependencies import AuthDependencies
from erp_api.modules.auth.models import Permission, User
from ..services.inventory import InventoryReportService
from ..utils import PeriodParams, generate_report

require_reporting = AuthDependencies.require_permission(Permission.REPORTING)

router = APIRouter(prefix="/reports/inventory", tags=["Reports"])


@router.get("/inventory-valuation", response_model=None)
def get_inventory_valuation(
    period: PeriodParams = Depends(),
    category: Optional[str] = Query(None, description="Filter by category"),
    location: Optional[str] = Query(None, description="Filter by location"),
    export: Optional[str] = Query(None, pattern="^(csv)$", description="Export format: csv"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_reporting)
):
    """Stock value at cost and at selling price for every active item."""
    service = InventoryReportService(db)
    return generate_report(
        "inventory-valuation",
        lambda: service.get_inventory_valuation(period.start_date, period.end_date, category, location),
        export
    )


@router.get("/stock-levels", response_model=None)
def get_stock_levels(
    period: PeriodParams = Depends(),
    category: Optional[str] = Query(None, description="Filter by category"),
    location: Optional[str] = Query(None, description="Filter by location"),
    export: Optional[str] = Query(None, pattern="^(csv)$", description="Export format: csv"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_reporting)
):
    service = InventoryReportService(db)
    return generate_report(
        "stock-levels",
        lambda: service.get_stock_levels(period.start_date, period.end_date, category, location),
        export
    )


@router.get("/inventory-movement", response_model=None)
def get_inventory_movement(
    period: PeriodParams = Depends(),
    category: Optional[str] = Query(None, description="Filter by category"),
    location: Optional[str] = Query(None, description="Filter by location"),
    export: Optional[str] = Query(None, pattern="^(csv)$", description="Export format: csv"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_reporting)
):
    """Purchased, sold, adjusted and transferred quantities per item in the period."""
    service = InventoryReportService(db)
    return generate_report(
        "inventory-movement",
        lambda: service.get_inventory_movement(period.start_date, period.end_date, category, location),
        export
    )


@router.get("/slow-moving", response_model=None)
def get_slow_moving(
    period: PeriodParams = Depends(),
    category: Optional[str] = Query(None, description="Filter by category"),
    location: Optional[str] = Query(None, description="Filter by location"),
    export: Optional[str] = Query(None, pattern="^(csv)$", description="Export format: csv"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_reporting)
):
    """Items in stock that have not sold recently."""
    service = InventoryReportService(db)
    return generate_report(
        "slow-moving",
        lambda: service.get_slow_moving(period.start_date, period.end_date, category, location),
        export
    )


@router.get("/reorder-report", response_model=None)
def get_reorder_report(
    period: PeriodParams = Depends(),
    category: Optional[str] = Query(None, description="Filter by category"),
    location: Optional[str] = Query(None, description="Filter by location"),
    export: Optional[str] = Query(None, pattern="^(csv)$", description="Export format: csv"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_reporting)
):
    service = InventoryReportService(db)
    return generate_report(
        "reorder-report",
        lambda: service.get_reorder_report(period.start_date, period.end_date, category, location),
        export
    )
