"""
Sales Reports Router

FastAPI router for all sales report endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from erp_api.database.database import get_db
from erp_api.modules.auth.dependencies import AuthDependencies
from erp_api.modules.auth.models import Permission, User
from ..services.sales import SalesReportService
from ..utils import PeriodParams, generate_report

require_reporting = AuthDependencies.require_permission(Permission.REPORTING)

router = APIRouter(prefix="/reports/sales", tags=["Reports"])


@router.get("/sales-by-customer", response_model=None)
def get_sales_by_customer(
    period: PeriodParams = Depends(),
    export: Optional[str] = Query(None, pattern="^(csv)$", description="Export format: csv"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_reporting)
):
    """Issued invoices grouped by customer."""
    service = SalesReportService(db)
    return generate_report(
        "sales-by-customer",
        lambda: service.get_sales_by_customer(period.start_date, period.end_date),
        export
    )


@router.get("/sales-by-product", response_model=None)
def get_sales_by_product(
    period: PeriodParams = Depends(),
    export: Optional[str] = Query(None, pattern="^(csv)$", description="Export format: csv"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_reporting)
):
    """Invoiced quantity and revenue per product."""
    service = SalesReportService(db)
    return generate_report(
        "sales-by-product",
        lambda: service.get_sales_by_product(period.start_date, period.end_date),
        export
    )


@router.get("/sales-by-month", response_model=None)
def get_sales_by_month(
    period: PeriodParams = Depends(),
    export: Optional[str] = Query(None, pattern="^(csv)$", description="Export format: csv"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_reporting)
):
    """Invoiced and collected amounts per month."""
    service = SalesReportService(db)
    return generate_report(
        "sales-by-month",
        lambda: service.get_sales_by_month(period.start_date, period.end_date),
        export
    )


@router.get("/quotation-conversion", response_model=None)
def get_quotation_conversion(
    period: PeriodParams = Depends(),
    export: Optional[str] = Query(None, pattern="^(csv)$", description="Export format: csv"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_reporting)
):
    """Quotations per status and the accepted conversion rate."""
    service = SalesReportService(db)
    return generate_report(
        "quotation-conversion",
        lambda: service.get_quotation_conversion(period.start_date, period.end_date),
        export
    )


@router.get("/customer-retention", response_model=None)
def get_customer_retention(
    period: PeriodParams = Depends(),
    export: Optional[str] = Query(None, pattern="^(csv)$", description="Export format: csv"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_reporting)
):
    """New, retained and lost customers against the previous period."""
    service = SalesReportService(db)
    return generate_report(
        "customer-retention",
        lambda: service.get_customer_retention(period.start_date, period.end_date),
        export
    )
