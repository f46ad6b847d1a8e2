"""
Financial Reports Router

FastAPI router for all financial report endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from erp_api.database.database import get_db
from erp_api.modules.auth.dependencies import AuthDependencies
from erp_api.modules.auth.models import Permission, User
from ..services.financial import FinancialReportService
from ..utils import PeriodParams, generate_report

require_reporting = AuthDependencies.require_permission(Permission.REPORTING)

router = APIRouter(prefix="/reports/financial", tags=["Reports"])


@router.get("/trial-balance", response_model=None)
def get_trial_balance(
    period: PeriodParams = Depends(),
    export: Optional[str] = Query(None, pattern="^(csv)$", description="Export format: csv"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_reporting)
):
    """
    Generate the trial balance.

    Each account shows its debits and credits posted in the period plus its
    current balance on the debit or credit side.
    """
    service = FinancialReportService(db)
    return generate_report(
        "trial-balance",
        lambda: service.get_trial_balance(period.start_date, period.end_date),
        export
    )


@router.get("/profit-loss", response_model=None)
def get_profit_loss(
    period: PeriodParams = Depends(),
    export: Optional[str] = Query(None, pattern="^(csv)$", description="Export format: csv"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_reporting)
):
    """Revenue and expense accounts from posted journal entries in the period."""
    service = FinancialReportService(db)
    return generate_report(
        "profit-loss",
        lambda: service.get_profit_loss(period.start_date, period.end_date),
        export
    )


@router.get("/balance-sheet", response_model=None)
def get_balance_sheet(
    period: PeriodParams = Depends(),
    export: Optional[str] = Query(None, pattern="^(csv)$", description="Export format: csv"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_reporting)
):
    service = FinancialReportService(db)
    return generate_report(
        "balance-sheet",
        lambda: service.get_balance_sheet(period.start_date, period.end_date),
        export
    )


@router.get("/cash-flow", response_model=None)
def get_cash_flow(
    period: PeriodParams = Depends(),
    export: Optional[str] = Query(None, pattern="^(csv)$", description="Export format: csv"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_reporting)
):
    """Monthly payments received against purchase costs."""
    service = FinancialReportService(db)
    return generate_report(
        "cash-flow",
        lambda: service.get_cash_flow(period.start_date, period.end_date),
        export
    )


@router.get("/income-by-customer", response_model=None)
def get_income_by_customer(
    period: PeriodParams = Depends(),
    export: Optional[str] = Query(None, pattern="^(csv)$", description="Export format: csv"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_reporting)
):
    service = FinancialReportService(db)
    return generate_report(
        "income-by-customer",
        lambda: service.get_income_by_customer(period.start_date, period.end_date),
        export
    )


@router.get("/expense-by-category", response_model=None)
def get_expense_by_category(
    period: PeriodParams = Depends(),
    export: Optional[str] = Query(None, pattern="^(csv)$", description="Export format: csv"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_reporting)
):
    """Posted expense account activity, one row per expense account."""
    service = FinancialReportService(db)
    return generate_report(
        "expense-by-category",
        lambda: service.get_expense_by_category(period.start_date, period.end_date),
        export
    )
