"""
Report catalogue

Lists every available report with the path that generates it.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from erp_api.modules.auth.dependencies import AuthDependencies
from erp_api.modules.auth.models import Permission, User
from ..schemas import ReportCatalogEntry, ReportCategory

require_reporting = AuthDependencies.require_permission(Permission.REPORTING)

router = APIRouter(prefix="/reports", tags=["Reports"])

REPORT_CATALOG = [
    (ReportCategory.FINANCIAL, "trial-balance", "Trial Balance"),
    (ReportCategory.FINANCIAL, "profit-loss", "Profit and Loss"),
    (ReportCategory.FINANCIAL, "balance-sheet", "Balance Sheet"),
    (ReportCategory.FINANCIAL, "cash-flow", "Cash Flow"),
    (ReportCategory.FINANCIAL, "income-by-customer", "Income by Customer"),
    (ReportCategory.FINANCIAL, "expense-by-category", "Expenses by Category"),
    (ReportCategory.SALES, "sales-by-customer", "Sales by Customer"),
    (ReportCategory.SALES, "sales-by-product", "Sales by Product"),
    (ReportCategory.SALES, "sales-by-month", "Sales by Month"),
    (ReportCategory.SALES, "quotation-conversion", "Quotation Conversion"),
    (ReportCategory.SALES, "customer-retention", "Customer Retention"),
    (ReportCategory.INVENTORY, "inventory-valuation", "Inventory Valuation"),
    (ReportCategory.INVENTORY, "stock-levels", "Stock Levels"),
    (ReportCategory.INVENTORY, "inventory-movement", "Inventory Movement"),
    (ReportCategory.INVENTORY, "slow-moving", "Slow Moving Items"),
    (ReportCategory.INVENTORY, "reorder-report", "Reorder Report"),
    (ReportCategory.PROJECTS, "project-profitability", "Project Profitability"),
    (ReportCategory.PROJECTS, "project-status", "Project Status"),
    (ReportCategory.PROJECTS, "budget-variance", "Budget Variance"),
]


@router.get("", response_model=List[ReportCatalogEntry])
def list_reports(
    category: Optional[ReportCategory] = Query(None, description="Filter by category"),
    current_user: User = Depends(require_reporting)
):
    return [
        ReportCatalogEntry(
            category=report_category,
            report_type=report_type,
            title=title,
            path=f"/reports/{report_category.value}/{report_type}"
        )
        for report_category, report_type, title in REPORT_CATALOG
        if category is None or report_category == category
    ]
