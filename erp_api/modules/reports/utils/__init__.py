"""
Utilities for Reports module

Period resolution, CSV export and small formatting helpers shared by the
report services and routers.
"""

import calendar
import csv
import io
import logging
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from fastapi import HTTPException, Query, Response

from erp_api.modules.reports.schemas import ReportPeriod, ReportResponse

logger = logging.getLogger(__name__)


# ===== PERIODS =====

def _month_end(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def resolve_period(
    period: ReportPeriod,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    today: Optional[date] = None
) -> Tuple[date, date]:
    """
    Turn a named period into a date range.

    Current periods run up to today; past periods cover the whole month,
    quarter or year. The quarter before Q1 is Q4 of the previous year.
    """
    today = today or date.today()

    if period == ReportPeriod.CUSTOM:
        if not start_date or not end_date:
            raise ValueError("start_date and end_date are required for a custom period")
        if end_date < start_date:
            raise ValueError("end_date must be greater than or equal to start_date")
        return start_date, end_date

    quarter = (today.month - 1) // 3  # 0-based

    if period == ReportPeriod.CURRENT_MONTH:
        return date(today.year, today.month, 1), today

    if period == ReportPeriod.CURRENT_QUARTER:
        return date(today.year, quarter * 3 + 1, 1), today

    if period == ReportPeriod.CURRENT_YEAR:
        return date(today.year, 1, 1), today

    if period == ReportPeriod.LAST_MONTH:
        year, month = (today.year - 1, 12) if today.month == 1 else (today.year, today.month - 1)
        return date(year, month, 1), _month_end(year, month)

    if period == ReportPeriod.LAST_QUARTER:
        year, last_quarter = (today.year - 1, 3) if quarter == 0 else (today.year, quarter - 1)
        first_month = last_quarter * 3 + 1
        return date(year, first_month, 1), _month_end(year, first_month + 2)

    if period == ReportPeriod.LAST_YEAR:
        return date(today.year - 1, 1, 1), date(today.year - 1, 12, 31)

    raise ValueError(f"Unknown period: {period}")


class PeriodParams:
    """Query parameters shared by every report endpoint."""

    def __init__(
        self,
        period: ReportPeriod = Query(ReportPeriod.CURRENT_YEAR, description="Named period or custom"),
        start_date: Optional[date] = Query(None, description="Start date for a custom period"),
        end_date: Optional[date] = Query(None, description="End date for a custom period"),
    ):
        try:
            self.start_date, self.end_date = resolve_period(period, start_date, end_date)
        except ValueError as e:
            raise HTTPException(422, str(e))
        self.period = period


def month_key(value: date) -> str:
    return value.strftime("%Y-%m")


def months_between(start: date, end: date) -> List[str]:
    """Month keys (YYYY-MM) covering the range, both ends included."""
    keys = []
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        keys.append(f"{year:04d}-{month:02d}")
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)
    return keys


def percentage(part, whole) -> Decimal:
    """part / whole * 100 rounded to one decimal; zero when whole is zero."""
    whole = Decimal(str(whole or 0))
    if whole == 0:
        return Decimal("0.0")
    return (Decimal(str(part or 0)) * 100 / whole).quantize(Decimal("0.1"))


# ===== CSV EXPORT =====

def create_csv_response(
    data: List[Dict[str, Any]],
    filename: str,
    headers: Dict[str, str] = None
) -> Response:
    """
    Create a CSV response from a list of dictionaries.

    Args:
        data: List of dictionaries with report data
        filename: Name for the CSV file
        headers: Optional mapping of field names to CSV headers

    Returns:
        FastAPI Response with CSV content
    """
    if not data and not headers:
        csv_content = ""
    else:
        output = io.StringIO()

        # Use headers mapping if provided, otherwise use keys from first row
        fieldnames = list(headers.keys()) if headers else list(data[0].keys())
        csv_headers = list(headers.values()) if headers else fieldnames

        writer = csv.DictWriter(output, fieldnames=fieldnames, extrasaction="ignore")
        writer.writerow(dict(zip(fieldnames, csv_headers)))

        for row in data:
            writer.writerow({key: format_csv_value(row.get(key)) for key in fieldnames})

        csv_content = output.getvalue()
        output.close()

    return Response(
        content=csv_content,
        media_type="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename={filename}",
            "Content-Type": "text/csv; charset=utf-8"
        }
    )


def format_csv_value(value: Any) -> str:
    """
    Format a value for CSV export.

    Args:
        value: Value to format

    Returns:
        String representation suitable for CSV
    """
    if value is None:
        return ""
    elif isinstance(value, bool):
        return "Yes" if value else "No"
    elif isinstance(value, Decimal):
        return str(value)
    elif isinstance(value, (date, datetime)):
        return value.isoformat()
    elif isinstance(value, Enum):
        return value.value
    else:
        return str(value)


def report_csv_response(report: Dict[str, Any]) -> Response:
    """Export the detail rows of a report with its configured headers."""
    report_type = report["report_type"]
    filename = f"{report_type.replace('-', '_')}_{report['period_start']}_{report['period_end']}.csv"
    return create_csv_response(report["rows"], filename, CSV_HEADERS.get(report_type))


# Column order and header names per report type
CSV_HEADERS = {
    # Financial
    "trial-balance": {
        "code": "Account Code",
        "name": "Account Name",
        "type": "Type",
        "period_debit": "Period Debit",
        "period_credit": "Period Credit",
        "debit": "Debit Balance",
        "credit": "Credit Balance",
    },
    "profit-loss": {
        "section": "Section",
        "code": "Account Code",
        "name": "Account Name",
        "amount": "Amount",
    },
    "balance-sheet": {
        "section": "Section",
        "code": "Account Code",
        "name": "Account Name",
        "balance": "Balance",
    },
    "cash-flow": {
        "month": "Month",
        "inflows": "Cash In",
        "outflows": "Cash Out",
        "net": "Net Cash Flow",
    },
    "income-by-customer": {
        "customer_name": "Customer",
        "payment_count": "Payments",
        "amount_received": "Amount Received",
        "share": "Share %",
    },
    "expense-by-category": {
        "code": "Account Code",
        "category": "Category",
        "amount": "Amount",
        "share": "Share %",
    },
    # Sales
    "sales-by-customer": {
        "customer_name": "Customer",
        "invoice_count": "Invoices",
        "subtotal": "Subtotal",
        "tax_amount": "Tax",
        "total": "Total",
        "amount_paid": "Paid",
        "amount_due": "Due",
    },
    "sales-by-product": {
        "sku": "SKU",
        "description": "Product",
        "quantity": "Quantity Sold",
        "revenue": "Revenue",
        "average_price": "Average Price",
        "invoice_count": "Invoices",
    },
    "sales-by-month": {
        "month": "Month",
        "invoice_count": "Invoices",
        "total": "Invoiced",
        "collected": "Collected",
    },
    "quotation-conversion": {
        "status": "Status",
        "count": "Quotations",
        "total_value": "Total Value",
        "share": "Share %",
    },
    "customer-retention": {
        "customer_name": "Customer",
        "previous_invoices": "Invoices (Previous Period)",
        "current_invoices": "Invoices (Period)",
        "status": "Status",
    },
    # Inventory
    "inventory-valuation": {
        "sku": "SKU",
        "name": "Item",
        "category": "Category",
        "location": "Location",
        "quantity": "Quantity",
        "cost_price": "Unit Cost",
        "stock_value": "Stock Value",
        "retail_value": "Retail Value",
    },
    "stock-levels": {
        "sku": "SKU",
        "name": "Item",
        "location": "Location",
        "quantity": "Quantity",
        "reorder_level": "Reorder Level",
        "stock_status": "Status",
    },
    "inventory-movement": {
        "sku": "SKU",
        "name": "Item",
        "purchased": "Purchased",
        "sold": "Sold",
        "adjusted": "Adjusted",
        "transferred": "Transferred",
        "net_change": "Net Change",
        "total_cost": "Total Cost",
    },
    "slow-moving": {
        "sku": "SKU",
        "name": "Item",
        "quantity": "Quantity",
        "last_sale_date": "Last Sale",
        "days_since_last_sale": "Days Since Last Sale",
        "stock_value": "Stock Value",
    },
    "reorder-report": {
        "sku": "SKU",
        "name": "Item",
        "location": "Location",
        "quantity": "Quantity",
        "reorder_level": "Reorder Level",
        "shortfall": "Shortfall",
        "suggested_quantity": "Suggested Order",
        "estimated_cost": "Estimated Cost",
    },
    # Projects
    "project-profitability": {
        "code": "Code",
        "name": "Project",
        "customer_name": "Customer",
        "budget": "Budget",
        "actual_cost": "Actual Cost",
        "revenue": "Revenue",
        "profit": "Profit",
        "margin": "Margin %",
    },
    "project-status": {
        "code": "Code",
        "name": "Project",
        "status": "Status",
        "progress": "Progress %",
        "start_date": "Start",
        "end_date": "End",
        "tasks_total": "Tasks",
        "tasks_done": "Done",
        "is_late": "Late",
    },
    "budget-variance": {
        "code": "Code",
        "name": "Project",
        "budget": "Budget",
        "actual_cost": "Actual Cost",
        "variance": "Variance",
        "variance_pct": "Variance %",
        "over_budget": "Over Budget",
    },
}


def render_report(report: Dict[str, Any], export: Optional[str] = None):
    """Return the report as CSV when requested, otherwise as JSON."""
    if export == "csv":
        return report_csv_response(report)
    return ReportResponse(**report)


def generate_report(report_type: str, build: Callable[[], Dict[str, Any]], export: Optional[str] = None):
    """Build a report and render it; unexpected failures become a 500."""
    try:
        return render_report(build(), export)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error generating {report_type} report: {e}")
        raise HTTPException(500, f"Error generating report: {str(e)}")
