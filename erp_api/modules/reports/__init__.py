"""
Reports Module

Read-only reporting over the tables of the other modules; it defines no
tables of its own.

Reports are grouped in four categories:
- Financial: trial balance, profit and loss, balance sheet, cash flow,
  income by customer, expenses by category
- Sales: by customer, by product, by month, quotation conversion,
  customer retention
- Inventory: valuation, stock levels, movement, slow moving, reorder
- Projects: profitability, status, budget variance

Every report resolves a named or custom period and can be exported as CSV.

Architecture Pattern: Service Layer
- routers/ -> FastAPI endpoints
- services/ -> Queries and aggregation
- schemas/ -> Pydantic models for the report envelope
- utils/ -> Period resolution and CSV export
"""

from .routers import (
    catalog_router,
    financial_router,
    sales_router,
    inventory_router,
    projects_router
)

__all__ = [
    "catalog_router",
    "financial_router",
    "sales_router",
    "inventory_router",
    "projects_router"
]
