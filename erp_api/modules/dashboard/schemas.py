from pydantic import BaseModel
from typing import Optional, List
from uuid import UUID
from datetime import date
from decimal import Decimal

from erp_api.modules.projects.models import ProjectStatus
from erp_api.modules.delivery_invoicing.models import InvoiceStatus
from erp_api.modules.inventory.schemas import ReplenishmentAlert


class DashboardMetrics(BaseModel):
    revenue_this_month: Decimal
    outstanding_receivables: Decimal
    overdue_invoices: int
    active_projects: int
    total_customers: int
    low_stock_items: int


class RecentProject(BaseModel):
    id: UUID
    code: str
    name: str
    customer_name: Optional[str] = None
    status: ProjectStatus
    progress: int
    end_date: Optional[date] = None


class RecentInvoice(BaseModel):
    id: UUID
    number: str
    customer_name: str
    date: date
    due_date: date
    status: InvoiceStatus
    total: Decimal
    amount_due: Decimal


class DashboardOut(BaseModel):
    metrics: DashboardMetrics
    recent_projects: List[RecentProject]
    recent_invoices: List[RecentInvoice]
    alerts: List[ReplenishmentAlert]
