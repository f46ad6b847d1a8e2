from sqlalchemy.orm import Session, joinedload
from sqlalchemy import func
from datetime import date
from decimal import Decimal
from typing import Any, Dict
import logging

from erp_api.core.config import settings
from erp_api.common.calculator import to_money
from erp_api.modules.customers.models import Customer
from erp_api.modules.delivery_invoicing.models import Invoice, InvoiceStatus, Payment, PAYABLE_STATUSES
from erp_api.modules.inventory.service import InventoryService
from erp_api.modules.projects.models import Project, ACTIVE_PROJECT_STATUSES

logger = logging.getLogger(__name__)


class DashboardService:
    """Home screen summary across every module"""

    def __init__(self, db: Session):
        self.db = db

    def get_metrics(self, today: date, low_stock_items: int) -> Dict[str, Any]:
        month_start = today.replace(day=1)
        revenue = self.db.query(func.coalesce(func.sum(Payment.amount), 0)).filter(
            Payment.date >= month_start,
            Payment.date <= today
        ).scalar()

        receivables = self.db.query(Invoice.amount_due, Invoice.status, Invoice.due_date).filter(
            Invoice.status.in_(PAYABLE_STATUSES)
        ).all()
        overdue = sum(
            1 for _, invoice_status, due_date in receivables
            if invoice_status == InvoiceStatus.OVERDUE or due_date < today
        )

        return {
            "revenue_this_month": to_money(revenue),
            "outstanding_receivables": to_money(sum((Decimal(amount) for amount, _, _ in receivables), Decimal("0"))),
            "overdue_invoices": overdue,
            "active_projects": self.db.query(Project).filter(Project.status.in_(ACTIVE_PROJECT_STATUSES)).count(),
            "total_customers": self.db.query(Customer).count(),
            "low_stock_items": low_stock_items,
        }

    def get_recent_projects(self, limit: int):
        projects = self.db.query(Project).options(joinedload(Project.customer)).order_by(
            Project.created_at.desc()
        ).limit(limit).all()
        return [
            {
                "id": project.id,
                "code": project.code,
                "name": project.name,
                "customer_name": project.customer.name if project.customer else None,
                "status": project.status,
                "progress": project.progress,
                "end_date": project.end_date,
            }
            for project in projects
        ]

    def get_recent_invoices(self, limit: int):
        invoices = self.db.query(Invoice).options(joinedload(Invoice.customer)).order_by(
            Invoice.date.desc(), Invoice.created_at.desc()
        ).limit(limit).all()
        return [
            {
                "id": invoice.id,
                "number": invoice.number,
                "customer_name": invoice.customer.name,
                "date": invoice.date,
                "due_date": invoice.due_date,
                "status": invoice.status,
                "total": invoice.total,
                "amount_due": invoice.amount_due,
            }
            for invoice in invoices
        ]

    def get_dashboard(self, today: date = None) -> Dict[str, Any]:
        today = today or date.today()
        limit = settings.RECENT_ITEMS_LIMIT
        alerts = InventoryService(self.db).get_replenishment_alerts()

        return {
            "metrics": self.get_metrics(today, len(alerts)),
            "recent_projects": self.get_recent_projects(limit),
            "recent_invoices": self.get_recent_invoices(limit),
            "alerts": alerts,
        }
