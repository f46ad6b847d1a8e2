"""
Project Reports Service
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import joinedload

from erp_api.common.calculator import to_money
from erp_api.modules.delivery_invoicing.models import Invoice, ISSUED_STATUSES
from erp_api.modules.projects.models import Project, ProjectStatus, TaskStatus
from .base import BaseReportService
from ..utils import percentage


class ProjectReportService(BaseReportService):
    """Service for project reports"""

    def _projects(self, start_date: date, end_date: date, manager_id: Optional[UUID] = None) -> List[Project]:
        """Projects whose schedule overlaps the period"""
        query = self.db.query(Project).options(joinedload(Project.customer)).filter(
            Project.start_date <= end_date,
            or_(Project.end_date.is_(None), Project.end_date >= start_date)
        )
        if manager_id:
            query = query.filter(Project.manager_id == manager_id)
        return query.order_by(Project.code).all()

    def get_project_profitability(
        self, start_date: date, end_date: date, manager_id: Optional[UUID] = None
    ) -> Dict[str, Any]:
        """
        Revenue is the net of tax amount of issued invoices linked to the
        project, over its whole life.
        """
        projects = self._projects(start_date, end_date, manager_id)
        revenue = defaultdict(Decimal)
        if projects:
            invoices = self.db.query(Invoice).filter(
                Invoice.project_id.in_([p.id for p in projects]),
                Invoice.status.in_(ISSUED_STATUSES)
            ).all()
            for invoice in invoices:
                revenue[invoice.project_id] += Decimal(invoice.subtotal) - Decimal(invoice.discount_amount)

        rows = []
        for project in projects:
            project_revenue = to_money(revenue[project.id])
            actual_cost = to_money(project.actual_cost)
            profit = project_revenue - actual_cost
            rows.append({
                "project_id": project.id,
                "code": project.code,
                "name": project.name,
                "customer_name": project.customer.name if project.customer else None,
                "budget": to_money(project.budget),
                "actual_cost": actual_cost,
                "revenue": project_revenue,
                "profit": profit,
                "margin": percentage(profit, project_revenue),
            })

        total_revenue = self._sum(row["revenue"] for row in rows)
        total_profit = self._sum(row["profit"] for row in rows)
        summary = {
            "project_count": len(rows),
            "total_revenue": total_revenue,
            "total_cost": self._sum(row["actual_cost"] for row in rows),
            "total_profit": total_profit,
            "overall_margin": percentage(total_profit, total_revenue),
        }
        return self._envelope(
            "project-profitability", "Project Profitability", start_date, end_date, rows, summary,
            {"manager_id": manager_id}
        )

    def get_project_status(
        self, start_date: date, end_date: date, manager_id: Optional[UUID] = None
    ) -> Dict[str, Any]:
        today = date.today()
        projects = self._projects(start_date, end_date, manager_id)

        rows = []
        for project in projects:
            is_late = bool(
                project.end_date
                and project.end_date < today
                and project.status not in (ProjectStatus.COMPLETED, ProjectStatus.CANCELLED)
            )
            rows.append({
                "project_id": project.id,
                "code": project.code,
                "name": project.name,
                "status": project.status.value,
                "progress": project.progress,
                "start_date": project.start_date,
                "end_date": project.end_date,
                "tasks_total": len(project.tasks),
                "tasks_done": sum(1 for task in project.tasks if task.status == TaskStatus.DONE),
                "is_late": is_late,
            })

        by_status = {project_status.value: 0 for project_status in ProjectStatus}
        for row in rows:
            by_status[row["status"]] += 1
        summary = {
            "project_count": len(rows),
            "by_status": by_status,
            "late_projects": sum(1 for row in rows if row["is_late"]),
            "average_progress": percentage(sum(row["progress"] for row in rows), len(rows) * 100),
        }
        return self._envelope(
            "project-status", "Project Status", start_date, end_date, rows, summary,
            {"manager_id": manager_id}
        )

    def get_budget_variance(
        self, start_date: date, end_date: date, manager_id: Optional[UUID] = None
    ) -> Dict[str, Any]:
        """Budget against actual cost; a negative variance is an overrun."""
        rows = []
        for project in self._projects(start_date, end_date, manager_id):
            budget = to_money(project.budget)
            variance = to_money(project.budget_variance)
            rows.append({
                "project_id": project.id,
                "code": project.code,
                "name": project.name,
                "budget": budget,
                "actual_cost": to_money(project.actual_cost),
                "variance": variance,
                "variance_pct": percentage(variance, budget),
                "over_budget": variance < 0,
            })
        rows.sort(key=lambda r: r["variance"])

        total_budget = self._sum(row["budget"] for row in rows)
        total_variance = self._sum(row["variance"] for row in rows)
        summary = {
            "project_count": len(rows),
            "total_budget": total_budget,
            "total_actual_cost": self._sum(row["actual_cost"] for row in rows),
            "total_variance": total_variance,
            "variance_pct": percentage(total_variance, total_budget),
            "over_budget_count": sum(1 for row in rows if row["over_budget"]),
        }
        return self._envelope(
            "budget-variance", "Budget Variance", start_date, end_date, rows, summary,
            {"manager_id": manager_id}
        )
