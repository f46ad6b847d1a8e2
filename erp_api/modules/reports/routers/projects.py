"""
Project Reports Router

FastAPI router for all project report endpoints.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from erp_api.database.database import get_db
from erp_api.modules.auth.dependencies import AuthDependencies
from erp_api.modules.auth.models import Permission, User
from ..services.projects import ProjectReportService
from ..utils import PeriodParams, generate_report

require_reporting = AuthDependencies.require_permission(Permission.REPORTING)

router = APIRouter(prefix="/reports/projects", tags=["Reports"])


@router.get("/project-profitability", response_model=None)
def get_project_profitability(
    period: PeriodParams = Depends(),
    manager_id: Optional[UUID] = Query(None, description="Filter by project manager"),
    export: Optional[str] = Query(None, pattern="^(csv)$", description="Export format: csv"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_reporting)
):
    """Invoiced revenue against actual cost for projects active in the period."""
    service = ProjectReportService(db)
    return generate_report(
        "project-profitability",
        lambda: service.get_project_profitability(period.start_date, period.end_date, manager_id),
        export
    )


@router.get("/project-status", response_model=None)
def get_project_status(
    period: PeriodParams = Depends(),
    manager_id: Optional[UUID] = Query(None, description="Filter by project manager"),
    export: Optional[str] = Query(None, pattern="^(csv)$", description="Export format: csv"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_reporting)
):
    service = ProjectReportService(db)
    return generate_report(
        "project-status",
        lambda: service.get_project_status(period.start_date, period.end_date, manager_id),
        export
    )


@router.get("/budget-variance", response_model=None)
def get_budget_variance(
    period: PeriodParams = Depends(),
    manager_id: Optional[UUID] = Query(None, description="Filter by project manager"),
    export: Optional[str] = Query(None, pattern="^(csv)$", description="Export format: csv"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_reporting)
):
    """Budget against actual cost; overruns are listed first."""
    service = ProjectReportService(db)
    return generate_report(
        "budget-variance",
        lambda: service.get_budget_variance(period.start_date, period.end_date, manager_id),
        export
    )
