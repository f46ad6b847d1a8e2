from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from erp_api.database.database import get_db
from erp_api.modules.auth.dependencies import AuthDependencies
from erp_api.modules.auth.models import User
from erp_api.modules.dashboard.schemas import DashboardOut
from erp_api.modules.dashboard.service import DashboardService

dashboard_router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@dashboard_router.get("", response_model=DashboardOut)
def get_dashboard(
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.get_current_user)
):
    """Headline metrics, latest projects and invoices, and stock alerts."""
    return DashboardService(db).get_dashboard()
