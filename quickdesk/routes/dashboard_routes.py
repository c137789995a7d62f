# quickdesk/routes/dashboard_routes.py
"""Dashboard statistics, analytics and performance routes"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from quickdesk.core.database import get_db
from quickdesk.middleware.auth_middleware import get_current_user, require_roles
from quickdesk.models import User, UserRole
from quickdesk.schemas.common import api_response
from quickdesk.services.dashboard_service import DashboardService

router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])

staff_only = require_roles(UserRole.ADMIN, UserRole.AGENT)


@router.get("/stats")
def get_dashboard_stats(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """System-wide overview for staff, personal overview for requesters"""
    return api_response(DashboardService.get_stats(db, user))


@router.get("/analytics")
def get_ticket_analytics(
    period: int = Query(30, ge=1, le=365),
    user: User = Depends(staff_only),
    db: Session = Depends(get_db)
):
    return api_response(DashboardService.get_analytics(db, period=period))


@router.get("/performance")
def get_performance_metrics(
    user: User = Depends(staff_only),
    db: Session = Depends(get_db)
):
    """Last 30 days against the previous 30, plus per-agent workload"""
    return api_response(DashboardService.get_performance(db))
