# quickdesk/routes/health_routes.py
"""
Health and discovery endpoints

Endpoints:
- GET /health - Liveness check
- GET /api    - API name, version and endpoint map
"""
from fastapi import APIRouter, Depends

from quickdesk.core.config import Settings
from quickdesk.dependencies import get_app_settings
from quickdesk.utils.datetime_utils import get_utc_now, to_iso_string

router = APIRouter(tags=["Health"])

API_ENDPOINTS = {
    "auth": "/api/auth",
    "users": "/api/users",
    "tickets": "/api/tickets",
    "categories": "/api/categories",
    "dashboard": "/api/dashboard",
    "notifications": "/api/notifications",
}


@router.get("/health")
def health_check(settings: Settings = Depends(get_app_settings)):
    return {
        "success": True,
        "message": "QuickDesk API is running!",
        "timestamp": to_iso_string(get_utc_now()),
        "environment": settings.environment,
    }


@router.get("/api")
def api_info(settings: Settings = Depends(get_app_settings)):
    return {
        "success": True,
        "message": "Welcome to QuickDesk API",
        "version": settings.api_version,
        "endpoints": API_ENDPOINTS,
    }
