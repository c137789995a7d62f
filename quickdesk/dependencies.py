# quickdesk/dependencies.py
"""Request-scoped dependencies resolved from application state"""
from fastapi import Request

from quickdesk.core.config import Settings
from quickdesk.services.email_service import EmailService


def get_app_settings(request: Request) -> Settings:
    """Settings the running app was created with."""
    return request.app.state.settings


def get_email_service(request: Request) -> EmailService:
    """Shared email service built from the app settings."""
    return request.app.state.email_service
