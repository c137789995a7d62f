# quickdesk/middleware/auth_middleware.py
"""Authentication and role gate dependencies for JWT-protected routes"""
from typing import Callable, Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from quickdesk.core.config import Settings
from quickdesk.core.database import get_db
from quickdesk.core.logger import get_logger
from quickdesk.dependencies import get_app_settings
from quickdesk.models import User
from quickdesk.services.auth_service import AuthService
from quickdesk.services.serializers import enum_value
from quickdesk.utils.exceptions import ForbiddenError

logger = get_logger(__name__)


def get_token_from_header(request: Request) -> Optional[str]:
    """
    Extract JWT token from Authorization header.

    Expected format: "Bearer <token>". Anything else counts as no token.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    parts = auth_header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        return None

    return parts[1]


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings)
) -> User:
    """
    FastAPI dependency resolving the bearer token to an active user.

    Raises:
        UnauthorizedError: If token is missing, invalid, expired, or the user is gone/deactivated
    """
    user = AuthService.authenticate_token(db, settings, get_token_from_header(request))
    request.state.user_id = str(user.id)
    return user


def require_roles(*roles) -> Callable[..., User]:
    """
    Build a dependency that admits only users holding one of `roles`.

    Usage:
        user: User = Depends(require_roles(UserRole.ADMIN))
    """
    allowed = {enum_value(role) for role in roles}

    def role_checker(user: User = Depends(get_current_user)) -> User:
        role = enum_value(user.role)
        if role not in allowed:
            logger.warning(f"Role {role} denied for {user.email}")
            raise ForbiddenError(f"User role {role} is not authorized to access this route")
        return user

    return role_checker
