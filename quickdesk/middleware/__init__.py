# quickdesk/middleware/__init__.py
from .auth_middleware import get_current_user, require_roles
from .error_handler import register_error_handlers
from .logging import add_request_id_middleware

__all__ = [
    "get_current_user",
    "require_roles",
    "register_error_handlers",
    "add_request_id_middleware",
]
