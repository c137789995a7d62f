# quickdesk/utils/exceptions.py
"""Custom exceptions for QuickDesk"""
from typing import Any, Dict, List, Optional


class QuickDeskException(Exception):
    """Base exception for QuickDesk"""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        errors: Optional[List[Dict[str, Any]]] = None
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.errors = errors
        super().__init__(message)


class ValidationError(QuickDeskException):
    """Validation error"""
    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message, "VALIDATION_ERROR", 400, errors)


class NotFoundError(QuickDeskException):
    """Resource not found"""
    def __init__(self, message: str):
        super().__init__(message, "NOT_FOUND", 404)


class UnauthorizedError(QuickDeskException):
    """Unauthorized access"""
    def __init__(self, message: str = "Not authorized to access this route"):
        super().__init__(message, "UNAUTHORIZED", 401)


class ForbiddenError(QuickDeskException):
    """Forbidden access"""
    def __init__(self, message: str = "Access denied"):
        super().__init__(message, "FORBIDDEN", 403)


class ConflictError(QuickDeskException):
    """Resource conflict (e.g., duplicate name or email)"""
    def __init__(self, message: str):
        super().__init__(message, "CONFLICT", 400)
