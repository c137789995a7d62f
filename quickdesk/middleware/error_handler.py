# quickdesk/middleware/error_handler.py
"""Global error handling: every failure is rendered in the standard envelope"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from quickdesk.core.logger import get_logger
from quickdesk.schemas.common import error_body
from quickdesk.utils.exceptions import QuickDeskException

logger = get_logger(__name__)


def _field_errors(exc: RequestValidationError) -> list:
    errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({
            "field": ".".join(location) or None,
            "message": error.get("msg"),
        })
    return errors


def register_error_handlers(app: FastAPI):
    """Register error handlers with FastAPI app"""

    @app.exception_handler(QuickDeskException)
    async def quickdesk_exception_handler(request: Request, exc: QuickDeskException):
        """Handle custom QuickDesk exceptions"""
        if exc.status_code >= 500:
            logger.error(f"{exc.code}: {exc.message} [{request.url.path}]")
        else:
            logger.warning(f"{exc.code}: {exc.message} [{request.url.path}]")
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.message, exc.errors)
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Handle malformed request bodies and parameters"""
        errors = _field_errors(exc)
        logger.warning(f"VALIDATION_ERROR: {len(errors)} invalid field(s) [{request.url.path}]")
        return JSONResponse(
            status_code=400,
            content=error_body("Validation failed", errors)
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle framework HTTP errors, including unknown routes"""
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        if exc.status_code == 404 and message == "Not Found":
            message = "Route not found"
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(message),
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions"""
        logger.error(f"Unexpected error: {exc}", exc_info=True)
        settings = getattr(request.app.state, "settings", None)
        if settings is not None and settings.is_production:
            message = "Server Error"
        else:
            message = str(exc) or "Server Error"
        return JSONResponse(
            status_code=500,
            content=error_body(message)
        )
