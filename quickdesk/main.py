# quickdesk/main.py
"""
QuickDesk Helpdesk API - Main FastAPI Application

Features:
- JWT-based authentication with user/agent/admin roles
- Ticket lifecycle with role-scoped updates, comments, assignment and ratings
- In-app notifications and transactional email
- Category management and dashboard reporting
"""
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from quickdesk.core.config import Settings, get_settings
from quickdesk.core.database import get_db_context, init_db, init_engine, test_connection
from quickdesk.core.logger import configure_logging, get_logger
from quickdesk.middleware.error_handler import register_error_handlers
from quickdesk.middleware.logging import add_request_id_middleware
from quickdesk.routes import include_routes
from quickdesk.services.email_service import EmailService
from quickdesk.services.file_upload_service import FileUploadService
from quickdesk.services.seed_service import SeedService

logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application around one explicit Settings instance.

    Args:
        settings: Application settings; defaults to the environment-derived ones

    Returns:
        Configured FastAPI app
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    init_engine(settings)

    app = FastAPI(
        title=settings.api_title,
        description="Helpdesk ticketing API with role-based access, notifications and reporting",
        version=settings.api_version
    )
    app.state.settings = settings
    app.state.email_service = EmailService(settings)

    # ==================== MIDDLEWARE SETUP ====================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(add_request_id_middleware)

    # ==================== ERROR HANDLERS ====================

    register_error_handlers(app)

    # ==================== ROUTE REGISTRATION ====================

    include_routes(app)
    upload_dir = FileUploadService.ensure_upload_dir(settings)
    app.mount("/uploads", StaticFiles(directory=str(upload_dir)), name="uploads")

    # ==================== STARTUP/SHUTDOWN ====================

    @app.on_event("startup")
    async def startup_event():
        """Initialize database and seed default data on startup"""
        logger.info(f"Starting QuickDesk API ({settings.environment})...")

        if not test_connection():
            logger.error("✗ Failed to connect to database on startup!")
            raise RuntimeError("Database connection failed")

        if not init_db():
            logger.error("✗ Failed to initialize database on startup!")
            raise RuntimeError("Database initialization failed")

        if settings.seed_default_data:
            with get_db_context() as db:
                SeedService.seed_default_data(db, settings)

        logger.info("✓ QuickDesk API started successfully")

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("Shutting down QuickDesk API...")

    return app


app = create_app()
