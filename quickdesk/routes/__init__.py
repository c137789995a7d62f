# quickdesk/routes/__init__.py
from .auth_routes import router as auth_router
from .category_routes import router as category_router
from .dashboard_routes import router as dashboard_router
from .health_routes import router as health_router
from .notification_routes import router as notification_router
from .ticket_routes import router as ticket_router
from .user_routes import router as user_router


def include_routes(app):
    """Include all routers in the FastAPI app."""
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(user_router)
    app.include_router(category_router)
    app.include_router(ticket_router)
    app.include_router(notification_router)
    app.include_router(dashboard_router)
