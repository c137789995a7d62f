# quickdesk/services/__init__.py
from .email_service import EmailService
from .auth_service import AuthService
from .notification_service import NotificationService
from .file_upload_service import FileUploadService
from .ticket_service import TicketService
from .category_service import CategoryService
from .user_service import UserService
from .dashboard_service import DashboardService
from .seed_service import SeedService

__all__ = [
    "EmailService",
    "AuthService",
    "NotificationService",
    "FileUploadService",
    "TicketService",
    "CategoryService",
    "UserService",
    "DashboardService",
    "SeedService",
]
