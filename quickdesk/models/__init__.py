# quickdesk/models/__init__.py
from .base import Base
from .user import User, UserRole, STAFF_ROLES
from .category import Category
from .ticket import Ticket, TicketAttachment, TicketComment, TicketStatus, TicketPriority
from .notification import Notification, NotificationType

__all__ = [
    "Base",
    "User",
    "UserRole",
    "STAFF_ROLES",
    "Category",
    "Ticket",
    "TicketAttachment",
    "TicketComment",
    "TicketStatus",
    "TicketPriority",
    "Notification",
    "NotificationType",
]
