# quickdesk/models/notification.py
from datetime import timedelta

from sqlalchemy import Column, String, Boolean, ForeignKey, Index, Enum, JSON, Uuid
from sqlalchemy.orm import relationship
import uuid
import enum

from quickdesk.utils.datetime_utils import get_utc_now
from .base import Base, TimestampMixin, enum_values
from .ticket import TicketPriority

NEW_NOTIFICATION_WINDOW = timedelta(hours=1)


class NotificationType(str, enum.Enum):
    """Notification type."""
    TICKET_CREATED = "ticket_created"
    TICKET_UPDATED = "ticket_updated"
    TICKET_RESOLVED = "ticket_resolved"
    TICKET_ASSIGNED = "ticket_assigned"
    SYSTEM = "system"
    ANNOUNCEMENT = "announcement"


class Notification(Base, TimestampMixin):
    """In-app notification for a single recipient."""
    __tablename__ = "notification"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    recipient_id = Column(Uuid, ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(String(2000), nullable=False)
    type = Column(
        Enum(NotificationType, name="notification_type", values_callable=enum_values),
        nullable=False,
        default=NotificationType.SYSTEM,
    )
    priority = Column(
        Enum(TicketPriority, name="notification_priority", values_callable=enum_values),
        nullable=False,
        default=TicketPriority.MEDIUM,
    )
    is_read = Column(Boolean, nullable=False, default=False)
    related_ticket_id = Column(Uuid, ForeignKey("ticket.id", ondelete="SET NULL"), nullable=True)
    action_url = Column(String(500), nullable=True)
    # "metadata" is reserved on declarative classes
    meta_data = Column("metadata", JSON, nullable=False, default=dict)

    recipient = relationship("User", back_populates="notifications")
    related_ticket = relationship("Ticket", back_populates="notifications")

    __table_args__ = (
        Index("idx_notification_recipient_created", "recipient_id", "created_at"),
        Index("idx_notification_recipient_read", "recipient_id", "is_read"),
        Index("idx_notification_type", "type"),
    )

    @property
    def is_new(self) -> bool:
        """True for notifications created less than an hour ago."""
        if self.created_at is None:
            return True
        return get_utc_now() - self.created_at < NEW_NOTIFICATION_WINDOW

    def __repr__(self):
        return f"<Notification {self.type} -> {self.recipient_id}>"
