# quickdesk/models/ticket.py
from sqlalchemy import (
    Column, String, Text, Integer, Boolean, DateTime, ForeignKey, Index, Enum, JSON, Uuid
)
from sqlalchemy.orm import relationship, validates
import uuid
import enum

from quickdesk.utils.datetime_utils import get_utc_now
from .base import Base, TimestampMixin, enum_values


class TicketStatus(str, enum.Enum):
    """Ticket status. Transitions are not restricted beyond reopen/rate rules."""
    OPEN = "open"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class TicketPriority(str, enum.Enum):
    """Ticket priority."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class Ticket(Base, TimestampMixin):
    """Support ticket with embedded attachments and comments."""
    __tablename__ = "ticket"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    ticket_id = Column(String(32), nullable=False, unique=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    priority = Column(
        Enum(TicketPriority, name="ticket_priority", values_callable=enum_values),
        nullable=False,
        default=TicketPriority.MEDIUM,
    )
    status = Column(
        Enum(TicketStatus, name="ticket_status", values_callable=enum_values),
        nullable=False,
        default=TicketStatus.OPEN,
    )
    category_id = Column(Uuid, ForeignKey("category.id"), nullable=False)
    created_by_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    assigned_to_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    due_date = Column(DateTime, nullable=True)

    resolution = Column(String(1000), nullable=True)
    resolved_at = Column(DateTime, nullable=True)
    resolved_by_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    closed_at = Column(DateTime, nullable=True)

    satisfaction_rating = Column(Integer, nullable=True)
    satisfaction_feedback = Column(String(500), nullable=True)
    rated_at = Column(DateTime, nullable=True)

    # Relationships
    category = relationship("Category", back_populates="tickets")
    created_by = relationship(
        "User",
        foreign_keys=[created_by_id],
        back_populates="tickets_created"
    )
    assigned_to = relationship(
        "User",
        foreign_keys=[assigned_to_id],
        back_populates="tickets_assigned"
    )
    resolved_by = relationship("User", foreign_keys=[resolved_by_id])
    attachments = relationship(
        "TicketAttachment",
        back_populates="ticket",
        cascade="all, delete-orphan",
        order_by="TicketAttachment.uploaded_at"
    )
    comments = relationship(
        "TicketComment",
        back_populates="ticket",
        cascade="all, delete-orphan",
        order_by="TicketComment.created_at"
    )
    notifications = relationship("Notification", back_populates="related_ticket")

    __table_args__ = (
        Index("idx_ticket_created_by", "created_by_id"),
        Index("idx_ticket_assigned_to", "assigned_to_id"),
        Index("idx_ticket_status", "status"),
        Index("idx_ticket_priority", "priority"),
        Index("idx_ticket_category", "category_id"),
    )

    @validates("status")
    def _stamp_status_timestamps(self, key, value):
        """Stamp resolved_at / closed_at the first time the status is reached."""
        status = TicketStatus(value)
        if status == TicketStatus.RESOLVED and self.resolved_at is None:
            self.resolved_at = get_utc_now()
        elif status == TicketStatus.CLOSED and self.closed_at is None:
            self.closed_at = get_utc_now()
        return status

    def __repr__(self):
        return f"<Ticket {self.ticket_id}>"


class TicketAttachment(Base):
    """File stored under the uploads directory and attached to a ticket."""
    __tablename__ = "ticket_attachment"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    ticket_id = Column(Uuid, ForeignKey("ticket.id", ondelete="CASCADE"), nullable=False, index=True)
    filename = Column(String(255), nullable=False)
    original_name = Column(String(255), nullable=False)
    path = Column(String(1000), nullable=False)
    size = Column(Integer, nullable=False)
    mime_type = Column(String(100), nullable=False)
    uploaded_at = Column(DateTime, nullable=False, default=get_utc_now)

    ticket = relationship("Ticket", back_populates="attachments")

    def __repr__(self):
        return f"<TicketAttachment {self.filename}>"


class TicketComment(Base):
    """Ticket comment. Internal comments are only visible to agents and admins."""
    __tablename__ = "ticket_comment"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    ticket_id = Column(Uuid, ForeignKey("ticket.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(String(1000), nullable=False)
    author_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    is_internal = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=get_utc_now)

    ticket = relationship("Ticket", back_populates="comments")
    author = relationship("User")

    def __repr__(self):
        return f"<TicketComment {self.id}>"
