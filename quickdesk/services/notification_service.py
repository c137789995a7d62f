# quickdesk/services/notification_service.py
"""In-app notifications: ticket fan-out, system messages and per-user inbox operations"""
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from quickdesk.core.logger import get_logger
from quickdesk.models import Notification, NotificationType, Ticket, TicketPriority, User
from quickdesk.schemas.common import pagination
from quickdesk.services.serializers import enum_value, notification_to_dict
from quickdesk.utils.datetime_utils import days_ago, get_utc_now, to_iso_string
from quickdesk.utils.exceptions import ForbiddenError, NotFoundError, ValidationError
from quickdesk.utils.validators import lookup_uuid, parse_enum, validate_uuid

logger = get_logger(__name__)

READ_RETENTION_DAYS = 30

# type -> (title, message); {ticket_id}, {title}, {priority}, {status} are filled from the ticket
TICKET_TEMPLATES = {
    NotificationType.TICKET_CREATED: (
        "New Ticket Created - {ticket_id}",
        'A new ticket "{title}" has been created with {priority} priority.',
    ),
    NotificationType.TICKET_ASSIGNED: (
        "Ticket Assigned - {ticket_id}",
        'You have been assigned to ticket "{title}".',
    ),
    NotificationType.TICKET_UPDATED: (
        "Ticket Updated - {ticket_id}",
        'Ticket "{title}" has been updated. Status: {status}',
    ),
    NotificationType.TICKET_RESOLVED: (
        "Ticket Resolved - {ticket_id}",
        'Great news! Your ticket "{title}" has been resolved.',
    ),
}
DEFAULT_TICKET_TEMPLATE = (
    "Ticket Notification - {ticket_id}",
    "There's an update on your ticket \"{title}\".",
)


class NotificationService:
    """Service for creating and managing notifications"""

    @staticmethod
    def render_ticket_template(ticket: Ticket, notification_type: NotificationType) -> Dict[str, str]:
        """Build title, message and action URL for a ticket event."""
        title_tpl, message_tpl = TICKET_TEMPLATES.get(notification_type, DEFAULT_TICKET_TEMPLATE)
        values = {
            "ticket_id": ticket.ticket_id,
            "title": ticket.title,
            "priority": enum_value(ticket.priority),
            "status": enum_value(ticket.status),
        }
        return {
            "title": title_tpl.format(**values),
            "message": message_tpl.format(**values),
            "action_url": f"/tickets/{ticket.id}",
        }

    @staticmethod
    def create_ticket_notification(
        db: Session,
        ticket: Ticket,
        notification_type: NotificationType,
        recipient_id: UUID
    ) -> Notification:
        """Add (without committing) one ticket notification for a recipient."""
        rendered = NotificationService.render_ticket_template(ticket, notification_type)
        notification = Notification(
            recipient_id=recipient_id,
            title=rendered["title"],
            message=rendered["message"],
            type=notification_type,
            priority=TicketPriority.URGENT if ticket.priority == TicketPriority.URGENT else TicketPriority.MEDIUM,
            related_ticket_id=ticket.id,
            action_url=rendered["action_url"],
            meta_data={
                "ticket_id": ticket.ticket_id,
                "ticket_title": ticket.title,
                "ticket_status": enum_value(ticket.status),
                "ticket_priority": enum_value(ticket.priority),
            },
            is_read=False,
        )
        db.add(notification)
        return notification

    @staticmethod
    def participant_ids(ticket: Ticket, exclude_user_id: Optional[UUID] = None) -> List[UUID]:
        """Creator and (if distinct) assignee, minus the excluded actor."""
        recipients = []
        creator_id = ticket.created_by_id
        if creator_id is not None and creator_id != exclude_user_id:
            recipients.append(creator_id)

        assignee_id = ticket.assigned_to_id
        if (
            assignee_id is not None
            and assignee_id != creator_id
            and assignee_id != exclude_user_id
        ):
            recipients.append(assignee_id)
        return recipients

    @staticmethod
    def notify_ticket_participants(
        db: Session,
        ticket: Ticket,
        notification_type: NotificationType,
        exclude_user_id: Optional[UUID] = None
    ) -> List[Notification]:
        """
        Fan a ticket event out to its participants.

        Failures are logged and swallowed so the triggering request still succeeds.

        Returns:
            Notifications created (empty on failure)
        """
        try:
            notifications = [
                NotificationService.create_ticket_notification(db, ticket, notification_type, recipient_id)
                for recipient_id in NotificationService.participant_ids(ticket, exclude_user_id)
            ]
            db.commit()
            return notifications
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error notifying ticket participants for {ticket.ticket_id}: {e}")
            return []

    @staticmethod
    def notify_user(
        db: Session,
        ticket: Ticket,
        notification_type: NotificationType,
        recipient_id: UUID
    ) -> Optional[Notification]:
        """Single-recipient ticket notification (e.g. new assignee). Failures are logged and swallowed."""
        try:
            notification = NotificationService.create_ticket_notification(db, ticket, notification_type, recipient_id)
            db.commit()
            return notification
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error creating {notification_type.value} notification: {e}")
            return None

    @staticmethod
    def create_system_notification(
        db: Session,
        recipient_id: UUID,
        title: str,
        message: str,
        priority: TicketPriority = TicketPriority.MEDIUM
    ) -> Notification:
        notification = Notification(
            recipient_id=recipient_id,
            title=title,
            message=message,
            type=NotificationType.SYSTEM,
            priority=priority,
            is_read=False,
            meta_data={"source": "system", "timestamp": to_iso_string(get_utc_now())},
        )
        db.add(notification)
        db.commit()
        return notification

    @staticmethod
    def create_announcement(
        db: Session,
        title: str,
        message: str,
        user_ids: Sequence[UUID],
        priority: TicketPriority = TicketPriority.MEDIUM
    ) -> List[Notification]:
        """One announcement notification per listed user."""
        stamp = to_iso_string(get_utc_now())
        notifications = []
        for user_id in user_ids:
            notification = Notification(
                recipient_id=user_id,
                title=title,
                message=message,
                type=NotificationType.ANNOUNCEMENT,
                priority=priority,
                is_read=False,
                meta_data={"source": "announcement", "timestamp": stamp},
            )
            db.add(notification)
            notifications.append(notification)
        db.commit()
        return notifications

    @staticmethod
    def mark_as_read(db: Session, user_id: UUID, notification_ids: Optional[Sequence[UUID]] = None) -> int:
        """
        Mark the user's unread notifications as read, optionally only the given ids.

        Returns:
            Number of notifications modified
        """
        query = db.query(Notification).filter(
            Notification.recipient_id == user_id,
            Notification.is_read.is_(False)
        )
        if notification_ids:
            query = query.filter(Notification.id.in_(list(notification_ids)))
        modified = query.update({Notification.is_read: True}, synchronize_session=False)
        db.commit()
        return modified

    @staticmethod
    def unread_count(db: Session, user_id: UUID) -> int:
        return db.query(func.count(Notification.id)).filter(
            Notification.recipient_id == user_id,
            Notification.is_read.is_(False)
        ).scalar() or 0

    @staticmethod
    def clean_old_notifications(db: Session, days: int = READ_RETENTION_DAYS) -> int:
        """Delete read notifications older than `days` days."""
        deleted = db.query(Notification).filter(
            Notification.created_at < days_ago(days),
            Notification.is_read.is_(True)
        ).delete(synchronize_session=False)
        db.commit()
        logger.info(f"Cleaned {deleted} old notifications")
        return deleted

    # ==================== INBOX ====================

    @staticmethod
    def list_notifications(
        db: Session,
        user: User,
        page: int = 1,
        limit: int = 20,
        type: Optional[str] = None,
        is_read: Optional[bool] = None
    ) -> Dict[str, Any]:
        query = db.query(Notification).filter(Notification.recipient_id == user.id)
        if type:
            query = query.filter(Notification.type == parse_enum(NotificationType, type, "notification type"))
        if is_read is not None:
            query = query.filter(Notification.is_read.is_(is_read))

        total = query.count()
        notifications = (
            query.order_by(Notification.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return {
            "notifications": [notification_to_dict(n) for n in notifications],
            "pagination": pagination(page, limit, total),
            "unread_count": NotificationService.unread_count(db, user.id),
        }

    @staticmethod
    def _get_owned(db: Session, user: User, notification_id: str, action: str) -> Notification:
        notification = db.get(Notification, lookup_uuid(notification_id, "Notification"))
        if not notification:
            raise NotFoundError("Notification not found")
        if notification.recipient_id != user.id:
            raise ForbiddenError(f"Not authorized to {action} this notification")
        return notification

    @staticmethod
    def read_one(db: Session, user: User, notification_id: str) -> Dict[str, Any]:
        notification = NotificationService._get_owned(db, user, notification_id, "access")
        notification.is_read = True
        db.commit()
        return notification_to_dict(notification)

    @staticmethod
    def delete_one(db: Session, user: User, notification_id: str) -> None:
        notification = NotificationService._get_owned(db, user, notification_id, "delete")
        db.delete(notification)
        db.commit()

    @staticmethod
    def clear_read(db: Session, user: User) -> int:
        deleted = db.query(Notification).filter(
            Notification.recipient_id == user.id,
            Notification.is_read.is_(True)
        ).delete(synchronize_session=False)
        db.commit()
        return deleted

    @staticmethod
    def get_stats(db: Session, user: User) -> Dict[str, Any]:
        rows = (
            db.query(Notification.type, Notification.is_read, func.count(Notification.id))
            .filter(Notification.recipient_id == user.id)
            .group_by(Notification.type, Notification.is_read)
            .all()
        )

        total = unread = 0
        type_stats: Dict[str, Dict[str, int]] = {}
        for ntype, is_read, count in rows:
            entry = type_stats.setdefault(enum_value(ntype), {"total": 0, "unread": 0})
            entry["total"] += count
            total += count
            if not is_read:
                entry["unread"] += count
                unread += count

        return {
            "total": total,
            "unread": unread,
            "read": total - unread,
            "type_stats": type_stats,
        }

    @staticmethod
    def create_notification(
        db: Session,
        recipient: Optional[str],
        title: Optional[str],
        message: Optional[str],
        type: str = "system",
        priority: str = "medium",
        related_ticket: Optional[str] = None,
        action_url: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Admin-authored notification for a single recipient.

        Raises:
            ValidationError: If recipient/title/message missing or enums invalid
            NotFoundError: If recipient or related ticket do not exist
        """
        if not recipient or not title or not message:
            raise ValidationError("Recipient, title, and message are required")

        recipient_id = validate_uuid(recipient, "Invalid recipient ID")
        if not db.get(User, recipient_id):
            raise NotFoundError("Recipient not found")

        related_ticket_id = None
        if related_ticket:
            related_ticket_id = validate_uuid(related_ticket, "Invalid ticket ID")
            if not db.get(Ticket, related_ticket_id):
                raise NotFoundError("Ticket not found")

        notification = Notification(
            recipient_id=recipient_id,
            title=title,
            message=message,
            type=parse_enum(NotificationType, type, "notification type"),
            priority=parse_enum(TicketPriority, priority, "priority"),
            related_ticket_id=related_ticket_id,
            action_url=action_url,
            meta_data=metadata or {},
            is_read=False,
        )
        db.add(notification)
        db.commit()
        db.refresh(notification)
        logger.info(f"✓ Notification created for {recipient_id}")
        return notification_to_dict(notification)
