# quickdesk/services/serializers.py
"""ORM -> JSON-ready dict conversion shared by the services"""
from typing import Any, Dict, Optional

from quickdesk.models import Category, Notification, Ticket, TicketAttachment, TicketComment, User
from quickdesk.utils.datetime_utils import to_iso_string


def enum_value(value) -> Optional[str]:
    return value.value if hasattr(value, "value") else value


def user_summary(user: Optional[User]) -> Optional[Dict[str, Any]]:
    """Compact user reference embedded in tickets, comments and categories."""
    if user is None:
        return None
    return {
        "id": str(user.id),
        "name": user.name,
        "email": user.email,
        "role": enum_value(user.role),
        "department": user.department,
    }


def user_profile(user: User) -> Dict[str, Any]:
    """Public profile: never includes the password hash or reset token."""
    return {
        "id": str(user.id),
        "name": user.name,
        "email": user.email,
        "role": enum_value(user.role),
        "department": user.department,
        "phone": user.phone,
        "is_active": user.is_active,
        "last_login": to_iso_string(user.last_login),
        "created_at": to_iso_string(user.created_at),
        "updated_at": to_iso_string(user.updated_at),
    }


def category_summary(category: Optional[Category]) -> Optional[Dict[str, Any]]:
    if category is None:
        return None
    return {
        "id": str(category.id),
        "name": category.name,
        "color": category.color,
    }


def category_to_dict(category: Category) -> Dict[str, Any]:
    return {
        "id": str(category.id),
        "name": category.name,
        "description": category.description,
        "color": category.color,
        "is_active": category.is_active,
        "created_by": user_summary(category.created_by),
        "created_at": to_iso_string(category.created_at),
        "updated_at": to_iso_string(category.updated_at),
    }


def attachment_to_dict(attachment: TicketAttachment) -> Dict[str, Any]:
    return {
        "id": str(attachment.id),
        "filename": attachment.filename,
        "original_name": attachment.original_name,
        "path": attachment.path,
        "url": f"/uploads/{attachment.filename}",
        "size": attachment.size,
        "mime_type": attachment.mime_type,
        "uploaded_at": to_iso_string(attachment.uploaded_at),
    }


def comment_to_dict(comment: TicketComment) -> Dict[str, Any]:
    return {
        "id": str(comment.id),
        "content": comment.content,
        "author": user_summary(comment.author),
        "is_internal": comment.is_internal,
        "created_at": to_iso_string(comment.created_at),
    }


def ticket_summary(ticket: Ticket) -> Dict[str, Any]:
    """Row used in lists and recent-activity feeds."""
    return {
        "id": str(ticket.id),
        "ticket_id": ticket.ticket_id,
        "title": ticket.title,
        "status": enum_value(ticket.status),
        "priority": enum_value(ticket.priority),
        "category": category_summary(ticket.category),
        "created_by": user_summary(ticket.created_by),
        "assigned_to": user_summary(ticket.assigned_to),
        "created_at": to_iso_string(ticket.created_at),
        "updated_at": to_iso_string(ticket.updated_at),
    }


def ticket_to_dict(ticket: Ticket, include_internal: bool = True) -> Dict[str, Any]:
    """
    Full ticket payload.

    Args:
        ticket: Ticket instance
        include_internal: False strips internal comments (requester view)
    """
    comments = [
        comment_to_dict(comment)
        for comment in ticket.comments
        if include_internal or not comment.is_internal
    ]

    rating = None
    if ticket.satisfaction_rating is not None:
        rating = {
            "rating": ticket.satisfaction_rating,
            "feedback": ticket.satisfaction_feedback or "",
            "rated_at": to_iso_string(ticket.rated_at),
        }

    data = ticket_summary(ticket)
    data.update({
        "description": ticket.description,
        "tags": list(ticket.tags or []),
        "due_date": to_iso_string(ticket.due_date),
        "attachments": [attachment_to_dict(a) for a in ticket.attachments],
        "comments": comments,
        "resolution": ticket.resolution,
        "resolved_at": to_iso_string(ticket.resolved_at),
        "resolved_by": user_summary(ticket.resolved_by),
        "closed_at": to_iso_string(ticket.closed_at),
        "satisfaction_rating": rating,
    })
    return data


def notification_to_dict(notification: Notification) -> Dict[str, Any]:
    related = None
    if notification.related_ticket is not None:
        related = {
            "id": str(notification.related_ticket.id),
            "ticket_id": notification.related_ticket.ticket_id,
            "title": notification.related_ticket.title,
            "status": enum_value(notification.related_ticket.status),
            "priority": enum_value(notification.related_ticket.priority),
        }
    return {
        "id": str(notification.id),
        "recipient": str(notification.recipient_id),
        "title": notification.title,
        "message": notification.message,
        "type": enum_value(notification.type),
        "priority": enum_value(notification.priority),
        "is_read": notification.is_read,
        "is_new": notification.is_new,
        "related_ticket": related,
        "action_url": notification.action_url,
        "metadata": notification.meta_data or {},
        "created_at": to_iso_string(notification.created_at),
        "updated_at": to_iso_string(notification.updated_at),
    }
