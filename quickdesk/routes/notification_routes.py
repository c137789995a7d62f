# quickdesk/routes/notification_routes.py
"""In-app notification inbox routes"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from quickdesk.core.database import get_db
from quickdesk.middleware.auth_middleware import get_current_user, require_roles
from quickdesk.models import User, UserRole
from quickdesk.schemas.common import api_response
from quickdesk.schemas.notification import CreateNotificationRequest
from quickdesk.services.notification_service import NotificationService

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])


@router.get("")
def get_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    type: Optional[str] = Query(None),
    is_read: Optional[bool] = Query(None, alias="isRead"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """The caller's notifications, newest first, with the unread count"""
    result = NotificationService.list_notifications(
        db, user, page=page, limit=limit, type=type, is_read=is_read
    )
    return api_response(result)


@router.get("/stats")
def get_notification_stats(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return api_response(NotificationService.get_stats(db, user))


@router.put("/mark-all-read")
def mark_all_as_read(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    modified = NotificationService.mark_as_read(db, user.id)
    return api_response(
        {"modified_count": modified},
        f"{modified} notifications marked as read"
    )


@router.delete("/clear-read")
def clear_read_notifications(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    deleted = NotificationService.clear_read(db, user)
    return api_response(
        {"deleted_count": deleted},
        f"{deleted} read notifications cleared"
    )


@router.put("/{notification_id}/read")
def mark_as_read(
    notification_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    notification = NotificationService.read_one(db, user, notification_id)
    return api_response({"notification": notification}, "Notification marked as read")


@router.delete("/{notification_id}")
def delete_notification(
    notification_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    NotificationService.delete_one(db, user, notification_id)
    return api_response(message="Notification deleted successfully")


@router.post("", status_code=201)
def create_notification(
    req: CreateNotificationRequest,
    admin: User = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """Admin-authored notification for one recipient"""
    notification = NotificationService.create_notification(
        db,
        recipient=req.recipient,
        title=req.title,
        message=req.message,
        type=req.type,
        priority=req.priority,
        related_ticket=req.related_ticket,
        action_url=req.action_url,
        metadata=req.metadata
    )
    return api_response({"notification": notification}, "Notification created successfully")
