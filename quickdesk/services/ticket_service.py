# quickdesk/services/ticket_service.py
"""Ticket lifecycle: listing, creation, role-scoped updates, comments, assignment, resolution and stats"""
import math
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Union
from uuid import UUID

from fastapi import UploadFile
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from quickdesk.core.config import Settings
from quickdesk.core.logger import get_logger
from quickdesk.models import (
    Category,
    NotificationType,
    Ticket,
    TicketAttachment,
    TicketComment,
    TicketPriority,
    TicketStatus,
    User,
    UserRole,
    STAFF_ROLES,
)
from quickdesk.schemas.common import pagination
from quickdesk.services import ticket_permissions
from quickdesk.services.aggregates import count_by, count_where, duration_summary, monthly_counts, months_ago
from quickdesk.services.email_service import EmailDeliveryError, EmailService
from quickdesk.services.file_upload_service import FileUploadService
from quickdesk.services.notification_service import NotificationService
from quickdesk.services.serializers import comment_to_dict, ticket_summary, ticket_to_dict
from quickdesk.utils.datetime_utils import get_utc_now, to_iso_string
from quickdesk.utils.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from quickdesk.utils.validators import lookup_uuid, parse_date, parse_enum, parse_tags, validate_uuid

logger = get_logger(__name__)

MAX_TICKET_ID_ATTEMPTS = 5
TITLE_MIN, TITLE_MAX = 5, 200
DESCRIPTION_MIN, DESCRIPTION_MAX = 10, 5000
COMMENT_MAX = 1000
RESOLUTION_MAX = 1000
RATEABLE_STATUSES = (TicketStatus.RESOLVED, TicketStatus.CLOSED)


def _validate_title(title: Optional[str]) -> str:
    title = (title or "").strip()
    if not title:
        raise ValidationError("Ticket subject is required")
    if len(title) < TITLE_MIN:
        raise ValidationError(f"Ticket subject must be at least {TITLE_MIN} characters long")
    if len(title) > TITLE_MAX:
        raise ValidationError(f"Ticket subject cannot exceed {TITLE_MAX} characters")
    return title


def _validate_description(description: Optional[str]) -> str:
    description = (description or "").strip()
    if not description:
        raise ValidationError("Ticket description is required")
    if len(description) < DESCRIPTION_MIN:
        raise ValidationError(f"Ticket description must be at least {DESCRIPTION_MIN} characters long")
    if len(description) > DESCRIPTION_MAX:
        raise ValidationError(f"Ticket description cannot exceed {DESCRIPTION_MAX} characters")
    return description


def _validate_resolution(resolution: str) -> str:
    resolution = resolution.strip()
    if len(resolution) > RESOLUTION_MAX:
        raise ValidationError(f"Resolution cannot exceed {RESOLUTION_MAX} characters")
    return resolution


class TicketService:
    """Service for ticket operations"""

    # ==================== HELPERS ====================

    @staticmethod
    def get_ticket_or_404(db: Session, ticket_id: str) -> Ticket:
        ticket = db.get(Ticket, lookup_uuid(ticket_id, "Ticket"))
        if not ticket:
            raise NotFoundError("Ticket not found")
        return ticket

    @staticmethod
    def resolve_assignee(db: Session, assignee_id: Optional[str]) -> User:
        """
        Look up an active agent/admin to assign.

        Raises:
            ValidationError: "Invalid agent assignment" for anything else
        """
        try:
            user_id = UUID(str(assignee_id))
        except (TypeError, ValueError):
            raise ValidationError("Invalid agent assignment")

        assignee = db.query(User).filter(
            User.id == user_id,
            User.role.in_(STAFF_ROLES),
            User.is_active.is_(True)
        ).first()
        if not assignee:
            raise ValidationError("Invalid agent assignment")
        return assignee

    @staticmethod
    def next_ticket_id(db: Session, now: datetime, offset: int = 0) -> str:
        """
        TKT-YYYYMMDD-NNN continuing after the highest sequence issued today.

        Args:
            now: Creation time (UTC)
            offset: Added to the sequence when retrying after a collision
        """
        prefix = f"TKT-{now:%Y%m%d}-"
        latest = (
            db.query(Ticket.ticket_id)
            .filter(Ticket.ticket_id.like(f"{prefix}%"))
            .order_by(func.length(Ticket.ticket_id).desc(), Ticket.ticket_id.desc())
            .first()
        )
        last_seq = int(latest[0][len(prefix):]) if latest else 0
        return f"{prefix}{last_seq + 1 + offset:03d}"

    @staticmethod
    def _insert_with_ticket_id(db: Session, ticket: Ticket) -> None:
        """
        Commit a new ticket, regenerating its ticket_id on unique-constraint collisions.

        Raises:
            ConflictError: If no free identifier is found within the retry budget
        """
        now = ticket.created_at or get_utc_now()
        for attempt in range(MAX_TICKET_ID_ATTEMPTS):
            ticket.ticket_id = TicketService.next_ticket_id(db, now, attempt)
            db.add(ticket)
            try:
                db.commit()
                return
            except IntegrityError as e:
                db.rollback()
                logger.warning(f"Ticket ID collision on {ticket.ticket_id} (attempt {attempt + 1}): {e.orig}")

        logger.error("✗ Could not allocate a unique ticket ID")
        raise ConflictError("Could not generate a unique ticket ID. Please try again.")

    @staticmethod
    def _send_ticket_email(email_service: EmailService, ticket: Ticket, event: str) -> None:
        try:
            email_service.send_ticket_notification(ticket, event)
        except EmailDeliveryError as e:
            logger.error(f"Error sending ticket {event} email for {ticket.ticket_id}: {e}")

    @staticmethod
    def _after_status_change(db: Session, email_service: EmailService, ticket: Ticket, actor: User) -> None:
        """Notify participants (except the actor) and email them about a status change."""
        resolved = ticket.status == TicketStatus.RESOLVED
        NotificationService.notify_ticket_participants(
            db,
            ticket,
            NotificationType.TICKET_RESOLVED if resolved else NotificationType.TICKET_UPDATED,
            exclude_user_id=actor.id,
        )
        TicketService._send_ticket_email(email_service, ticket, "resolved" if resolved else "updated")

    # ==================== QUERIES ====================

    @staticmethod
    def list_tickets(
        db: Session,
        user: User,
        page: int = 1,
        limit: int = 10,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        category: Optional[str] = None,
        assigned_to: Optional[str] = None,
        my_tickets: bool = False,
        search: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Paginated ticket list. Requesters only ever see their own tickets.

        Returns:
            Dict with tickets and pagination
        """
        query = db.query(Ticket)

        if user.role == UserRole.USER:
            query = query.filter(Ticket.created_by_id == user.id)
        if status:
            query = query.filter(Ticket.status == parse_enum(TicketStatus, status, "status"))
        if priority:
            query = query.filter(Ticket.priority == parse_enum(TicketPriority, priority, "priority"))
        if category:
            query = query.filter(Ticket.category_id == validate_uuid(category, "Invalid category ID"))
        if assigned_to:
            query = query.filter(Ticket.assigned_to_id == validate_uuid(assigned_to, "Invalid assignee ID"))
        if my_tickets and user.is_staff:
            query = query.filter(Ticket.assigned_to_id == user.id)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(
                Ticket.title.ilike(pattern),
                Ticket.description.ilike(pattern),
                Ticket.ticket_id.ilike(pattern)
            ))
        start = parse_date(start_date, "start date")
        if start:
            query = query.filter(Ticket.created_at >= start)
        end = parse_date(end_date, "end date")
        if end:
            query = query.filter(Ticket.created_at <= end)

        total = query.count()
        tickets = (
            query.order_by(Ticket.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return {
            "tickets": [ticket_summary(t) for t in tickets],
            "pagination": pagination(page, limit, total),
        }

    @staticmethod
    def get_ticket(db: Session, user: User, ticket_id: str) -> Dict[str, Any]:
        """
        Raises:
            NotFoundError: If ticket missing
            ForbiddenError: If a requester asks for someone else's ticket
        """
        ticket = TicketService.get_ticket_or_404(db, ticket_id)
        if not ticket_permissions.can_view(user, ticket):
            raise ForbiddenError("Access denied. You can only view your own tickets.")
        return ticket_to_dict(ticket, include_internal=user.is_staff)

    # ==================== MUTATIONS ====================

    @staticmethod
    def create_ticket(
        db: Session,
        settings: Settings,
        email_service: EmailService,
        user: User,
        title: Optional[str],
        description: Optional[str],
        category: Optional[str],
        priority: Optional[str] = None,
        tags: Optional[str] = None,
        due_date: Optional[str] = None,
        attachments: Optional[Sequence[UploadFile]] = None
    ) -> Dict[str, Any]:
        """
        Create a ticket with optional attachments.

        Files are written first; any later validation failure removes them again.

        Raises:
            ValidationError: On invalid input or rejected files
            ConflictError: If a unique ticket ID cannot be allocated
        """
        saved_files = FileUploadService.save_uploads(settings, attachments)

        try:
            title = _validate_title(title)
            description = _validate_description(description)

            if not category:
                raise ValidationError("Please select a category")
            try:
                category_id = UUID(str(category))
            except ValueError:
                raise ValidationError("Invalid category")
            category_row = db.get(Category, category_id)
            if not category_row:
                raise ValidationError("Invalid category")
            if not category_row.is_active:
                raise ValidationError("Category is inactive")

            ticket = Ticket(
                title=title,
                description=description,
                priority=parse_enum(TicketPriority, priority or TicketPriority.MEDIUM.value, "priority"),
                status=TicketStatus.OPEN,
                category_id=category_row.id,
                created_by_id=user.id,
                tags=parse_tags(tags),
                due_date=parse_date(due_date, "due date"),
                created_at=get_utc_now(),
            )
            for item in saved_files:
                ticket.attachments.append(TicketAttachment(**item))

            TicketService._insert_with_ticket_id(db, ticket)
        except Exception:
            if saved_files:
                FileUploadService.delete_files(item["path"] for item in saved_files)
            raise

        db.refresh(ticket)
        logger.info(f"✓ Ticket created: {ticket.ticket_id} by {user.email}")

        TicketService._send_ticket_email(email_service, ticket, "created")
        return ticket_to_dict(ticket, include_internal=user.is_staff)

    @staticmethod
    def update_ticket(
        db: Session,
        email_service: EmailService,
        user: User,
        ticket_id: str,
        changes: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Apply a partial update limited to the caller's capability set.

        Fields outside the set are ignored; None values are ignored.

        Raises:
            ForbiddenError: No relationship and no staff role, or requester editing a non-open ticket
            ValidationError: On invalid values or assignee
        """
        ticket = TicketService.get_ticket_or_404(db, ticket_id)

        if ticket_permissions.owner_edit_locked(user, ticket):
            raise ForbiddenError("You can only edit open tickets.")

        allowed = ticket_permissions.updatable_fields(user, ticket)
        if not allowed:
            raise ForbiddenError("Access denied. You can only update your own tickets or assigned tickets.")

        updates = {
            field: value
            for field, value in changes.items()
            if field in allowed and value is not None
        }
        old_status = ticket.status

        if "title" in updates:
            ticket.title = _validate_title(updates["title"])
        if "description" in updates:
            ticket.description = _validate_description(updates["description"])
        if "priority" in updates:
            ticket.priority = parse_enum(TicketPriority, updates["priority"], "priority")
        if "tags" in updates:
            ticket.tags = parse_tags(updates["tags"])
        if "due_date" in updates:
            ticket.due_date = parse_date(updates["due_date"], "due date")
        if "resolution" in updates:
            ticket.resolution = _validate_resolution(updates["resolution"])
        if "assigned_to" in updates and str(updates["assigned_to"]) != str(ticket.assigned_to_id):
            ticket.assigned_to = TicketService.resolve_assignee(db, updates["assigned_to"])
        if "status" in updates:
            ticket.status = parse_enum(TicketStatus, updates["status"], "status")
            if ticket.status == TicketStatus.RESOLVED and ticket.resolved_by_id is None:
                ticket.resolved_by_id = user.id

        db.commit()
        logger.info(f"✓ Ticket updated: {ticket.ticket_id} by {user.email}")

        if ticket.status != old_status:
            TicketService._after_status_change(db, email_service, ticket, user)

        return ticket_to_dict(ticket, include_internal=user.is_staff)

    @staticmethod
    def delete_ticket(db: Session, ticket_id: str) -> None:
        """Remove a ticket and, best-effort, its stored files."""
        ticket = TicketService.get_ticket_or_404(db, ticket_id)
        paths = [attachment.path for attachment in ticket.attachments]

        db.delete(ticket)
        db.commit()
        FileUploadService.delete_files(paths)
        logger.info(f"✓ Ticket deleted: {ticket.ticket_id}")

    @staticmethod
    def add_comment(
        db: Session,
        user: User,
        ticket_id: str,
        content: Optional[str],
        is_internal: bool = False
    ) -> Dict[str, Any]:
        """
        Raises:
            ValidationError: Empty or oversized content
            NotFoundError: Ticket missing
            ForbiddenError: Caller unrelated to the ticket and not staff
        """
        content = (content or "").strip()
        if not content:
            raise ValidationError("Comment content is required")
        if len(content) > COMMENT_MAX:
            raise ValidationError(f"Comment cannot exceed {COMMENT_MAX} characters")

        ticket = TicketService.get_ticket_or_404(db, ticket_id)
        if not ticket_permissions.can_comment(user, ticket):
            raise ForbiddenError("Access denied. You can only comment on your own tickets or assigned tickets.")

        comment = TicketComment(
            content=content,
            author_id=user.id,
            is_internal=bool(is_internal) and user.is_staff,
            created_at=get_utc_now(),
        )
        ticket.comments.append(comment)
        db.commit()
        db.refresh(comment)
        return comment_to_dict(comment)

    @staticmethod
    def assign_ticket(db: Session, user: User, ticket_id: str, assigned_to: Optional[str]) -> Dict[str, Any]:
        """
        Assign to an active agent/admin and move the ticket to in-progress.

        The new assignee is notified only when the assignee actually changes.
        """
        ticket = TicketService.get_ticket_or_404(db, ticket_id)
        if not assigned_to:
            raise ValidationError("Please provide an agent to assign")
        assignee = TicketService.resolve_assignee(db, assigned_to)

        previous_assignee_id = ticket.assigned_to_id
        ticket.assigned_to = assignee
        ticket.status = TicketStatus.IN_PROGRESS
        db.commit()
        logger.info(f"✓ Ticket {ticket.ticket_id} assigned to {assignee.email}")

        if previous_assignee_id != assignee.id:
            NotificationService.notify_user(db, ticket, NotificationType.TICKET_ASSIGNED, assignee.id)

        return ticket_to_dict(ticket, include_internal=user.is_staff)

    @staticmethod
    def close_ticket(
        db: Session,
        email_service: EmailService,
        user: User,
        ticket_id: str,
        resolution: Optional[str]
    ) -> Dict[str, Any]:
        """
        Mark a ticket resolved with resolution text.

        Raises:
            ForbiddenError: Caller is neither staff nor the assignee
            ValidationError: Missing resolution, or ticket already resolved/closed
        """
        ticket = TicketService.get_ticket_or_404(db, ticket_id)
        if not ticket_permissions.can_close(user, ticket):
            raise ForbiddenError("Access denied. Only agents, admins or the assignee can close this ticket.")
        if ticket.status in RATEABLE_STATUSES:
            raise ValidationError("Ticket is already resolved or closed")
        if not resolution or not resolution.strip():
            raise ValidationError("Resolution is required to close a ticket")

        ticket.resolution = _validate_resolution(resolution)
        ticket.status = TicketStatus.RESOLVED
        ticket.resolved_by_id = user.id
        db.commit()
        logger.info(f"✓ Ticket resolved: {ticket.ticket_id} by {user.email}")

        TicketService._after_status_change(db, email_service, ticket, user)
        return ticket_to_dict(ticket, include_internal=user.is_staff)

    @staticmethod
    def reopen_ticket(db: Session, email_service: EmailService, user: User, ticket_id: str) -> Dict[str, Any]:
        """
        Move a resolved ticket back to open and clear its resolution bookkeeping.

        Raises:
            ForbiddenError: Caller is neither the owner nor staff
            ValidationError: Ticket is not resolved
        """
        ticket = TicketService.get_ticket_or_404(db, ticket_id)
        if not ticket_permissions.can_reopen(user, ticket):
            raise ForbiddenError("Access denied. You can only reopen your own tickets.")
        if ticket.status != TicketStatus.RESOLVED:
            raise ValidationError("Only resolved tickets can be reopened")

        ticket.status = TicketStatus.OPEN
        ticket.resolution = None
        ticket.resolved_at = None
        ticket.resolved_by_id = None
        db.commit()
        logger.info(f"✓ Ticket reopened: {ticket.ticket_id} by {user.email}")

        TicketService._after_status_change(db, email_service, ticket, user)
        return ticket_to_dict(ticket, include_internal=user.is_staff)

    @staticmethod
    def rate_ticket(
        db: Session,
        user: User,
        ticket_id: str,
        rating: Optional[Union[int, float]],
        feedback: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Record the creator's 1-5 satisfaction rating on a resolved/closed ticket.

        Raises:
            ValidationError: Rating not an integer 1-5, or ticket not resolved/closed
            ForbiddenError: Caller is not the creator
        """
        if (
            rating is None
            or isinstance(rating, bool)
            or not math.isfinite(rating)
            or float(rating) != int(rating)
            or not 1 <= int(rating) <= 5
        ):
            raise ValidationError("Rating must be between 1 and 5")

        ticket = TicketService.get_ticket_or_404(db, ticket_id)
        if ticket.created_by_id != user.id:
            raise ForbiddenError("Only the ticket creator can rate the ticket")
        if ticket.status not in RATEABLE_STATUSES:
            raise ValidationError("Only resolved or closed tickets can be rated")

        ticket.satisfaction_rating = int(rating)
        ticket.satisfaction_feedback = (feedback or "").strip()
        ticket.rated_at = get_utc_now()
        db.commit()

        return {
            "rating": ticket.satisfaction_rating,
            "feedback": ticket.satisfaction_feedback,
            "rated_at": to_iso_string(ticket.rated_at),
        }

    # ==================== STATS ====================

    @staticmethod
    def get_stats(db: Session, user: User, only_assigned: bool = False) -> Dict[str, Any]:
        """
        Status/priority counts, six-month creation trend and resolution times.

        Scoped to the caller's own tickets for requesters, and to assigned
        tickets for agents asking for only_assigned.
        """
        scope: List = []
        if user.role == UserRole.USER:
            scope.append(Ticket.created_by_id == user.id)
        elif user.role == UserRole.AGENT and only_assigned:
            scope.append(Ticket.assigned_to_id == user.id)

        since = months_ago(get_utc_now(), 5)
        created = db.query(Ticket.created_at).filter(*scope, Ticket.created_at >= since).all()
        resolved_pairs = (
            db.query(Ticket.created_at, Ticket.resolved_at)
            .filter(*scope, Ticket.status == TicketStatus.RESOLVED, Ticket.resolved_at.isnot(None))
            .all()
        )

        return {
            "total_tickets": count_where(db, Ticket.id, *scope),
            "open_tickets": count_where(db, Ticket.id, *scope, Ticket.status == TicketStatus.OPEN),
            "resolved_tickets": count_where(db, Ticket.id, *scope, Ticket.status == TicketStatus.RESOLVED),
            "status_stats": count_by(db, Ticket.status, *scope),
            "priority_stats": count_by(db, Ticket.priority, *scope),
            "monthly_stats": monthly_counts(row[0] for row in created),
            "resolution_time": duration_summary(resolved_pairs),
        }

    @staticmethod
    def status_breakdown(db: Session, *criteria) -> Dict[str, int]:
        """open/in_progress/pending/resolved/closed/total over the tickets matching criteria."""
        counts = count_by(db, Ticket.status, *criteria)
        open_count = counts.get(TicketStatus.OPEN.value, 0)
        in_progress = counts.get(TicketStatus.IN_PROGRESS.value, 0)
        return {
            "total": sum(counts.values()),
            "open": open_count,
            "in_progress": in_progress,
            "pending": open_count + in_progress,
            "resolved": counts.get(TicketStatus.RESOLVED.value, 0),
            "closed": counts.get(TicketStatus.CLOSED.value, 0),
        }
