# quickdesk/services/user_service.py
"""User administration service"""
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from quickdesk.core.logger import get_logger
from quickdesk.models import Category, Ticket, TicketPriority, TicketStatus, User, UserRole, STAFF_ROLES
from quickdesk.schemas.common import pagination
from quickdesk.services.aggregates import count_by, count_where, percentage
from quickdesk.services.auth_service import AuthService
from quickdesk.services.notification_service import NotificationService
from quickdesk.services.serializers import category_summary, ticket_summary, user_profile, user_summary
from quickdesk.services.ticket_service import TicketService
from quickdesk.utils.exceptions import ConflictError, NotFoundError, ValidationError
from quickdesk.utils.validators import (
    lookup_uuid, parse_date, parse_enum, validate_email, validate_name, validate_password, validate_uuid
)

logger = get_logger(__name__)

# sortBy values accepted by the per-user ticket listing
TICKET_SORTS = {
    "newest": (Ticket.created_at.desc(),),
    "oldest": (Ticket.created_at.asc(),),
    "updated": (Ticket.updated_at.desc(),),
    "priority": (Ticket.priority.asc(), Ticket.created_at.desc()),
    "status": (Ticket.status.asc(), Ticket.created_at.desc()),
}


class UserService:
    """Service for user management"""

    @staticmethod
    def get_user_or_404(db: Session, user_id: str) -> User:
        user = db.get(User, lookup_uuid(user_id, "User"))
        if not user:
            raise NotFoundError("User not found")
        return user

    @staticmethod
    def _get_user_strict(db: Session, user_id: str) -> User:
        """Like get_user_or_404, but a malformed id is a 400."""
        user = db.get(User, validate_uuid(user_id, "Invalid user ID format"))
        if not user:
            raise NotFoundError("User not found")
        return user

    @staticmethod
    def list_users(
        db: Session,
        page: int = 1,
        limit: int = 10,
        role: Optional[str] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None
    ) -> Dict[str, Any]:
        """Paginated users, each with counts of the tickets they created."""
        query = db.query(User)
        if role:
            query = query.filter(User.role == parse_enum(UserRole, role, "role"))
        if is_active is not None:
            query = query.filter(User.is_active.is_(is_active))
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))

        total = query.count()
        users = (
            query.order_by(User.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

        results = []
        for user in users:
            data = user_profile(user)
            created = TicketService.status_breakdown(db, Ticket.created_by_id == user.id)
            data["ticket_stats"] = {
                "total": created["total"],
                "open": created["pending"],
                "resolved": created["resolved"],
            }
            results.append(data)

        return {"users": results, "pagination": pagination(page, limit, total)}

    @staticmethod
    def get_user(db: Session, user_id: str) -> Dict[str, Any]:
        user = UserService.get_user_or_404(db, user_id)
        data = user_profile(user)
        data["ticket_stats"] = TicketService.status_breakdown(db, Ticket.created_by_id == user.id)

        recent = (
            db.query(Ticket)
            .filter(Ticket.created_by_id == user.id)
            .order_by(Ticket.created_at.desc())
            .limit(3)
            .all()
        )
        return {"user": data, "recent_tickets": [ticket_summary(t) for t in recent]}

    @staticmethod
    def create_user(
        db: Session,
        name: str,
        email: str,
        password: str,
        role: str = "user",
        department: Optional[str] = None,
        phone: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Admin-created account of any role.

        Raises:
            ValidationError: Invalid fields
            ConflictError: Email already registered
        """
        name = validate_name(name)
        email = validate_email(email)
        validate_password(password)
        role_value = parse_enum(UserRole, role or UserRole.USER.value, "role")

        if AuthService.find_by_email(db, email):
            raise ConflictError("User already exists with this email")

        user = User(
            name=name,
            email=email,
            password_hash=AuthService.hash_password(password),
            role=role_value,
            department=department,
            phone=phone,
            is_active=True,
        )
        db.add(user)
        db.commit()
        logger.info(f"✓ User created: {email} ({role_value.value})")
        return user_profile(user)

    @staticmethod
    def update_user(
        db: Session,
        actor: User,
        user_id: str,
        name: Optional[str] = None,
        email: Optional[str] = None,
        role: Optional[str] = None,
        department: Optional[str] = None,
        phone: Optional[str] = None,
        is_active: Optional[bool] = None
    ) -> Dict[str, Any]:
        """
        Admin edit of any account. Admins cannot change their own role or deactivate themselves.

        Raises:
            ValidationError: Invalid fields or a self-demotion/self-deactivation attempt
            ConflictError: Email taken by another account
        """
        user = UserService.get_user_or_404(db, user_id)
        new_role = parse_enum(UserRole, role, "role") if role else None
        if user.id == actor.id:
            if new_role is not None and new_role != user.role:
                raise ValidationError("Cannot change your own role")
            if is_active is False:
                raise ValidationError("You cannot deactivate your own account")

        if email:
            email = validate_email(email)
            if email != user.email:
                existing = AuthService.find_by_email(db, email)
                if existing and existing.id != user.id:
                    raise ConflictError("Email already exists")
                user.email = email
        if name:
            user.name = validate_name(name)
        if new_role is not None:
            user.role = new_role
        if department:
            user.department = department
        if phone:
            user.phone = phone
        if is_active is not None:
            user.is_active = is_active

        db.commit()
        logger.info(f"✓ User updated: {user.email}")
        return user_profile(user)

    @staticmethod
    def delete_user(db: Session, actor: User, user_id: str) -> None:
        user = UserService.get_user_or_404(db, user_id)
        if user.id == actor.id:
            raise ValidationError("You cannot delete your own account")

        db.delete(user)
        db.commit()
        logger.info(f"✓ User deleted: {user.email}")

    @staticmethod
    def get_agents(db: Session) -> List[Dict[str, Any]]:
        agents = (
            db.query(User)
            .filter(User.role.in_(STAFF_ROLES), User.is_active.is_(True))
            .order_by(User.name.asc())
            .all()
        )
        return [user_summary(agent) for agent in agents]

    @staticmethod
    def get_stats(db: Session) -> Dict[str, Any]:
        return {
            "total_users": count_where(db, User.id),
            "active_users": count_where(db, User.id, User.is_active.is_(True)),
            "inactive_users": count_where(db, User.id, User.is_active.is_(False)),
            "role_stats": count_by(db, User.role),
        }

    @staticmethod
    def toggle_status(db: Session, user_id: str) -> User:
        """
        Flip is_active. Active admins cannot be deactivated.

        Returns:
            The updated user
        """
        user = UserService.get_user_or_404(db, user_id)
        if user.role == UserRole.ADMIN and user.is_active:
            raise ValidationError("Cannot deactivate admin users")

        user.is_active = not user.is_active
        db.commit()
        logger.info(f"✓ User {'activated' if user.is_active else 'deactivated'}: {user.email}")
        return user

    @staticmethod
    def change_role(db: Session, actor: User, user_id: str, role: Optional[str]) -> Dict[str, Any]:
        if role not in [r.value for r in UserRole]:
            raise ValidationError("Invalid role. Must be user, agent, or admin")

        user = UserService.get_user_or_404(db, user_id)
        if user.id == actor.id:
            raise ValidationError("Cannot change your own role")

        user.role = UserRole(role)
        db.commit()
        logger.info(f"✓ Role of {user.email} changed to {role}")
        return user_profile(user)

    @staticmethod
    def get_activity(db: Session, user_id: str) -> Dict[str, Any]:
        user = UserService.get_user_or_404(db, user_id)

        recent = (
            db.query(Ticket)
            .filter(or_(Ticket.created_by_id == user.id, Ticket.assigned_to_id == user.id))
            .order_by(Ticket.updated_at.desc())
            .limit(10)
            .all()
        )
        return {
            "user": user_profile(user),
            "activity": {
                "tickets_created": count_where(db, Ticket.id, Ticket.created_by_id == user.id),
                "tickets_assigned": count_where(db, Ticket.id, Ticket.assigned_to_id == user.id),
                "tickets_resolved": count_where(db, Ticket.id, Ticket.resolved_by_id == user.id),
                "recent_activity": [ticket_summary(t) for t in recent],
            },
        }

    @staticmethod
    def reset_password(db: Session, user_id: str, new_password: Optional[str]) -> None:
        validate_password(new_password)

        user = UserService.get_user_or_404(db, user_id)
        user.password_hash = AuthService.hash_password(new_password)
        user.reset_password_token = None
        user.reset_password_expire = None
        db.commit()
        logger.info(f"✓ Password reset by admin for: {user.email}")

        try:
            NotificationService.create_system_notification(
                db,
                user.id,
                "Password Reset",
                "Your password was reset by an administrator. Contact support if you did not request this.",
                priority=TicketPriority.HIGH,
            )
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error creating password reset notification for {user.email}: {e}")

    @staticmethod
    def _ticket_counts(db: Session, user_id: UUID) -> Dict[str, int]:
        stats = TicketService.status_breakdown(db, Ticket.created_by_id == user_id)
        priorities = count_by(db, Ticket.priority, Ticket.created_by_id == user_id)
        for priority in TicketPriority:
            stats[priority.value] = priorities.get(priority.value, 0)
        return stats

    @staticmethod
    def get_user_tickets(
        db: Session,
        user_id: str,
        page: int = 1,
        limit: int = 10,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        category: Optional[str] = None,
        search: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        sort_by: Optional[str] = None
    ) -> Dict[str, Any]:
        """Tickets created by one user, filtered and sorted, plus that user's ticket stats."""
        user = UserService._get_user_strict(db, user_id)

        query = db.query(Ticket).filter(Ticket.created_by_id == user.id)
        if status:
            query = query.filter(Ticket.status == parse_enum(TicketStatus, status, "status"))
        if priority:
            query = query.filter(Ticket.priority == parse_enum(TicketPriority, priority, "priority"))
        if category:
            query = query.filter(Ticket.category_id == validate_uuid(category, "Invalid category ID"))
        start = parse_date(start_date, "start date")
        if start:
            query = query.filter(Ticket.created_at >= start)
        end = parse_date(end_date, "end date")
        if end:
            query = query.filter(Ticket.created_at <= end)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(
                Ticket.title.ilike(pattern),
                Ticket.description.ilike(pattern),
                Ticket.ticket_id.ilike(pattern)
            ))

        total = query.count()
        tickets = (
            query.order_by(*TICKET_SORTS.get(sort_by or "newest", TICKET_SORTS["newest"]))
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

        counts = UserService._ticket_counts(db, user.id)
        return {
            "user": user_summary(user),
            "tickets": [
                {**ticket_summary(t), "description": t.description, "tags": list(t.tags or []),
                 "attachment_count": len(t.attachments)}
                for t in tickets
            ],
            "stats": {
                key: counts[key]
                for key in ("total", "open", "in_progress", "pending", "resolved", "closed", "urgent", "high")
            },
            "pagination": pagination(page, limit, total),
            "filters": {
                "status": status,
                "priority": priority,
                "category": category,
                "search": search,
                "sort_by": sort_by or "newest",
            },
        }

    @staticmethod
    def get_user_ticket_summary(db: Session, user_id: str) -> Dict[str, Any]:
        user = UserService._get_user_strict(db, user_id)
        counts = UserService._ticket_counts(db, user.id)

        recent = (
            db.query(Ticket)
            .filter(Ticket.created_by_id == user.id)
            .order_by(Ticket.created_at.desc())
            .limit(5)
            .all()
        )

        by_category = (
            db.query(Category, func.count(Ticket.id))
            .join(Ticket, Ticket.category_id == Category.id)
            .filter(Ticket.created_by_id == user.id)
            .group_by(Category.id)
            .order_by(func.count(Ticket.id).desc())
            .all()
        )

        member = user_summary(user)
        member["member_since"] = user_profile(user)["created_at"]
        return {
            "user": member,
            "summary": {
                "total_tickets": counts["total"],
                "status_breakdown": {
                    key: counts[key] for key in ("open", "in_progress", "pending", "resolved", "closed")
                },
                "priority_breakdown": {p.value: counts[p.value] for p in TicketPriority},
                "category_breakdown": [
                    {**category_summary(category), "count": count} for category, count in by_category
                ],
                "resolution_rate": percentage(counts["resolved"], counts["total"]),
            },
            "recent_tickets": [ticket_summary(t) for t in recent],
        }
