# quickdesk/services/category_service.py
"""Category management service"""
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from quickdesk.core.logger import get_logger
from quickdesk.models import Category, Ticket, TicketStatus, User
from quickdesk.schemas.common import pagination
from quickdesk.services.aggregates import count_where
from quickdesk.services.serializers import category_to_dict
from quickdesk.utils.exceptions import ConflictError, NotFoundError, ValidationError
from quickdesk.utils.validators import lookup_uuid, validate_hex_color

logger = get_logger(__name__)

BULK_ACTIONS = ("activate", "deactivate", "update")
# Fields a bulk "update" may set; name stays per-category because it must be unique
BULK_UPDATE_FIELDS = {"description": "description", "color": "color", "is_active": "is_active", "isActive": "is_active"}


class CategoryService:
    """Service for ticket category CRUD and stats"""

    @staticmethod
    def get_category_or_404(db: Session, category_id: str) -> Category:
        category = db.get(Category, lookup_uuid(category_id, "Category"))
        if not category:
            raise NotFoundError("Category not found")
        return category

    @staticmethod
    def _name_taken(db: Session, name: str, exclude_id: Optional[UUID] = None) -> bool:
        query = db.query(Category).filter(func.lower(Category.name) == name.lower())
        if exclude_id is not None:
            query = query.filter(Category.id != exclude_id)
        return db.query(query.exists()).scalar()

    @staticmethod
    def _validate_name(name: Optional[str]) -> str:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Category name is required")
        if len(name) > 50:
            raise ValidationError("Category name cannot exceed 50 characters")
        return name

    @staticmethod
    def list_categories(
        db: Session,
        page: int = 1,
        limit: int = 20,
        is_active: Optional[bool] = None,
        search: Optional[str] = None
    ) -> Dict[str, Any]:
        """Paginated categories. Only active ones unless is_active is given explicitly."""
        query = db.query(Category).filter(Category.is_active.is_(True if is_active is None else is_active))
        if search:
            query = query.filter(Category.name.ilike(f"%{search.strip()}%"))

        total = query.count()
        categories = (
            query.order_by(Category.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return {
            "categories": [category_to_dict(c) for c in categories],
            "pagination": pagination(page, limit, total),
        }

    @staticmethod
    def get_category(db: Session, category_id: str) -> Dict[str, Any]:
        category = CategoryService.get_category_or_404(db, category_id)
        data = category_to_dict(category)
        data["ticket_count"] = count_where(db, Ticket.id, Ticket.category_id == category.id)
        return data

    @staticmethod
    def create_category(
        db: Session,
        user: User,
        name: str,
        description: Optional[str] = None,
        color: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Raises:
            ValidationError: Invalid name or color
            ConflictError: Name already used (case-insensitive)
        """
        name = CategoryService._validate_name(name)
        if CategoryService._name_taken(db, name):
            raise ConflictError("Category with this name already exists")

        category = Category(
            name=name,
            description=description,
            created_by_id=user.id,
            is_active=True,
        )
        if color:
            category.color = validate_hex_color(color)

        db.add(category)
        db.commit()
        db.refresh(category)
        logger.info(f"✓ Category created: {name}")
        return category_to_dict(category)

    @staticmethod
    def update_category(
        db: Session,
        category_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        color: Optional[str] = None,
        is_active: Optional[bool] = None
    ) -> Dict[str, Any]:
        category = CategoryService.get_category_or_404(db, category_id)

        if name and name.strip().lower() != category.name.lower():
            name = CategoryService._validate_name(name)
            if CategoryService._name_taken(db, name, exclude_id=category.id):
                raise ConflictError("Category with this name already exists")
        if name:
            category.name = name.strip()
        if description:
            category.description = description
        if color:
            category.color = validate_hex_color(color)
        if is_active is not None:
            category.is_active = is_active

        db.commit()
        logger.info(f"✓ Category updated: {category.name}")
        return category_to_dict(category)

    @staticmethod
    def delete_category(db: Session, category_id: str) -> None:
        """
        Raises:
            ValidationError: While any ticket still references the category
        """
        category = CategoryService.get_category_or_404(db, category_id)
        ticket_count = count_where(db, Ticket.id, Ticket.category_id == category.id)
        if ticket_count > 0:
            raise ValidationError(
                f"Cannot delete category. It has {ticket_count} associated ticket(s). "
                "Please reassign or delete the tickets first."
            )

        db.delete(category)
        db.commit()
        logger.info(f"✓ Category deleted: {category.name}")

    @staticmethod
    def get_stats(db: Session) -> Dict[str, Any]:
        """Per-category ticket, open and resolved counts, busiest first."""
        rows = (
            db.query(Category.id, Ticket.status, func.count(Ticket.id))
            .join(Ticket, Ticket.category_id == Category.id)
            .group_by(Category.id, Ticket.status)
            .all()
        )
        per_category: Dict[UUID, Dict[str, int]] = {}
        for category_id, status, count in rows:
            counts = per_category.setdefault(category_id, {"ticket_count": 0, "open_tickets": 0, "resolved_tickets": 0})
            counts["ticket_count"] += count
            if status == TicketStatus.OPEN:
                counts["open_tickets"] += count
            elif status == TicketStatus.RESOLVED:
                counts["resolved_tickets"] += count

        category_stats: List[Dict[str, Any]] = []
        for category in db.query(Category).all():
            counts = per_category.get(category.id, {"ticket_count": 0, "open_tickets": 0, "resolved_tickets": 0})
            category_stats.append({
                "id": str(category.id),
                "name": category.name,
                "description": category.description,
                "color": category.color,
                "is_active": category.is_active,
                **counts,
            })
        category_stats.sort(key=lambda item: item["ticket_count"], reverse=True)

        return {
            "total_categories": count_where(db, Category.id),
            "active_categories": count_where(db, Category.id, Category.is_active.is_(True)),
            "category_stats": category_stats,
        }

    @staticmethod
    def bulk_update(
        db: Session,
        category_ids: Optional[List[str]],
        action: Optional[str],
        data: Optional[Dict[str, Any]] = None
    ) -> int:
        """
        Activate, deactivate or patch several categories at once.

        Returns:
            Number of categories modified
        """
        if not category_ids:
            raise ValidationError("Please provide valid category IDs")
        if action not in BULK_ACTIONS:
            raise ValidationError("Invalid action specified")

        ids = []
        for raw in category_ids:
            try:
                ids.append(UUID(str(raw)))
            except ValueError:
                raise ValidationError("Please provide valid category IDs")

        if action == "activate":
            values = {"is_active": True}
        elif action == "deactivate":
            values = {"is_active": False}
        else:
            values = {
                BULK_UPDATE_FIELDS[key]: value
                for key, value in (data or {}).items()
                if key in BULK_UPDATE_FIELDS
            }
            if "color" in values:
                values["color"] = validate_hex_color(str(values["color"]))
            if "is_active" in values and not isinstance(values["is_active"], bool):
                raise ValidationError("isActive must be true or false")

        if not values:
            return 0

        modified = 0
        for category in db.query(Category).filter(Category.id.in_(ids)).all():
            for field, value in values.items():
                setattr(category, field, value)
            modified += 1
        db.commit()
        logger.info(f"✓ Bulk {action} applied to {modified} categories")
        return modified
