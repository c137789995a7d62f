# quickdesk/services/seed_service.py
"""Default data seeded on first startup"""
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from quickdesk.core.config import Settings
from quickdesk.core.logger import get_logger
from quickdesk.models import Category, User, UserRole
from quickdesk.services.auth_service import AuthService

logger = get_logger(__name__)

SYSTEM_ADMIN_NAME = "System Admin"

DEFAULT_CATEGORIES = [
    ("Technical Support", "Hardware, software, and system-related issues", "#3b82f6"),
    ("Account & Billing", "Account access, billing questions, and payment issues", "#10b981"),
    ("Bug Report", "Report software bugs and unexpected behavior", "#ef4444"),
    ("Feature Request", "Suggest new features and improvements", "#8b5cf6"),
    ("General Inquiry", "General questions and information requests", "#f59e0b"),
    ("Security", "Security-related concerns and incidents", "#dc2626"),
    ("Training & Documentation", "Training requests and documentation issues", "#059669"),
    ("Integration Support", "API and third-party integration assistance", "#7c3aed"),
]


class SeedService:
    """Creates the system admin and the default ticket categories"""

    @staticmethod
    def get_or_create_admin(db: Session, settings: Settings) -> User:
        """
        Return any existing admin, otherwise create the system admin.

        Args:
            db: Database session
            settings: Settings carrying the default admin credentials

        Returns:
            An admin user (not yet committed when newly created)
        """
        admin = db.query(User).filter(User.role == UserRole.ADMIN).first()
        if admin:
            return admin

        admin = User(
            name=SYSTEM_ADMIN_NAME,
            email=settings.default_admin_email.lower(),
            password_hash=AuthService.hash_password(settings.default_admin_password),
            role=UserRole.ADMIN,
            is_active=True,
        )
        db.add(admin)
        db.flush()
        logger.info(f"✓ System admin created: {admin.email}")
        return admin

    @staticmethod
    def seed_default_data(db: Session, settings: Settings) -> int:
        """
        Seed default categories when none exist yet.

        Returns:
            Number of categories created
        """
        if db.query(Category.id).first() is not None:
            return 0

        try:
            admin = SeedService.get_or_create_admin(db, settings)
            for name, description, color in DEFAULT_CATEGORIES:
                db.add(Category(
                    name=name,
                    description=description,
                    color=color,
                    is_active=True,
                    created_by_id=admin.id,
                ))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"✗ Failed to seed default data: {e}")
            raise

        logger.info(f"✓ Seeded {len(DEFAULT_CATEGORIES)} default categories")
        return len(DEFAULT_CATEGORIES)

    @staticmethod
    def create_or_reset_admin(
        db: Session,
        email: str,
        password: str,
        name: Optional[str] = None
    ) -> User:
        """
        Create an admin account, or promote/reset an existing account with that email.

        Returns:
            The admin user
        """
        user = AuthService.find_by_email(db, email)
        if user:
            user.role = UserRole.ADMIN
            user.is_active = True
            user.password_hash = AuthService.hash_password(password)
            if name:
                user.name = name
            logger.info(f"✓ Existing account reset as admin: {user.email}")
        else:
            user = User(
                name=name or SYSTEM_ADMIN_NAME,
                email=email.strip().lower(),
                password_hash=AuthService.hash_password(password),
                role=UserRole.ADMIN,
                is_active=True,
            )
            db.add(user)
            logger.info(f"✓ Admin created: {user.email}")
        db.commit()
        return user
