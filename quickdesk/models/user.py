# quickdesk/models/user.py
from sqlalchemy import Column, String, Boolean, DateTime, Enum, Index, Uuid
from sqlalchemy.orm import relationship
import uuid
import enum

from .base import Base, TimestampMixin, enum_values


class UserRole(str, enum.Enum):
    """User roles for RBAC."""
    USER = "user"
    AGENT = "agent"
    ADMIN = "admin"


STAFF_ROLES = (UserRole.AGENT, UserRole.ADMIN)


class User(Base, TimestampMixin):
    """Helpdesk account: requester, agent or administrator."""
    __tablename__ = "user"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(50), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(
        Enum(UserRole, name="user_role", values_callable=enum_values),
        nullable=False,
        default=UserRole.USER,
    )
    department = Column(String(100), nullable=True)
    phone = Column(String(20), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    last_login = Column(DateTime, nullable=True)
    reset_password_token = Column(String(64), nullable=True, index=True)
    reset_password_expire = Column(DateTime, nullable=True)

    # Relationships
    tickets_created = relationship(
        "Ticket",
        foreign_keys="Ticket.created_by_id",
        back_populates="created_by"
    )
    tickets_assigned = relationship(
        "Ticket",
        foreign_keys="Ticket.assigned_to_id",
        back_populates="assigned_to"
    )
    notifications = relationship(
        "Notification",
        back_populates="recipient",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_user_role", "role"),
    )

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    def __repr__(self):
        return f"<User {self.email}>"
