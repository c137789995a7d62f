# quickdesk/models/category.py
from sqlalchemy import Column, String, Boolean, ForeignKey, Uuid
from sqlalchemy.orm import relationship
import uuid

from .base import Base, TimestampMixin

DEFAULT_CATEGORY_COLOR = "#3B82F6"


class Category(Base, TimestampMixin):
    """Ticket category. Name uniqueness is also checked case-insensitively by the service."""
    __tablename__ = "category"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(50), nullable=False, unique=True)
    description = Column(String(200), nullable=True)
    color = Column(String(7), nullable=False, default=DEFAULT_CATEGORY_COLOR)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_by_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)

    # Relationships
    created_by = relationship("User")
    tickets = relationship("Ticket", back_populates="category")

    def __repr__(self):
        return f"<Category {self.name}>"
