from sqlalchemy import Column, DateTime
from sqlalchemy.orm import declarative_base

from quickdesk.utils.datetime_utils import get_utc_now

Base = declarative_base()


class TimestampMixin:
    """Mixin to add created_at and updated_at timestamps."""
    created_at = Column(DateTime, nullable=False, default=get_utc_now, index=True)
    updated_at = Column(DateTime, nullable=False, default=get_utc_now, onupdate=get_utc_now)


def enum_values(enum_cls) -> list:
    """Persist enum members by value ("in-progress") rather than by name."""
    return [member.value for member in enum_cls]
