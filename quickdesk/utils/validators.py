# quickdesk/utils/validators.py
import re
from datetime import datetime
from enum import Enum
from typing import Optional, Type, TypeVar
from uuid import UUID

from quickdesk.utils.datetime_utils import parse_iso_datetime
from quickdesk.utils.exceptions import ValidationError, NotFoundError

E = TypeVar("E", bound=Enum)

HEX_COLOR_RE = re.compile(r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

MIN_PASSWORD_LENGTH = 6
# bcrypt only accepts up to 72 bytes of input
MAX_PASSWORD_BYTES = 72


def validate_uuid(value: str, message: str = "Invalid ID format") -> UUID:
    """Validate UUID format."""
    try:
        return UUID(str(value))
    except (ValueError, TypeError):
        raise ValidationError(message)


def lookup_uuid(value: str, resource: str) -> UUID:
    """Parse a path identifier; malformed ids are reported as a missing resource."""
    try:
        return UUID(str(value))
    except (ValueError, TypeError):
        raise NotFoundError(f"{resource} not found")


def validate_email(email: Optional[str]) -> str:
    """Validate email format and normalize to lower case."""
    if not email or not EMAIL_RE.match(email.strip()):
        raise ValidationError("Please provide a valid email")
    return email.strip().lower()


def validate_password(password: Optional[str]) -> str:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password cannot exceed {MAX_PASSWORD_BYTES} bytes")
    return password


def validate_name(name: Optional[str]) -> str:
    if not name or not name.strip():
        raise ValidationError("Name is required")
    name = name.strip()
    if len(name) < 2:
        raise ValidationError("Name must be at least 2 characters")
    if len(name) > 50:
        raise ValidationError("Name cannot exceed 50 characters")
    return name


def validate_hex_color(color: str) -> str:
    if not HEX_COLOR_RE.match(color):
        raise ValidationError("Please provide a valid hex color")
    return color


def parse_enum(enum_cls: Type[E], value, field: str) -> E:
    """
    Convert a raw value into an enum member.

    Raises:
        ValidationError: listing the allowed values
    """
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {field}. Must be one of: {allowed}")


def parse_tags(raw) -> list[str]:
    """Tags arrive either as a comma-separated string or a list."""
    if raw is None:
        return []
    items = raw.split(",") if isinstance(raw, str) else raw
    tags = [str(tag).strip() for tag in items if str(tag).strip()]
    for tag in tags:
        if len(tag) > 30:
            raise ValidationError("Tag cannot exceed 30 characters")
    return tags


def parse_date(value: Optional[str], field: str) -> Optional[datetime]:
    """Parse an optional ISO date query/form value, reporting failures as a 400."""
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"Invalid {field}")
