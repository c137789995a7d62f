# quickdesk/scripts/create_admin.py
"""
Admin account script - create an admin or reset an existing account to admin

Usage:
    python -m quickdesk.scripts.create_admin [email] [password] [name]

If no password is provided, a secure random one will be generated.

Examples:
    python -m quickdesk.scripts.create_admin admin@quickdesk.com MyNewPassword123
    python -m quickdesk.scripts.create_admin ops@example.com
"""
import secrets
import string
import sys

from quickdesk.core.config import get_settings
from quickdesk.core.database import get_db_context, init_db, init_engine
from quickdesk.core.logger import get_logger
from quickdesk.services.seed_service import SeedService
from quickdesk.utils.exceptions import ValidationError
from quickdesk.utils.validators import validate_email, validate_password

logger = get_logger(__name__)


def generate_password(length: int = 16) -> str:
    """Random password of letters, digits and a few symbols."""
    alphabet = string.ascii_letters + string.digits + "!@#$%^&*"
    return "".join(secrets.choice(alphabet) for _ in range(length))


def main(argv: list) -> int:
    settings = get_settings()
    email = argv[1] if len(argv) > 1 else settings.default_admin_email
    password = argv[2] if len(argv) > 2 else generate_password()
    name = argv[3] if len(argv) > 3 else None

    try:
        email = validate_email(email)
        validate_password(password)
    except ValidationError as e:
        logger.error(f"✗ {e.message}")
        return 1

    init_engine(settings)
    if not init_db():
        return 1

    with get_db_context() as db:
        admin = SeedService.create_or_reset_admin(db, email, password, name)

    print("=" * 60)
    print("ADMIN ACCOUNT READY")
    print("=" * 60)
    print(f"Email:    {admin.email}")
    print(f"Password: {password}")
    print("=" * 60)
    return 0


def cli() -> None:
    sys.exit(main(sys.argv))


if __name__ == "__main__":
    cli()
