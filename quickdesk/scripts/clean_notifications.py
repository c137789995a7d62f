# quickdesk/scripts/clean_notifications.py
"""
Notification retention script - delete read notifications older than N days

Usage:
    python -m quickdesk.scripts.clean_notifications [days]

Days defaults to 30. Unread notifications are never deleted.

Examples:
    python -m quickdesk.scripts.clean_notifications
    python -m quickdesk.scripts.clean_notifications 90
"""
import sys

from quickdesk.core.config import get_settings
from quickdesk.core.database import get_db_context, init_engine
from quickdesk.core.logger import get_logger
from quickdesk.services.notification_service import READ_RETENTION_DAYS, NotificationService

logger = get_logger(__name__)


def parse_days(argv: list) -> int:
    """Retention window from argv[1]; raises ValueError unless a positive integer."""
    if len(argv) < 2:
        return READ_RETENTION_DAYS
    days = int(argv[1])
    if days < 1:
        raise ValueError("days must be at least 1")
    return days


def main(argv: list) -> int:
    try:
        days = parse_days(argv)
    except ValueError as e:
        logger.error(f"✗ Invalid retention window: {e}")
        return 1

    init_engine(get_settings())
    with get_db_context() as db:
        deleted = NotificationService.clean_old_notifications(db, days)

    print(f"Deleted {deleted} read notifications older than {days} days")
    return 0


def cli() -> None:
    sys.exit(main(sys.argv))


if __name__ == "__main__":
    cli()
