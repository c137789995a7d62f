# quickdesk/core/logger.py
"""Structured logging setup with JSON formatter"""
import json
import logging
import sys

from quickdesk.utils.datetime_utils import get_utc_now, to_iso_string

ROOT_LOGGER_NAME = "quickdesk"


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON"""
        log_data = {
            "timestamp": to_iso_string(get_utc_now()),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno
        }

        request_id = getattr(record, "request_id", None)
        if request_id:
            log_data["request_id"] = request_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def configure_logging(level: str = "INFO") -> logging.Logger:
    """
    Attach the JSON handler to the package root logger.

    Every logger returned by get_logger() propagates here, so the level set
    on startup applies to the whole application.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ...)

    Returns:
        The package root logger
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)

    # Only configure if not already configured
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
        root.addHandler(handler)
        root.propagate = False

    root.setLevel(level.upper())
    return root


def get_logger(name: str) -> logging.Logger:
    """
    Get configured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger that writes JSON lines through the package root handler
    """
    if not logging.getLogger(ROOT_LOGGER_NAME).handlers:
        configure_logging()

    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)
