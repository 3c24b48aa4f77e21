"""Structured logging configuration for the dialectic storage service."""

import logging
import sys
from typing import Any

# Fields lifted to the top of a log line so a bucket object can be traced
# across the upload, registration and assembly calls that touch it
STORAGE_CONTEXT_FIELDS = ("contribution_id", "storage_path", "file_name")


class StructuredFormatter(logging.Formatter):
    """key=value formatter that surfaces the bucket object a line is about."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured output."""
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "module": record.module,
            "function": record.funcName,
            "message": record.getMessage(),
        }

        for field in STORAGE_CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value

        if hasattr(record, "extra_data"):
            log_data.update(record.extra_data)

        parts = [f"{k}={v}" for k, v in log_data.items()]
        return " ".join(parts)


def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Only configure if not already configured
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)

        try:
            from dialectic_storage.core.config import get_settings

            settings = get_settings()
            logger.setLevel(logging.DEBUG if settings.STORAGE_ENV == "dev" else logging.INFO)
        except Exception:
            # Settings may be incomplete while the client itself is being configured
            logger.setLevel(logging.INFO)

    return logger


def log_with_context(logger: logging.Logger, level: int, msg: str, **kwargs: Any) -> None:
    """
    Log with the storage object and any extra fields attached.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, etc.)
        msg: Log message
        **kwargs: contribution_id, storage_path and file_name become top-level
            fields; anything else is appended after them
    """
    extra: dict[str, Any] = {
        field: kwargs.pop(field) for field in STORAGE_CONTEXT_FIELDS if field in kwargs
    }
    extra["extra_data"] = kwargs
    logger.log(level, msg, extra=extra)
