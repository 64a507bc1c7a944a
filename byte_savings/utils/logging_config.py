"""
Logging configuration for the Byte Savings Backend
JSON logs in production, human-readable logs in development.
Every record carries the current request ID and audit ID when set.
"""

import logging
import sys
import json
import uuid
from typing import Any, Dict, Optional
from logging.handlers import RotatingFileHandler
from contextvars import ContextVar, Token
import os

request_id_context: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
audit_id_context: ContextVar[Optional[str]] = ContextVar("audit_id", default=None)

# LogRecord attributes that are not user-supplied extras
_STANDARD_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "request_id", "audit_id", "taskName"}


def _context_ids(record: logging.LogRecord) -> Dict[str, str]:
    ids: Dict[str, str] = {}
    request_id = request_id_context.get() or getattr(record, "request_id", None)
    if request_id:
        ids["request_id"] = request_id
    audit_id = audit_id_context.get() or getattr(record, "audit_id", None)
    if audit_id:
        ids["audit_id"] = audit_id
    return ids


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(_context_ids(record))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _STANDARD_RECORD_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Human-readable formatter with request and audit IDs"""

    def format(self, record: logging.LogRecord) -> str:
        base_format = "%(asctime)s - %(name)s - %(levelname)s"
        for key, value in _context_ids(record).items():
            base_format += f" - [{key}={value}]"
        base_format += " - %(message)s"

        formatter = logging.Formatter(base_format, datefmt="%Y-%m-%d %H:%M:%S")
        return formatter.format(record)


def setup_logging(
    level: str = "INFO",
    json_format: bool = False,
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    Setup logging configuration

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON format (for production)
        log_file: Optional log file path
        max_bytes: Maximum log file size before rotation
        backup_count: Number of backup log files to keep
    """
    formatter: logging.Formatter = JSONFormatter() if json_format else HumanReadableFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("fastapi").setLevel(logging.WARNING)


def set_request_id(request_id: Optional[str] = None) -> str:
    """
    Set request ID in context

    Args:
        request_id: Optional request ID. If None, generates a new UUID.

    Returns:
        The request ID (generated or provided)
    """
    if request_id is None:
        request_id = str(uuid.uuid4())
    request_id_context.set(request_id)
    return request_id


def get_request_id() -> Optional[str]:
    return request_id_context.get()


def set_audit_id(audit_id: Optional[str]) -> Token:
    """Tag subsequent log records in this context with an audit ID"""
    return audit_id_context.set(audit_id)


def reset_audit_id(token: Token) -> None:
    """Restore the audit ID that was active before ``set_audit_id``"""
    audit_id_context.reset(token)


def get_logger(name: str) -> logging.Logger:
    """
    Get logger instance

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
