"""
Logging configuration.

Single source of truth for log setup across the HTTP and MCP entry
points. Handlers write to stderr so the MCP stdio channel stays clean.
Optionally emits JSON records for request lifecycle events.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-35s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

NOISY_LOGGERS = ("httpcore", "httpx", "openai", "mcp")


class StructuredFormatter(logging.Formatter):
    """
    Custom formatter that outputs log records as JSON.

    Each log entry includes:
    - timestamp: ISO format datetime
    - level: Log level name
    - logger: Logger name
    - message: Log message
    - extra: Any additional fields passed to the log call
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if hasattr(record, "extra"):
            log_entry["extra"] = record.extra

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def resolve_level(level_name: Optional[str]) -> int:
    """Map a level name such as 'debug' or 'warn' to a logging level (default INFO)."""
    return LOG_LEVELS.get((level_name or "info").strip().lower(), logging.INFO)


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    logger_name: str = "oracle_advisor",
    structured: bool = False,
) -> logging.Logger:
    """
    Configure logging for the package logger.

    Args:
        level: Logging level (default: INFO)
        log_file: Optional path to log file. If not provided, logs to stderr only.
        logger_name: Name for the logger instance.
        structured: Emit JSON records instead of the pipe-delimited text format.

    Returns:
        Configured logger instance.
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    logger.propagate = False

    # Clear existing handlers
    logger.handlers = []

    if structured:
        formatter: logging.Formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Quiet noisy third-party loggers
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger


def log_request_event(
    event: str,
    request_id: str,
    extra: Optional[Dict[str, Any]] = None,
    logger: Optional[logging.Logger] = None,
) -> None:
    """
    Log an oracle request lifecycle event.

    Args:
        event: Name of the event (e.g., "request_start", "request_complete")
        request_id: Request identifier
        extra: Additional context to include in the log
        logger: Logger instance to use. If not provided, uses default.
    """
    if logger is None:
        logger = logging.getLogger("oracle_advisor")
    if not logger.isEnabledFor(logging.INFO):
        return

    log_data: Dict[str, Any] = {"event": event, "request_id": request_id}
    if extra:
        log_data["extra"] = extra

    record = logger.makeRecord(
        logger.name,
        logging.INFO,
        "",
        0,
        f"[request={request_id}] Request event: {event}",
        args=(),
        exc_info=None,
    )
    record.extra = log_data

    logger.handle(record)
