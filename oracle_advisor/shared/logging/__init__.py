"""Logging configuration and utilities."""

from oracle_advisor.shared.logging.config import (
    setup_logging,
    log_request_event,
    resolve_level,
    StructuredFormatter,
)

__all__ = [
    "setup_logging",
    "log_request_event",
    "resolve_level",
    "StructuredFormatter",
]
