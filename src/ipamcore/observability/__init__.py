"""Observability - structured logging."""

from .logger import (
    LogContext,
    add_context,
    clear_all_context,
    clear_context,
    configure_from_config,
    configure_logging,
)

__all__ = [
    "configure_logging",
    "configure_from_config",
    "add_context",
    "clear_context",
    "clear_all_context",
    "LogContext",
]
