"""Structured logging configuration.

The core logs computations at DEBUG (or the finer TRACE) level only, so a
default INFO configuration keeps library callers quiet. Levels:
- INFO (20): CLI summaries (default)
- VERBOSE (15): Per-node check results
- DEBUG (10): Placement and validation decisions
- TRACE (5): Everything
"""

import logging
import sys
from pathlib import Path
from typing import Any

import structlog

from ..config import LoggingConfig

TRACE = 5  # Below DEBUG
VERBOSE = 15  # Between DEBUG and INFO

logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(VERBOSE, "VERBOSE")

LOG_LEVELS = {
    "TRACE": TRACE,
    "DEBUG": logging.DEBUG,
    "VERBOSE": VERBOSE,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


class LogContext:
    """
    Context manager binding key-values to every log line inside it.

    Usage:
        with LogContext(address_space="as-1"):
            logger.debug("Placed prefix", prefix="10.0.0.0/8")
    """

    def __init__(self, **kwargs: Any) -> None:
        """
        Initialize log context.

        Args:
            **kwargs: Key-value pairs to add to log context
        """
        self.new_context = kwargs
        self.tokens: dict[str, Any] = {}

    def __enter__(self) -> "LogContext":
        """Bind the new values, remembering what they replace."""
        self.tokens = structlog.contextvars.bind_contextvars(**self.new_context)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Restore the values bound before entering."""
        structlog.contextvars.reset_contextvars(**self.tokens)


def add_context(**kwargs: Any) -> None:
    """
    Bind context for the rest of the current execution context.

    Args:
        **kwargs: Key-value pairs to add to log context
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context(key: str) -> None:
    """
    Remove a key from the current log context.

    Args:
        key: Key to remove
    """
    structlog.contextvars.unbind_contextvars(key)


def clear_all_context() -> None:
    """Clear all context variables."""
    structlog.contextvars.clear_contextvars()


def get_log_level(level: str) -> int:
    """
    Get numeric log level from string.

    Args:
        level: Level name (TRACE, DEBUG, VERBOSE, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Numeric log level, INFO for unknown names
    """
    return LOG_LEVELS.get(level.upper(), logging.INFO)


def configure_logging(
    level: str = "INFO",
    json_logs: bool = False,
    log_file: str | Path | None = None,
) -> None:
    """
    Configure structlog on top of the standard logging module.

    Args:
        level: Logging level (TRACE, DEBUG, VERBOSE, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Whether to output logs in JSON format
        log_file: Optional path to write logs to file
    """
    log_level = get_log_level(level)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        file_path = Path(log_file)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(file_path))

    logging.basicConfig(
        format="%(message)s",
        level=log_level,
        handlers=handlers,
        force=True,  # Force reconfiguration even if logging has been configured
    )
    logging.getLogger().setLevel(log_level)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def configure_from_config(config: LoggingConfig) -> None:
    """
    Configure logging from a LoggingConfig section.

    Args:
        config: Logging section of IpamConfig
    """
    configure_logging(
        level=config.level,
        json_logs=config.format.lower() == "json",
        log_file=config.file,
    )
