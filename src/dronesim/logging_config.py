"""Logging configuration for dronesim.

Configurable via environment variables:
- LOG_LEVEL: Set log level (DEBUG, INFO, WARNING, ERROR). Default: INFO
- LOG_FORMAT: Set format ('text' or 'json'). Default: text

Records may carry a ``sim_time`` extra (simulation clock in seconds). The text
formatter renders it as ``[t=1.500]`` ahead of the message so that comms
narration reads like a timeline; the JSON formatter emits it as a field.

Usage:
    from dronesim.logging_config import configure_logging
    configure_logging()  # Call once at application startup
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import UTC, datetime
from typing import Any, ClassVar

ROOT_LOGGER_NAME = "dronesim"

# Attributes every LogRecord has; anything else was passed through ``extra=``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime", "sim_time"}


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RESERVED_ATTRS}


class JSONFormatter(logging.Formatter):
    """JSON lines formatter.

    Field order is fixed: timestamp, level, logger, sim_time (when present),
    message, then source/exception/extra.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as a JSON object on one line.

        Args:
            record: Log record to format.

        Returns:
            JSON string with log data.
        """
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
        }
        sim_time = getattr(record, "sim_time", None)
        if sim_time is not None:
            log_data["sim_time"] = sim_time
        log_data["message"] = record.getMessage()

        if record.levelno in (logging.DEBUG, logging.ERROR, logging.CRITICAL):
            log_data["source"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra = _extra_fields(record)
        if extra:
            log_data["extra"] = extra

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human readable formatter.

    Format: TIMESTAMP LEVEL [LOGGER] [t=SIM_TIME] MESSAGE
    For DEBUG/ERROR: includes file:line in source
    """

    LEVEL_COLORS: ClassVar[dict[str, str]] = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[1;31m",  # Bold red
    }
    RESET: ClassVar[str] = "\033[0m"

    def __init__(self, use_colors: bool = True) -> None:
        """Initialize formatter.

        Args:
            use_colors: Whether to use ANSI colors in output.
        """
        super().__init__()
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as text.

        Args:
            record: Log record to format.

        Returns:
            Formatted string.
        """
        timestamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        level = record.levelname

        if self.use_colors:
            color = self.LEVEL_COLORS.get(level, "")
            level_str = f"{color}{level:8s}{self.RESET}"
        else:
            level_str = f"{level:8s}"

        logger_name = record.name
        prefix = ROOT_LOGGER_NAME + "."
        if logger_name.startswith(prefix):
            logger_name = logger_name[len(prefix) :]

        sim_time = getattr(record, "sim_time", None)
        clock = f"[t={sim_time:.3f}] " if sim_time is not None else ""

        parts = [f"{timestamp} {level_str} [{logger_name}] {clock}{record.getMessage()}"]

        if record.levelno in (logging.DEBUG, logging.ERROR, logging.CRITICAL):
            parts.append(f" ({record.filename}:{record.lineno})")

        if record.exc_info:
            parts.append(f"\n{self.formatException(record.exc_info)}")

        return "".join(parts)


def get_log_level() -> int:
    """Get log level from the LOG_LEVEL environment variable.

    Valid values: DEBUG, INFO, WARNING (or WARN), ERROR, CRITICAL.
    Anything else falls back to INFO.
    """
    level_name = os.environ.get("LOG_LEVEL", "INFO").upper()
    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "WARN": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return level_map.get(level_name, logging.INFO)


def get_log_format() -> str:
    """Get log format ('text' or 'json') from the LOG_FORMAT environment variable."""
    format_name = os.environ.get("LOG_FORMAT", "text").lower()
    if format_name not in ("text", "json"):
        return "text"
    return format_name


def configure_logging(
    level: int | None = None,
    format_type: str | None = None,
    use_colors: bool = True,
) -> None:
    """Configure the ``dronesim`` logger.

    Should be called once at startup (the CLI entry points do it).

    Args:
        level: Log level (use logging.DEBUG, logging.INFO, etc.)
               If None, reads from LOG_LEVEL env var.
        format_type: Output format ('text' or 'json').
                     If None, reads from LOG_FORMAT env var.
        use_colors: Whether to use colors in text format (only if stderr is TTY).
    """
    if level is None:
        level = get_log_level()
    if format_type is None:
        format_type = get_log_format()

    handler = logging.StreamHandler(sys.stderr)
    if format_type == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(TextFormatter(use_colors=use_colors))

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False

    # Route uvicorn's access log through the same handler when serving
    uvicorn_access = logging.getLogger("uvicorn.access")
    uvicorn_access.handlers.clear()
    uvicorn_access.addHandler(handler)
    uvicorn_access.setLevel(level)
    uvicorn_access.propagate = False

    root_logger.debug(
        "Logging configured: level=%s, format=%s",
        logging.getLevelName(level),
        format_type,
    )


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the ``dronesim`` namespace.

    Args:
        name: Module name (typically __name__).

    Returns:
        Logger instance.
    """
    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)
