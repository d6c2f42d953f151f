"""
Logging utilities for the update asset publisher.

Provides structured logging with entry/exit decorators, JSON formatting,
correlation IDs, and consistent formatting across every publish stage.

Features:
    - Structured JSON logging for CI and production environments
    - Correlation ID tracking so every line of one publish can be grouped
    - Entry/exit decorators with timing
    - Colorized console output for interactive use

Example usage:
    >>> from src.utils.logging import get_logger, log_function_call, set_correlation_id
    >>>
    >>> logger = get_logger(__name__)
    >>> set_correlation_id("publish-12345")
    >>>
    >>> @log_function_call
    >>> def hash_asset(file_path: str) -> str:
    >>>     logger.info("Hashing asset", extra={"file": file_path})
    >>>     return "..."
"""

import functools
import json
import logging
import os
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, TypeVar, cast

import coloredlogs

# Type variable for generic decorator typing
F = TypeVar("F", bound=Callable[..., Any])

# Context variable for correlation ID (one per publish invocation)
_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# Global logging configuration
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Attributes every LogRecord carries; anything else came in through `extra`
_STANDARD_RECORD_ATTRS = frozenset(
    [
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
        "message",
        "asctime",
    ]
)


# ============================================================================
# Correlation ID Management
# ============================================================================

def get_correlation_id() -> str:
    """
    Get current correlation ID or generate a new one.

    Returns:
        Current correlation ID (generates a UUID if not set)
    """
    corr_id = _correlation_id.get()
    if corr_id is None:
        corr_id = str(uuid.uuid4())
        _correlation_id.set(corr_id)
    return corr_id


def set_correlation_id(corr_id: str) -> None:
    """
    Set correlation ID for the current context.

    Args:
        corr_id: Correlation ID to set

    Example:
        >>> set_correlation_id("publish-12345")
        >>> # All subsequent logs will include this correlation ID
    """
    _correlation_id.set(corr_id)


def clear_correlation_id() -> None:
    """Clear correlation ID for current context."""
    _correlation_id.set(None)


# ============================================================================
# JSON Formatter
# ============================================================================

class JSONFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    Example output:
        {
            "timestamp": "2026-01-04T10:30:15.123456+00:00",
            "level": "INFO",
            "logger": "src.publisher.pipeline",
            "message": "Negotiated 12 upload destinations",
            "correlation_id": "publish-12345",
            "extra": {"platform": "ios"}
        }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": get_correlation_id(),
            "source": {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            },
        }

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_RECORD_ATTRS
        }
        if extra_fields:
            log_data["extra"] = extra_fields

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        # CI runners expose these; empty strings locally
        log_data["environment"] = {
            "hostname": os.getenv("HOSTNAME", "unknown"),
            "ci": os.getenv("CI", ""),
        }

        return json.dumps(log_data, default=str)


def setup_logging(
    level: str = "INFO",
    enable_colors: bool = True,
    json_format: Optional[bool] = None,
) -> None:
    """
    Configure global logging settings for the application.

    Uses structured JSON output when LOG_FORMAT=json (or json_format=True),
    colorized text otherwise.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        enable_colors: Whether to colorize console output
        json_format: Force JSON output on or off; None reads LOG_FORMAT

    Example:
        >>> setup_logging(level="DEBUG")
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    if json_format is None:
        json_format = os.getenv("LOG_FORMAT", "text").lower() == "json"

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()

    if json_format:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(console_handler)
    elif enable_colors:
        coloredlogs.install(
            level=log_level,
            fmt=LOG_FORMAT,
            datefmt=LOG_DATE_FORMAT,
            logger=root_logger,
        )
    else:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        root_logger.addHandler(console_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the specified name.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def log_function_call(func: F) -> F:
    """
    Decorator that logs function entry and exit with timing.

    - Logs entry with parameter values at DEBUG
    - Logs exit with return value and execution time at DEBUG
    - Logs exceptions with full traceback at ERROR, then re-raises

    Args:
        func: Function to be decorated

    Returns:
        Wrapped function with logging

    Example:
        >>> @log_function_call
        >>> def load_metadata(dist_root: str) -> Metadata:
        >>>     ...
        >>>
        >>> # 2026-01-04 10:30:15 - module - DEBUG - ENTER load_metadata(dist_root='dist')
        >>> # 2026-01-04 10:30:15 - module - DEBUG - EXIT load_metadata (0.01s)
    """
    logger = get_logger(func.__module__)

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        correlation_id = get_correlation_id()

        arg_names = func.__code__.co_varnames[: func.__code__.co_argcount]
        args_repr = [f"{name}={value!r}" for name, value in zip(arg_names, args)]
        kwargs_repr = [f"{key}={value!r}" for key, value in kwargs.items()]
        all_args = ", ".join(args_repr + kwargs_repr)

        logger.debug(
            f"ENTER {func.__name__}({all_args})",
            extra={
                "function": func.__name__,
                "correlation_id": correlation_id,
                "event": "function_entry",
            },
        )

        start_time = datetime.now()

        try:
            result = func(*args, **kwargs)
        except Exception as error:
            execution_time = (datetime.now() - start_time).total_seconds()
            logger.error(
                f"ERROR {func.__name__} raised {type(error).__name__}: {error}",
                extra={
                    "function": func.__name__,
                    "duration_seconds": execution_time,
                    "correlation_id": correlation_id,
                    "event": "function_error",
                    "error_type": type(error).__name__,
                },
                exc_info=True,
            )
            raise

        execution_time = (datetime.now() - start_time).total_seconds()
        logger.debug(
            f"EXIT {func.__name__} ({execution_time:.2f}s)",
            extra={
                "function": func.__name__,
                "duration_seconds": execution_time,
                "correlation_id": correlation_id,
                "event": "function_exit",
            },
        )
        return result

    return cast(F, wrapper)
