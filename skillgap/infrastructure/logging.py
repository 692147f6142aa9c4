"""
Centralized logging configuration for the skill readiness service.

Records are emitted as JSON carrying the learner, assessment and operation
they belong to. Context lives in a ``ContextVar`` so that concurrent
assessment sessions, and the worker threads their result writes run on,
each log under their own learner.
"""

from __future__ import annotations

import json
import logging
import logging.config
import os
from collections.abc import Callable
from contextvars import ContextVar
from datetime import datetime
from functools import wraps
from pathlib import Path
from types import TracebackType
from typing import Any, ParamSpec, TypeVar, cast

from .config import LoggingConfig

P = ParamSpec("P")
R = TypeVar("R")

ROOT_LOGGER_NAME = "skillgap"

_log_context: ContextVar[dict[str, Any]] = ContextVar("skillgap_log_context", default={})


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    CONTEXT_FIELDS = ("user_id", "assessment_id", "session_state", "request_id", "operation")
    EXTRA_FIELDS = ("error", "settings")

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for field in self.CONTEXT_FIELDS + self.EXTRA_FIELDS:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        if record.exc_info:
            exc_type, exc_value, exc_tb = record.exc_info
            if exc_type is not None and exc_value is not None:
                log_entry["exception"] = {
                    "type": exc_type.__name__,
                    "message": str(exc_value),
                    "traceback": self.formatException((exc_type, exc_value, exc_tb)),
                }

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class ContextFilter(logging.Filter):
    """Copies the current task's log context onto each record."""

    @property
    def context(self) -> dict[str, Any]:
        return _log_context.get()

    def set_context(self, **kwargs: Any) -> None:
        _log_context.set({**_log_context.get(), **kwargs})

    def clear_context(self) -> None:
        _log_context.set({})

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            setattr(record, key, value)
        return True


context_filter = ContextFilter()


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    structured: bool = True,
    enable_console: bool = True,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    Install handlers for the ``skillgap`` logger tree, the root logger and
    the noisy third-party loggers (SQLAlchemy engine, httpx).

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional rotating file path
        structured: JSON on the console; the file is always JSON
        enable_console: Whether to log to stdout
    """
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structured": {"()": StructuredFormatter},
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "filters": {"context": {"()": lambda: context_filter}},
        "handlers": {},
        "loggers": {
            ROOT_LOGGER_NAME: {"level": level, "handlers": [], "propagate": False},
            "sqlalchemy.engine": {"level": "WARNING", "handlers": [], "propagate": False},
            "httpx": {"level": "WARNING", "handlers": [], "propagate": False},
        },
        "root": {"level": level, "handlers": []},
    }

    handler_configs = cast(dict[str, dict[str, Any]], config["handlers"])
    handler_names: list[str] = []

    if enable_console:
        handler_configs["console"] = {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": "structured" if structured else "standard",
            "filters": ["context"],
            "stream": "ext://sys.stdout",
        }
        handler_names.append("console")

    if log_file:
        handler_configs["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": level,
            "formatter": "structured",
            "filters": ["context"],
            "filename": log_file,
            "maxBytes": max_bytes,
            "backupCount": backup_count,
            "encoding": "utf-8",
        }
        handler_names.append("file")

    for logger_config in cast(dict[str, dict[str, Any]], config["loggers"]).values():
        logger_config["handlers"] = list(handler_names)
    cast(dict[str, Any], config["root"])["handlers"] = list(handler_names)

    logging.config.dictConfig(config)


def get_logger(name: str) -> logging.Logger:
    """Logger namespaced under ``skillgap``; already-namespaced names pass through."""
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def set_context(**kwargs: Any) -> None:
    """Add fields (``user_id``, ``assessment_id``...) to the current task's log context."""
    context_filter.set_context(**kwargs)


def clear_context() -> None:
    context_filter.clear_context()


class LogContext:
    """Context manager for temporary logging context."""

    def __init__(self, **kwargs: Any):
        self.context: dict[str, Any] = kwargs
        self._token = None

    def __enter__(self) -> LogContext:
        self._token = _log_context.set({**_log_context.get(), **self.context})
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None


def log_operation(
    operation: str, logger: logging.Logger | None = None
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Log start, success and failure of a use case under ``operation``."""

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            func_logger = logger or get_logger(func.__module__)

            with LogContext(operation=operation):
                func_logger.info(f"Starting {operation}")
                try:
                    result = func(*args, **kwargs)
                    func_logger.info(f"Completed {operation} successfully")
                    return result
                except Exception as e:
                    func_logger.error(f"Failed {operation}: {str(e)}", exc_info=True)
                    raise

        return wrapper

    return decorator


def log_database_operation(operation: str) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Repository method timing at DEBUG; failures at ERROR with the elapsed time."""

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            logger = get_logger("database")

            with LogContext(operation=f"db_{operation}"):
                logger.debug(f"Starting database operation: {operation}")
                start_time = datetime.utcnow()

                try:
                    result = func(*args, **kwargs)
                    duration = (datetime.utcnow() - start_time).total_seconds()
                    logger.debug(f"Database operation {operation} completed in {duration:.3f}s")
                    return result
                except Exception as e:
                    duration = (datetime.utcnow() - start_time).total_seconds()
                    logger.error(
                        f"Database operation {operation} failed after {duration:.3f}s: {str(e)}",
                        exc_info=True,
                    )
                    raise

        return wrapper

    return decorator


def configure_from_settings(config: LoggingConfig | None = None) -> None:
    """Apply the ``LOG_*`` settings section."""
    if config is None:
        config = LoggingConfig()
    setup_logging(
        level=config.level,
        log_file=config.file_path,
        structured=config.structured,
        enable_console=config.console_enabled,
        max_bytes=config.max_bytes,
        backup_count=config.backup_count,
    )


def configure_test_logging():
    setup_logging(level="WARNING", log_file=None, structured=False, enable_console=False)


def auto_configure_logging():
    """Test runs stay quiet; every other environment follows ``LOG_*``."""
    env = os.getenv("ENVIRONMENT", "development").lower()

    if env == "test":
        configure_test_logging()
    else:
        configure_from_settings()

    get_logger(__name__).info(f"Logging configured for {env} environment")


if not logging.getLogger().handlers:
    auto_configure_logging()
