"""
Logging Configuration for the Slacker API.

Centralizes logging for the application. Development runs get colour-coded,
human-readable console output; every other environment emits one JSON object
per record so logs can be shipped to an aggregator as-is. Each record carries
the correlation id of the request that produced it.

Key Components:
- `CorrelationFilter`: copies the current request's correlation id onto every
  log record.
- `StructuredFormatter`: JSON formatter used outside development.
- `ColoredConsoleFormatter`: colour-per-level formatter for local work.
- `get_logging_config` / `setup_logging`: build and apply the `dictConfig`
  for the current `Settings`.
- `log_function_call`: decorator logging entry, exit and duration of
  endpoint handlers.

The correlation id lives in a `ContextVar`, so concurrent requests served by
the same event loop never see each other's id.
"""

import asyncio
import functools
import json
import logging
import logging.config
import time
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from core.config import Settings, get_settings

correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

_RESERVED_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "exc_info",
    "exc_text",
    "stack_info",
    "correlation_id",
    "message",
    "asctime",
}


class CorrelationFilter(logging.Filter):
    """Attach the active correlation id to each record"""

    def filter(self, record: logging.LogRecord) -> bool:
        corr_id = correlation_id.get()
        if corr_id:
            record.correlation_id = corr_id
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON document per log record"""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        corr_id = getattr(record, "correlation_id", None) or correlation_id.get()
        if corr_id:
            log_entry["correlation_id"] = corr_id

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS
        }
        if extra_fields:
            log_entry["extra"] = extra_fields

        return json.dumps(log_entry, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """Colored console formatter for development"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")

        corr_id = getattr(record, "correlation_id", None)
        corr_part = f" [{corr_id}]" if corr_id else ""

        formatted = (
            f"{color}[{timestamp}] {record.levelname:8} "
            f"{record.name}{corr_part}: {record.getMessage()}{self.RESET}"
        )
        if record.exc_info:
            formatted += "\n" + self.formatException(record.exc_info)
        return formatted


def get_logging_config(settings: Optional[Settings] = None) -> Dict[str, Any]:
    """Build the dictConfig for the given settings"""
    settings = settings or get_settings()
    log_level = settings.log_level
    handlers = ["console"]

    config: Dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"correlation": {"()": CorrelationFilter}},
        "formatters": {
            "structured": {"()": StructuredFormatter},
            "colored_console": {"()": ColoredConsoleFormatter},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": "colored_console"
                if settings.environment == "development"
                else "structured",
                "filters": ["correlation"],
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {},
        "root": {"level": log_level, "handlers": handlers},
    }

    if settings.environment == "production":
        config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": log_level,
            "formatter": "structured",
            "filters": ["correlation"],
            "filename": "/var/log/slacker_api/app.log",
            "maxBytes": 10485760,
            "backupCount": 5,
        }
        handlers = handlers + ["file"]
        config["root"]["handlers"] = handlers

    for name in ("api", "core", "services", "providers"):
        config["loggers"][name] = {
            "level": log_level,
            "handlers": list(handlers),
            "propagate": False,
        }
    for name in ("uvicorn", "uvicorn.access", "fastapi", "apscheduler"):
        config["loggers"][name] = {
            "level": "INFO",
            "handlers": list(handlers),
            "propagate": False,
        }

    return config


def setup_logging(settings: Optional[Settings] = None):
    """Initialize logging configuration"""
    settings = settings or get_settings()
    logging.config.dictConfig(get_logging_config(settings))
    logging.getLogger("core.logging").info(
        f"Logging initialized for {settings.environment} environment"
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def set_correlation_id(corr_id: str):
    correlation_id.set(corr_id)


def get_correlation_id() -> Optional[str]:
    return correlation_id.get()


def log_function_call(logger: logging.Logger):
    """Decorator to log calls, duration and failures of the wrapped function"""

    def decorator(func):
        def _done(start_time: float, success: bool, error: Optional[Exception] = None):
            elapsed_ms = round((time.perf_counter() - start_time) * 1000, 2)
            if success:
                logger.debug(
                    f"Completed {func.__name__}",
                    extra={"execution_time_ms": elapsed_ms, "success": True},
                )
            else:
                logger.warning(
                    f"Failed {func.__name__}: {error}",
                    extra={
                        "execution_time_ms": elapsed_ms,
                        "success": False,
                        "error_type": type(error).__name__,
                    },
                )

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            logger.debug(f"Calling {func.__name__}")
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                _done(start_time, False, e)
                raise
            _done(start_time, True)
            return result

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            logger.debug(f"Calling {func.__name__}")
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _done(start_time, False, e)
                raise
            _done(start_time, True)
            return result

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
