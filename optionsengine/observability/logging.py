"""Structured logging with correlation IDs.

Library modules log through the standard library; ``configure_logging``
routes both stdlib records and structlog events through one handler so
every line carries the active correlation ID.
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Generator, Optional

import structlog

from .config import LoggingConfig, get_config

correlation_id: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(correlation_id)s] %(message)s"

_RESERVED_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "message",
    "taskName",
    "correlation_id",
    "asctime",
}


def add_correlation_id(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add correlation ID to log events."""
    corr_id = correlation_id.get()
    if corr_id:
        event_dict["correlation_id"] = corr_id
    return event_dict


class CorrelationIdFilter(logging.Filter):
    """Stamp every record with the active correlation ID ('-' when none)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id.get() or "-"
        return True


class JsonFormatter(logging.Formatter):
    """JSON formatter for standard logging records, extra fields included."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "funcName": record.funcName,
            "lineno": record.lineno,
        }

        corr_id = correlation_id.get()
        if corr_id:
            log_data["correlation_id"] = corr_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, default=str)


def _build_handler(config: LoggingConfig) -> logging.Handler:
    if config.output == "file":
        if not config.file_path:
            raise ValueError("Logging output 'file' requires file_path")
        return logging.FileHandler(config.file_path, encoding="utf-8")
    return logging.StreamHandler(sys.stdout if config.output == "stdout" else sys.stderr)


def configure_logging(config: Optional[LoggingConfig] = None) -> None:
    """Configure stdlib logging and structlog from a LoggingConfig.

    In ``json`` mode structlog events are handed to the stdlib as message plus
    ``extra`` fields and rendered by JsonFormatter alongside library records.
    In ``text`` mode structlog renders key/value pairs itself.
    """
    if config is None:
        config = get_config().logging

    if config.format == "json":
        formatter: logging.Formatter = JsonFormatter()
        renderer: Any = structlog.stdlib.render_to_log_kwargs
    else:
        formatter = logging.Formatter(fmt=TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    processors_list = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]
    if config.enable_correlation and config.format != "json":
        processors_list.append(add_correlation_id)
    processors_list.append(renderer)

    structlog.configure(
        processors=processors_list,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    handler = _build_handler(config)
    handler.setFormatter(formatter)
    handler.addFilter(CorrelationIdFilter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, config.level.upper(), logging.WARNING))


def get_logger(name: str) -> Any:
    """Get a structlog logger bound to ``name``."""
    return structlog.get_logger(name)


@contextmanager
def correlation_context(corr_id: Optional[str] = None) -> Generator[str, None, None]:
    """Context manager for correlation ID."""
    if corr_id is None:
        corr_id = str(uuid.uuid4())

    token = correlation_id.set(corr_id)
    try:
        yield corr_id
    finally:
        correlation_id.reset(token)
