"""Logging configuration and correlation tracking."""

from .config import LoggingConfig, ObservabilityConfig, get_config, load_config, reset_config, set_config
from .logging import JsonFormatter, configure_logging, correlation_context, get_logger

__all__ = [
    "LoggingConfig",
    "ObservabilityConfig",
    "get_config",
    "set_config",
    "load_config",
    "reset_config",
    "configure_logging",
    "get_logger",
    "correlation_context",
    "JsonFormatter",
]
