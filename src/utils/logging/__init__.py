"""
Structured logging for the field transformation engine.

Usage:
    from utils.logging import configure_from_env, get_logger

    configure_from_env()             # once, at CLI startup
    logger = get_logger(__name__)
    logger.info("Rule saved", extra={"endpoint": "employees", "mappings": 4})
"""

from .config import configure_from_env, get_logger, setup_logging, shutdown_logging
from .formatters import ConsoleFormatter, JSONFormatter
from .context import ContextLogger

__all__ = [
    "setup_logging",
    "shutdown_logging",
    "get_logger",
    "configure_from_env",
    "JSONFormatter",
    "ConsoleFormatter",
    "ContextLogger",
]
