"""quadvote logging.

Structured logging with governance correlation context, JSON or text
formatting, and console or in-memory handlers.
"""

from .core import (
    LogConfig,
    LogContext,
    LogEntry,
    LogFormatter,
    LogHandler,
    LogLevel,
    LogManager,
    QuadVoteLogger,
    get_logger,
    get_manager,
    setup_logging,
    shutdown_logging,
)
from .formatters import JSONFormatter, TextFormatter
from .handlers import ConsoleHandler, MemoryHandler

__all__ = [
    "LogLevel",
    "LogConfig",
    "LogContext",
    "LogEntry",
    "LogFormatter",
    "LogHandler",
    "LogManager",
    "QuadVoteLogger",
    "get_logger",
    "get_manager",
    "setup_logging",
    "shutdown_logging",
    "JSONFormatter",
    "TextFormatter",
    "ConsoleHandler",
    "MemoryHandler",
]
