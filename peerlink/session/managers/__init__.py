"""Manager systems supporting the session facade."""

from .log_manager import LogCategory, LogLevel, LogManager, LogMessage

__all__ = [
    "LogManager",
    "LogLevel",
    "LogCategory",
    "LogMessage",
]
