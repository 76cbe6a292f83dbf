"""Session facade and the host-side machinery around it.

- session.py: Public peer object (lifecycle, send/trigger/on, dispatch)
- core_verbs.py: Reserved verb interception
- tick_scheduler.py: Fixed-rate tick thread
- config_loader.py: YAML configuration
- managers: Log manager used as the diagnostic observer
"""

from .config_loader import SessionConfigLoader
from .core_verbs import CoreVerbHandler
from .managers.log_manager import LogCategory, LogLevel, LogManager
from .session import Session
from .tick_scheduler import TickScheduler

__all__ = [
    "Session",
    "CoreVerbHandler",
    "TickScheduler",
    "SessionConfigLoader",
    "LogManager",
    "LogLevel",
    "LogCategory",
]
