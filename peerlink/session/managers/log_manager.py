"""
Log management for session diagnostics.

This module provides centralized logging with categorization, filtering and
bounded in-memory storage. The LogManager also serves as the session's
diagnostic observer: it sees every dispatched event and records it under a
category matching the event label.
"""
import os
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Optional, TYPE_CHECKING

from ...core.events.events import EventLabel

if TYPE_CHECKING:
    from ...core.events.events import SessionEvent


class LogCategory(Enum):
    """Categories for log messages."""
    SESSION = auto()    # Lifecycle: start, stop, restart
    NETWORK = auto()    # Endpoint lifecycle and connections
    PROTOCOL = auto()   # Messages sent and received
    CLIENT = auto()     # Client bookkeeping (identity sync)
    POLICY = auto()     # Policy responder
    DISPATCH = auto()   # Queue draining and listener activity
    DEBUG = auto()      # Debug messages
    WARNING = auto()    # Warning messages
    ERROR = auto()      # Error messages


CATEGORY_TAGS = {
    LogCategory.SESSION: "SES",
    LogCategory.NETWORK: "NET",
    LogCategory.PROTOCOL: "PRO",
    LogCategory.CLIENT: "CLI",
    LogCategory.POLICY: "POL",
    LogCategory.DISPATCH: "DSP",
    LogCategory.DEBUG: "DBG",
    LogCategory.WARNING: "WRN",
    LogCategory.ERROR: "ERR",
}


@dataclass
class LogMessage:
    """A single log message with metadata."""
    text: str
    category: LogCategory
    timestamp: datetime = field(default_factory=datetime.now)

    def format(self, include_timestamp: bool = False, include_category: bool = True) -> str:
        """Format the message for display."""
        parts = []

        if include_timestamp:
            parts.append(f"[{self.timestamp.strftime('%H:%M:%S')}]")

        if include_category:
            parts.append(f"[{CATEGORY_TAGS.get(self.category, '???')}]")

        parts.append(self.text)
        return " ".join(parts)


class LogLevel(Enum):
    """Log levels for filtering."""
    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3


# Category each event label is recorded under
LABEL_CATEGORIES = {
    EventLabel.CONNECTED: LogCategory.NETWORK,
    EventLabel.DISCONNECTED: LogCategory.NETWORK,
    EventLabel.INIT_SUCCESS: LogCategory.NETWORK,
    EventLabel.CLOSED: LogCategory.NETWORK,
    EventLabel.MESSAGE_RECEIVED: LogCategory.PROTOCOL,
    EventLabel.MESSAGE_SENT: LogCategory.PROTOCOL,
    EventLabel.MESSAGE_SENT_FAILED: LogCategory.WARNING,
    EventLabel.SERVER_FULL: LogCategory.WARNING,
    EventLabel.INIT_FAILURE: LogCategory.ERROR,
    EventLabel.SECURITY_ERROR: LogCategory.ERROR,
}


class LogManager:
    """Manages session logging with categorization and filtering."""

    def __init__(
        self,
        name: str = "peerlink",
        max_messages: int = 1000,
        default_level: LogLevel = LogLevel.INFO,
        echo: bool = False
    ):
        """Initialize the log manager.

        Args:
            name: Name written at the top of saved log files
            max_messages: Maximum number of messages to store in the buffer
            default_level: Default log level for filtering
            echo: Whether to also print visible messages as they arrive
        """
        self.name = name
        self.messages: deque[LogMessage] = deque(maxlen=max_messages)
        self.log_level = default_level
        self.enabled_categories = set(LogCategory)
        self.echo = echo

        # Queue debug callbacks may arrive from transport threads
        self._lock = threading.Lock()

        # Category-specific log level mappings
        self.category_levels = {
            LogCategory.DEBUG: LogLevel.DEBUG,
            LogCategory.DISPATCH: LogLevel.DEBUG,
            LogCategory.PROTOCOL: LogLevel.DEBUG,
            LogCategory.WARNING: LogLevel.WARNING,
            LogCategory.ERROR: LogLevel.ERROR,
            # SESSION, NETWORK, CLIENT, POLICY default to INFO
        }

    def observe(self, event: "SessionEvent") -> None:
        """Record a dispatched event (diagnostic observer)."""
        category = LABEL_CATEGORIES.get(event.label, LogCategory.DEBUG)

        parts = [event.label.name]
        if event.verb:
            parts.append(f"verb={event.verb}")
        if event.client is not None:
            parts.append(f"client={event.client.display_name}")
        if isinstance(event.payload, dict) and 'reason' in event.payload:
            parts.append(f"reason={event.payload['reason']}")
        elif isinstance(event.payload, dict) and 'error' in event.payload:
            parts.append(f"error={event.payload['error']}")

        self.log(" ".join(parts), category)

    def log(self, text: str, category: LogCategory = LogCategory.SESSION) -> None:
        """Add a message to the log.

        Args:
            text: The message text
            category: The category of the message
        """
        message = LogMessage(text=text, category=category)
        with self._lock:
            self.messages.append(message)

        if self.echo and self._is_visible(message):
            print(message.format(include_timestamp=True))

    # Convenience methods for common categories
    def session(self, text: str) -> None:
        """Log a session lifecycle message."""
        self.log(text, LogCategory.SESSION)

    def network(self, text: str) -> None:
        """Log a network message."""
        self.log(text, LogCategory.NETWORK)

    def protocol(self, text: str) -> None:
        """Log a protocol message."""
        self.log(text, LogCategory.PROTOCOL)

    def client(self, text: str) -> None:
        """Log a client bookkeeping message."""
        self.log(text, LogCategory.CLIENT)

    def policy(self, text: str) -> None:
        self.log(text, LogCategory.POLICY)

    def dispatch(self, text: str) -> None:
        self.log(text, LogCategory.DISPATCH)

    def debug(self, text: str) -> None:
        """Log a debug message."""
        self.log(text, LogCategory.DEBUG)

    def warning(self, text: str) -> None:
        """Log a warning message."""
        self.log(text, LogCategory.WARNING)

    def error(self, text: str) -> None:
        """Log an error message."""
        self.log(text, LogCategory.ERROR)

    def _is_visible(self, message: LogMessage) -> bool:
        if message.category not in self.enabled_categories:
            return False
        level = self.category_levels.get(message.category, LogLevel.INFO)
        return level.value >= self.log_level.value

    def get_messages(self, count: Optional[int] = None,
                     categories: Optional[set[LogCategory]] = None) -> list[LogMessage]:
        """Get recent messages, optionally filtered by category.

        Args:
            count: Maximum number of messages to return (None for all)
            categories: Set of categories to include (None for all enabled)

        Returns:
            List of recent messages
        """
        with self._lock:
            snapshot = list(self.messages)

        if categories:
            filtered = [msg for msg in snapshot
                        if msg.category in categories and msg.category in self.enabled_categories]
        else:
            filtered = [msg for msg in snapshot if self._is_visible(msg)]

        if count is not None and count < len(filtered):
            return filtered[-count:]
        return filtered

    def clear(self) -> None:
        """Clear all messages from the log."""
        with self._lock:
            self.messages.clear()

    def enable_category(self, category: LogCategory) -> None:
        """Enable a log category."""
        self.enabled_categories.add(category)

    def disable_category(self, category: LogCategory) -> None:
        """Disable a log category."""
        self.enabled_categories.discard(category)

    def set_log_level(self, level: LogLevel) -> None:
        """Set the minimum log level."""
        self.log_level = level

    def is_debug_enabled(self) -> bool:
        """Check if debug messages are currently enabled."""
        return (LogCategory.DEBUG in self.enabled_categories and
                self.log_level == LogLevel.DEBUG)

    def toggle_debug(self) -> None:
        """Toggle debug message visibility."""
        if self.is_debug_enabled():
            self.disable_category(LogCategory.DEBUG)
            self.set_log_level(LogLevel.INFO)
        else:
            self.enable_category(LogCategory.DEBUG)
            self.set_log_level(LogLevel.DEBUG)

    def save_log_to_file(self, log_dir: str = "logs") -> Optional[str]:
        """Save all messages to a timestamped log file.

        Returns:
            Path of the written file, or None if saving failed
        """
        try:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            os.makedirs(log_dir, exist_ok=True)
            filepath = os.path.join(log_dir, f"{self.name}_{timestamp}.log")

            with self._lock:
                snapshot = list(self.messages)

            # Save ALL messages, ignoring current filters
            with open(filepath, 'w', encoding='utf-8') as f:
                f.write(f"{self.name} - Session Log\n")
                f.write(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")
                f.write("=" * 60 + "\n\n")

                if not snapshot:
                    f.write("No messages to save.\n")
                for msg in snapshot:
                    timestamp_str = msg.timestamp.strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
                    f.write(f"[{timestamp_str}] [{msg.category.name}] {msg.text}\n")

            self.session(f"Session log saved to {filepath}")
            return filepath

        except OSError as e:
            self.error(f"Failed to save log file: {e}")
            return None
