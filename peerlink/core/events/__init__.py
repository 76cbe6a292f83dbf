"""Event system bridging transport threads and the host tick.

This package contains the complete event pipeline:
- event_queue.py: Thread-safe buffer drained once per tick
- listener_registry.py: Label-to-callback routing
- events.py: Event definitions and labels
"""

from .event_queue import EventQueue
from .events import MESSAGE_LABELS, EventLabel, SessionEvent
from .listener_registry import ListenerRegistry

__all__ = [
    "EventQueue",
    "EventLabel",
    "SessionEvent",
    "MESSAGE_LABELS",
    "ListenerRegistry",
]
