"""peerlink: client/server peer sessions driven by a host tick.

Socket I/O runs on background threads; application listeners run on the
thread that calls ``Session.pump()``.
"""

from .core.data import ClientRecord, SessionMode, SessionParams, SessionState
from .core.errors import CapacityError, PeerlinkError, ProtocolError, TransportError
from .core.events import EventLabel, EventQueue, SessionEvent
from .core.protocol import CoreVerb
from .session import LogManager, Session, SessionConfigLoader, TickScheduler

__version__ = "0.1.0"

__all__ = [
    "Session",
    "SessionMode",
    "SessionState",
    "SessionParams",
    "SessionEvent",
    "EventLabel",
    "EventQueue",
    "ClientRecord",
    "CoreVerb",
    "TickScheduler",
    "SessionConfigLoader",
    "LogManager",
    "PeerlinkError",
    "ProtocolError",
    "TransportError",
    "CapacityError",
]
