"""Centralized session enums and constants.

This module contains the enums shared by the session, the transport endpoints
and the protocol layer, providing a single source of truth for modes, states
and wire-level constants.
"""

from enum import Enum, auto


class SessionMode(Enum):
    """Which side of the connection a session plays."""
    SERVER = auto()
    CLIENT = auto()


class SessionState(Enum):
    """Lifecycle states of a session."""
    UNINITIALIZED = auto()
    RUNNING = auto()
    STOPPED = auto()


# Default ports
DEFAULT_PORT = 9000
DEFAULT_POLICY_PORT = 9999

# Wire framing
MESSAGE_DELIMITER = b"\n"
RECV_BUFFER_SIZE = 4096

SESSION_MODE_NAMES = {
    SessionMode.SERVER: "Server",
    SessionMode.CLIENT: "Client",
}
