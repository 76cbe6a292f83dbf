"""Core data structures and definitions.

This package contains fundamental data types shared across the session layer:
- data_structures.py: SessionParams and ClientRecord
- net_enums.py: Session modes, lifecycle states and wire constants
"""

from .data_structures import ClientRecord, SessionParams, generate_identity
from .net_enums import (
    DEFAULT_POLICY_PORT,
    DEFAULT_PORT,
    MESSAGE_DELIMITER,
    RECV_BUFFER_SIZE,
    SESSION_MODE_NAMES,
    SessionMode,
    SessionState,
)

__all__ = [
    "ClientRecord",
    "SessionParams",
    "generate_identity",
    "SessionMode",
    "SessionState",
    "DEFAULT_PORT",
    "DEFAULT_POLICY_PORT",
    "MESSAGE_DELIMITER",
    "RECV_BUFFER_SIZE",
    "SESSION_MODE_NAMES",
]
