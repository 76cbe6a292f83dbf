"""Session events and labels.

This module defines the events that flow from the transport threads and the
session itself to application listeners.

Event Design Principles:
- Events are immutable dataclasses
- Payloads are plain JSON-like values, copied on construction so a consumer
  mutating them never reaches the producer
- Back-references (session, client) are non-owning and only valid during the
  dispatch call that delivers the event
- Labels are enums, verbs are strings
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Any, Optional, TYPE_CHECKING

from ..protocol import message_content

if TYPE_CHECKING:
    from ..data.data_structures import ClientRecord
    from ...session.session import Session


class EventLabel(Enum):
    """Kinds of occurrences a session can report."""
    # Connection Events
    CONNECTED = auto()
    DISCONNECTED = auto()

    # Message Events
    MESSAGE_RECEIVED = auto()
    MESSAGE_SENT = auto()
    MESSAGE_SENT_FAILED = auto()

    # Error Events
    SECURITY_ERROR = auto()
    SERVER_FULL = auto()

    # Endpoint Lifecycle Events
    INIT_SUCCESS = auto()
    INIT_FAILURE = auto()
    CLOSED = auto()


MESSAGE_LABELS = frozenset({
    EventLabel.MESSAGE_RECEIVED,
    EventLabel.MESSAGE_SENT,
    EventLabel.MESSAGE_SENT_FAILED,
})


@dataclass(frozen=True)
class SessionEvent:
    """A single notification delivered to session listeners."""
    label: EventLabel
    verb: Optional[str] = None
    payload: Any = None
    session: Optional["Session"] = field(default=None, repr=False, compare=False)
    client: Optional["ClientRecord"] = field(default=None, compare=False)
    generation: int = field(default=0, repr=False)
    timestamp: datetime = field(default_factory=datetime.now, repr=False, compare=False)

    def __post_init__(self):
        # Verbs only make sense on message events
        if self.label not in MESSAGE_LABELS:
            object.__setattr__(self, 'verb', None)
        object.__setattr__(self, 'payload', copy.deepcopy(self.payload))

    @property
    def content(self) -> Any:
        """Content body of a verb message (``payload["content"]``)."""
        return message_content(self.payload)

    @property
    def is_message(self) -> bool:
        return self.label in MESSAGE_LABELS
