"""Exception types raised synchronously by the session layer.

Only usage errors cross into application code as exceptions. Failures that
happen on a transport thread are reported through the event stream instead
(see ``EventLabel.SECURITY_ERROR`` and ``EventLabel.INIT_FAILURE``).
"""


class PeerlinkError(Exception):
    """Base exception for session layer errors."""
    pass


class ProtocolError(PeerlinkError):
    """Raised when a message or verb violates the message protocol."""

    def __init__(self, message: str, verb=None):
        super().__init__(message)
        self.verb = verb


class TransportError(PeerlinkError):
    """Raised by the socket primitive when a read or write fails.

    Endpoints catch it on their own thread and turn it into an event.
    """

    def __init__(self, message: str, address=None):
        super().__init__(message)
        self.address = address


class CapacityError(TransportError):
    """Raised when a server cannot accept another client."""

    def __init__(self, max_connections: int, address=None):
        super().__init__(f"Server full ({max_connections} connections)", address)
        self.max_connections = max_connections
