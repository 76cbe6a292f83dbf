"""Transport endpoints performing the actual socket I/O.

- endpoint.py: NetworkEndpoint contract shared by both variants
- server_endpoint.py: Selector-driven accept/read loop and broadcast
- client_endpoint.py: Cancellable connect and read loop
- connection.py: Newline-delimited JSON socket primitive
- policy_responder.py: Fixed cross-domain policy document server
"""

from .client_endpoint import ClientEndpoint
from .connection import Connection
from .endpoint import NetworkEndpoint
from .policy_responder import POLICY_DOCUMENT, POLICY_RESPONSE, PolicyResponder
from .server_endpoint import ServerEndpoint

__all__ = [
    "NetworkEndpoint",
    "ServerEndpoint",
    "ClientEndpoint",
    "Connection",
    "PolicyResponder",
    "POLICY_DOCUMENT",
    "POLICY_RESPONSE",
]
