"""Connection parameters and per-client bookkeeping.

Data Flow:
1. YAML config -> SessionParams (immutable for one endpoint instance)
2. Accepted socket -> ClientRecord (owned by the server endpoint)
3. ClientRecord -> SessionEvent.client (read-only snapshot during dispatch)
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Optional, TYPE_CHECKING

from .net_enums import DEFAULT_POLICY_PORT, DEFAULT_PORT

if TYPE_CHECKING:
    from ...transport.connection import Connection


def generate_identity() -> str:
    """Create a new stable identity string."""
    return str(uuid.uuid4())


@dataclass(frozen=True)
class SessionParams:
    """Connection configuration for one endpoint instance.

    Servers bind ``host``/``port`` and accept up to ``max_connections``
    clients; clients connect to ``host``/``port``. Timeouts are in seconds.
    """
    host: str = "127.0.0.1"
    port: int = DEFAULT_PORT
    uuid: str = field(default_factory=generate_identity)
    max_connections: int = 8
    backlog: int = 5
    enable_policy_server: bool = True
    policy_port: int = DEFAULT_POLICY_PORT
    connect_timeout: float = 5.0
    send_timeout: float = 2.0
    poll_interval: float = 0.05
    tick_rate: float = 30.0

    def __post_init__(self):
        self._validate_port(self.port, "port")
        self._validate_port(self.policy_port, "policy_port")

        if not self.host:
            raise ValueError("host must not be empty")
        if not self.uuid:
            raise ValueError("uuid must not be empty")
        if self.max_connections < 1:
            raise ValueError(f"max_connections must be at least 1, got {self.max_connections}")
        if self.backlog < 1:
            raise ValueError(f"backlog must be at least 1, got {self.backlog}")

        for name in ("connect_timeout", "send_timeout", "poll_interval", "tick_rate"):
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")

    @staticmethod
    def _validate_port(port: int, name: str) -> None:
        # Port 0 asks the OS for an ephemeral port
        if not 0 <= port <= 65535:
            raise ValueError(f"{name} must be between 0 and 65535, got {port}")

    @property
    def tick_interval(self) -> float:
        """Seconds between two host ticks."""
        return 1.0 / self.tick_rate

    def with_overrides(self, **overrides: Any) -> "SessionParams":
        """Return a copy with some fields replaced."""
        return replace(self, **overrides)


@dataclass(eq=False)
class ClientRecord:
    """Server-side bookkeeping entry for one connected peer.

    ``identity`` is assigned by the server when the connection is accepted.
    ``synced_identity`` is the identity the client announces for itself
    through ``core.sync.update_client_data``.
    """
    connection: Optional["Connection"]
    address: tuple[str, int] = ("", 0)
    identity: str = field(default_factory=generate_identity)
    synced_identity: Optional[str] = None
    connected_at: datetime = field(default_factory=datetime.now)

    @property
    def is_connected(self) -> bool:
        return self.connection is not None and not self.connection.closed

    @property
    def display_name(self) -> str:
        """Synced identity when known, else the connection-local one."""
        return self.synced_identity or self.identity

    def __repr__(self) -> str:
        host, port = self.address
        return f"ClientRecord(identity={self.identity!r}, synced={self.synced_identity!r}, address={host}:{port})"
