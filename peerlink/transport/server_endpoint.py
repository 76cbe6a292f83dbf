"""
TCP server endpoint.

One I/O thread multiplexes the listening socket and every client socket with
a selector. Accepting, reading and dropping clients all happen on that thread;
the consumer thread only sends and requests disconnects. The client table is
the one piece of state both threads touch, and it is guarded by the endpoint
lock.
"""

import selectors
import socket
from typing import Any, Optional, TYPE_CHECKING

from ..core.data.data_structures import ClientRecord
from ..core.errors import CapacityError, ProtocolError, TransportError
from ..core.events.events import EventLabel
from ..core.protocol import CoreVerb, decode_message, make_message, message_verb
from .connection import Connection
from .endpoint import EmitCallback, NetworkEndpoint
from .policy_responder import PolicyResponder

if TYPE_CHECKING:
    from ..core.data.data_structures import SessionParams


class ServerEndpoint(NetworkEndpoint):
    """Accepts clients and broadcasts to all of them."""

    def __init__(self, params: "SessionParams", emit: EmitCallback):
        super().__init__(params, emit)
        self._listener: Optional[socket.socket] = None
        self._selector: Optional[selectors.BaseSelector] = None
        self._clients: list[ClientRecord] = []
        self._policy_responder: Optional[PolicyResponder] = None

    @property
    def clients(self) -> list[ClientRecord]:
        with self._lock:
            return list(self._clients)

    @property
    def port(self) -> Optional[int]:
        """Bound port, or None when not listening."""
        if self._listener is None:
            return None
        return self._listener.getsockname()[1]

    @property
    def policy_responder(self) -> Optional[PolicyResponder]:
        return self._policy_responder

    def open(self) -> bool:
        """Bind, listen and start the I/O thread."""
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            listener.bind((self.params.host, self.params.port))
            listener.listen(self.params.backlog)
            listener.setblocking(False)
        except OSError as e:
            listener.close()
            self._transport_failure(
                EventLabel.INIT_FAILURE,
                f"Could not listen on {self.params.host}:{self.params.port}: {e}",
                host=self.params.host,
                port=self.params.port,
            )
            return False

        self._listener = listener
        self._selector = selectors.DefaultSelector()
        self._selector.register(listener, selectors.EVENT_READ, data=None)

        self._emit(
            EventLabel.INIT_SUCCESS,
            {'host': self.params.host, 'port': self.port, 'identity': self.identity},
        )

        if self.params.enable_policy_server:
            self._policy_responder = PolicyResponder(
                self._emit,
                host=self.params.host,
                port=self.params.policy_port,
                poll_interval=self.params.poll_interval,
                send_timeout=self.params.send_timeout,
            )
            self._policy_responder.start()

        self._start_thread(self._run, name=f"peerlink-server-{self.port}")
        return True

    def accept(self) -> Optional[Connection]:
        """Take one pending connection off the listening socket, if any."""
        if self._listener is None:
            return None
        try:
            sock, address = self._listener.accept()
        except BlockingIOError:
            return None
        except OSError as e:
            if not self._stop_event.is_set():
                self._transport_failure(EventLabel.SECURITY_ERROR, f"Accept failed: {e}")
            return None
        return Connection(sock, address, self.params.send_timeout)

    def send(self, payload: dict[str, Any]) -> None:
        """Broadcast a message to every connected client."""
        verb = message_verb(payload)
        for client in self.clients:
            self._send_to(client, payload, verb)

    def send_to(self, client: ClientRecord, payload: dict[str, Any]) -> None:
        """Send a message to a single client."""
        self._send_to(client, payload, message_verb(payload))

    def _send_to(self, client: ClientRecord, payload: dict[str, Any], verb: Optional[str]) -> None:
        connection = client.connection
        if connection is None:
            return

        try:
            connection.send_message(payload)
        except TransportError as e:
            failed = dict(payload)
            failed['error'] = str(e)
            self._emit(EventLabel.MESSAGE_SENT_FAILED, failed, verb=verb, client=client)
            # The I/O thread drops the client once it sees the shutdown
            connection.shutdown()
            return

        self._emit(EventLabel.MESSAGE_SENT, payload, verb=verb, client=client)

    def disconnect(self, client: Optional[ClientRecord]) -> None:
        """Request that a client connection be closed.

        Unknown or already disconnected clients are ignored.
        """
        if client is None or client.connection is None:
            return
        with self._lock:
            known = client in self._clients
        if known:
            client.connection.shutdown()

    def _run(self) -> None:
        selector = self._selector
        if selector is None:
            return

        while not self._stop_event.is_set():
            try:
                ready = selector.select(timeout=self.params.poll_interval)
            except OSError as e:
                self._transport_failure(EventLabel.SECURITY_ERROR, f"Selector failed: {e}")
                break

            for key, _ in ready:
                if self._stop_event.is_set():
                    break
                if key.data is None:
                    self._accept_pending()
                else:
                    self._read_client(key.data)

    def _accept_pending(self) -> None:
        connection = self.accept()
        if connection is None:
            return

        try:
            self._admit(connection)
        except CapacityError as e:
            self._reject(connection, e)

    def _admit(self, connection: Connection) -> ClientRecord:
        """Register a new client.

        Raises:
            CapacityError: If max_connections clients are already connected
        """
        with self._lock:
            if len(self._clients) >= self.params.max_connections:
                raise CapacityError(self.params.max_connections, connection.address)
            client = ClientRecord(connection=connection, address=connection.address)
            self._clients.append(client)

        if self._selector is not None:
            self._selector.register(connection.sock, selectors.EVENT_READ, data=client)
        self._emit(EventLabel.CONNECTED, {'identity': client.identity}, client=client)
        return client

    def _reject(self, connection: Connection, error: CapacityError) -> None:
        """Tell a connection the server is full, then close it."""
        try:
            connection.send_message(
                make_message(CoreVerb.SERVER_FULL, {'max_connections': error.max_connections})
            )
        except TransportError:
            # The rejected peer is already gone
            pass
        connection.close()

    def _read_client(self, client: ClientRecord) -> None:
        connection = client.connection
        if connection is None:
            return

        try:
            lines = connection.read_lines()
        except TransportError as e:
            self._transport_failure(EventLabel.SECURITY_ERROR, str(e), client=client)
            self._drop_client(client)
            return

        if lines is None:
            self._drop_client(client)
            return

        for line in lines:
            try:
                message = decode_message(line)
            except ProtocolError as e:
                self._transport_failure(EventLabel.SECURITY_ERROR, str(e), client=client)
                continue
            self._emit(EventLabel.MESSAGE_RECEIVED, message, verb=message_verb(message), client=client)

    def _drop_client(self, client: ClientRecord) -> None:
        with self._lock:
            if client not in self._clients:
                return
            self._clients.remove(client)

        connection = client.connection
        if connection is not None:
            if self._selector is not None:
                try:
                    self._selector.unregister(connection.sock)
                except (KeyError, ValueError):
                    pass
            connection.close()
        self._emit(EventLabel.DISCONNECTED, {'identity': client.identity}, client=client)

    def _release(self) -> None:
        if self._policy_responder is not None:
            self._policy_responder.stop()

        with self._lock:
            clients = list(self._clients)
            self._clients.clear()
        for client in clients:
            if client.connection is not None:
                client.connection.close()

        if self._selector is not None:
            self._selector.close()
            self._selector = None
        if self._listener is not None:
            self._listener.close()
            self._listener = None
