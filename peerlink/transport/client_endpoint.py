"""
TCP client endpoint.

The I/O thread connects without blocking past the connect timeout, then reads
from the server until the connection ends or the endpoint is closed. The
consumer thread sends through the same connection.
"""

import errno
import os
import selectors
import socket
import time
from typing import Any, Optional, TYPE_CHECKING

from ..core.errors import ProtocolError, TransportError
from ..core.events.events import EventLabel
from ..core.protocol import decode_message, message_verb
from .connection import Connection
from .endpoint import EmitCallback, NetworkEndpoint

if TYPE_CHECKING:
    from ..core.data.data_structures import SessionParams


class ClientEndpoint(NetworkEndpoint):
    """Connects to a single server."""

    def __init__(self, params: "SessionParams", emit: EmitCallback):
        super().__init__(params, emit)
        self._connection: Optional[Connection] = None

    @property
    def connection(self) -> Optional[Connection]:
        with self._lock:
            return self._connection

    @property
    def is_connected(self) -> bool:
        connection = self.connection
        return connection is not None and not connection.closed

    def open(self) -> bool:
        """Start the I/O thread; the connection outcome arrives as an event."""
        self._start_thread(self._run, name=f"peerlink-client-{self.params.host}:{self.params.port}")
        return True

    def send(self, payload: dict[str, Any]) -> None:
        """Transmit a message to the server."""
        verb = message_verb(payload)
        connection = self.connection
        if connection is None or connection.closed:
            failed = dict(payload)
            failed['error'] = "Not connected"
            self._emit(EventLabel.MESSAGE_SENT_FAILED, failed, verb=verb)
            return

        try:
            connection.send_message(payload)
        except TransportError as e:
            failed = dict(payload)
            failed['error'] = str(e)
            self._emit(EventLabel.MESSAGE_SENT_FAILED, failed, verb=verb)
            connection.shutdown()
            return

        self._emit(EventLabel.MESSAGE_SENT, payload, verb=verb)

    def _run(self) -> None:
        sock = self._connect()
        if sock is None:
            return

        connection = Connection(sock, (self.params.host, self.params.port), self.params.send_timeout)
        with self._lock:
            self._connection = connection

        self._emit(EventLabel.INIT_SUCCESS, {'host': self.params.host, 'port': self.params.port})
        self._emit(EventLabel.CONNECTED, {'identity': self.identity})

        try:
            self._read_loop(connection)
        finally:
            connection.close()

    def _connect(self) -> Optional[socket.socket]:
        """Connect with a deadline, polling so close() can cancel the attempt."""
        host, port = self.params.host, self.params.port
        deadline = time.monotonic() + self.params.connect_timeout
        reason = "no address"

        try:
            addresses = socket.getaddrinfo(host, port, socket.AF_UNSPEC, socket.SOCK_STREAM)
        except OSError as e:
            addresses = []
            reason = str(e)

        for family, socktype, proto, _, sockaddr in addresses:
            sock = socket.socket(family, socktype, proto)
            sock.setblocking(False)
            error = sock.connect_ex(sockaddr)
            if error in (errno.EINPROGRESS, errno.EWOULDBLOCK, errno.EALREADY):
                error = self._wait_connected(sock, deadline)

            if error == 0 and not self._stop_event.is_set():
                return sock

            sock.close()
            if self._stop_event.is_set():
                return None
            reason = "timed out" if error is None else os.strerror(error)

        self._transport_failure(
            EventLabel.INIT_FAILURE,
            f"Could not connect to {host}:{port}: {reason}",
            host=host,
            port=port,
        )
        return None

    def _wait_connected(self, sock: socket.socket, deadline: float) -> Optional[int]:
        """Wait for a non-blocking connect to finish.

        Returns:
            The socket error code (0 on success), or None on timeout or close
        """
        with selectors.DefaultSelector() as selector:
            selector.register(sock, selectors.EVENT_WRITE)
            while not self._stop_event.is_set():
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return None
                if selector.select(timeout=min(remaining, self.params.poll_interval)):
                    return sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
        return None

    def _read_loop(self, connection: Connection) -> None:
        with selectors.DefaultSelector() as selector:
            selector.register(connection.sock, selectors.EVENT_READ)

            while not self._stop_event.is_set():
                if not selector.select(timeout=self.params.poll_interval):
                    continue

                try:
                    lines = connection.read_lines()
                except TransportError as e:
                    if not self._stop_event.is_set():
                        self._transport_failure(EventLabel.SECURITY_ERROR, str(e))
                        self._emit(EventLabel.DISCONNECTED, {'identity': self.identity})
                    return

                if lines is None:
                    if not self._stop_event.is_set():
                        self._emit(EventLabel.DISCONNECTED, {'identity': self.identity})
                    return

                for line in lines:
                    try:
                        message = decode_message(line)
                    except ProtocolError as e:
                        self._transport_failure(EventLabel.SECURITY_ERROR, str(e))
                        continue
                    self._emit(EventLabel.MESSAGE_RECEIVED, message, verb=message_verb(message))

    def _release(self) -> None:
        with self._lock:
            connection = self._connection
            self._connection = None
        if connection is not None:
            connection.close()
