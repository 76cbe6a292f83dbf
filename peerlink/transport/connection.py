"""
Socket primitive used by both endpoint variants.

Wraps one connected TCP socket with newline-delimited JSON framing. Reads are
only attempted once the owning I/O thread's selector reports the socket as
readable; writes come from the consumer thread and are bounded by the send
timeout so a slow peer cannot stall a tick indefinitely.
"""

import socket
import threading
from typing import Any, Mapping, Optional

from ..core.data.net_enums import MESSAGE_DELIMITER, RECV_BUFFER_SIZE
from ..core.errors import TransportError
from ..core.protocol import encode_message


class Connection:
    """One framed TCP connection."""

    def __init__(self, sock: socket.socket, address: Any, send_timeout: float):
        self.sock = sock
        self.address = _normalize_address(address)
        self.sock.settimeout(send_timeout)

        self._buffer = bytearray()
        self._send_lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def fileno(self) -> int:
        return self.sock.fileno()

    def send_message(self, payload: Mapping[str, Any]) -> None:
        """Encode and transmit one message.

        Raises:
            TransportError: If the socket is closed, times out or fails
        """
        self.send_bytes(encode_message(payload))

    def send_bytes(self, data: bytes) -> None:
        if self._closed:
            raise TransportError("Connection is closed", self.address)

        with self._send_lock:
            try:
                self.sock.sendall(data)
            except socket.timeout as e:
                raise TransportError(f"Send timed out: {e}", self.address) from e
            except OSError as e:
                raise TransportError(f"Send failed: {e}", self.address) from e

    def read_lines(self) -> Optional[list[bytes]]:
        """Read what is available and split it into complete lines.

        Returns:
            Complete lines without their delimiter (possibly empty), or None
            once the peer has closed the connection

        Raises:
            TransportError: If the read fails
        """
        try:
            chunk = self.sock.recv(RECV_BUFFER_SIZE)
        except (BlockingIOError, socket.timeout):
            return []
        except OSError as e:
            raise TransportError(f"Read failed: {e}", self.address) from e

        if not chunk:
            return None

        self._buffer.extend(chunk)
        lines = []
        while True:
            index = self._buffer.find(MESSAGE_DELIMITER)
            if index < 0:
                break
            line = bytes(self._buffer[:index])
            del self._buffer[:index + len(MESSAGE_DELIMITER)]
            if line.strip():
                lines.append(line)
        return lines

    def shutdown(self) -> None:
        """Half-close both directions so the reader sees end of stream."""
        if self._closed:
            return
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            # Already disconnected by the peer
            pass

    def close(self) -> None:
        if self._closed:
            return
        self.shutdown()
        self._closed = True
        self.sock.close()

    def __repr__(self) -> str:
        host, port = self.address
        return f"Connection({host}:{port}, closed={self._closed})"


def _normalize_address(address: Any) -> tuple[str, int]:
    """Reduce IPv4/IPv6 address tuples to (host, port)."""
    if isinstance(address, tuple) and len(address) >= 2:
        return str(address[0]), int(address[1])
    return str(address), 0
