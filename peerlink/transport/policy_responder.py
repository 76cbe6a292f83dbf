"""
Cross-domain socket policy responder.

Legacy browser-plugin clients ask a well-known port for a policy document
before they are allowed to open sockets to arbitrary ports. The responder
answers every accepted connection with the same fixed document followed by a
NUL byte and closes it. The request itself is never parsed; whatever the peer
sent is discarded before closing so the close does not reset the connection
under the unread response.
"""

import selectors
import socket
import threading
import time
from typing import Optional

from ..core.events.events import EventLabel
from .endpoint import EmitCallback

POLICY_DOCUMENT = (
    b'<?xml version="1.0"?>'
    b'<cross-domain-policy>'
    b'<allow-access-from domain="*" to-ports="*" />'
    b'</cross-domain-policy>'
)
POLICY_RESPONSE = POLICY_DOCUMENT + b"\0"


class PolicyResponder:
    """Serves POLICY_RESPONSE on its own accept thread."""

    def __init__(
        self,
        emit: EmitCallback,
        host: str = "0.0.0.0",
        port: int = 843,
        poll_interval: float = 0.05,
        send_timeout: float = 2.0
    ):
        self._emit = emit
        self.host = host
        self.requested_port = port
        self.poll_interval = poll_interval
        self.send_timeout = send_timeout

        self._listener: Optional[socket.socket] = None
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self.requests_served = 0

    @property
    def port(self) -> Optional[int]:
        """Bound port, or None when not listening."""
        if self._listener is None:
            return None
        return self._listener.getsockname()[1]

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> bool:
        """Bind the policy port and start answering.

        A bind failure is reported as one SECURITY_ERROR event and is not
        retried.

        Returns:
            True if the responder is listening
        """
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            listener.bind((self.host, self.requested_port))
            listener.listen()
            listener.setblocking(False)
        except OSError as e:
            listener.close()
            self._emit(
                EventLabel.SECURITY_ERROR,
                {'reason': f"Policy responder could not bind: {e}", 'port': self.requested_port},
            )
            return False

        self._listener = listener
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="peerlink-policy", daemon=True)
        self._thread.start()
        return True

    def stop(self) -> None:
        """Stop the accept thread and release the port."""
        self._stop_event.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join()
        self._thread = None

        if self._listener is not None:
            self._listener.close()
            self._listener = None

    def _run(self) -> None:
        listener = self._listener
        if listener is None:
            return

        with selectors.DefaultSelector() as selector:
            selector.register(listener, selectors.EVENT_READ)
            while not self._stop_event.is_set():
                if not selector.select(timeout=self.poll_interval):
                    continue
                self._serve_pending(listener)

    def _serve_pending(self, listener: socket.socket) -> None:
        try:
            conn, address = listener.accept()
        except BlockingIOError:
            return
        except OSError as e:
            self._emit(EventLabel.SECURITY_ERROR, {'reason': f"Policy accept failed: {e}"})
            return

        with conn:
            try:
                conn.settimeout(self.send_timeout)
                conn.sendall(POLICY_RESPONSE)
                conn.shutdown(socket.SHUT_WR)
                self.requests_served += 1
                self._discard_request(conn)
            except OSError as e:
                self._emit(
                    EventLabel.SECURITY_ERROR,
                    {'reason': f"Policy response failed: {e}", 'address': list(address[:2])},
                )

    def _discard_request(self, conn: socket.socket) -> None:
        """Drop unread request bytes until the peer closes or the poll ends."""
        conn.settimeout(self.poll_interval)
        deadline = time.monotonic() + self.send_timeout
        try:
            while conn.recv(1024) and time.monotonic() < deadline:
                pass
        except OSError:
            # Peer reset or stayed silent
            pass
