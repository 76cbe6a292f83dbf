"""
Transport endpoint contract.

An endpoint owns the sockets of one session and the background thread that
services them. It never calls application code directly: everything it has to
report goes through the ``emit`` callback the session hands it, which stamps
the event and appends it to the session's EventQueue.
"""

import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, TYPE_CHECKING

from ..core.events.events import EventLabel

if TYPE_CHECKING:
    from ..core.data.data_structures import ClientRecord, SessionParams


# emit(label, payload=None, verb=None, client=None)
EmitCallback = Callable[..., None]


class NetworkEndpoint(ABC):
    """Base class for the server and client transports."""

    def __init__(self, params: "SessionParams", emit: EmitCallback):
        self.params = params
        self._emit = emit
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._closed = False

    @property
    def identity(self) -> str:
        """The endpoint's own stable identity."""
        return self.params.uuid

    @property
    def clients(self) -> list["ClientRecord"]:
        """Connected peers, in connection order (server only)."""
        return []

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def closed(self) -> bool:
        return self._closed

    @abstractmethod
    def open(self) -> bool:
        """Establish the transport and start the I/O thread.

        Emits INIT_SUCCESS or INIT_FAILURE, possibly from the I/O thread.

        Returns:
            False if the transport could not be set up synchronously
        """

    @abstractmethod
    def send(self, payload: dict[str, Any]) -> None:
        """Transmit a message; emits MESSAGE_SENT or MESSAGE_SENT_FAILED."""

    def disconnect(self, client: Optional["ClientRecord"]) -> None:
        """Forcibly close one peer connection (server only)."""
        pass

    def close(self) -> None:
        """Stop the I/O thread, release the sockets and emit CLOSED.

        Blocks until the I/O thread has exited. Calling it twice is a no-op.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True

        self._stop_event.set()
        self._interrupt()

        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join()

        self._release()
        self._emit(EventLabel.CLOSED, {'identity': self.identity})

    def _interrupt(self) -> None:
        """Wake the I/O thread if it may be blocked."""
        pass

    @abstractmethod
    def _release(self) -> None:
        """Close every socket; called once the I/O thread has exited."""

    def _start_thread(self, target: Callable[[], None], name: str) -> None:
        self._thread = threading.Thread(target=target, name=name, daemon=True)
        self._thread.start()

    def _transport_failure(
        self,
        label: EventLabel,
        reason: str,
        client: Optional["ClientRecord"] = None,
        **details: Any
    ) -> None:
        """Report a transport failure as an event instead of raising."""
        payload = {'reason': reason}
        payload.update(details)
        self._emit(label, payload, client=client)
