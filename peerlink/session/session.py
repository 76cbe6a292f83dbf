"""
Peer session facade.

A Session multiplexes server or client behavior behind one object. Transport
threads report through the session's EventQueue; the host drains it by
calling ``pump()`` once per tick, and every listener runs on that thread.
"""

from typing import Any, Callable, Mapping, Optional, TYPE_CHECKING

from ..core.data.data_structures import ClientRecord, SessionParams
from ..core.data.net_enums import SESSION_MODE_NAMES, SessionMode, SessionState
from ..core.events.event_queue import EventQueue
from ..core.events.events import EventLabel, SessionEvent
from ..core.events.listener_registry import EventListener, ListenerRegistry
from ..core.protocol import make_message, validate_payload, validate_verb
from ..transport.client_endpoint import ClientEndpoint
from ..transport.server_endpoint import ServerEndpoint
from .core_verbs import CoreVerbHandler
from .managers.log_manager import LogManager

if TYPE_CHECKING:
    from ..transport.endpoint import NetworkEndpoint


VerbCallback = Callable[[Any, SessionEvent], None]


class Session:
    """Public peer object for one logical identity."""

    def __init__(
        self,
        mode: SessionMode,
        params: Optional[SessionParams] = None,
        log_manager: Optional[LogManager] = None,
        enable_debug_logging: bool = False,
    ):
        """Initialize the session.

        Args:
            mode: Server or client; fixed for the life of the session
            params: Connection configuration (defaults when omitted)
            log_manager: Log to record diagnostics into
            enable_debug_logging: Whether the event queue logs every enqueue
        """
        self._mode = mode
        self._params = params or SessionParams()
        self._state = SessionState.UNINITIALIZED
        self._endpoint: Optional["NetworkEndpoint"] = None
        self._generation = 0

        self.log_manager = log_manager or LogManager(name=f"peerlink-{mode.name.lower()}")

        self.event_queue = EventQueue(enable_debug_logging=enable_debug_logging)
        self.event_queue.set_debug_callback(self.log_manager.debug)
        self.event_queue.set_error_callback(self.log_manager.error)

        self.listeners = ListenerRegistry()
        self.listeners.set_debug_callback(self.log_manager.debug)
        self.listeners.subscribe_all(self.log_manager.observe, observer_name="LogManager.observe")

        self.core_verbs = CoreVerbHandler(self)

        # (verb, callback) -> filtering wrappers registered for it
        self._verb_handlers: dict[tuple[str, VerbCallback], list[EventListener]] = {}

    # Read-only state
    @property
    def mode(self) -> SessionMode:
        return self._mode

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == SessionState.RUNNING

    @property
    def params(self) -> SessionParams:
        return self._params

    @property
    def uuid(self) -> str:
        return self._params.uuid

    @property
    def endpoint(self) -> Optional["NetworkEndpoint"]:
        return self._endpoint

    @property
    def generation(self) -> int:
        """Number of endpoints started so far."""
        return self._generation

    @property
    def clients(self) -> list[ClientRecord]:
        if self._endpoint is None:
            return []
        return self._endpoint.clients

    # Lifecycle
    def start(self) -> bool:
        """Tear down any current endpoint and start a fresh one.

        Returns:
            False if the endpoint failed to set up synchronously; the failure
            is also delivered as an INIT_FAILURE event
        """
        self.stop()

        self._generation += 1
        endpoint_class = ServerEndpoint if self._mode == SessionMode.SERVER else ClientEndpoint
        self._endpoint = endpoint_class(self._params, self._make_emitter(self._generation))
        self._state = SessionState.RUNNING

        self.log_manager.session(
            f"Starting {SESSION_MODE_NAMES[self._mode]} session {self.uuid} "
            f"on {self._params.host}:{self._params.port} (generation {self._generation})"
        )
        return self._endpoint.open()

    def stop(self) -> None:
        """Close the endpoint and wait for its threads to exit.

        No-op on a session that is not running.
        """
        endpoint = self._endpoint
        if endpoint is None:
            return

        self._endpoint = None
        self._state = SessionState.STOPPED
        endpoint.close()
        self.log_manager.session(f"Stopped {SESSION_MODE_NAMES[self._mode]} session {self.uuid}")

    def pump(self) -> int:
        """Run one tick: dispatch every event queued so far.

        Must be called from a single thread (the host loop or a
        TickScheduler).

        Returns:
            Number of events dispatched
        """
        return self.event_queue.drain_and_dispatch(self.dispatch)

    # Messaging
    def send(self, payload: Mapping[str, Any]) -> None:
        """Send a message; a server broadcasts it to every client.

        No-op when the session has no active endpoint.

        Raises:
            ProtocolError: If the payload is not a JSON-serializable mapping
                or carries a reserved verb
        """
        if self._endpoint is None:
            return
        validate_payload(payload)
        self._endpoint.send(dict(payload))

    def trigger(self, verb: str, content: Any = None) -> None:
        """Send ``content`` under ``verb`` to the peer(s).

        Raises:
            ProtocolError: If the verb is reserved or invalid, or the content
                cannot be serialized
        """
        if self._endpoint is None:
            return
        validate_verb(verb)
        message = make_message(verb, content)
        validate_payload(message)
        self._endpoint.send(message)

    def trigger_to(self, client: Optional[ClientRecord], verb: str, content: Any = None) -> None:
        """Send ``content`` under ``verb`` to one client.

        In client mode the message goes to the server and ``client`` is
        ignored.
        """
        endpoint = self._endpoint
        if endpoint is None:
            return
        validate_verb(verb)
        message = make_message(verb, content)
        validate_payload(message)

        if isinstance(endpoint, ServerEndpoint):
            if client is not None:
                endpoint.send_to(client, message)
        else:
            endpoint.send(message)

    def send_reserved(self, message: Mapping[str, Any]) -> None:
        """Send a core-verb message; only for session bookkeeping."""
        if self._endpoint is None:
            return
        validate_payload(message, allow_reserved=True)
        self._endpoint.send(dict(message))

    def on(self, verb: str, callback: VerbCallback) -> VerbCallback:
        """Call ``callback(content, event)`` for every message with ``verb``.

        Registrations for the same verb run in registration order. Reserved
        verbs may be registered but never fire, since core handling consumes
        them first.

        Returns:
            The callback, unchanged
        """
        validate_verb(verb, allow_reserved=True)

        def handle_verb(event: SessionEvent) -> None:
            if event.verb == verb:
                callback(event.content, event)

        self._verb_handlers.setdefault((verb, callback), []).append(handle_verb)
        self.listeners.subscribe(
            EventLabel.MESSAGE_RECEIVED,
            handle_verb,
            listener_name=f"on({verb}):{getattr(callback, '__name__', 'anonymous')}",
        )
        return callback

    def off(self, verb: str, callback: VerbCallback) -> bool:
        """Remove the most recent ``on(verb, callback)`` registration.

        Returns:
            True if a registration was removed
        """
        handlers = self._verb_handlers.get((verb, callback))
        if not handlers:
            return False

        handler = handlers.pop()
        if not handlers:
            del self._verb_handlers[(verb, callback)]
        return self.listeners.unsubscribe(EventLabel.MESSAGE_RECEIVED, handler)

    def add_listener(self, label: EventLabel, listener: EventListener) -> None:
        """Subscribe to every event with ``label``."""
        self.listeners.subscribe(label, listener)

    def remove_listener(self, label: EventLabel, listener: EventListener) -> bool:
        return self.listeners.unsubscribe(label, listener)

    def disconnect_client(self, client: Optional[ClientRecord] = None) -> None:
        """Close one client connection, or this client's own connection.

        A server forwards the request to the endpoint; a client ignores the
        argument and stops. Without an active endpoint this does nothing.
        """
        if self._endpoint is None:
            return

        if self._mode == SessionMode.CLIENT:
            self.stop()
            return

        self._endpoint.disconnect(client)

    def trigger_event(
        self,
        label: EventLabel,
        payload: Any = None,
        verb: Optional[str] = None,
        client: Optional[ClientRecord] = None,
    ) -> None:
        """Queue a raw event for the next tick."""
        self.event_queue.enqueue(
            SessionEvent(
                label=label,
                verb=verb,
                payload=payload,
                session=self,
                client=client,
                generation=self._generation,
            )
        )

    # Dispatch
    def dispatch(self, event: SessionEvent) -> None:
        """Deliver one event: diagnostics, core verbs, then listeners.

        Events from an endpoint that has since been replaced are dropped.
        """
        if event.generation != self._generation:
            self.log_manager.debug(
                f"Dropped {event.label.name} from stale generation {event.generation}"
            )
            return

        try:
            self.listeners.notify_observers(event)
        except Exception as e:
            self.log_manager.error(f"Diagnostic observer failed on {event.label.name}: {e}")

        if self.core_verbs.intercept(event):
            return

        self.listeners.notify(event)

    def _make_emitter(self, generation: int) -> Callable[..., None]:
        """Build the callback an endpoint uses to report events."""

        def emit(
            label: EventLabel,
            payload: Any = None,
            verb: Optional[str] = None,
            client: Optional[ClientRecord] = None,
        ) -> None:
            self.event_queue.enqueue(
                SessionEvent(
                    label=label,
                    verb=verb,
                    payload=payload,
                    session=self,
                    client=client,
                    generation=generation,
                )
            )

        return emit

    def __repr__(self) -> str:
        return (
            f"Session(mode={self._mode.name}, state={self._state.name}, "
            f"uuid={self.uuid!r}, generation={self._generation})"
        )
