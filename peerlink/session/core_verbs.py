"""
Core verb interception.

Reserved ``core.*`` verbs carry session bookkeeping between peers. They are
handled here before application listeners run, and an intercepted event is
consumed: no ``on`` listener sees it.
"""

from typing import Callable, Optional, TYPE_CHECKING

from ..core.data.net_enums import SessionMode
from ..core.events.events import EventLabel, SessionEvent
from ..core.protocol import CoreVerb, make_message

if TYPE_CHECKING:
    from .session import Session


CoreVerbCallback = Callable[[SessionEvent], None]


class CoreVerbHandler:
    """Handles reserved verbs on behalf of a session."""

    def __init__(self, session: "Session"):
        self.session = session
        self._handlers: dict[str, CoreVerbCallback] = {
            CoreVerb.UPDATE_CLIENT_DATA: self._handle_update_client_data,
            CoreVerb.SERVER_FULL: self._handle_server_full,
        }
        if session.mode == SessionMode.SERVER:
            # Only a rejected client acts on server_full
            self._handlers[CoreVerb.SERVER_FULL] = self._ignore_server_full

    def intercept(self, event: SessionEvent) -> bool:
        """Run core handling for an event.

        Returns:
            True if the event was consumed and must not reach listeners
        """
        if event.label == EventLabel.CONNECTED and self.session.mode == SessionMode.CLIENT:
            self.announce_identity()
            return False

        if event.label != EventLabel.MESSAGE_RECEIVED or event.verb is None:
            return False

        handler = self._handlers.get(event.verb)
        if handler is None:
            return False

        self.session.log_manager.protocol(f"Intercepted core verb {event.verb}")
        handler(event)
        return True

    def announce_identity(self) -> None:
        """Tell the server which identity this client syncs to."""
        self.session.log_manager.client(f"Announcing identity {self.session.uuid}")
        self.session.send_reserved(
            make_message(CoreVerb.UPDATE_CLIENT_DATA, {'uuid': self.session.uuid})
        )

    def _handle_update_client_data(self, event: SessionEvent) -> None:
        log = self.session.log_manager
        client = event.client
        if client is None:
            log.debug("Ignoring client data update without an originating client")
            return

        identity = self._extract_identity(event)
        if identity is None:
            log.warning(f"Client {client.identity} sent client data without a uuid")
            return

        client.synced_identity = identity
        log.client(f"Client {client.identity} synced identity {identity}")

    @staticmethod
    def _extract_identity(event: SessionEvent) -> Optional[str]:
        content = event.content
        if not isinstance(content, dict):
            return None
        identity = content.get('uuid')
        if isinstance(identity, str) and identity:
            return identity
        return None

    def _handle_server_full(self, event: SessionEvent) -> None:
        """Surface the rejection to listeners, then stop the session.

        The SERVER_FULL event is dispatched right away rather than queued so
        that it and the stop happen in the same drain, in that order.
        """
        log = self.session.log_manager
        log.warning("Server rejected the connection: server full")
        try:
            self.session.dispatch(
                SessionEvent(
                    label=EventLabel.SERVER_FULL,
                    payload=event.content,
                    session=self.session,
                    generation=event.generation,
                )
            )
        except Exception as e:
            log.error(f"SERVER_FULL listener failed: {e}")
        self.session.stop()

    def _ignore_server_full(self, event: SessionEvent) -> None:
        sender = event.client.display_name if event.client is not None else "unknown peer"
        self.session.log_manager.warning(f"Dropped server_full sent by client {sender}")
