"""
Thread-safe event queue bridging transport threads and the host tick.

Producers (socket threads, the policy responder, the session itself) append
events from any thread. The single consumer drains the queue once per tick by
swapping the buffer under the lock and dispatching outside of it, so handlers
may enqueue new events without deadlocking against producers.
"""

import threading
from collections import deque
from typing import Any, Callable, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .events import SessionEvent


EventHandler = Callable[["SessionEvent"], None]


class EventQueue:
    """FIFO buffer of pending session events."""

    def __init__(self, enable_debug_logging: bool = False, history_size: int = 1000):
        """Initialize the event queue.

        Args:
            enable_debug_logging: Whether to enable detailed event logging
            history_size: Number of dispatched events kept for debugging
        """
        self.enable_debug_logging = enable_debug_logging

        # Pending events, swapped out as a whole on every drain
        self._pending: deque["SessionEvent"] = deque()

        # Statistics and debugging
        self._events_enqueued = 0
        self._events_dispatched = 0
        self._handler_errors = 0
        self._drains = 0
        # Summaries only; events must not outlive their dispatch
        self._event_history: deque[dict[str, Any]] = deque(maxlen=history_size)

        # Guards _pending and the counters
        self._lock = threading.Lock()

        # Held for the whole drain; only one consumer at a time
        self._drain_lock = threading.Lock()

        self._debug_callback: Optional[Callable[[str], None]] = None
        self._error_callback: Optional[Callable[[str], None]] = None

    def set_debug_callback(self, callback: Optional[Callable[[str], None]]) -> None:
        """Set a callback function for debug logging."""
        self._debug_callback = callback

    def set_error_callback(self, callback: Optional[Callable[[str], None]]) -> None:
        """Set a callback function for reporting handler errors."""
        self._error_callback = callback

    def _debug_log(self, message: str) -> None:
        """Log a debug message if debug logging is enabled."""
        if self.enable_debug_logging and self._debug_callback:
            self._debug_callback(f"[EVENT] {message}")

    def _error_log(self, message: str) -> None:
        if self._error_callback:
            self._error_callback(f"[EVENT] {message}")

    def enqueue(self, event: "SessionEvent") -> None:
        """Append an event for the next drain.

        Safe to call from any thread, including from a handler that is
        running inside ``drain_and_dispatch``.

        Args:
            event: The event to append
        """
        with self._lock:
            self._pending.append(event)
            self._events_enqueued += 1

        self._debug_log(f"Enqueued {event.label.name} (verb: {event.verb})")

    def drain_and_dispatch(self, handler: EventHandler) -> int:
        """Dispatch every event enqueued so far.

        Events enqueued while this drain runs are left for the next one. An
        exception raised by ``handler`` is logged and counted, and the drain
        continues with the next event.

        Args:
            handler: Callback invoked once per event, in arrival order

        Returns:
            Number of events dispatched

        Raises:
            RuntimeError: If another drain is already running
        """
        if not self._drain_lock.acquire(blocking=False):
            raise RuntimeError("EventQueue is already being drained")

        try:
            with self._lock:
                batch = self._pending
                self._pending = deque()
                self._drains += 1

            for event in batch:
                self._dispatch_one(handler, event)

            return len(batch)
        finally:
            self._drain_lock.release()

    def _dispatch_one(self, handler: EventHandler, event: "SessionEvent") -> None:
        """Run the handler for a single event, containing its failures."""
        try:
            handler(event)
        except Exception as e:
            with self._lock:
                self._handler_errors += 1
            self._error_log(
                f"Error in handler {getattr(handler, '__name__', 'anonymous')} "
                f"for {event.label.name}: {e}"
            )

        with self._lock:
            self._event_history.append(self._summarize(event))
            self._events_dispatched += 1

    def clear_queue(self) -> int:
        """Drop all pending events.

        Returns:
            Number of events that were cleared
        """
        with self._lock:
            count = len(self._pending)
            self._pending.clear()
        self._debug_log(f"Cleared {count} queued events")
        return count

    def has_queued_events(self) -> bool:
        """Check if there are events waiting to be dispatched."""
        with self._lock:
            return len(self._pending) > 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def get_statistics(self) -> dict[str, Any]:
        """Get queue statistics.

        Returns:
            Dictionary with statistics
        """
        with self._lock:
            return {
                'events_enqueued': self._events_enqueued,
                'events_dispatched': self._events_dispatched,
                'events_queued': len(self._pending),
                'handler_errors': self._handler_errors,
                'drains': self._drains,
                'event_history_size': len(self._event_history),
            }

    def get_recent_events(self, count: int = 10) -> list[dict[str, Any]]:
        """Get recently dispatched events for debugging.

        Args:
            count: Number of recent events to return

        Returns:
            List of event information dictionaries
        """
        with self._lock:
            return [dict(summary) for summary in list(self._event_history)[-count:]]

    @staticmethod
    def _summarize(event: "SessionEvent") -> dict[str, Any]:
        return {
            'label': event.label.name,
            'verb': event.verb,
            'client': event.client.identity if event.client else None,
            'generation': event.generation,
            'timestamp': event.timestamp.isoformat(),
        }

    def shutdown(self) -> None:
        """Drop pending events and history."""
        with self._lock:
            self._pending.clear()
            self._event_history.clear()
        self._debug_log("Event queue shutdown complete")
