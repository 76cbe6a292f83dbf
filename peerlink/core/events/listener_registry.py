"""
Listener registry for session events.

Maps each event label to an ordered list of callbacks, plus a list of
universal observers that see every event. Registration order is invocation
order. Registration happens on the consumer thread, so the registry carries a
lock only to allow listeners to be added from inside a dispatch.
"""

import threading
from collections import defaultdict
from typing import Any, Callable, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .events import EventLabel, SessionEvent


EventListener = Callable[["SessionEvent"], None]


class ListenerRegistry:
    """Ordered label -> callbacks mapping."""

    def __init__(self):
        self._listeners: dict["EventLabel", list[EventListener]] = defaultdict(list)
        self._observers: list[EventListener] = []
        self._lock = threading.RLock()
        self._debug_callback: Optional[Callable[[str], None]] = None

    def set_debug_callback(self, callback: Optional[Callable[[str], None]]) -> None:
        """Set a callback function for debug logging."""
        self._debug_callback = callback

    def _debug_log(self, message: str) -> None:
        if self._debug_callback:
            self._debug_callback(f"[LISTENER] {message}")

    def subscribe(
        self,
        label: "EventLabel",
        listener: EventListener,
        listener_name: Optional[str] = None
    ) -> None:
        """Subscribe to events with a specific label.

        Args:
            label: The label of events to subscribe to
            listener: Callback function to handle events
            listener_name: Optional name for debugging
        """
        with self._lock:
            self._listeners[label].append(listener)
            display = listener_name or getattr(listener, '__name__', 'anonymous')
        self._debug_log(f"Subscribed {display} to {label.name} events")

    def subscribe_all(
        self,
        observer: EventListener,
        observer_name: Optional[str] = None
    ) -> None:
        """Subscribe to every event (universal observer).

        Args:
            observer: Callback function to handle events
            observer_name: Optional name for debugging
        """
        with self._lock:
            self._observers.append(observer)
            display = observer_name or getattr(observer, '__name__', 'anonymous')
        self._debug_log(f"Subscribed {display} to ALL events")

    def unsubscribe(self, label: "EventLabel", listener: EventListener) -> bool:
        """Unsubscribe from events with a specific label.

        Returns:
            True if listener was found and removed
        """
        with self._lock:
            try:
                self._listeners[label].remove(listener)
            except ValueError:
                return False
        self._debug_log(f"Unsubscribed from {label.name} events")
        return True

    def unsubscribe_all(self, observer: EventListener) -> bool:
        """Remove a universal observer.

        Returns:
            True if observer was found and removed
        """
        with self._lock:
            try:
                self._observers.remove(observer)
            except ValueError:
                return False
        self._debug_log("Unsubscribed from ALL events")
        return True

    def listeners_for(self, label: "EventLabel") -> list[EventListener]:
        """Snapshot of the listeners registered for a label."""
        with self._lock:
            return list(self._listeners.get(label, []))

    def observers(self) -> list[EventListener]:
        """Snapshot of the universal observers."""
        with self._lock:
            return list(self._observers)

    def notify(self, event: "SessionEvent") -> None:
        """Deliver an event to the listeners registered for its label.

        Listeners added while notifying see the next event, not this one.
        """
        for listener in self.listeners_for(event.label):
            listener(event)

    def notify_observers(self, event: "SessionEvent") -> None:
        """Deliver an event to every universal observer."""
        for observer in self.observers():
            observer(event)

    def get_statistics(self) -> dict[str, Any]:
        """Get registration counts."""
        with self._lock:
            return {
                'listeners_count': sum(len(subs) for subs in self._listeners.values()),
                'observers_count': len(self._observers),
                'labels': sorted(label.name for label, subs in self._listeners.items() if subs),
            }

    def clear(self) -> None:
        """Remove every listener and observer."""
        with self._lock:
            self._listeners.clear()
            self._observers.clear()
