"""
Unit tests for session events and the listener registry.
"""
import dataclasses
from unittest.mock import Mock

import pytest

from peerlink.core.events.events import MESSAGE_LABELS, EventLabel, SessionEvent


class TestEventLabel:
    """Test the EventLabel enumeration."""

    def test_all_labels_exist(self):
        expected = [
            'CONNECTED', 'DISCONNECTED', 'MESSAGE_RECEIVED', 'MESSAGE_SENT',
            'MESSAGE_SENT_FAILED', 'SECURITY_ERROR', 'SERVER_FULL',
            'INIT_SUCCESS', 'INIT_FAILURE', 'CLOSED',
        ]
        actual = [label.name for label in EventLabel]
        for name in expected:
            assert name in actual

    def test_message_labels(self):
        assert EventLabel.MESSAGE_RECEIVED in MESSAGE_LABELS
        assert EventLabel.CONNECTED not in MESSAGE_LABELS


class TestSessionEvent:
    """Test the SessionEvent record."""

    def test_initialization(self, client_record):
        event = SessionEvent(
            label=EventLabel.MESSAGE_RECEIVED,
            verb="click",
            payload={'verb': "click", 'content': {'x': 10, 'y': 30}},
            client=client_record,
        )

        assert event.label == EventLabel.MESSAGE_RECEIVED
        assert event.verb == "click"
        assert event.content == {'x': 10, 'y': 30}
        assert event.client is client_record
        assert event.is_message

    def test_frozen_dataclass(self):
        event = SessionEvent(label=EventLabel.CONNECTED)

        with pytest.raises(dataclasses.FrozenInstanceError):
            event.label = EventLabel.CLOSED  # type: ignore[misc] # Testing frozen dataclass immutability

    def test_payload_is_copied_from_producer(self):
        """Mutating the event payload never reaches the producer's object."""
        original = {'verb': "move", 'content': {'path': [1, 2, 3]}}
        event = SessionEvent(label=EventLabel.MESSAGE_RECEIVED, verb="move", payload=original)

        event.payload['content']['path'].append(4)

        assert original['content']['path'] == [1, 2, 3]

    def test_verb_dropped_for_non_message_labels(self):
        event = SessionEvent(label=EventLabel.CONNECTED, verb="click")
        assert event.verb is None

    def test_content_without_envelope(self):
        event = SessionEvent(label=EventLabel.MESSAGE_RECEIVED, payload=[1, 2])
        assert event.content is None

    def test_client_not_copied(self, client_record):
        event = SessionEvent(label=EventLabel.CONNECTED, client=client_record)
        assert event.client is client_record


class TestListenerRegistry:
    """Test label routing and observers."""

    def test_subscribe_and_notify(self, listener_registry):
        listener = Mock()
        listener_registry.subscribe(EventLabel.CONNECTED, listener)

        event = SessionEvent(label=EventLabel.CONNECTED)
        listener_registry.notify(event)
        listener_registry.notify(SessionEvent(label=EventLabel.CLOSED))

        listener.assert_called_once_with(event)

    def test_registration_order_is_invocation_order(self, listener_registry):
        order = []
        listener_registry.subscribe(EventLabel.CLOSED, lambda event: order.append("first"))
        listener_registry.subscribe(EventLabel.CLOSED, lambda event: order.append("second"))
        listener_registry.subscribe(EventLabel.CLOSED, lambda event: order.append("third"))

        listener_registry.notify(SessionEvent(label=EventLabel.CLOSED))

        assert order == ["first", "second", "third"]

    def test_observers_see_every_label(self, listener_registry):
        observer = Mock()
        listener_registry.subscribe_all(observer)

        listener_registry.notify_observers(SessionEvent(label=EventLabel.CONNECTED))
        listener_registry.notify_observers(SessionEvent(label=EventLabel.CLOSED))

        assert observer.call_count == 2

    def test_unsubscribe(self, listener_registry):
        listener = Mock()
        listener_registry.subscribe(EventLabel.CONNECTED, listener)

        assert listener_registry.unsubscribe(EventLabel.CONNECTED, listener)
        assert not listener_registry.unsubscribe(EventLabel.CONNECTED, listener)

        listener_registry.notify(SessionEvent(label=EventLabel.CONNECTED))
        listener.assert_not_called()

    def test_unsubscribe_observer(self, listener_registry):
        observer = Mock()
        listener_registry.subscribe_all(observer)
        assert listener_registry.unsubscribe_all(observer)
        assert not listener_registry.unsubscribe_all(observer)

    def test_listener_added_during_notify_waits_for_next_event(self, listener_registry):
        late = Mock()

        def register_late(event):
            listener_registry.subscribe(EventLabel.CONNECTED, late)

        listener_registry.subscribe(EventLabel.CONNECTED, register_late)
        listener_registry.notify(SessionEvent(label=EventLabel.CONNECTED))
        late.assert_not_called()

        listener_registry.notify(SessionEvent(label=EventLabel.CONNECTED))
        late.assert_called_once()

    def test_statistics(self, listener_registry):
        listener_registry.subscribe(EventLabel.CONNECTED, Mock())
        listener_registry.subscribe(EventLabel.CLOSED, Mock())
        listener_registry.subscribe_all(Mock())

        stats = listener_registry.get_statistics()
        assert stats['listeners_count'] == 2
        assert stats['observers_count'] == 1
        assert stats['labels'] == ["CLOSED", "CONNECTED"]
