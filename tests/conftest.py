"""
Basic test fixtures for the peerlink test suite.

Provides fixtures for the event pipeline and for real sessions bound to
ephemeral loopback ports.
"""

import sys
import os

import pytest

# Add the project root to the Python path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

from peerlink.core.data.data_structures import ClientRecord
from peerlink.core.data.net_enums import SessionMode
from peerlink.core.events.event_queue import EventQueue
from peerlink.core.events.listener_registry import ListenerRegistry
from peerlink.session.managers.log_manager import LogManager
from peerlink.session.session import Session
from tests.test_utils import fast_params


@pytest.fixture
def event_queue():
    """Create an event queue for testing."""
    return EventQueue(enable_debug_logging=False)


@pytest.fixture
def listener_registry():
    return ListenerRegistry()


@pytest.fixture
def log_manager():
    """Create a log manager for testing."""
    return LogManager(name="test")


@pytest.fixture
def client_record():
    """A client record with no live connection."""
    return ClientRecord(connection=None, address=("127.0.0.1", 50000))


@pytest.fixture
def server_session():
    """A started server session on an ephemeral port."""
    session = Session(SessionMode.SERVER, fast_params())
    assert session.start()
    yield session
    session.stop()


@pytest.fixture
def make_client():
    """Factory for client sessions pointed at a server session."""
    created: list[Session] = []

    def factory(server: Session, **overrides) -> Session:
        params = fast_params(port=server.endpoint.port, **overrides)
        session = Session(SessionMode.CLIENT, params)
        created.append(session)
        return session

    yield factory

    for session in created:
        session.stop()
