"""
Unit tests for SessionParams and ClientRecord.
"""
import socket

import pytest

from peerlink.core.data.data_structures import ClientRecord, SessionParams
from peerlink.core.data.net_enums import DEFAULT_POLICY_PORT, DEFAULT_PORT
from peerlink.transport.connection import Connection


class TestSessionParams:
    """Test connection parameter validation."""

    def test_defaults(self):
        params = SessionParams()

        assert params.port == DEFAULT_PORT
        assert params.policy_port == DEFAULT_POLICY_PORT
        assert params.max_connections >= 1
        assert params.uuid

    def test_generated_identities_are_unique(self):
        assert SessionParams().uuid != SessionParams().uuid

    def test_tick_interval(self):
        assert SessionParams(tick_rate=50).tick_interval == pytest.approx(0.02)

    @pytest.mark.parametrize("overrides", [
        {'port': -1},
        {'port': 70000},
        {'policy_port': 65536},
        {'max_connections': 0},
        {'backlog': 0},
        {'connect_timeout': 0},
        {'send_timeout': -1.0},
        {'tick_rate': 0},
        {'host': ""},
        {'uuid': ""},
    ])
    def test_invalid_values_rejected(self, overrides):
        with pytest.raises(ValueError):
            SessionParams(**overrides)

    def test_with_overrides_keeps_identity(self):
        params = SessionParams(uuid="fixed")
        changed = params.with_overrides(port=1234)

        assert changed.port == 1234
        assert changed.uuid == "fixed"
        assert params.port == DEFAULT_PORT

    def test_frozen(self):
        params = SessionParams()
        with pytest.raises(AttributeError):
            params.port = 1  # type: ignore[misc]


class TestClientRecord:
    """Test server-side client bookkeeping."""

    def test_display_name_prefers_synced_identity(self, client_record):
        assert client_record.display_name == client_record.identity

        client_record.synced_identity = "player-7"
        assert client_record.display_name == "player-7"

    def test_is_connected_follows_connection(self):
        left, right = socket.socketpair()
        try:
            record = ClientRecord(connection=Connection(left, ("local", 0), send_timeout=1.0))
            assert record.is_connected

            record.connection.close()
            assert not record.is_connected
        finally:
            right.close()

    def test_records_compare_by_identity(self):
        first = ClientRecord(connection=None)
        second = ClientRecord(connection=None, identity=first.identity)
        assert first != second
