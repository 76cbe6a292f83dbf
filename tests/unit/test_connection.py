"""
Tests for the framed Connection wrapper.
"""
import json
import socket

import pytest

from peerlink.core.errors import TransportError
from peerlink.transport.connection import Connection


@pytest.fixture
def socket_pair():
    left, right = socket.socketpair()
    yield left, right
    left.close()
    right.close()


class TestConnection:
    """Test framing over a local socket pair."""

    def test_send_message_is_newline_delimited(self, socket_pair):
        left, right = socket_pair
        connection = Connection(left, ("127.0.0.1", 1234), send_timeout=1.0)

        connection.send_message({'verb': "click", 'content': {'x': 10}})

        data = right.recv(4096)
        assert data.endswith(b"\n")
        assert json.loads(data.decode('utf-8')) == {'verb': "click", 'content': {'x': 10}}

    def test_read_lines_splits_and_buffers(self, socket_pair):
        left, right = socket_pair
        connection = Connection(left, ("127.0.0.1", 1234), send_timeout=1.0)

        right.sendall(b'{"a": 1}\n{"b": 2}\n{"c"')
        assert connection.read_lines() == [b'{"a": 1}', b'{"b": 2}']

        right.sendall(b': 3}\n')
        assert connection.read_lines() == [b'{"c": 3}']

    def test_blank_lines_are_skipped(self, socket_pair):
        left, right = socket_pair
        connection = Connection(left, ("127.0.0.1", 1234), send_timeout=1.0)

        right.sendall(b'\n  \n{"a": 1}\n')
        assert connection.read_lines() == [b'{"a": 1}']

    def test_read_returns_none_on_eof(self, socket_pair):
        left, right = socket_pair
        connection = Connection(left, ("127.0.0.1", 1234), send_timeout=1.0)

        right.shutdown(socket.SHUT_WR)
        assert connection.read_lines() is None

    def test_send_after_close_raises(self, socket_pair):
        left, _ = socket_pair
        connection = Connection(left, ("127.0.0.1", 1234), send_timeout=1.0)
        connection.close()
        connection.close()

        assert connection.closed
        with pytest.raises(TransportError) as exc_info:
            connection.send_message({'verb': "click"})
        assert exc_info.value.address == ("127.0.0.1", 1234)

    def test_shutdown_signals_peer(self, socket_pair):
        left, right = socket_pair
        connection = Connection(left, ("127.0.0.1", 1234), send_timeout=1.0)

        connection.shutdown()

        assert right.recv(10) == b""
        assert not connection.closed

    def test_address_is_normalized(self, socket_pair):
        left, _ = socket_pair
        connection = Connection(left, "peer", send_timeout=1.0)
        assert connection.address == ("peer", 0)
        assert "peer:0" in repr(connection)
