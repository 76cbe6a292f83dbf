"""
Integration tests for the cross-domain policy responder.
"""
import socket
from unittest.mock import Mock

import pytest

from peerlink.core.events.events import EventLabel
from peerlink.transport.policy_responder import POLICY_RESPONSE, PolicyResponder


def fetch_policy(port, request=b"<policy-file-request/>\0"):
    with socket.create_connection(("127.0.0.1", port), timeout=2.0) as sock:
        if request:
            sock.sendall(request)
        chunks = []
        while True:
            chunk = sock.recv(1024)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


@pytest.fixture
def responder():
    emit = Mock()
    responder = PolicyResponder(emit, host="127.0.0.1", port=0, poll_interval=0.01, send_timeout=1.0)
    assert responder.start()
    yield responder
    responder.stop()


class TestPolicyResponder:
    """Test the fixed policy reply."""

    def test_response_bytes(self):
        assert POLICY_RESPONSE == (
            b'<?xml version="1.0"?><cross-domain-policy>'
            b'<allow-access-from domain="*" to-ports="*" />'
            b'</cross-domain-policy>\0'
        )

    def test_answers_policy_request(self, responder):
        assert fetch_policy(responder.port) == POLICY_RESPONSE

    def test_ignores_request_contents(self, responder):
        assert fetch_policy(responder.port, request=b"GET / HTTP/1.0\r\n\r\n") == POLICY_RESPONSE
        assert fetch_policy(responder.port, request=b"") == POLICY_RESPONSE

    def test_serves_repeated_requests(self, responder):
        for _ in range(3):
            assert fetch_policy(responder.port) == POLICY_RESPONSE
        assert responder.requests_served == 3

    def test_bind_failure_emits_security_error(self, responder):
        emit = Mock()
        blocked = PolicyResponder(emit, host="127.0.0.1", port=responder.port)

        assert not blocked.start()
        assert not blocked.is_running
        emit.assert_called_once()
        assert emit.call_args.args[0] == EventLabel.SECURITY_ERROR

    def test_stop_releases_port(self, responder):
        responder.stop()
        assert responder.port is None
        assert not responder.is_running
