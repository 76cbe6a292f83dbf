"""
Unit tests for the verb protocol and wire codec.
"""
import pytest

from peerlink.core.errors import ProtocolError
from peerlink.core.protocol import (
    CoreVerb,
    decode_message,
    encode_message,
    is_reserved_verb,
    make_message,
    message_content,
    message_verb,
    validate_payload,
    validate_verb,
)


class TestVerbValidation:
    """Test the reserved verb namespace."""

    def test_core_verbs_are_reserved(self):
        for verb in CoreVerb.ALL:
            assert is_reserved_verb(verb)

    def test_application_verb_accepted(self):
        assert validate_verb("click") == "click"

    def test_reserved_verb_rejected(self):
        with pytest.raises(ProtocolError) as exc_info:
            validate_verb(CoreVerb.SERVER_FULL)
        assert exc_info.value.verb == CoreVerb.SERVER_FULL

    def test_reserved_verb_allowed_on_request(self):
        assert validate_verb(CoreVerb.UPDATE_CLIENT_DATA, allow_reserved=True) == CoreVerb.UPDATE_CLIENT_DATA

    @pytest.mark.parametrize("verb", ["", None, 42])
    def test_invalid_verbs_rejected(self, verb):
        with pytest.raises(ProtocolError):
            validate_verb(verb)

    def test_prefix_lookalike_is_not_reserved(self):
        assert not is_reserved_verb("corer.thing")
        assert not is_reserved_verb("score.update")


class TestPayloadValidation:
    """Test what may be sent over the wire."""

    def test_plain_mapping_accepted(self):
        validate_payload({'anything': [1, 2, 3]})

    def test_non_mapping_rejected(self):
        with pytest.raises(ProtocolError):
            validate_payload(["not", "a", "mapping"])

    def test_unserializable_rejected(self):
        with pytest.raises(ProtocolError):
            validate_payload(make_message("click", {'when': object()}))

    def test_reserved_verb_in_payload_rejected(self):
        with pytest.raises(ProtocolError):
            validate_payload(make_message(CoreVerb.SERVER_FULL))

        validate_payload(make_message(CoreVerb.SERVER_FULL), allow_reserved=True)


class TestCodec:
    """Test framing of messages."""

    def test_encoded_message_is_one_line(self):
        data = encode_message(make_message("chat", {'text': "line one\nline two"}))
        assert data.endswith(b"\n")
        assert data.count(b"\n") == 1

    def test_decode_encoded_message(self):
        message = make_message("click", {'x': 10, 'y': 30})
        decoded = decode_message(encode_message(message).rstrip(b"\n"))

        assert message_verb(decoded) == "click"
        assert message_content(decoded) == {'x': 10, 'y': 30}

    @pytest.mark.parametrize("line", [b"{not json", b"[1, 2]", b"\xff\xfe"])
    def test_malformed_lines_rejected(self, line):
        with pytest.raises(ProtocolError):
            decode_message(line)

    def test_message_without_verb(self):
        assert message_verb({'content': 1}) is None
        assert message_verb({'verb': 5}) is None
