"""Verb-based message protocol.

Every message on the wire is a JSON object. Messages sent through
``Session.trigger`` carry a ``verb`` naming their purpose and a ``content``
body; messages sent through ``Session.send`` may be any JSON object.

Verbs under the ``core.`` prefix are reserved for session bookkeeping and are
intercepted before application listeners run.
"""

import json
from typing import Any, Mapping, Optional

from .data.net_enums import MESSAGE_DELIMITER
from .errors import ProtocolError

RESERVED_VERB_PREFIX = "core."

VERB_KEY = "verb"
CONTENT_KEY = "content"


class CoreVerb:
    """Closed set of reserved verbs."""
    UPDATE_CLIENT_DATA = "core.sync.update_client_data"
    SERVER_FULL = "core.errors.server_full"

    ALL = frozenset({UPDATE_CLIENT_DATA, SERVER_FULL})


def is_reserved_verb(verb: Any) -> bool:
    """Check whether a verb lives in the reserved namespace."""
    return isinstance(verb, str) and verb.startswith(RESERVED_VERB_PREFIX)


def validate_verb(verb: Any, allow_reserved: bool = False) -> str:
    """Validate an application verb.

    Args:
        verb: Verb requested by application code
        allow_reserved: Accept verbs under the reserved prefix

    Returns:
        The verb, unchanged

    Raises:
        ProtocolError: If the verb is not a non-empty string or is reserved
    """
    if not isinstance(verb, str) or not verb:
        raise ProtocolError(f"Verb must be a non-empty string, got {verb!r}", verb)
    if not allow_reserved and is_reserved_verb(verb):
        raise ProtocolError(
            f"Verb {verb!r} uses the reserved '{RESERVED_VERB_PREFIX}' prefix", verb
        )
    return verb


def make_message(verb: str, content: Any = None) -> dict[str, Any]:
    """Build the envelope used by ``trigger``."""
    return {VERB_KEY: verb, CONTENT_KEY: content}


def message_verb(payload: Any) -> Optional[str]:
    """Extract the verb of a decoded message, if it has one."""
    if isinstance(payload, Mapping):
        verb = payload.get(VERB_KEY)
        if isinstance(verb, str):
            return verb
    return None


def message_content(payload: Any) -> Any:
    """Extract the content body of a decoded message."""
    if isinstance(payload, Mapping):
        return payload.get(CONTENT_KEY)
    return None


def validate_payload(payload: Any, allow_reserved: bool = False) -> None:
    """Check that a payload can travel over the wire.

    Raises:
        ProtocolError: If the payload is not a JSON-serializable mapping, or it
            carries a reserved verb and ``allow_reserved`` is False
    """
    if not isinstance(payload, Mapping):
        raise ProtocolError(f"Payload must be a mapping, got {type(payload).__name__}")

    verb = payload.get(VERB_KEY)
    if verb is not None and not isinstance(verb, str):
        raise ProtocolError(f"Verb must be a string, got {verb!r}", verb)
    if not allow_reserved and is_reserved_verb(verb):
        raise ProtocolError(f"Verb {verb!r} is reserved for session bookkeeping", verb)

    try:
        json.dumps(payload)
    except (TypeError, ValueError) as e:
        raise ProtocolError(f"Payload is not JSON-serializable: {e}", verb) from e


def encode_message(payload: Mapping[str, Any]) -> bytes:
    """Encode a message as one newline-terminated UTF-8 JSON line."""
    return json.dumps(payload, separators=(",", ":")).encode("utf-8") + MESSAGE_DELIMITER


def decode_message(line: bytes) -> dict[str, Any]:
    """Decode one line received from the wire.

    Raises:
        ProtocolError: If the line is not a JSON object
    """
    try:
        data = json.loads(line.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise ProtocolError(f"Malformed message: {e}") from e
    if not isinstance(data, dict):
        raise ProtocolError(f"Message must be a JSON object, got {type(data).__name__}")
    return data
