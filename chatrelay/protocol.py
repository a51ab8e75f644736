"""Session message model and JSON frame codec."""

from typing import Iterable, Literal

from pydantic import BaseModel, StrictStr, ValidationError

from .errors import ProtocolDecodeError

MessageType = Literal[
    "connected",
    "thinking",
    "thinking_done",
    "stream",
    "done",
    "error",
    "chat",
]


class SessionMessage(BaseModel):
    """The wire unit exchanged in both directions.

    ``content`` is always present on the wire; ``thinking_done`` carries an
    empty string.
    """

    type: MessageType
    content: StrictStr = ""


def encode_message(msg_type: str, content: str = "") -> str:
    """Serialize a message to a JSON text frame."""
    return SessionMessage(type=msg_type, content=content).model_dump_json()


def decode_message(raw: str | bytes, allowed: Iterable[str] | None = None) -> SessionMessage:
    """Parse a JSON frame into a SessionMessage.

    Raises ProtocolDecodeError for invalid JSON, unknown or missing ``type``,
    non-string ``content``, or a type outside *allowed*.
    """
    try:
        msg = SessionMessage.model_validate_json(raw)
    except ValidationError as e:
        raise ProtocolDecodeError(f"Invalid session message: {e.error_count()} error(s)") from e
    if allowed is not None and msg.type not in allowed:
        raise ProtocolDecodeError(f"Unexpected message type: {msg.type}")
    return msg
