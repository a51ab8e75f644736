"""Exception hierarchy shared by the relay server and the client."""


class ChatRelayError(Exception):
    """Base class for all chatrelay errors."""


class TransportError(ChatRelayError):
    """The socket failed to open or closed unexpectedly."""


class ProtocolDecodeError(ChatRelayError):
    """A frame could not be decoded into a SessionMessage."""


class UpstreamError(ChatRelayError):
    """The text-generation service is unavailable, failed, or produced nothing."""


class TurnError(ChatRelayError):
    """A chat turn failed after streaming began; reported to the client as an error event."""
