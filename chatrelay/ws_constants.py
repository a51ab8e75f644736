"""WebSocket protocol constants: message types and fixed status texts.

Pure data module -- no imports, no logic. Safe to import from any chatrelay
module without risk of circular dependencies.
"""

# ── Client -> Server message types ────────────────────────────────────

MSG_CHAT = "chat"

# ── Server -> Client message types ────────────────────────────────────

MSG_CONNECTED = "connected"
MSG_THINKING = "thinking"
MSG_THINKING_DONE = "thinking_done"
MSG_STREAM = "stream"
MSG_DONE = "done"
MSG_ERROR = "error"

CLIENT_MESSAGE_TYPES = frozenset({MSG_CHAT})
SERVER_MESSAGE_TYPES = frozenset({
    MSG_CONNECTED,
    MSG_THINKING,
    MSG_THINKING_DONE,
    MSG_STREAM,
    MSG_DONE,
    MSG_ERROR,
})

# ── Fixed content strings ─────────────────────────────────────────────

CONNECTED_BANNER = "Connected to chat server"
THINKING_STATUS = "Analyzing your question..."

ERROR_TURN_FAILED = "Failed to process message"
ERROR_STREAM_INTERRUPTED = "The response was interrupted. Please try again."
ERROR_GENERIC = "Something went wrong. Please try again."
