"""UI-facing chat state built from the relay's event stream.

``ChatState`` owns the ordered message list and the "thinking" indicator.
It never touches the socket; it reacts to the callbacks a
``ConnectionManager`` pushes and asks the manager to send or reconnect.
"""

import itertools
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from .client import ConnectionManager
from .protocol import SessionMessage
from .ws_constants import (
    MSG_CONNECTED,
    MSG_THINKING,
    MSG_THINKING_DONE,
    MSG_STREAM,
    MSG_DONE,
    MSG_ERROR,
    ERROR_GENERIC,
)

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = "👋 Hi! How can we help?"

_sequence = itertools.count(1)


def _message_id(prefix: str) -> str:
    return f"{prefix}-{int(time.time() * 1000)}-{next(_sequence)}"


@dataclass
class ChatMessage:
    id: str
    role: str  # "user" | "assistant"
    content: str
    is_streaming: bool = False
    display_content: str = ""
    timestamp: datetime = field(default_factory=datetime.now)


class ChatState:
    """Message list plus the flags a renderer needs.

    *on_change* is called after every mutation so a renderer can redraw.
    A non-empty *welcome* seeds the list with a finished assistant message.
    """

    def __init__(
        self,
        on_change: Callable[["ChatState"], None] | None = None,
        welcome: str | None = None,
    ):
        self.messages: list[ChatMessage] = []
        if welcome:
            self.messages.append(ChatMessage(
                id="welcome",
                role="assistant",
                content=welcome,
                display_content=welcome,
            ))
        self.thinking_text: str | None = None
        self.is_waiting = False
        self.on_change = on_change
        self._current_assistant: ChatMessage | None = None

    def bind(self, manager: ConnectionManager) -> None:
        """Register this state's handlers on *manager*."""
        manager.set_handlers(
            on_message=self.handle_message,
            on_disconnect=self.handle_disconnect,
        )

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change(self)

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def handle_message(self, message: SessionMessage) -> None:
        if message.type == MSG_CONNECTED:
            logger.info("Connected to chat server")
            return
        if message.type == MSG_THINKING:
            self.thinking_text = message.content
        elif message.type == MSG_THINKING_DONE:
            return
        elif message.type == MSG_STREAM:
            self._append_fragment(message.content)
        elif message.type == MSG_DONE:
            self._finish_turn(message.content)
        elif message.type == MSG_ERROR:
            self.messages.append(ChatMessage(
                id=_message_id("error"),
                role="assistant",
                content=message.content or ERROR_GENERIC,
                display_content=message.content or ERROR_GENERIC,
            ))
            self._close_current()
            self.thinking_text = None
            self.is_waiting = False
        else:
            return
        self._changed()

    def handle_disconnect(self) -> None:
        # No more fragments will arrive for a turn cut off by the drop.
        self._close_current()
        self.is_waiting = False
        self.thinking_text = None
        self._changed()

    def _append_fragment(self, fragment: str) -> None:
        self.thinking_text = None
        current = self._current_assistant
        if current is None:
            current = ChatMessage(
                id=_message_id("assistant"),
                role="assistant",
                content=fragment,
                is_streaming=True,
                display_content=fragment,
            )
            self._current_assistant = current
            self.messages.append(current)
        else:
            current.content += fragment
            current.display_content += fragment

    def _close_current(self) -> None:
        current = self._current_assistant
        if current is not None:
            current.display_content = current.content
            current.is_streaming = False
            self._current_assistant = None

    def _finish_turn(self, full_text: str) -> None:
        current = self._current_assistant
        if current is not None:
            # The done payload is the authoritative text for the turn.
            if full_text:
                current.content = full_text
            self._close_current()
        self.thinking_text = None
        self.is_waiting = False

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    async def submit(self, text: str, manager: ConnectionManager) -> bool:
        """Send *text* as a new user turn.

        Returns False when nothing was sent: empty input, a turn already in
        flight, or no connection (in which case a reconnect is started).
        """
        text = text.strip()
        if not text or self.is_waiting:
            return False
        if not manager.is_connected:
            manager.connect()
            return False

        self.messages.append(ChatMessage(
            id=_message_id("user"),
            role="user",
            content=text,
            display_content=text,
        ))
        self.is_waiting = True
        self._changed()

        if not await manager.send_message(text):
            self.is_waiting = False
            self._changed()
            return False
        return True
