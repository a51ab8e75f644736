"""WebSocket chat handler: runs the streaming protocol for one connection.

The main entry point is ``websocket_chat()``, which is mounted as
``/ws/chat`` by server.py. Each accepted socket gets its own
``ChatSession``; sessions share nothing except the read-only upstream
generator.
"""

import asyncio
import logging
from enum import Enum
from typing import AsyncIterator

from fastapi import WebSocket, WebSocketDisconnect

from .config import ServerConfig
from .errors import ProtocolDecodeError, TurnError, UpstreamError
from .fallback import fallback_reply, stream_words
from .generators.base import TextGenerator
from .protocol import SessionMessage, decode_message
from .ws_constants import (
    MSG_CHAT,
    MSG_CONNECTED,
    MSG_THINKING,
    MSG_THINKING_DONE,
    MSG_STREAM,
    MSG_DONE,
    MSG_ERROR,
    CLIENT_MESSAGE_TYPES,
    CONNECTED_BANNER,
    THINKING_STATUS,
    ERROR_TURN_FAILED,
    ERROR_STREAM_INTERRUPTED,
)

logger = logging.getLogger(__name__)


class TurnState(str, Enum):
    IDLE = "idle"
    THINKING = "thinking"
    STREAMING = "streaming"
    DONE = "done"
    ERROR = "error"


class ChatSession:
    """Holds all mutable state for a single WebSocket connection.

    At most one turn runs at a time. The turn executes as a background task
    so the receive loop keeps reading, which lets a disconnect cancel an
    in-flight generation immediately.
    """

    def __init__(
        self,
        websocket: WebSocket,
        *,
        generator: TextGenerator | None,
        config: ServerConfig,
    ):
        self.ws = websocket
        self.generator = generator
        self.config = config

        # Per-connection mutable state
        self.state = TurnState.IDLE
        self._ws_alive = True
        self._turn_task: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def safe_send(self, data: dict) -> bool:
        """Send JSON to client, return False if disconnected."""
        if not self._ws_alive:
            return False
        try:
            await self.ws.send_json(data)
            return True
        except (WebSocketDisconnect, RuntimeError, OSError):
            self._ws_alive = False
            return False

    def _set_state(self, state: TurnState) -> None:
        logger.debug("Turn state %s -> %s", self.state.value, state.value)
        self.state = state

    async def _begin_streaming(self) -> None:
        await self.safe_send({"type": MSG_THINKING_DONE, "content": ""})
        self._set_state(TurnState.STREAMING)

    @staticmethod
    async def _next_fragment(fragments: AsyncIterator[str], timeout: float) -> str | None:
        """Return the next non-empty fragment, or None once the stream is exhausted."""
        while True:
            try:
                fragment = await asyncio.wait_for(fragments.__anext__(), timeout=timeout)
            except StopAsyncIteration:
                return None
            if fragment:
                return fragment

    async def _stream_upstream(self, prompt: str) -> str:
        """Forward upstream fragments to the client as ``stream`` events.

        Returns the accumulated text. Raises UpstreamError when the upstream
        fails or produces nothing before the first fragment, and TurnError
        for failures after it.
        """
        fragments = None
        try:
            try:
                fragments = self.generator.stream_generate(prompt).__aiter__()
                first = await self._next_fragment(fragments, self.config.upstream_first_chunk_timeout)
            except Exception as e:
                raise UpstreamError(f"Upstream {self.generator.name} failed: {e!r}") from e
            if first is None:
                raise UpstreamError(f"Upstream {self.generator.name} returned no text")

            await self._begin_streaming()
            full_response = first
            if not await self.safe_send({"type": MSG_STREAM, "content": first}):
                return full_response
            while True:
                try:
                    fragment = await self._next_fragment(fragments, self.config.upstream_chunk_timeout)
                except Exception as e:
                    raise TurnError(ERROR_STREAM_INTERRUPTED) from e
                if fragment is None:
                    break
                full_response += fragment
                if not await self.safe_send({"type": MSG_STREAM, "content": fragment}):
                    break
            return full_response
        finally:
            aclose = getattr(fragments, "aclose", None)
            if aclose is not None:
                try:
                    await aclose()
                except Exception:
                    logger.debug("Closing upstream stream failed", exc_info=True)

    async def _stream_fallback(self, prompt: str) -> str:
        """Stream the canned reply for *prompt* word-by-word."""
        reply = fallback_reply(prompt)
        await asyncio.sleep(self.config.fallback_thinking_delay)
        await self._begin_streaming()
        async for word in stream_words(
            reply,
            self.config.fallback_word_delay_min,
            self.config.fallback_word_delay_max,
        ):
            if not await self.safe_send({"type": MSG_STREAM, "content": word}):
                break
        return reply

    async def _run_turn(self, prompt: str) -> None:
        try:
            await self.safe_send({"type": MSG_THINKING, "content": THINKING_STATUS})

            full_response = None
            if self.generator is not None:
                try:
                    full_response = await self._stream_upstream(prompt)
                except UpstreamError as e:
                    logger.warning("%s, using fallback", e)
            if full_response is None:
                full_response = await self._stream_fallback(prompt)

            self._set_state(TurnState.DONE)
            await self.safe_send({"type": MSG_DONE, "content": full_response})
        except TurnError as e:
            logger.warning("Chat turn failed: %s", e)
            self._set_state(TurnState.ERROR)
            await self.safe_send({"type": MSG_ERROR, "content": str(e)})
        except Exception:
            logger.exception("Error during chat turn")
            self._set_state(TurnState.ERROR)
            await self.safe_send({"type": MSG_ERROR, "content": ERROR_TURN_FAILED})
        finally:
            self._set_state(TurnState.IDLE)

    # ------------------------------------------------------------------
    # Message handlers
    # ------------------------------------------------------------------

    async def handle_chat(self, msg: SessionMessage) -> None:
        if self.state is not TurnState.IDLE:
            logger.warning("Ignoring chat message while a turn is %s", self.state.value)
            return
        # Leave idle before the task starts so a racing chat is rejected.
        self._set_state(TurnState.THINKING)
        self._turn_task = asyncio.create_task(self._run_turn(msg.content))

    # ------------------------------------------------------------------
    # Main loop & cleanup
    # ------------------------------------------------------------------

    # Dispatch table: message type -> handler method name
    _HANDLERS = {
        MSG_CHAT: "handle_chat",
    }

    async def run(self) -> None:
        """Main message loop -- dispatches to handler methods."""
        await self.safe_send({"type": MSG_CONNECTED, "content": CONNECTED_BANNER})
        try:
            while True:
                message = await self.ws.receive()
                if message["type"] == "websocket.disconnect":
                    break

                data = message.get("text")
                if data is None:
                    data = message.get("bytes")
                try:
                    msg = decode_message(data or "", allowed=CLIENT_MESSAGE_TYPES)
                except ProtocolDecodeError as e:
                    logger.warning("Dropping malformed frame from client: %s", e)
                    continue

                try:
                    await getattr(self, self._HANDLERS[msg.type])(msg)
                except Exception:
                    logger.exception("Unexpected error handling message type=%s", msg.type)
                    await self.safe_send({"type": MSG_ERROR, "content": ERROR_TURN_FAILED})
        except (WebSocketDisconnect, RuntimeError):
            pass

    async def cleanup(self) -> None:
        """Abandon any in-flight turn on disconnect."""
        self._ws_alive = False
        task = self._turn_task
        self._turn_task = None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            logger.info("Abandoned in-flight chat turn on disconnect")
        except Exception:
            logger.exception("Chat turn failed during cleanup")


# ------------------------------------------------------------------
# FastAPI endpoint -- this is what server.py mounts at /ws/chat
# ------------------------------------------------------------------

async def websocket_chat(
    websocket: WebSocket,
    *,
    generator: TextGenerator | None,
    config: ServerConfig,
) -> None:
    """WebSocket endpoint handler for /ws/chat."""
    await websocket.accept()
    logger.info("Client connected")

    session = ChatSession(websocket, generator=generator, config=config)
    try:
        await session.run()
    finally:
        await session.cleanup()
        logger.info("Client disconnected")
