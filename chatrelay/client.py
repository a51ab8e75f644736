"""Reconnecting WebSocket client for the chat relay.

``ConnectionManager`` owns one logical connection: it opens the socket,
decodes inbound frames and forwards them to a handler, and retries a bounded
number of times at a fixed interval when the connection drops. Transport and
decode failures never reach the caller as exceptions; they show up only as
state changes and log lines.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable

import websockets
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI

from .config import ClientConfig
from .errors import ProtocolDecodeError, TransportError
from .protocol import SessionMessage, decode_message, encode_message
from .ws_constants import MSG_CHAT, SERVER_MESSAGE_TYPES

logger = logging.getLogger(__name__)

MessageHandler = Callable[[SessionMessage], None]
LifecycleHandler = Callable[[], None]

_UNSET = object()


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class ConnectionManager:
    """Maintain at most one active connection to the relay server.

    ``should_be_connected`` is the single authoritative record of the
    caller's intent: a scheduled retry checks it before acting, and
    ``disconnect()``/``close()`` clear it, so a late timer never reconnects.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        on_message: MessageHandler | None = None,
        on_connect: LifecycleHandler | None = None,
        on_disconnect: LifecycleHandler | None = None,
        connector: Callable | None = None,
    ):
        self.config = config
        self.on_message = on_message
        self.on_connect = on_connect
        self.on_disconnect = on_disconnect
        self._connector = connector or websockets.connect

        self._state = ConnectionState.DISCONNECTED
        self._reconnect_attempts = 0
        self.should_be_connected = False
        self._closed = False
        self._ws = None
        self._task: asyncio.Task | None = None
        self._reconnect_handle: asyncio.TimerHandle | None = None

    # ------------------------------------------------------------------
    # Public state
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def is_connecting(self) -> bool:
        return self._state is ConnectionState.CONNECTING

    @property
    def reconnect_attempts(self) -> int:
        return self._reconnect_attempts

    def set_handlers(
        self,
        *,
        on_message=_UNSET,
        on_connect=_UNSET,
        on_disconnect=_UNSET,
    ) -> None:
        """Swap callbacks. Takes effect from the next dispatched event."""
        if on_message is not _UNSET:
            self.on_message = on_message
        if on_connect is not _UNSET:
            self.on_connect = on_connect
        if on_disconnect is not _UNSET:
            self.on_disconnect = on_disconnect

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def connect(self) -> None:
        """Start connecting unless already connecting or connected.

        Must be called from a running event loop.
        """
        if self._closed:
            logger.warning("connect() called on a closed ConnectionManager")
            return
        if self._state is ConnectionState.CONNECTED:
            logger.debug("Already connected")
            return
        if self._state is ConnectionState.CONNECTING:
            logger.debug("Already connecting")
            return

        self._cancel_reconnect()
        self.should_be_connected = True
        self._state = ConnectionState.CONNECTING
        logger.info("Creating WebSocket connection to %s", self.config.url)
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def disconnect(self) -> None:
        """Close the connection and suppress any further automatic retries."""
        self._cancel_reconnect()
        self.should_be_connected = False
        self._reconnect_attempts = self.config.max_reconnect_attempts

        ws, task = self._ws, self._task
        self._ws = None
        self._task = None
        # A connect() issued while the old socket is still closing starts fresh.
        self._state = ConnectionState.DISCONNECTED
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            await asyncio.wait([task])
        if ws is not None:
            await ws.close()

    async def close(self) -> None:
        """Dispose of the manager. No retry fires and no connection opens afterwards."""
        self._closed = True
        await self.disconnect()

    async def __aenter__(self) -> "ConnectionManager":
        self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    async def send_message(self, content: str) -> bool:
        """Send a ``chat`` message. Returns False without raising when not connected."""
        ws = self._ws
        if self._state is not ConnectionState.CONNECTED or ws is None:
            logger.warning("WebSocket not connected (state=%s), message not sent", self._state.value)
            return False
        try:
            await ws.send(encode_message(MSG_CHAT, content))
        except ConnectionClosed as e:
            logger.warning("Send failed, connection closed: %s", e)
            return False
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _open(self):
        try:
            return await asyncio.wait_for(self._connector(self.config.url), timeout=self.config.open_timeout)
        except asyncio.TimeoutError as e:
            raise TransportError(f"Timed out connecting to {self.config.url}") from e
        except (OSError, InvalidURI, InvalidHandshake) as e:
            raise TransportError(f"Failed to connect to {self.config.url}: {e}") from e

    async def _run(self) -> None:
        """Single connection attempt plus its receive loop."""
        ws = None
        try:
            ws = await self._open()
            self._ws = ws
            self._state = ConnectionState.CONNECTED
            self._reconnect_attempts = 0
            logger.info("WebSocket connected")
            self._notify(self.on_connect)

            try:
                async for raw in ws:
                    self._dispatch(raw)
            except ConnectionClosed as e:
                raise TransportError(f"WebSocket disconnected: {e}") from e
            raise TransportError("WebSocket closed by server")
        except TransportError as e:
            logger.warning("%s", e)
        except Exception:
            logger.exception("Unexpected WebSocket failure")
        finally:
            if self._ws is ws:
                self._ws = None
        self._handle_closed()

    def _dispatch(self, raw) -> None:
        try:
            msg = decode_message(raw, allowed=SERVER_MESSAGE_TYPES)
        except ProtocolDecodeError as e:
            logger.warning("Failed to parse WebSocket message: %s", e)
            return
        handler = self.on_message
        if handler is None:
            return
        try:
            handler(msg)
        except Exception:
            logger.exception("Message handler raised for type=%s", msg.type)

    def _notify(self, callback: LifecycleHandler | None) -> None:
        if callback is None:
            return
        try:
            callback()
        except Exception:
            logger.exception("Connection callback raised")

    def _handle_closed(self) -> None:
        self._state = ConnectionState.DISCONNECTED
        self._task = None
        if self._closed or not self.should_be_connected:
            return

        self._notify(self.on_disconnect)

        if self._reconnect_attempts < self.config.max_reconnect_attempts:
            self._reconnect_attempts += 1
            logger.info(
                "Will reconnect in %.1fs (attempt %d/%d)",
                self.config.reconnect_interval,
                self._reconnect_attempts,
                self.config.max_reconnect_attempts,
            )
            self._reconnect_handle = asyncio.get_running_loop().call_later(
                self.config.reconnect_interval, self._retry
            )
        else:
            logger.info("Reconnect attempts exhausted; staying disconnected")

    def _retry(self) -> None:
        self._reconnect_handle = None
        if self._closed or not self.should_be_connected:
            logger.debug("Skipping scheduled reconnect")
            return
        self.connect()

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None
