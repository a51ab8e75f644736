"""Shared fixtures for the chatrelay test suite."""

import asyncio
import sys
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

# Ensure the project root is on sys.path so 'chatrelay' package resolves
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from chatrelay.config import ServerConfig  # noqa: E402
from chatrelay.generators.base import TextGenerator  # noqa: E402

# Zero-latency fallback and short upstream timeouts so turns finish instantly.
FAST_CONFIG = ServerConfig(
    upstream="none",
    upstream_first_chunk_timeout=1.0,
    upstream_chunk_timeout=1.0,
    fallback_thinking_delay=0,
    fallback_word_delay_min=0,
    fallback_word_delay_max=0,
)


# ---------------------------------------------------------------------------
# Fake upstream generators
# ---------------------------------------------------------------------------

class ScriptedGenerator(TextGenerator):
    """Yields a fixed list of fragments, optionally raising at index *fail_at*."""

    name = "scripted"

    def __init__(self, fragments=(), *, fail_at: int | None = None, error: Exception | None = None):
        self.fragments = list(fragments)
        self.fail_at = fail_at
        self.error = error or RuntimeError("upstream exploded")
        self.prompts: list[str] = []
        self.closed = False

    async def generate(self, prompt: str) -> str:
        return "".join(self.fragments)

    async def stream_generate(self, prompt: str):
        self.prompts.append(prompt)
        try:
            for i, fragment in enumerate(self.fragments):
                if i == self.fail_at:
                    raise self.error
                yield fragment
            if self.fail_at is not None and self.fail_at >= len(self.fragments):
                raise self.error
        finally:
            self.closed = True


class HangingGenerator(TextGenerator):
    """Yields *fragments*, then blocks until cancelled."""

    name = "hanging"

    def __init__(self, fragments=()):
        self.fragments = list(fragments)
        self.started = asyncio.Event()
        self.closed = False

    async def generate(self, prompt: str) -> str:
        await asyncio.Event().wait()
        return ""

    async def stream_generate(self, prompt: str):
        try:
            for fragment in self.fragments:
                yield fragment
            self.started.set()
            await asyncio.Event().wait()
        finally:
            self.closed = True


# ---------------------------------------------------------------------------
# Bare Object Factory -- skip __init__ for ChatSession
# ---------------------------------------------------------------------------

def make_bare_chat_session(*, generator=None, config=None):
    """Create a ChatSession with __new__ (skip __init__).

    The socket is an AsyncMock so every outgoing event can be inspected via
    ``session.ws.send_json.call_args_list``.
    """
    from chatrelay.ws_handler import ChatSession, TurnState

    session = ChatSession.__new__(ChatSession)
    session.ws = AsyncMock()
    session.generator = generator
    session.config = config or FAST_CONFIG
    session.state = TurnState.IDLE
    session._ws_alive = True
    session._turn_task = None
    return session


def sent_messages(ws_mock) -> list[dict]:
    """All dicts sent through a mock WebSocket, in order."""
    return [c[0][0] for c in ws_mock.send_json.call_args_list]


def filter_ws_messages(ws_mock, msg_type: str) -> list[dict]:
    """Extract all messages of a given type sent through a mock WebSocket."""
    return [m for m in sent_messages(ws_mock) if isinstance(m, dict) and m.get("type") == msg_type]


@pytest.fixture
def fast_config():
    return FAST_CONFIG


@pytest.fixture
def app(fast_config):
    """The FastAPI app with fast config and no upstream generator.

    Startup hooks are not run, so no real upstream is probed.
    """
    from chatrelay.server import app as fastapi_app

    original = (fastapi_app.state.config, fastapi_app.state.generator)
    fastapi_app.state.config = fast_config
    fastapi_app.state.generator = None
    yield fastapi_app
    fastapi_app.state.config, fastapi_app.state.generator = original


@pytest.fixture
async def client(app):
    """Async HTTP client for testing REST endpoints."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac
