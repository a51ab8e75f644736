#!/usr/bin/env python3
"""
Terminal chat client for the relay server.

Usage:
    python scripts/chat_client.py                          # uses CHATRELAY_URL or the default
    python scripts/chat_client.py --url ws://host:8080/ws/chat
    python scripts/chat_client.py --verbose                # show connection logging

Type a message and press Enter. Ctrl-D or /quit exits.
"""

import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path

from dotenv import load_dotenv

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from chatrelay.chat_state import WELCOME_MESSAGE, ChatState  # noqa: E402
from chatrelay.client import ConnectionManager  # noqa: E402
from chatrelay.config import ClientConfig  # noqa: E402


class TerminalRenderer:
    """Prints assistant text as it streams in, without redrawing history."""

    def __init__(self):
        self._printed: dict[str, int] = {}
        self._finished: set[str] = set()
        self._showing_thinking = False

    def __call__(self, state: ChatState) -> None:
        if state.thinking_text and not self._showing_thinking:
            print(f"  … {state.thinking_text}", flush=True)
            self._showing_thinking = True
        if not state.thinking_text:
            self._showing_thinking = False

        for msg in state.messages:
            if msg.role != "assistant" or msg.id in self._finished:
                continue
            shown = self._printed.get(msg.id, 0)
            text = msg.display_content
            if shown == 0 and text:
                sys.stdout.write("assistant> ")
            if len(text) > shown:
                sys.stdout.write(text[shown:])
                self._printed[msg.id] = len(text)
            if not msg.is_streaming:
                sys.stdout.write("\n")
                self._finished.add(msg.id)
        sys.stdout.flush()


async def _read_line(prompt: str) -> str | None:
    try:
        return await asyncio.get_running_loop().run_in_executor(None, input, prompt)
    except EOFError:
        return None


async def run(config: ClientConfig) -> None:
    state = ChatState(on_change=TerminalRenderer(), welcome=WELCOME_MESSAGE)
    manager = ConnectionManager(
        config,
        on_connect=lambda: print(f"[connected to {config.url}]", flush=True),
    )
    state.bind(manager)

    async with manager:
        while True:
            line = await _read_line("")
            if line is None or line.strip() == "/quit":
                break
            if not line.strip():
                continue
            if not await state.submit(line, manager):
                if not manager.is_connected:
                    print("[not connected - reconnecting, try again shortly]", flush=True)
                elif state.is_waiting:
                    print("[still answering the previous message]", flush=True)


def main():
    import argparse
    parser = argparse.ArgumentParser(description="Chat with the relay server from a terminal")
    parser.add_argument("--url", help="WebSocket endpoint (default: CHATRELAY_URL)")
    parser.add_argument("--reconnect-interval", type=float, help="Seconds between reconnect attempts")
    parser.add_argument("--max-reconnect-attempts", type=int, help="Give up after this many attempts")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = ClientConfig.from_env()
    overrides = {}
    if args.url:
        overrides["url"] = args.url
    if args.reconnect_interval is not None:
        overrides["reconnect_interval"] = args.reconnect_interval
    if args.max_reconnect_attempts is not None:
        overrides["max_reconnect_attempts"] = args.max_reconnect_attempts
    if overrides:
        config = replace(config, **overrides)

    try:
        asyncio.run(run(config))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
