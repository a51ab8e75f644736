import asyncio
import logging
from typing import AsyncIterator

from claude_code_sdk import AssistantMessage, ClaudeCodeOptions, TextBlock, query

from .base import TextGenerator

logger = logging.getLogger(__name__)


MAX_MESSAGE_SIZE = 10 * 1024  # 10KB
MAX_RETRIES = 1
RETRY_BACKOFF = 1.0  # seconds

SYSTEM_PROMPT = (
    "You are a friendly, concise chat assistant. Answer the user's message "
    "directly in plain prose. Use markdown only when it helps readability."
)


class ClaudeGenerator(TextGenerator):
    """Text generator backed by the Claude Code SDK, one stateless query per prompt."""

    name = "claude"

    def __init__(self, system_prompt: str = SYSTEM_PROMPT):
        self.options = ClaudeCodeOptions(
            system_prompt=system_prompt,
            allowed_tools=[],
            max_turns=1,
        )

    async def generate(self, prompt: str) -> str:
        parts = []
        async for chunk in self.stream_generate(prompt):
            parts.append(chunk)
        return "".join(parts)

    async def stream_generate(self, prompt: str) -> AsyncIterator[str]:
        """Send a prompt and yield text blocks as they arrive.

        Retries only happen before the first chunk is yielded. Once any chunk
        has been sent to the caller, errors are propagated immediately to avoid
        duplicate output.
        """
        if len(prompt.encode("utf-8")) > MAX_MESSAGE_SIZE:
            raise ValueError(
                f"Message too large ({len(prompt.encode('utf-8'))} bytes). "
                f"Maximum allowed size is {MAX_MESSAGE_SIZE} bytes (10KB)."
            )

        for attempt in range(1 + MAX_RETRIES):
            if attempt > 0:
                await asyncio.sleep(RETRY_BACKOFF * attempt)
            chunk_yielded = False
            try:
                async for msg in query(prompt=prompt, options=self.options):
                    if isinstance(msg, AssistantMessage):
                        for block in msg.content:
                            if isinstance(block, TextBlock) and block.text:
                                chunk_yielded = True
                                yield block.text
                return  # success
            except Exception:
                if chunk_yielded or attempt >= MAX_RETRIES:
                    raise
                logger.warning("Claude query failed (attempt %d), retrying", attempt + 1, exc_info=True)
