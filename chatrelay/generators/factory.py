"""
Upstream generator factory.

Builds the process-wide generator once at startup from ServerConfig, or
returns None when the relay should answer from the local fallback only.
"""

import asyncio
import logging

from ..config import ServerConfig
from .base import TextGenerator

logger = logging.getLogger(__name__)

CLAUDE_PROBE_TIMEOUT = 30  # seconds


async def build_generator(config: ServerConfig) -> TextGenerator | None:
    upstream = config.upstream
    if upstream == "auto":
        upstream = "gemini" if config.gemini_api_key else "none"

    if upstream == "none":
        logger.info("No upstream generator configured - using fallback responses")
        return None

    if upstream == "gemini":
        if not config.gemini_api_key:
            logger.warning("CHATRELAY_UPSTREAM=gemini but no GEMINI_API_KEY found - using fallback responses")
            return None
        from .gemini import GeminiGenerator
        return await GeminiGenerator.probe(config.gemini_api_key, config.gemini_models)

    from .claude import ClaudeGenerator
    generator = ClaudeGenerator()
    try:
        text = await asyncio.wait_for(generator.generate("Hi"), timeout=CLAUDE_PROBE_TIMEOUT)
    except Exception:
        logger.exception("Claude generator failed its startup probe - using fallback responses")
        return None
    if not text:
        logger.warning("Claude generator returned an empty probe response - using fallback responses")
        return None
    logger.info("Connected to Claude generator")
    return generator
