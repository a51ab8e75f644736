"""
Gemini generator backed by the google-generativeai SDK.

Implements:
- generate()
- stream_generate()
- probe()              <-- picks the first configured model that answers
"""

import asyncio
import logging
from typing import AsyncIterator, Iterable

import google.generativeai as genai

from ..errors import UpstreamError
from .base import TextGenerator

logger = logging.getLogger(__name__)

PROBE_PROMPT = "Hi"
PROBE_TIMEOUT = 20  # seconds per model


class GeminiGenerator(TextGenerator):
    name = "gemini"

    def __init__(self, api_key: str, model: str = "gemini-2.5-flash"):
        if not api_key:
            raise UpstreamError("GEMINI_API_KEY not configured.")
        genai.configure(api_key=api_key)
        self.model_name = model
        self._model = genai.GenerativeModel(self._resolve_model(model))

    # -----------------------------------------------------
    # Model Resolution
    # -----------------------------------------------------
    @staticmethod
    def _resolve_model(model: str) -> str:
        """Convert 'gemini-2.5-flash' → 'models/gemini-2.5-flash'."""
        if model.startswith("models/"):
            return model
        return f"models/{model}"

    # -----------------------------------------------------
    # Response Extraction
    # -----------------------------------------------------
    @staticmethod
    def _extract_text(obj) -> str:
        """Extract text from Gemini objects (stream or non-stream).

        ``response.text`` raises when a candidate carries no text parts, so
        walk the candidates instead.
        """
        parts = []
        for cand in getattr(obj, "candidates", None) or []:
            content = getattr(cand, "content", None)
            if not content:
                continue
            for part in getattr(content, "parts", []):
                text = getattr(part, "text", None)
                if text:
                    parts.append(text)
        return "".join(parts)

    async def generate(self, prompt: str) -> str:
        response = await self._model.generate_content_async(prompt)
        return self._extract_text(response)

    async def stream_generate(self, prompt: str) -> AsyncIterator[str]:
        stream = await self._model.generate_content_async(prompt, stream=True)
        async for chunk in stream:
            text = self._extract_text(chunk)
            if text:
                yield text

    @classmethod
    async def probe(cls, api_key: str, models: Iterable[str]) -> "GeminiGenerator | None":
        """Try each model with a short prompt and return the first that answers."""
        for model in models:
            logger.info("Trying Gemini model %s...", model)
            try:
                generator = cls(api_key, model)
                text = await asyncio.wait_for(generator.generate(PROBE_PROMPT), timeout=PROBE_TIMEOUT)
            except Exception as e:
                logger.warning("Gemini model %s failed: %s", model, str(e)[:80])
                continue
            if text:
                logger.info("Connected to Gemini model %s", model)
                return generator
            logger.warning("Gemini model %s returned an empty response", model)
        logger.warning("All Gemini models failed; using fallback responses")
        return None
