from abc import ABC, abstractmethod
from typing import AsyncIterator


class TextGenerator(ABC):
    """Abstract base class for upstream text generators.

    Provides both full-response generation and async streaming generation.
    Providers that cannot stream only need to implement ``generate``; the
    default ``stream_generate`` yields the full response as a single fragment.
    """

    name: str = "generator"

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """Asynchronously generate the full response text for *prompt*."""

    async def stream_generate(self, prompt: str) -> AsyncIterator[str]:
        """Asynchronously stream the response. Yields string fragments as they arrive.

        The returned iterator is finite and cannot be restarted.
        """
        text = await self.generate(prompt)
        if text:
            yield text
