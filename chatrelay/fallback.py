"""Deterministic local replies used when no upstream generator answers."""

import asyncio
import random
from typing import AsyncIterator

GREETING_REPLY = (
    "Hello! How can I help you today? I am your AI assistant and ready to "
    "answer any questions you might have."
)
HOW_ARE_YOU_REPLY = (
    "I'm doing great, thank you for asking! As an AI, I'm always ready and "
    "eager to help. What can I do for you today?"
)
WEATHER_REPLY = (
    "I don't have access to real-time weather data, but I'd recommend checking "
    "a weather service like weather.com or your phone's weather app for "
    "accurate forecasts."
)
HELP_REPLY = (
    "I'd be happy to help! You can ask me questions about various topics, get "
    "explanations, or have a conversation. What would you like to know?"
)
THANKS_REPLY = "You're welcome! Is there anything else I can help you with?"
NAME_REPLY = (
    "I'm your friendly AI assistant! I'm here to help you with questions and "
    "have conversations."
)
CAPABILITIES_REPLY = (
    "I can help you with a variety of tasks! I can answer questions, have "
    "conversations, provide explanations, and more. Just ask me anything!"
)
DEFAULT_REPLY_TEMPLATE = (
    'Thanks for your message: "{message}". I\'m currently running in demo mode. '
    "To get real AI responses, configure an upstream text generator "
    "(for example set GEMINI_API_KEY) and restart the server!"
)

# Checked in order; the first keyword found anywhere in the lowercased input wins.
_KEYWORD_REPLIES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("hi", "hello"), GREETING_REPLY),
    (("how are you",), HOW_ARE_YOU_REPLY),
    (("weather",), WEATHER_REPLY),
    (("help",), HELP_REPLY),
    (("thank",), THANKS_REPLY),
    (("name",), NAME_REPLY),
    (("what can you do",), CAPABILITIES_REPLY),
)


def fallback_reply(message: str) -> str:
    """Pick the canned reply for *message*, or echo it back in the default template."""
    text = message.lower()
    for keywords, reply in _KEYWORD_REPLIES:
        if any(keyword in text for keyword in keywords):
            return reply
    return DEFAULT_REPLY_TEMPLATE.format(message=message)


async def stream_words(
    text: str,
    delay_min: float = 0.04,
    delay_max: float = 0.12,
) -> AsyncIterator[str]:
    """Yield *text* one word at a time, each followed by a single space.

    Sleeps a random ``[delay_min, delay_max]`` seconds before every word to
    simulate generation latency.
    """
    for word in text.split(" "):
        await asyncio.sleep(random.uniform(delay_min, delay_max))
        yield word + " "
