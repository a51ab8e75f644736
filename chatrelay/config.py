"""Server and client configuration, read once from the environment.

Values are captured into frozen dataclasses at startup and passed explicitly
to the components that need them; nothing reads the environment afterwards.
"""

import os
from dataclasses import dataclass

UPSTREAM_CHOICES = ("auto", "gemini", "claude", "none")

DEFAULT_GEMINI_MODELS = (
    "gemini-2.5-flash",
    "gemini-2.5-pro-preview-03-25",
)


def _env_float(name: str, default: float) -> float:
    return float(os.environ.get(name, str(default)))


def _env_int(name: str, default: int) -> int:
    return int(os.environ.get(name, str(default)))


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    """Split a comma-separated variable, falling back to *default* when empty."""
    raw = os.environ.get(name, "")
    items = tuple(item.strip() for item in raw.split(",") if item.strip())
    return items if items else default


@dataclass(frozen=True)
class ServerConfig:
    host: str = "localhost"
    port: int = 8080
    cors_origins: tuple[str, ...] = ("*",)
    upstream: str = "auto"
    gemini_api_key: str | None = None
    gemini_models: tuple[str, ...] = DEFAULT_GEMINI_MODELS
    upstream_first_chunk_timeout: float = 60.0  # seconds
    upstream_chunk_timeout: float = 15.0  # max wait between consecutive fragments
    fallback_thinking_delay: float = 0.8
    fallback_word_delay_min: float = 0.04
    fallback_word_delay_max: float = 0.12

    def __post_init__(self):
        if self.upstream not in UPSTREAM_CHOICES:
            raise ValueError(
                f"Unknown upstream {self.upstream!r}; expected one of {', '.join(UPSTREAM_CHOICES)}"
            )
        if self.fallback_word_delay_min > self.fallback_word_delay_max:
            raise ValueError("fallback_word_delay_min must not exceed fallback_word_delay_max")

    @classmethod
    def from_env(cls) -> "ServerConfig":
        return cls(
            host=os.environ.get("CHATRELAY_HOST", "localhost"),
            port=_env_int("CHATRELAY_PORT", 8080),
            cors_origins=_env_list("CHATRELAY_CORS_ORIGINS", ("*",)),
            upstream=os.environ.get("CHATRELAY_UPSTREAM", "auto").strip().lower(),
            gemini_api_key=os.environ.get("GEMINI_API_KEY") or None,
            gemini_models=_env_list("CHATRELAY_GEMINI_MODELS", DEFAULT_GEMINI_MODELS),
            upstream_first_chunk_timeout=_env_float("CHATRELAY_UPSTREAM_FIRST_CHUNK_TIMEOUT", 60.0),
            upstream_chunk_timeout=_env_float("CHATRELAY_UPSTREAM_CHUNK_TIMEOUT", 15.0),
            fallback_thinking_delay=_env_float("CHATRELAY_FALLBACK_THINKING_DELAY", 0.8),
            fallback_word_delay_min=_env_float("CHATRELAY_FALLBACK_WORD_DELAY_MIN", 0.04),
            fallback_word_delay_max=_env_float("CHATRELAY_FALLBACK_WORD_DELAY_MAX", 0.12),
        )


@dataclass(frozen=True)
class ClientConfig:
    url: str = "ws://localhost:8080/ws/chat"
    reconnect_interval: float = 3.0  # seconds
    max_reconnect_attempts: int = 5
    open_timeout: float = 10.0

    def __post_init__(self):
        if self.max_reconnect_attempts < 0:
            raise ValueError("max_reconnect_attempts must be >= 0")
        if self.reconnect_interval < 0:
            raise ValueError("reconnect_interval must be >= 0")

    @classmethod
    def from_env(cls) -> "ClientConfig":
        return cls(
            url=os.environ.get("CHATRELAY_URL", "ws://localhost:8080/ws/chat"),
            reconnect_interval=_env_float("CHATRELAY_RECONNECT_INTERVAL", 3.0),
            max_reconnect_attempts=_env_int("CHATRELAY_MAX_RECONNECT_ATTEMPTS", 5),
            open_timeout=_env_float("CHATRELAY_OPEN_TIMEOUT", 10.0),
        )
