"""Pydantic models and dialect tables shared by the client layers.

Defines the message and request shapes sent on the wire, the client
configuration, and the per-dialect endpoint paths and reply field paths.
"""

import os
from enum import Enum
from typing import Literal

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT = 120.0


class ApiDialect(str, Enum):
    """Request/response convention spoken by an endpoint."""
    OLLAMA = "ollama"
    OPENWEBUI = "openwebui"
    UNKNOWN = "unknown"


class ContextMode(str, Enum):
    """Which slice of history goes out with a new user message."""
    FULL = "full"
    SUMMARY = "summary"
    MINIMAL = "minimal"


class Message(BaseModel):
    """Single conversation turn."""
    model_config = ConfigDict(frozen=True)

    role: Literal["system", "user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    """Body POSTed to the chat endpoint. Same shape for every dialect."""
    model: str
    messages: list[Message]
    temperature: float
    stream: Literal[False] = False


# (models path, chat path) per dialect. Unknown endpoints get the OpenAI-style pair.
ENDPOINT_PATHS: dict[ApiDialect, tuple[str, str]] = {
    ApiDialect.OLLAMA: ("/api/tags", "/api/chat"),
    ApiDialect.OPENWEBUI: ("/api/models", "/api/chat/completions"),
    ApiDialect.UNKNOWN: ("/api/models", "/api/chat/completions"),
}

# Where each dialect keeps the reply text. Checked in this order: a response
# carrying a non-empty `choices` list is read as OpenWebUI even if it also has `message`.
REPLY_PATHS: list[tuple[ApiDialect, tuple[str | int, ...]]] = [
    (ApiDialect.OPENWEBUI, ("choices", 0, "message", "content")),
    (ApiDialect.OLLAMA, ("message", "content")),
]


class EndpointMap(BaseModel):
    """Resolved URLs for the models listing and chat calls."""
    model_config = ConfigDict(frozen=True)

    models: str
    chat: str

    @classmethod
    def for_dialect(cls, base_url: str, dialect: ApiDialect) -> "EndpointMap":
        """Build the endpoint pair for a dialect under a base URL.

        Args:
            base_url: Server root, with or without a trailing slash.
            dialect: Detected dialect.

        Returns:
            EndpointMap with absolute URLs.
        """
        base = base_url.rstrip("/")
        models_path, chat_path = ENDPOINT_PATHS[dialect]
        return cls(models=f"{base}{models_path}", chat=f"{base}{chat_path}")


def _default_timeout() -> float | None:
    raw = os.environ.get("LLM_TIMEOUT", "")
    if not raw:
        return DEFAULT_TIMEOUT
    try:
        value = float(raw)
    except ValueError:
        logger.warning("config.invalid_timeout", value=raw, fallback=DEFAULT_TIMEOUT)
        return DEFAULT_TIMEOUT
    return value if value > 0 else None


class ClientConfig(BaseModel):
    """Connection settings for one LLM client. Immutable once built."""
    model_config = ConfigDict(frozen=True)

    base_url: str = Field(default="http://localhost:11434/", validate_default=True)
    model: str = "Gemma3"
    token: str = Field(default="", validate_default=True)
    temperature: float = 0.2
    timeout: float | None = Field(default_factory=_default_timeout)

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("token", mode="before")
    @classmethod
    def _resolve_token(cls, value: str | None) -> str:
        # An explicit token wins; otherwise fall back to the environment.
        if value:
            return value
        return os.environ.get("LLM_API_TOKEN", "")
