"""HTTP client for Ollama and OpenWebUI chat endpoints.

Detects the endpoint dialect once, then sends non-streaming chat requests and
pulls the assistant reply out of whichever response shape comes back.
Transport failures never reach the caller: a failed chat turn returns "" and
a failed model listing returns {}.
"""

from typing import Any, Iterable

import requests
import structlog

from voltchat.api.schemas import (
    REPLY_PATHS,
    ApiDialect,
    ChatRequest,
    ClientConfig,
    EndpointMap,
    Message,
)
from voltchat.core.prober import probe_endpoint
from voltchat.core.prompts import ONE_SHOT_SYSTEM_PROMPT

logger = structlog.get_logger(__name__)


class TransportError(Exception):
    """Network, HTTP status or JSON decoding failure on a request."""
    pass


def _walk(body: Any, path: tuple[str | int, ...]) -> Any:
    """Follow a key/index path through parsed JSON. None if any hop is missing."""
    node = body
    for key in path:
        if isinstance(key, int):
            if not isinstance(node, list) or len(node) <= key:
                return None
        elif not isinstance(node, dict):
            return None
        node = node[key] if isinstance(key, int) else node.get(key)
        if node is None:
            return None
    return node


def _matches_shape(body: dict, dialect: ApiDialect) -> bool:
    if dialect is ApiDialect.OPENWEBUI:
        choices = body.get("choices")
        return isinstance(choices, list) and len(choices) > 0
    return body.get("message") is not None


def extract_reply(body: Any, log=None) -> str:
    """Pull the assistant text out of a chat response body.

    Args:
        body: Parsed JSON response.
        log: structlog-style logger for the unexpected-shape warning.

    Returns:
        Reply text, or "" if the body has no recognizable reply.
    """
    log = log or logger
    if isinstance(body, dict):
        for dialect, path in REPLY_PATHS:
            if _matches_shape(body, dialect):
                content = _walk(body, path)
                return "" if content is None else str(content)

    log.warning("llm.unexpected_json_structure",
                keys=sorted(body) if isinstance(body, dict) else type(body).__name__)
    return ""


class LLMClient:
    """Talks to one LLM endpoint in whichever dialect it speaks."""

    def __init__(
        self,
        base_url: str = "http://localhost:11434/",
        token: str | None = "",
        model: str = "Gemma3",
        temperature: float = 0.2,
        timeout: float | None = None,
        session: requests.Session | None = None,
        detect: bool = True,
        log=None,
        config: ClientConfig | None = None,
    ):
        if config is None:
            settings = dict(base_url=base_url, token=token, model=model, temperature=temperature)
            if timeout is not None:
                settings["timeout"] = timeout
            config = ClientConfig(**settings)
        self.config = config

        self._log = log or logger
        self._session = session or requests.Session()
        self._dialect = ApiDialect.UNKNOWN
        self._endpoints = EndpointMap.for_dialect(self.config.base_url, ApiDialect.UNKNOWN)

        if detect:
            self.detect_dialect()

    @classmethod
    def from_config(cls, config: ClientConfig, **kwargs) -> "LLMClient":
        """Build a client from an existing ClientConfig."""
        return cls(config=config, **kwargs)

    @property
    def dialect(self) -> ApiDialect:
        return self._dialect

    @property
    def endpoints(self) -> EndpointMap:
        return self._endpoints

    def detect_dialect(self) -> ApiDialect:
        """Probe the endpoint and remember its dialect and URLs.

        Runs automatically from the constructor unless `detect=False` was
        passed, in which case call it before the first request. Calling it
        again re-runs detection and replaces the stored dialect.
        """
        self._dialect, self._endpoints = probe_endpoint(
            self.config.base_url,
            token=self.config.token,
            session=self._session,
            timeout=self.config.timeout,
            log=self._log,
        )
        return self._dialect

    def close(self) -> None:
        """Release the underlying HTTP session."""
        self._session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.config.token}"}

    def _request_json(self, method: str, url: str, **kwargs) -> Any:
        """Issue a request and decode the JSON body.

        Raises:
            TransportError: On connection errors, timeouts, non-2xx statuses
                or an undecodable body.
        """
        try:
            resp = self._session.request(method, url, timeout=self.config.timeout, **kwargs)
            resp.raise_for_status()
            return resp.json()
        except requests.HTTPError as e:
            raise TransportError(f"{method} {url} returned {e.response.status_code}") from e
        except (requests.RequestException, ValueError) as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

    def get_models(self) -> dict:
        """Fetch the raw model listing from the models endpoint.

        Returns:
            Parsed JSON object, or {} if the request failed.
        """
        headers = self._auth_headers()
        headers["Accept"] = "application/json"
        try:
            body = self._request_json("GET", self._endpoints.models, headers=headers)
        except TransportError as e:
            self._log.error("llm.request_failed", op="models", error=str(e))
            return {}

        if not isinstance(body, dict):
            self._log.error("llm.request_failed", op="models",
                            error=f"expected a JSON object, got {type(body).__name__}")
            return {}
        return body

    def send_conversation(self, messages: Iterable[Message | dict]) -> str:
        """Send an ordered message list and return the assistant reply.

        Args:
            messages: Conversation to send, oldest first.

        Returns:
            Reply text. "" if the request failed or the response had no reply.
        """
        payload = ChatRequest(
            model=self.config.model,
            messages=list(messages),
            temperature=self.config.temperature,
        )
        self._log.debug("llm.invoke", dialect=self._dialect.value, model=self.config.model,
                        messages=len(payload.messages))

        try:
            body = self._request_json(
                "POST",
                self._endpoints.chat,
                json=payload.model_dump(mode="json"),
                headers=self._auth_headers(),
            )
        except TransportError as e:
            self._log.error("llm.request_failed", op="chat", error=str(e))
            return ""

        return extract_reply(body, log=self._log)

    def send_prompt(self, prompt: str, system_prompt: str = "") -> str:
        """One-shot request: a system message plus a single user message."""
        messages = [
            Message(role="system", content=system_prompt or ONE_SHOT_SYSTEM_PROMPT),
            Message(role="user", content=prompt),
        ]
        return self.send_conversation(messages)
