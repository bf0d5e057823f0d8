"""Conversation history and context assembly.

Keeps the ordered message list for one chat (system message first), picks
which part of it goes out with each new user message, and saves/loads the
whole list as a JSON transcript.
"""

import json
from pathlib import Path

import structlog
from pydantic import TypeAdapter, ValidationError

from voltchat.api.schemas import ContextMode, Message
from voltchat.core.llm_client import LLMClient
from voltchat.core.prompts import CONVERSATION_SYSTEM_PROMPT

logger = structlog.get_logger(__name__)

NO_RESPONSE = "[NO RESPONSE]"

_transcript_adapter = TypeAdapter(list[Message])


class TranscriptError(OSError):
    """Transcript file is missing, unreadable or not a valid transcript."""
    pass


class Conversation:
    """Linear chat transcript bound to one LLM client."""

    def __init__(
        self,
        model: str = "gemma3",
        system_prompt: str | None = None,
        token: str | None = None,
        base_url: str = "http://localhost:11434/",
        client: LLMClient | None = None,
        log=None,
    ):
        self._log = log or logger
        self.client = client or LLMClient(base_url=base_url, token=token, model=model, log=self._log)
        self._messages: list[Message] = [
            Message(role="system", content=system_prompt or CONVERSATION_SYSTEM_PROMPT)
        ]

    @property
    def messages(self) -> tuple[Message, ...]:
        """Snapshot of the history, oldest first."""
        return tuple(self._messages)

    @property
    def system_prompt(self) -> str:
        return self._messages[0].content

    def build_context(self, user_content: str, mode: ContextMode = ContextMode.MINIMAL) -> list[Message]:
        """Assemble the message list for a new user turn without sending it.

        Args:
            user_content: The new user message.
            mode: FULL sends the whole history, SUMMARY sends the system
                message plus prior assistant replies, MINIMAL sends only the
                system message.

        Returns:
            Messages to send, ending with the new user message.
        """
        mode = ContextMode(mode)
        if mode is ContextMode.FULL:
            prompt = list(self._messages)
        elif mode is ContextMode.SUMMARY:
            prompt = [self._messages[0]]
            prompt.extend(m for m in self._messages[1:] if m.role == "assistant")
        else:
            prompt = [self._messages[0]]

        prompt.append(Message(role="user", content=user_content))
        return prompt

    def send(self, user_content: str, mode: ContextMode = ContextMode.MINIMAL) -> str:
        """Send a user message and record the exchange.

        Both the user message and the reply are appended even when the
        request failed and the reply is empty.

        Returns:
            The reply as returned by the client.
        """
        prompt = self.build_context(user_content, mode)
        self._log.info("conversation.send", mode=ContextMode(mode).value,
                       context_len=len(prompt), history_len=len(self._messages))

        reply = self.client.send_conversation(prompt)

        self._messages.append(Message(role="user", content=user_content))
        self._messages.append(Message(role="assistant", content=reply if reply is not None else NO_RESPONSE))
        return reply

    def send_with_full_context(self, user_content: str) -> str:
        return self.send(user_content, ContextMode.FULL)

    def send_with_summary_context(self, user_content: str) -> str:
        return self.send(user_content, ContextMode.SUMMARY)

    def save_transcript(self, path: str | Path) -> None:
        """Write the full history as a pretty-printed JSON array.

        Args:
            path: Destination file. Overwritten if it exists.
        """
        data = [m.model_dump() for m in self._messages]
        Path(path).write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        self._log.info("conversation.saved", path=str(path), messages=len(data))

    def load_transcript(self, path: str | Path) -> None:
        """Replace the history with the transcript stored at `path`.

        The file is fully read and validated before anything is replaced, so
        a failed load leaves the current history intact.

        Raises:
            TranscriptError: If the file is missing, unreadable, not valid
                JSON, or not a list of messages starting with a system message.
        """
        try:
            raw = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise TranscriptError(f"Cannot read transcript {path}: {e}") from e

        try:
            loaded = _transcript_adapter.validate_json(raw)
        except ValidationError as e:
            raise TranscriptError(f"Invalid transcript {path}: {e.error_count()} error(s)") from e

        if not loaded or loaded[0].role != "system":
            raise TranscriptError(f"Invalid transcript {path}: first message must be a system message")

        self._messages.clear()
        self._messages.extend(loaded)
        self._log.info("conversation.loaded", path=str(path), messages=len(loaded))
