"""Terminal chat loop.

Thin front end over Conversation. This file handles:
  - Prompt rendering with optional ANSI colours
  - Exit commands and /models
  - Turning every failed turn into a printed warning instead of a crash
"""

from typing import Callable

import structlog

from voltchat.cli.options import Options
from voltchat.core.conversation import Conversation
from voltchat.core.model_listing import render_model_listing

logger = structlog.get_logger(__name__)

EXIT_COMMANDS = ("/exit", "/bye", "/quit")


class Colors:
    RESET = "\033[0m"
    USER = "\033[32m"   # green
    MODEL = "\033[36m"  # cyan


def _paint(text: str, color: str, enabled: bool) -> str:
    return f"{color}{text}{Colors.RESET}" if enabled else text


def user_prompt(options: Options) -> str:
    return f"🧠 {_paint(options.handle, Colors.USER, not options.no_color)} > "


def reply_line(options: Options, reply: str) -> str:
    return f"🤖 {_paint(options.model, Colors.MODEL, not options.no_color)} > {reply}\n"


def handle_input(conversation: Conversation, options: Options, text: str,
                 write: Callable[[str], None]) -> bool:
    """Process one line of user input.

    Returns:
        False when the user asked to leave, True otherwise.
    """
    if not text.strip():
        return True

    if text in EXIT_COMMANDS:
        return False

    if text.startswith("/models"):
        write(render_model_listing(conversation.client.get_models()))
        return True

    try:
        reply = conversation.send(text, options.context)
    except Exception as e:
        logger.error("repl.turn_failed", error=str(e))
        write(f"[ERROR] {e}")
        return True

    if reply and reply.strip():
        write(reply_line(options, reply))
    else:
        write("[WARN] No response received.\n")
    return True


def run_repl(
    conversation: Conversation,
    options: Options,
    read_line: Callable[[str], str] = input,
    write: Callable[[str], None] = print,
) -> int:
    """Run the interactive loop until an exit command or end of input.

    Args:
        conversation: Conversation to drive.
        options: Display and context settings.
        read_line: Prompt-and-read function, `input` by default.
        write: Output function, `print` by default.

    Returns:
        Process exit code.
    """
    write(f"Interactive chat with model: {options.model} @ {options.base_url} "
          f"({conversation.client.dialect.value})")
    write("Type /exit, /bye or /quit (or press Ctrl+C) to quit.\n")

    while True:
        try:
            text = read_line(user_prompt(options))
        except (EOFError, KeyboardInterrupt):
            write("")
            break

        if not handle_input(conversation, options, text, write):
            break

    write("👋 Conversation ended.")
    return 0
