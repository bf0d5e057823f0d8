"""Command-line options for the chat REPL."""

import argparse
import os
import sys
from dataclasses import dataclass

import structlog

from voltchat.api.schemas import ContextMode

logger = structlog.get_logger(__name__)


@dataclass
class Options:
    """Parsed REPL settings.

    Attributes:
        model: Model name sent with every request.
        handle: Display name shown in the user prompt.
        base_url: Server root URL.
        token: Bearer token from LLM_API_TOKEN, or None.
        no_color: Disable ANSI colours in prompts.
        context: Context-assembly strategy for each turn.
        temperature: Sampling temperature.
    """
    model: str = "Gemma3:1b"
    handle: str = "You"
    base_url: str = "http://localhost:11434/"
    token: str | None = None
    no_color: bool = False
    context: ContextMode = ContextMode.FULL
    temperature: float = 0.2


class _LenientParser(argparse.ArgumentParser):
    """Raises instead of exiting so a bad flag can be skipped."""

    def error(self, message):
        raise ValueError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _LenientParser(
        prog="voltchat",
        description="Interactive chat with an Ollama or OpenWebUI endpoint.",
        allow_abbrev=False,
    )
    parser.add_argument("--model", default=Options.model, help="Model name")
    parser.add_argument("--handle", default=Options.handle, help="Your display name in the prompt")
    parser.add_argument("--base-url", dest="base_url", default=Options.base_url, help="Server base URL")
    parser.add_argument("--no-color", dest="no_color", action="store_true", help="Disable coloured prompts")
    parser.add_argument("--context", type=ContextMode, choices=[m.value for m in ContextMode], default=Options.context,
                        help="How much history to send with each message")
    parser.add_argument("--temperature", type=float, default=Options.temperature, help="Sampling temperature")
    return parser


def parse_options(argv: list[str] | None = None) -> Options:
    """Parse CLI flags. Unrecognized or malformed flags are ignored.

    A flag missing its value (`--model`) or with an unparsable one
    (`--temperature=hot`) is logged and skipped; the rest still apply.

    Args:
        argv: Arguments without the program name. Defaults to sys.argv[1:].

    Returns:
        Options with the token read from LLM_API_TOKEN.
    """
    argv = sys.argv[1:] if argv is None else list(argv)
    parser = build_parser()
    try:
        args, _unknown = parser.parse_known_args(argv)
    except ValueError:
        # Fall back to one flag at a time so a single bad flag only loses itself.
        args = parser.parse_known_args([])[0]
        for arg in argv:
            try:
                parser.parse_known_args([arg], namespace=args)
            except ValueError as e:
                logger.warning("options.flag_ignored", arg=arg, error=str(e))
    return Options(
        model=args.model,
        handle=args.handle,
        base_url=args.base_url,
        token=os.environ.get("LLM_API_TOKEN"),
        no_color=args.no_color,
        context=args.context,
        temperature=args.temperature,
    )
