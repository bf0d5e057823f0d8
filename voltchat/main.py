"""Command-line entry point.

Startup sequence: load .env → configure logging → parse flags → detect
endpoint dialect → run the chat loop.
"""

import logging
import os
import sys

import structlog
from dotenv import load_dotenv

from voltchat.api.schemas import ClientConfig
from voltchat.cli.options import parse_options
from voltchat.cli.repl import run_repl
from voltchat.core.conversation import Conversation
from voltchat.core.llm_client import LLMClient

logger = structlog.get_logger(__name__)


def configure_logging(level_name: str | None = None) -> None:
    """Route structlog output to stderr, filtered by LOG_LEVEL (default WARNING)."""
    name = (level_name or os.environ.get("LOG_LEVEL", "WARNING")).upper()
    level = getattr(logging, name, logging.WARNING)
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def main(argv: list[str] | None = None) -> int:
    """Run the interactive chat client."""
    load_dotenv()
    configure_logging()

    options = parse_options(argv)
    config = ClientConfig(
        base_url=options.base_url,
        model=options.model,
        token=options.token,
        temperature=options.temperature,
    )
    logger.info("startup.begin", base_url=config.base_url, model=config.model)

    with LLMClient.from_config(config) as client:
        logger.info("startup.dialect_detected", dialect=client.dialect.value)
        conversation = Conversation(client=client)
        return run_repl(conversation, options)


if __name__ == "__main__":
    sys.exit(main())
