"""Human-readable rendering of a models endpoint response."""

from typing import Any

import structlog

logger = structlog.get_logger(__name__)

FEATURE_NOT_AVAILABLE = "Feature not available."

# (list key, id field) per response shape: OpenWebUI lists under `data`, Ollama under `models`.
LISTING_SHAPES: list[tuple[str, str]] = [
    ("data", "id"),
    ("models", "model"),
]


def _field(entry: dict, key: str) -> str:
    value = entry.get(key)
    return "??" if value is None else str(value)


def model_lines(body: Any, log=None) -> list[str] | None:
    """One "<name> - <id>" line per model.

    Args:
        body: Parsed JSON from the models endpoint, or None.
        log: structlog-style logger for skipped entries.

    Returns:
        Lines in server order, or None if the body matches no known shape.
    """
    log = log or logger
    if not isinstance(body, dict):
        return None

    for list_key, id_key in LISTING_SHAPES:
        entries = body.get(list_key)
        if not isinstance(entries, list):
            continue

        lines = []
        for i, entry in enumerate(entries):
            if not isinstance(entry, dict):
                log.warning("models.entry_unparseable", index=i, type=type(entry).__name__)
                continue
            lines.append(f"{_field(entry, 'name')} - {_field(entry, id_key)}")
        return lines

    return None


def render_model_listing(body: Any, log=None) -> str:
    """Format a models response for the terminal."""
    lines = model_lines(body, log=log)
    if lines is None:
        return FEATURE_NOT_AVAILABLE
    return "\n".join(["Available Models:"] + [f"\t{line}" for line in lines])
