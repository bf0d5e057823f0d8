"""Endpoint dialect detection.

Probes a base URL with each known dialect in turn and returns the first one
that answers. Every probe handles its own errors: a refused connection, a
timeout or a non-200 status just means "not this dialect".
"""

from typing import Callable

import requests
import structlog

from voltchat.api.schemas import ApiDialect, EndpointMap

logger = structlog.get_logger(__name__)

ProbeFn = Callable[[requests.Session, str, str, float | None], bool]


def _probe_ollama(session: requests.Session, base_url: str, token: str,
                  timeout: float | None) -> bool:
    """Ollama answers GET /api/tags without auth."""
    resp = session.get(f"{base_url}/api/tags", timeout=timeout)
    return resp.status_code == 200


def _probe_openwebui(session: requests.Session, base_url: str, token: str,
                     timeout: float | None) -> bool:
    """OpenWebUI answers GET /api/models with a `data` (or `choices`) object."""
    resp = session.get(
        f"{base_url}/api/models",
        headers={
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        },
        timeout=timeout,
    )
    if resp.status_code != 200:
        return False
    body = resp.json()
    return isinstance(body, dict) and ("data" in body or "choices" in body)


# First match wins.
PROBES: list[tuple[ProbeFn, ApiDialect]] = [
    (_probe_ollama, ApiDialect.OLLAMA),
    (_probe_openwebui, ApiDialect.OPENWEBUI),
]


def _warn_missing_token(log) -> None:
    log.warning("probe.missing_token",
                hint="Please set LLM_API_TOKEN in your environment or .env file.")
    log.info("probe.token_help", shell="export LLM_API_TOKEN=\"your-secret-token-here\"")
    log.info("probe.token_help",
             powershell="$env:LLM_API_TOKEN = \"your-secret-token-here\"")


def probe_endpoint(
    base_url: str,
    token: str = "",
    session: requests.Session | None = None,
    timeout: float | None = None,
    log=None,
) -> tuple[ApiDialect, EndpointMap]:
    """Classify an endpoint and resolve its models/chat URLs.

    Args:
        base_url: Server root, with or without a trailing slash.
        token: Bearer token sent to the authenticated probe. May be empty.
        session: HTTP session to reuse. A throwaway one is used if omitted.
        timeout: Per-probe timeout in seconds, None to wait indefinitely.
        log: structlog-style logger. Defaults to this module's logger.

    Returns:
        (dialect, endpoints). Never raises on network or HTTP errors;
        an endpoint that matches nothing comes back as UNKNOWN.
    """
    log = log or logger
    base = base_url.rstrip("/")
    http = session or requests.Session()

    try:
        for probe, dialect in PROBES:
            try:
                matched = probe(http, base, token, timeout)
            except (requests.RequestException, ValueError) as e:
                log.debug("probe.miss", dialect=dialect.value, error=str(e))
                continue

            if not matched:
                log.debug("probe.miss", dialect=dialect.value)
                continue

            log.info("probe.hit", dialect=dialect.value, base_url=base)
            if dialect is ApiDialect.OPENWEBUI and not token:
                _warn_missing_token(log)
            return dialect, EndpointMap.for_dialect(base, dialect)
    finally:
        if session is None:
            http.close()

    log.warning("probe.unknown", base_url=base)
    return ApiDialect.UNKNOWN, EndpointMap.for_dialect(base, ApiDialect.UNKNOWN)
