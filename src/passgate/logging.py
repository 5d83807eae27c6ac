"""Structured logging for passgate, built on structlog.

Events are snake_case names with keyword context, rendered to stderr so
they never interleave with data on stdout. Login context can carry
credentials, so a redaction step runs before any renderer sees an event.
"""

import logging as stdlib_logging
import sys
from typing import Any

import structlog
from structlog.typing import EventDict, WrappedLogger

REDACTED = "<redacted>"

# Request field and session attribute names whose values must not reach a log.
SECRET_KEYS = frozenset(
    {
        "hash",
        "otp",
        "password",
        "sessionid",
        "token",
        "uuid",
        "derived_key",
        "private_key",
    }
)


def add_log_level(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Record the level under ``level``, spelling ``warn`` as ``warning``."""
    event_dict["level"] = "warning" if method_name == "warn" else method_name
    return event_dict


def redact_secrets(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Mask values logged under a name in ``SECRET_KEYS``."""
    for key in SECRET_KEYS.intersection(event_dict):
        if event_dict[key] is not None:
            event_dict[key] = REDACTED
    return event_dict


def _renderer(json_output: bool) -> Any:
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(
    level: str = "WARNING",
    json_output: bool = False,
) -> None:
    """Configure structlog for passgate.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Unknown names fall back to INFO.
        json_output: Render one JSON object per line instead of the
            human-friendly console format.
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        add_log_level,
        redact_secrets,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _renderer(json_output),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(stdlib_logging, level.upper(), stdlib_logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def enable_network_debug() -> None:
    """Turn on wire-level debug logging for requests/urllib3.

    Form bodies are not logged by urllib3, but headers are, including the
    session cookie. Only use this when diagnosing transport problems.
    """
    import http.client

    http.client.HTTPConnection.debuglevel = 1
    stdlib_logging.basicConfig(level=stdlib_logging.DEBUG, stream=sys.stderr)
    stdlib_logging.getLogger("urllib3").setLevel(stdlib_logging.DEBUG)


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Return a structlog logger, conventionally ``get_logger(__name__)``."""
    return structlog.get_logger(name)
