"""
Structured Logging
structlog over stdlib logging, with identity context and secret redaction
"""
from __future__ import annotations

import logging
import sys
from typing import Any, MutableMapping

import structlog

# Event keys whose values never reach a log sink.
REDACTED_KEYS = frozenset(
    {
        "password",
        "new_password",
        "access_token",
        "refresh_token",
        "authorization",
        "api_key",
        "apikey",
        "two_factor_secret",
        "secret",
        "backup_codes",
    }
)

# Libraries that log every request at INFO.
_NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "aiosqlite", "asyncio")


def redact_secrets(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Mask credential-bearing fields before rendering."""
    for key in list(event_dict):
        if key.lower() in REDACTED_KEYS and event_dict[key] is not None:
            event_dict[key] = "***"
    return event_dict


def configure_logging(log_level: str = "INFO", json_logs: bool = True) -> None:
    """
    Configure structlog and the stdlib root logger.

    JSON lines in deployed environments, coloured console output locally.
    Context bound with ``bind_context`` (identity_id, organization_id) is
    merged into every event emitted from the same task.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level, force=True)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        redact_secrets,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    processors.append(
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Usage:
        logger = get_logger(__name__)
        logger.info("Profile resolved", identity_id=identity.id, attempt=3)
    """
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Add fields to every later event in the current task (request, session pass)."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
