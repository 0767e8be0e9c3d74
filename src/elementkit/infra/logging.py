"""
Logging setup.

Services log structured events through :func:`get_logger`; query internals use the
standard ``logging`` module directly. Both end up on the same stdlib handlers once
:func:`configure_logging` has run.
"""

from __future__ import annotations

import logging
import re
import sys
from collections.abc import Mapping
from typing import Any

import structlog

from .settings import settings

SECRET_KEYS = ("password", "secret", "token", "api_key", "database_url")

_URL_CREDENTIALS = re.compile(r"(?P<scheme>://)[^:/@\s]+:[^@\s]+@")
_SECRET_QUERY_PARAM = re.compile(r"(?P<name>password|token)=[^&\s]+", re.IGNORECASE)


def _scrub(value: Any) -> Any:
    if isinstance(value, str):
        value = _URL_CREDENTIALS.sub(r"\g<scheme>***@", value)
        return _SECRET_QUERY_PARAM.sub(r"\g<name>=***", value)
    if isinstance(value, Mapping):
        return {key: _scrub(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_scrub(item) for item in value]
    return value


def redact_secrets(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Blank out secret-looking keys and credentials embedded in URLs.

    User records and database URLs are the only secrets elementkit handles.
    """
    for key, value in list(event_dict.items()):
        if any(secret in key.lower() for secret in SECRET_KEYS):
            event_dict[key] = "***REDACTED***"
        else:
            event_dict[key] = _scrub(value)
    return event_dict


def configure_logging(level: str | None = None, *, json_logs: bool = True) -> None:
    """Route structlog through stdlib logging, rendering JSON (or console lines)."""
    # stdout is reserved for command output
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=(level or settings.log_level).upper())

    renderer: Any = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            redact_secrets,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """A lazy logger: modules create theirs at import, before logging is configured."""
    return structlog.get_logger(name, service="elementkit", env=settings.env)
