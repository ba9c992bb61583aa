"""Structured logging configuration using structlog.

Every event carries the service name and version, and values under
credential-like keys (bearer tokens, the JWT secret) are masked before
rendering.
"""

import logging
import sys
from typing import Any
import structlog
from video_library import __version__
from video_library.config import settings

SERVICE_NAME = "video-library"
REDACTED = "***REDACTED***"

SENSITIVE_KEYS = frozenset({
    "authorization",
    "token",
    "access_token",
    "credentials",
    "jwt_secret",
    "secret",
    "secret_key",
    "minio_secret_key",
})


def _redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            key: REDACTED if str(key).lower() in SENSITIVE_KEYS else _redact(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_redact(item) for item in value]
    return value


def redact_sensitive_fields(logger, method_name: str, event_dict: dict) -> dict:
    """Mask credential values, including ones nested in dicts and lists."""
    return _redact(event_dict)


def add_service_context(logger, method_name: str, event_dict: dict) -> dict:
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("version", __version__)
    return event_dict


def configure_logging():
    """Configure structured logging for the application."""

    # Configure stdlib logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level.upper()),
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        add_service_context,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        redact_sensitive_fields,
    ]

    if settings.log_format == "json":
        processors.extend([
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ])
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


# Configure logging on module import
configure_logging()

logger = structlog.get_logger(SERVICE_NAME)
