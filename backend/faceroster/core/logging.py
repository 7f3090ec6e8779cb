"""Structured logging setup for the identity backend.

Debug runs render colored console lines; otherwise every event is one JSON
object. Request context (correlation_id) is merged from structlog
contextvars, and inline face images never reach the log stream.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, cast

import structlog

from faceroster.core.config import get_settings

# Inline face crops arrive as base64 data URIs and can be megabytes long
_DATA_URI_PREFIX = "data:"
_REDACTED_IMAGE = "<inline image redacted>"


def _redact_inline_images(value: Any) -> Any:
    if isinstance(value, str) and value.startswith(_DATA_URI_PREFIX):
        return _REDACTED_IMAGE
    if isinstance(value, dict):
        return {k: _redact_inline_images(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_redact_inline_images(v) for v in value]
    return value


def redact_inline_images(
    logger: Any, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """structlog processor replacing ``data:`` URIs in event values."""
    return {key: _redact_inline_images(value) for key, value in event_dict.items()}


def _build_processors(debug: bool) -> list[structlog.types.Processor]:
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_inline_images,
        structlog.processors.StackInfoRenderer(),
    ]
    if debug:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        processors.extend([
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ])
    return processors


def configure_logging() -> None:
    """Configure structlog and the stdlib root logger from settings."""
    settings = get_settings()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.DEBUG if settings.debug else logging.INFO,
    )

    structlog.configure(
        processors=_build_processors(settings.debug),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger bound to ``name``."""
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
