"""Structured logging for the analysis service (structlog over stdlib logging).

Every analysis binds ``ticker`` and ``request_id`` into structlog
contextvars, so concurrent analyses stay distinguishable in the output.
API keys travel in upstream query strings; ``redact_secrets`` masks them
in any logged value before rendering.
"""

import logging
import os
import re
from collections.abc import MutableMapping
from typing import Any

import structlog

_SECRET_QUERY_RE = re.compile(r"((?:apikey|token)=)[^&\s'\"]+", re.IGNORECASE)

# Loggers that would otherwise print full request URLs (keys included)
_NOISY_LOGGERS = ("httpx", "httpcore")


def redact_secrets(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """structlog processor masking ``apikey=`` and ``token=`` query values."""
    for key, value in event_dict.items():
        if isinstance(value, str) and "=" in value:
            event_dict[key] = _SECRET_QUERY_RE.sub(r"\1***", value)
    return event_dict


def setup_logging(log_level: str = "INFO") -> None:
    """Configure structlog and route stdlib logging through it.

    LOG_FORMAT selects the renderer: "json" for deployments, "console"
    (default) for local runs.
    """
    log_format = os.environ.get("LOG_FORMAT", "console").lower()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        redact_secrets,
    ]

    renderer: structlog.types.Processor
    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger with the given name."""
    return structlog.get_logger(name)
