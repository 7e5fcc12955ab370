"""
Structured logging for stockbook.

Events are snake_case names with keyword fields, e.g.
``logger.info("purchase_created", purchase_id=..., items=3)``. Request-scoped
fields (request id, acting user) live in structlog contextvars so every event
emitted while serving a request carries them.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from stockbook import __version__
from stockbook.config.settings import Settings, get_settings


def add_service_fields(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Stamp the service name, version and environment on each event."""
    settings = get_settings()
    event_dict.setdefault("service", settings.app_name)
    event_dict.setdefault("version", __version__)
    event_dict.setdefault("env", settings.environment)
    return event_dict


def _renderers(settings: Settings) -> list[Processor]:
    if settings.use_json_logs:
        return [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]


def configure_logging(settings: Settings | None = None) -> None:
    """Configure structlog and the stdlib root logger from settings."""
    settings = settings or get_settings()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        add_service_fields,
        *_renderers(settings),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    level = getattr(logging, settings.logging.level)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level, force=True)

    for name in settings.logging.quiet_loggers:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def bind_request_context(**fields: Any) -> None:
    """Attach fields to every event logged until the context is cleared."""
    structlog.contextvars.bind_contextvars(**fields)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
