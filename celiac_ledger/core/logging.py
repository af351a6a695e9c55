"""structlog setup for the API and the catalogue importer.

Events are rendered as JSON outside development, or when ``LOG_FORMAT=json``,
and as coloured console lines otherwise. The request ID and the
authenticated user ID are attached to every event emitted while a request
is being served.
"""

import logging
import sys
from contextvars import ContextVar
from typing import Any

import orjson
import structlog
from structlog.types import Processor

from celiac_ledger.core.config import settings

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)
user_id_ctx: ContextVar[str | None] = ContextVar("user_id", default=None)

_REQUEST_CONTEXT = (("request_id", request_id_ctx), ("user_id", user_id_ctx))


def _add_context_vars(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    for key, var in _REQUEST_CONTEXT:
        value = var.get()
        if value:
            event_dict[key] = value
    return event_dict


def _orjson_serializer(obj: Any, **kwargs: Any) -> str:
    # Money amounts are Decimal, which orjson only handles through ``default``.
    return orjson.dumps(obj, default=str).decode("utf-8")


def _wants_json() -> bool:
    log_format = (settings.log_format or "").lower()
    if log_format:
        return log_format == "json"
    return settings.environment != "development"


def configure_logging() -> None:
    """Install the structlog pipeline and route stdlib logging to stdout."""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        _add_context_vars,
    ]

    if _wants_json():
        processors += [
            structlog.processors.EventRenamer("message"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(serializer=_orjson_serializer),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.DEBUG if settings.debug else logging.INFO,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
