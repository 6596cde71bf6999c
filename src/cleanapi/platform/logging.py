"""
Clean API Structured Logging

Every event carries the service name, version and environment. Request
handling binds a request id (and, once authenticated, the caller's id and
role) through structlog contextvars so authorization and audit events can
be correlated per request.
"""

import logging
import sys
import uuid
from typing import Any, MutableMapping, Optional

import structlog

from cleanapi.platform.config import settings

REQUEST_ID_HEADER = "X-Request-ID"


def add_service_context(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    event_dict.setdefault("service", settings.APP_NAME)
    event_dict.setdefault("version", settings.VERSION)
    event_dict.setdefault("env", settings.APP_ENV)
    return event_dict


def bind_request_context(request_id: Optional[str], method: str, path: str) -> str:
    """Start a fresh logging context for one request and return its id.

    A caller-supplied id is kept so traces can span services.
    """
    request_id = request_id or uuid.uuid4().hex
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, method=method, path=path)
    return request_id


def bind_caller(user_id: str, role: str) -> None:
    structlog.contextvars.bind_contextvars(user_id=user_id, role=role)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def configure_logging() -> None:
    """Configure structured logging for the application."""

    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    structlog.configure(
        processors=[
            # request_id, user_id and role bound per request
            structlog.contextvars.merge_contextvars,
            add_service_context,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer()
            if settings.APP_ENV == "production"
            else structlog.dev.ConsoleRenderer(colors=settings.APP_ENV == "development"),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    return structlog.get_logger(name)
