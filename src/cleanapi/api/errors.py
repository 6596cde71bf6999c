"""
Exception handlers.

Maps AppError subclasses to JSON responses. Handlers never decide status
codes themselves; each error type carries its own.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cleanapi.platform.errors import AppError, ErrorCategory
from cleanapi.platform.logging import get_logger

logger = get_logger(__name__)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.category in (ErrorCategory.INTERNAL, ErrorCategory.DATABASE):
        logger.error(
            "request_failed",
            path=str(request.url.path),
            code=exc.code,
            error=str(exc),
        )
    else:
        logger.info(
            "request_rejected",
            path=str(request.url.path),
            code=exc.code,
            category=exc.category.value,
        )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.message,
            "code": exc.code,
            "category": exc.category.value,
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
