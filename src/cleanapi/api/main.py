"""
Clean API Main Application

Entry point for the FastAPI application.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app
from sqlalchemy.exc import SQLAlchemyError

from cleanapi.platform.config import settings
from cleanapi.platform.logging import (
    REQUEST_ID_HEADER,
    bind_request_context,
    clear_request_context,
    configure_logging,
    get_logger,
)
from cleanapi.api.errors import register_exception_handlers
from cleanapi.api.routers import auth, users, products, permissions, policies
from cleanapi.api.dependencies import (
    init_resources,
    close_resources,
    get_storage_adapter,
    get_policy_cache,
)

# Configure logging on import
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup/shutdown."""
    # Startup
    logger.info("Starting Clean API...")
    try:
        init_resources()
        logger.info("Resources initialized successfully.")
    except Exception as e:
        logger.error(f"Failed to initialize resources: {e}")
        # Fail fast: no database or policies means no authorization
        raise

    yield

    # Shutdown
    logger.info("Shutting down Clean API...")
    close_resources()
    logger.info("Resources closed.")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    description="Users and products behind JWT authentication and a statement-based policy engine",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(",") if settings.CORS_ORIGINS else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    request_id = bind_request_context(
        request.headers.get(REQUEST_ID_HEADER), request.method, request.url.path
    )
    try:
        response = await call_next(request)
    finally:
        clear_request_context()
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


register_exception_handlers(app)

# =============================================================================
# OBSERVABILITY
# =============================================================================

if settings.METRICS_ENABLED:
    # Add Prometheus metrics endpoint
    metrics_app = make_asgi_app()
    app.mount("/metrics", metrics_app)


# =============================================================================
# HEALTH ENDPOINTS
# =============================================================================


@app.get("/health/live", tags=["Health"])
async def liveness() -> dict:
    """Liveness probe - is the service running?"""
    return {"status": "alive"}


@app.get("/health/ready", tags=["Health"])
async def readiness() -> dict:
    """
    Readiness probe - is the service ready to accept traffic?
    Checks the database connection and that policies are loaded.
    """
    database_healthy = False
    try:
        database_healthy = get_storage_adapter().health_check()
    except (SQLAlchemyError, ConnectionError):
        logger.exception("database health check failed")

    policies_loaded = get_policy_cache().loaded if database_healthy else False

    status_code = "ready" if (database_healthy and policies_loaded) else "not_ready"

    return {
        "status": status_code,
        "version": settings.VERSION,
        "checks": {
            "database": "healthy" if database_healthy else "unhealthy",
            "policy_cache": "loaded" if policies_loaded else "empty",
        },
    }


# =============================================================================
# API ROUTERS
# =============================================================================

app.include_router(auth.router, prefix="/api/v1/auth", tags=["Auth"])
app.include_router(users.router, prefix="/api/v1/users", tags=["Users"])
app.include_router(products.router, prefix="/api/v1/products", tags=["Products"])
app.include_router(permissions.router, prefix="/api/v1/permissions", tags=["Permissions"])
app.include_router(policies.router, prefix="/api/v1/policies", tags=["Policies"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "cleanapi.api.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
    )
