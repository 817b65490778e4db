"""Internal API application factory."""

from __future__ import annotations

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware

from filingscore.core.config import settings
from filingscore.core.exceptions import register_exception_handlers
from filingscore.core.logging import get_logger, setup_logging

from .routes import health, internal
from .schemas import ErrorResponse


logger = get_logger("api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging, initialize and dispose of the database engine."""
    setup_logging()
    from filingscore.database.connection import close_database, init_sqlalchemy_engine

    try:
        await init_sqlalchemy_engine()
    except Exception as e:
        logger.warning(f"Database initialization failed (may be ok in tests): {e}")

    yield

    try:
        await close_database()
    except Exception as e:
        logger.warning(f"Database cleanup failed: {e}")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path and status of every request."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.monotonic()
        response = await call_next(request)
        duration = time.monotonic() - start_time

        # Path only; query strings may carry keys
        path = request.url.path
        logger.info(
            f"{request.method} {path} -> {response.status_code} ({duration:.3f}s)",
            extra={
                "extra_fields": {
                    "method": request.method,
                    "path": path,
                    "status_code": response.status_code,
                    "duration_ms": int(duration * 1000),
                }
            },
        )
        return response


def create_api_app() -> FastAPI:
    """Create and configure the API application."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Filing ingestion and valuation batch control",
        docs_url="/docs" if settings.debug else None,
        redoc_url=None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
        responses={
            401: {"model": ErrorResponse, "description": "Unauthorized"},
            404: {"model": ErrorResponse, "description": "Not Found"},
            500: {"model": ErrorResponse, "description": "Internal Server Error"},
        },
    )

    app.add_middleware(RequestLoggingMiddleware)
    register_exception_handlers(app)

    app.include_router(health.router, tags=["Health"])
    app.include_router(internal.router, tags=["Internal"])

    return app


app = create_api_app()
