# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI Application Factory.

This module provides the main application factory for the DigitSchool
academics API.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from src.api.middleware import CallerIdentityMiddleware, RequestContextMiddleware
from src.api.routes import health
from src.api.schemas import error_content
from src.api.v1 import router as v1_router
from src.core.config import get_settings
from src.core.exceptions import AcademicsError, DependencyUnavailableError
from src.infrastructure.cache import RedisError, close_redis, init_redis
from src.infrastructure.database import DatabaseError, close_database, init_database
from src.utils.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Initializes and cleans up:
    - Database connections
    - Redis cache
    - Report storage directory

    A dependency that fails to start is logged; the endpoints using it
    answer 503 until the process is restarted.

    Args:
        app: The FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings = get_settings()
    setup_logging(settings)
    logger.info(
        "Starting DigitSchool academics API (environment=%s, debug=%s)",
        settings.environment,
        settings.debug,
    )

    # =========================================================================
    # Startup
    # =========================================================================

    try:
        await init_database(settings)
        logger.info("Database connection initialized")
    except DatabaseError as e:
        logger.warning("Failed to initialize database connection: %s", str(e))

    try:
        await init_redis(settings)
        logger.info("Redis connection initialized")
    except RedisError as e:
        logger.warning("Failed to initialize Redis: %s", str(e))

    try:
        settings.reports.storage_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Report storage directory: %s", settings.reports.storage_dir)
    except OSError as e:
        logger.warning("Failed to create report storage directory: %s", str(e))

    yield

    # =========================================================================
    # Shutdown
    # =========================================================================

    try:
        await close_redis()
        logger.info("Redis connection closed")
    except RedisError as e:
        logger.warning("Error closing Redis: %s", str(e))

    try:
        await close_database()
        logger.info("Database connection closed")
    except DatabaseError as e:
        logger.warning("Error closing database connection: %s", str(e))

    logger.info("Shutting down DigitSchool academics API")


# =========================================================================
# Exception handlers
# =========================================================================


async def academics_error_handler(request: Request, exc: AcademicsError) -> JSONResponse:
    """Render a domain error as the error envelope."""
    if isinstance(exc, DependencyUnavailableError):
        logger.error(
            "Dependency unavailable on %s %s: %s (%s)",
            request.method,
            request.url.path,
            exc.dependency,
            exc.original_error,
        )
    fields = getattr(exc, "fields", None)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_content(exc.status_code, exc.error_type, exc.message, fields),
    )


async def infrastructure_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render an unwrapped database or Redis failure as 503."""
    logger.error("Infrastructure failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=error_content(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            DependencyUnavailableError.error_type,
            "A backing service is unavailable",
        ),
    )


async def request_validation_error_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Render FastAPI request validation failures as 400 with field errors."""
    fields: dict[str, str] = {}
    for error in exc.errors():
        location = [
            str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")
        ]
        fields[".".join(location) or "request"] = error.get("msg", "is invalid")

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_content(
            status.HTTP_400_BAD_REQUEST,
            "validation_error",
            "Invalid request",
            fields,
        ),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Render HTTP exceptions (401, 403, unknown routes) as the error envelope."""
    error_types = {
        status.HTTP_401_UNAUTHORIZED: "unauthorized",
        status.HTTP_403_FORBIDDEN: "forbidden",
        status.HTTP_404_NOT_FOUND: "not_found",
        status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
    }
    return JSONResponse(
        status_code=exc.status_code,
        content=error_content(
            exc.status_code,
            error_types.get(exc.status_code, "http_error"),
            str(exc.detail),
        ),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render any other failure as a generic 500."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_content(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            AcademicsError.error_type,
            "Internal server error",
        ),
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    This factory function creates a new FastAPI instance with all
    middleware, routes, and configurations applied.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="DigitSchool Academics API",
        description="Grades, averages, orientation and PDF reports",
        version="1.0.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
        redirect_slashes=False,
    )

    # =========================================================================
    # Exception handlers
    # =========================================================================
    app.add_exception_handler(AcademicsError, academics_error_handler)
    app.add_exception_handler(DatabaseError, infrastructure_error_handler)
    app.add_exception_handler(RedisError, infrastructure_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # =========================================================================
    # Middleware (order matters - last added is first executed)
    # =========================================================================

    app.add_middleware(CallerIdentityMiddleware)
    app.add_middleware(RequestContextMiddleware)

    # CORS middleware (should be last to execute first)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.origins_list,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=settings.cors.allow_methods,
        allow_headers=settings.cors.allow_headers,
    )

    # =========================================================================
    # Routes
    # =========================================================================
    app.include_router(health.router, tags=["Health"])
    app.include_router(v1_router)

    return app
