"""
Main FastAPI Application

Entry point for the project management API.
Configures middleware, routes, error handlers, and startup/shutdown events.

create_app() builds an application from explicit settings and storage so
tests never share module-level state. Serve it with
`uvicorn --factory projecthub.main:create_app`.
"""
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
import time
from contextlib import asynccontextmanager

from projecthub import __version__
from projecthub.config import Settings, get_settings
from projecthub.database import Database
from projecthub.middleware.rate_limit import RateLimitMiddleware
from projecthub.utils.logging import setup_logging, get_logger
from projecthub.core.exceptions import ProjectHubError

from projecthub.api.endpoints import auth, users, projects, members

logger = get_logger(__name__)

# pydantic error type -> validation reason
VALIDATION_REASONS = {
    "missing": "missing_field",
    "enum": "invalid_enum_value",
    "string_too_short": "length_violation",
    "string_too_long": "length_violation",
}

# Fields whose custom validators only check length
LENGTH_CHECKED_FIELDS = {"name"}


def _describe_validation_errors(errors) -> tuple[str, str]:
    """First error as (detail, reason); locations drop the body/query prefix."""
    if not errors:
        return "Invalid request", "bad_type"

    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    message = first.get("msg", "Invalid value")
    detail = f"{location}: {message}" if location else message
    error_type = first.get("type")
    if error_type == "value_error":
        field = first["loc"][-1] if first.get("loc") else None
        return detail, "length_violation" if field in LENGTH_CHECKED_FIELDS else "bad_type"
    return detail, VALIDATION_REASONS.get(error_type, "bad_type")


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    settings = settings or get_settings()
    database = database or Database.from_settings(settings)

    setup_logging(
        log_level=settings.LOG_LEVEL,
        json_format=(settings.ENVIRONMENT == "production")
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting application in {settings.ENVIRONMENT} mode")

        # Dev only; production schemas are migrated separately
        if settings.ENVIRONMENT == "development":
            database.create_all()

        logger.info("Application startup complete")

        yield

        logger.info("Shutting down application")
        database.dispose()
        logger.info("Application shutdown complete")

    app = FastAPI(
        title="ProjectHub",
        description="Multi-tenant project management API with company isolation and project roles",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.db = database

    # ========================================================================
    # MIDDLEWARE CONFIGURATION
    # ========================================================================

    allowed_origins = [
        "http://localhost:3000",
        "http://localhost:8000",
    ]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins if settings.ENVIRONMENT == "production" else ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        """Add X-Process-Time header to track request duration."""
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)
        return response

    if settings.RATE_LIMIT_ENABLED:
        app.add_middleware(RateLimitMiddleware, settings=settings)

    # ========================================================================
    # EXCEPTION HANDLERS
    # ========================================================================

    @app.exception_handler(ProjectHubError)
    async def projecthub_error_handler(request: Request, exc: ProjectHubError):
        """Render every typed failure as {detail, type, reason}."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "type": exc.error_type, "reason": exc.reason},
            headers=exc.headers or {}
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(request: Request, exc: RequestValidationError):
        detail, reason = _describe_validation_errors(exc.errors())
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": detail, "type": "validation_error", "reason": reason}
        )

    def internal_error_response(exc: Exception) -> JSONResponse:
        if settings.DEBUG:
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "detail": str(exc),
                    "type": type(exc).__name__,
                    "traceback": "See logs for traceback"
                }
            )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "Internal server error",
                "type": "internal_error"
            }
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error(
            f"Database error: {type(exc).__name__}: {str(exc)}",
            exc_info=True,
            extra={"path": request.url.path, "method": request.method}
        )
        return internal_error_response(exc)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all exception handler.

        SECURITY: Don't expose internal errors in production.
        Log full details but return generic error to client.
        """
        logger.error(
            f"Unhandled exception: {type(exc).__name__}: {str(exc)}",
            exc_info=True,
            extra={
                "path": request.url.path,
                "method": request.method,
                "tenant_id": getattr(request.state, "tenant_id", None)
            }
        )
        return internal_error_response(exc)

    # ========================================================================
    # ROUTES
    # ========================================================================

    @app.get("/health", tags=["health"])
    async def health_check():
        """Health check endpoint for load balancers."""
        return {
            "status": "healthy",
            "environment": settings.ENVIRONMENT,
            "version": __version__
        }

    @app.get("/", tags=["root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "message": "ProjectHub API",
            "version": __version__,
            "docs": "/docs",
            "health": "/health"
        }

    app.include_router(auth.router, prefix="/api/v1")
    app.include_router(users.router, prefix="/api/v1")
    app.include_router(projects.router, prefix="/api/v1")
    app.include_router(members.router, prefix="/api/v1")

    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug: {settings.DEBUG}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'configured'}")

    uvicorn.run(
        "projecthub.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
