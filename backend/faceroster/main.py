"""FastAPI application entry point for the FaceRoster identity backend."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from faceroster.api.routes import health, people
from faceroster.core.config import get_settings
from faceroster.core.correlation import CORRELATION_HEADER, CorrelationMiddleware
from faceroster.core.logging import configure_logging

configure_logging()

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler.

    Handles startup and shutdown events.
    """
    logger.info("application_starting", app_name=app.title)

    settings = get_settings()
    if not settings.is_configured:
        logger.warning(
            "application_not_fully_configured",
            message="Supabase credentials not set. Merge and delete will be unavailable.",
        )

    if not settings.is_gemini_configured:
        logger.warning(
            "gemini_not_configured",
            message="GEMINI_API_KEY not set. AI merge suggestions will return no results.",
            hint="Set GEMINI_API_KEY in .env file",
        )
    else:
        logger.info("gemini_configured", model=settings.gemini_model)

    yield

    logger.info("application_shutting_down")


def _with_correlation(details: dict, request: Request) -> dict:
    correlation_id = getattr(request.state, "correlation_id", None)
    if correlation_id:
        return {**details, "correlationId": correlation_id}
    return details


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="FaceRoster - Identity Deduplication & Merge API",
        version=settings.api_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    # Middleware execution order is LIFO: CORS is added last so it runs first
    app.add_middleware(CorrelationMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[CORRELATION_HEADER],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        """Handle HTTP exceptions with structured error response."""
        if isinstance(exc.detail, dict) and "error" in exc.detail:
            error = exc.detail["error"]
            content = {
                "error": {
                    **error,
                    "details": _with_correlation(error.get("details") or {}, request),
                }
            }
        else:
            content = {
                "error": {
                    "code": f"HTTP_{exc.status_code}",
                    "message": str(exc.detail) if exc.detail else "An error occurred",
                    "details": _with_correlation({}, request),
                }
            }

        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle Pydantic validation errors with field-level details."""
        field_errors = [
            {
                "field": ".".join(str(loc) for loc in error["loc"]),
                "message": error["msg"],
                "type": error["type"],
            }
            for error in exc.errors()
        ]

        logger.warning(
            "validation_error",
            path=str(request.url.path),
            errors=field_errors,
        )

        return JSONResponse(
            status_code=422,
            content={
                "error": {
                    "code": "VALIDATION_ERROR",
                    "message": "Request validation failed",
                    "details": _with_correlation({"fields": field_errors}, request),
                }
            },
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all handler for unhandled exceptions."""
        logger.exception(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error_type=type(exc).__name__,
            error_message=str(exc),
        )

        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                    "details": _with_correlation({}, request),
                }
            },
        )

    app.include_router(health.router, prefix="/api")
    app.include_router(people.router, prefix="/api")

    return app


# Create the application instance
app = create_app()


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint.

    Returns:
        Service name with health check link.
    """
    payload: dict[str, str] = {
        "message": "FaceRoster Identity API",
        "health": "/api/health",
    }

    if get_settings().debug:
        payload["docs"] = "/docs"

    return payload
