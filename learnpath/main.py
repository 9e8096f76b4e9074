"""learnpath viewer API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

import redis
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from learnpath.config import get_settings
from learnpath.core.context import get_request_id
from learnpath.core.logging import configure_structlog, get_logger
from learnpath.core.middleware import RequestContextMiddleware, course_id_from_path
from learnpath.core.redis import init_redis, shutdown_redis
from learnpath.health.router import router as health_router
from learnpath.viewer.router import router as viewer_router
from learnpath.viewer.session import SessionRegistry


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        backend=settings.backend_base_url,
        cache_backend=settings.cache_backend,
    )

    if settings.cache_backend == "redis":
        try:
            init_redis()
            logger.info("redis_initialized")
        except redis.RedisError as e:
            logger.warning(
                "redis_init_failed",
                error=str(e),
                message="Progress cache unavailable until Redis is reachable",
            )

    app.state.session_registry = SessionRegistry(settings)
    logger.info("session_registry_initialized")

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await app.state.session_registry.aclose()
    shutdown_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Course progression and quiz attempts - viewer API",
        debug=False,  # Never expose stack traces in responses
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def _error_content(
        request: Request, status_code: int, message: str, **extra: object
    ) -> dict:
        """Error body shared by every handler; viewer errors name their course."""
        content = {
            "error": True,
            "message": message,
            "status_code": status_code,
            "request_id": getattr(request.state, "request_id", None) or get_request_id(),
        }
        course_id = course_id_from_path(request.url.path)
        if course_id:
            content["course_id"] = course_id
        content.update(extra)
        return content

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )

        # Backend failures (502/503) keep their message: the UI shows them
        return ORJSONResponse(
            status_code=exc.status_code,
            content=_error_content(
                request,
                exc.status_code,
                str(exc.detail)
                if exc.status_code != status.HTTP_500_INTERNAL_SERVER_ERROR
                else "Internal server error",
            ),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors with safe error messages."""
        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=_error_content(
                request,
                status.HTTP_422_UNPROCESSABLE_ENTITY,
                "Validation error",
                details=[
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                    }
                    for err in exc.errors()
                ],
            ),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler for unhandled exceptions.

        Details are logged; the response carries a generic message only.
        """
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_content(
                request,
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "An unexpected error occurred. Please try again later.",
            ),
        )

    app.include_router(health_router)
    app.include_router(viewer_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "learnpath viewer API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
