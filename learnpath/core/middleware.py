"""Request middleware for context management and logging.

Viewer requests address one course in their path; the course is bound to
the logging context before the route runs so that engine, cache and sync
events emitted while serving the request carry it.
"""

import re
import time
from collections.abc import Awaitable, Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from learnpath.core.context import (
    clear_context,
    set_correlation_id,
    set_course_id,
    set_request_id,
)


logger = structlog.get_logger(__name__)

COURSE_PATH = re.compile(r"^/v1/viewer/courses/(?P<course_id>[^/]+)")


def course_id_from_path(path: str) -> str | None:
    """Course addressed by a viewer path, or None for other routes."""
    match = COURSE_PATH.match(path)
    return match.group("course_id") if match else None


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware that sets up request context for logging.

    Extracts or generates the request ID and binds it, together with the
    correlation ID and the course of viewer routes, to the context. Request
    start and finish are logged with timing; the context is cleared after
    the response.
    """

    REQUEST_ID_HEADER = "X-Request-ID"
    CORRELATION_ID_HEADER = "X-Correlation-ID"

    def __init__(
        self,
        app: ASGIApp,
        log_requests: bool = True,
        exclude_paths: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.log_requests = log_requests
        self.exclude_paths = exclude_paths or [
            "/health",
            "/health/live",
            "/health/ready",
        ]

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Process the request and set up context."""
        start_time = time.perf_counter()

        request_id = set_request_id(request.headers.get(self.REQUEST_ID_HEADER))

        correlation_id = request.headers.get(self.CORRELATION_ID_HEADER)
        if correlation_id:
            set_correlation_id(correlation_id)

        course_id = course_id_from_path(request.url.path)
        if course_id:
            set_course_id(course_id)

        request.state.request_id = request_id

        should_log = self.log_requests and not self._should_exclude(request.url.path)

        if should_log:
            logger.info(
                "request_started",
                method=request.method,
                path=request.url.path,
            )

        try:
            response = await call_next(request)

            duration_ms = (time.perf_counter() - start_time) * 1000

            if should_log:
                log_method = (
                    logger.warning if response.status_code >= 400 else logger.info
                )
                log_method(
                    "request_completed",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=round(duration_ms, 2),
                )

            response.headers[self.REQUEST_ID_HEADER] = request_id

            return response

        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000

            logger.exception(
                "request_failed",
                method=request.method,
                path=request.url.path,
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=round(duration_ms, 2),
            )
            raise

        finally:
            clear_context()

    def _should_exclude(self, path: str) -> bool:
        """Check if path should be excluded from logging."""
        return any(path.startswith(excluded) for excluded in self.exclude_paths)


__all__ = ["RequestContextMiddleware"]
