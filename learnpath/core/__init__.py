# Core infrastructure
from learnpath.core.context import (
    CourseContext,
    clear_context,
    get_context,
    get_correlation_id,
    get_course_id,
    get_request_id,
    set_correlation_id,
    set_course_id,
    set_request_id,
)
from learnpath.core.logging import configure_structlog, get_logger
from learnpath.core.middleware import RequestContextMiddleware


__all__ = [
    "CourseContext",
    "RequestContextMiddleware",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_correlation_id",
    "get_course_id",
    "get_logger",
    "get_request_id",
    "set_correlation_id",
    "set_course_id",
    "set_request_id",
]
