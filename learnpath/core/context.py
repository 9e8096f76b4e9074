"""Operation context management using contextvars.

Each viewer request (or background push) carries a request ID and the course
it operates on. Log processors read these values so that every event emitted
by the progression core can be correlated without passing them explicitly.
"""

from contextvars import ContextVar
from typing import Any
from uuid import uuid4


# Context variables for operation tracking
request_id_var: ContextVar[str] = ContextVar("request_id", default="")
course_id_var: ContextVar[str | None] = ContextVar("course_id", default=None)
correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def generate_request_id() -> str:
    """Generate a new unique request ID."""
    return str(uuid4())


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID for the current context.

    Args:
        request_id: Optional request ID. If not provided, generates a new one.

    Returns:
        The request ID that was set.
    """
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


def get_course_id() -> str | None:
    """Get the current course ID."""
    return course_id_var.get()


def set_course_id(course_id: str | None) -> None:
    """Set the course ID for the current context."""
    course_id_var.set(course_id)


def get_correlation_id() -> str | None:
    """Get the current correlation ID."""
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str | None) -> None:
    """Set the correlation ID for the current context.

    Args:
        correlation_id: The correlation ID for tracking related operations.
    """
    correlation_id_var.set(correlation_id)


def get_context() -> dict[str, Any]:
    """Get all context variables as a dictionary.

    Returns:
        Dictionary with request_id, course_id and correlation_id (when set).
    """
    context: dict[str, Any] = {}

    request_id = get_request_id()
    if request_id:
        context["request_id"] = request_id

    course_id = get_course_id()
    if course_id:
        context["course_id"] = course_id

    correlation_id = get_correlation_id()
    if correlation_id:
        context["correlation_id"] = correlation_id

    return context


def clear_context() -> None:
    """Clear all context variables.

    This should be called at the end of each request to prevent
    context leakage between requests.
    """
    request_id_var.set("")
    course_id_var.set(None)
    correlation_id_var.set(None)


class CourseContext:
    """Context manager binding a course to everything logged inside it.

    Usage:
        with CourseContext(course_id="python-101"):
            log.info("day_marked_complete", day=3)  # includes course_id
    """

    def __init__(
        self,
        course_id: str,
        request_id: str | None = None,
    ) -> None:
        self.course_id = course_id
        self.request_id = request_id
        self._tokens: dict[str, Any] = {}

    def __enter__(self) -> "CourseContext":
        """Enter context and set variables."""
        self._tokens["course_id"] = course_id_var.set(self.course_id)
        if self.request_id is not None:
            self._tokens["request_id"] = request_id_var.set(self.request_id)
        return self

    def __exit__(self, *_: object) -> None:
        """Exit context and restore previous values."""
        for var_name, token in self._tokens.items():
            if var_name == "course_id":
                course_id_var.reset(token)
            elif var_name == "request_id":
                request_id_var.reset(token)
