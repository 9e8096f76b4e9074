"""FastAPI dependencies for the course viewer.

Provides dependency injection for:
- Bearer credential extraction
- Session registry and per-course sessions
- Error handlers
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from learnpath.core.context import set_course_id
from learnpath.core.exceptions import ProgressionError

from .session import CourseViewerSession, SessionRegistry


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header.

    Args:
        request: FastAPI request

    Returns:
        Token string or None if not present
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


async def require_token(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> str:
    """Require a bearer credential; it is forwarded to the backend as is."""
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not signed in",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return token


async def get_session_registry(request: Request) -> SessionRegistry:
    """Get the session registry from app state.

    Args:
        request: FastAPI request

    Returns:
        SessionRegistry instance
    """
    registry = getattr(request.app.state, "session_registry", None)
    if registry is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Course viewer not available",
        )
    return registry


# Type aliases for dependency injection
BearerToken = Annotated[str, Depends(require_token)]
SessionRegistryDep = Annotated[SessionRegistry, Depends(get_session_registry)]


async def get_viewer_session(
    course_id: str,
    token: BearerToken,
    registry: SessionRegistryDep,
) -> CourseViewerSession:
    """Get the learner's session for the course, loading it on first use."""
    set_course_id(course_id)
    session = registry.get_or_create(token, course_id)
    if not session.is_mounted:
        outcome = await session.mount()
        if not outcome.success:
            raise handle_progression_error(outcome.error)
    return session


ViewerSessionDep = Annotated[CourseViewerSession, Depends(get_viewer_session)]


def handle_progression_error(error: ProgressionError) -> HTTPException:
    """Convert progression errors to HTTP exceptions.

    Args:
        error: Progression error

    Returns:
        HTTPException with appropriate status code
    """
    status_map = {
        "invalid_transition": status.HTTP_409_CONFLICT,
        "attempt_limit_exceeded": status.HTTP_409_CONFLICT,
        "sync_conflict": status.HTTP_409_CONFLICT,
        "not_authenticated": status.HTTP_401_UNAUTHORIZED,
        "network_failure": status.HTTP_503_SERVICE_UNAVAILABLE,
        "backend_error": status.HTTP_502_BAD_GATEWAY,
        "cache_unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(
        status_code=status_code,
        detail=error.message,
    )
