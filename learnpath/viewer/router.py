"""Course viewer API endpoints.

Provides routes for:
- Loading a course view (reconciles with the backend on every load)
- Day selection and the video-completed signal
- Manual day completion and undo
- Quiz submission and attempt history
"""

from fastapi import APIRouter, Response, status

from learnpath.core.context import set_course_id

from .dependencies import (
    BearerToken,
    SessionRegistryDep,
    ViewerSessionDep,
    handle_progression_error,
)
from .schemas import (
    CourseViewResponse,
    QuizAttemptResponse,
    QuizHistoryResponse,
    QuizSubmitRequest,
    QuizSubmitResponse,
    SelectDayRequest,
)


router = APIRouter(prefix="/v1/viewer/courses", tags=["viewer"])


# ==============================================================================
# Course View Endpoints
# ==============================================================================


@router.get(
    "/{course_id}",
    response_model=CourseViewResponse,
    summary="Load course view",
)
async def load_course_view(
    course_id: str,
    token: BearerToken,
    registry: SessionRegistryDep,
) -> CourseViewResponse:
    """Load (or reload) the course view.

    Shows cached progress merged once with the backend's progress, and
    restores the last viewed day.
    """
    set_course_id(course_id)
    session = registry.get_or_create(token, course_id)
    outcome = await session.mount()
    if not outcome.success:
        raise handle_progression_error(outcome.error)
    return CourseViewResponse.from_session(session)


@router.delete(
    "/{course_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Close course view",
)
async def close_course_view(
    course_id: str,
    token: BearerToken,
    registry: SessionRegistryDep,
) -> Response:
    """Leave the course view. Pending pushes still reach the backend."""
    registry.close(token, course_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ==============================================================================
# Day Endpoints
# ==============================================================================


@router.post(
    "/{course_id}/days/{day_number}/select",
    response_model=CourseViewResponse,
    summary="Select day",
)
async def select_day(
    day_number: int,
    session: ViewerSessionDep,
    data: SelectDayRequest | None = None,
) -> CourseViewResponse:
    """Move the view to a day and refresh its quiz attempts."""
    quiz_view_open = data.quiz_view_open if data else False
    outcome = await session.select_day(day_number, quiz_view_open=quiz_view_open)
    if not outcome.success:
        raise handle_progression_error(outcome.error)
    return CourseViewResponse.from_session(session)


@router.post(
    "/{course_id}/days/{day_number}/video-completed",
    response_model=CourseViewResponse,
    summary="Video completed",
)
async def video_completed(
    day_number: int,
    session: ViewerSessionDep,
) -> CourseViewResponse:
    """Record the player's completed signal.

    Days without a quiz are completed automatically.
    """
    outcome = session.on_video_completed(day_number)
    if not outcome.success:
        raise handle_progression_error(outcome.error)
    return CourseViewResponse.from_session(session)


@router.post(
    "/{course_id}/days/{day_number}/complete",
    response_model=CourseViewResponse,
    summary="Mark day complete",
)
async def mark_day_complete(
    day_number: int,
    session: ViewerSessionDep,
) -> CourseViewResponse:
    """Mark a day as complete (requires the previous day completed)."""
    outcome = session.engine.mark_day_complete(day_number)
    if not outcome.success:
        raise handle_progression_error(outcome.error)
    return CourseViewResponse.from_session(session)


@router.post(
    "/{course_id}/days/{day_number}/incomplete",
    response_model=CourseViewResponse,
    summary="Mark day incomplete",
)
async def mark_day_incomplete(
    day_number: int,
    session: ViewerSessionDep,
) -> CourseViewResponse:
    """Undo a day; every later day is reset as well."""
    outcome = session.engine.mark_day_incomplete(day_number)
    if not outcome.success:
        raise handle_progression_error(outcome.error)
    return CourseViewResponse.from_session(session)


@router.post(
    "/{course_id}/days/{day_number}/toggle",
    response_model=CourseViewResponse,
    summary="Toggle day completion",
)
async def toggle_day(
    day_number: int,
    session: ViewerSessionDep,
) -> CourseViewResponse:
    """The "Mark as Complete" / "Mark as Incomplete" button."""
    outcome = session.toggle_day(day_number)
    if not outcome.success:
        raise handle_progression_error(outcome.error)
    return CourseViewResponse.from_session(session)


# ==============================================================================
# Quiz Endpoints
# ==============================================================================


@router.post(
    "/{course_id}/days/{day_number}/quiz",
    response_model=QuizSubmitResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit quiz",
)
async def submit_quiz(
    day_number: int,
    data: QuizSubmitRequest,
    session: ViewerSessionDep,
) -> QuizSubmitResponse:
    """Score and record a quiz attempt (at most 2 per day)."""
    outcome = await session.submit_quiz(day_number, data.answers)
    if not outcome.success:
        raise handle_progression_error(outcome.error)
    return QuizSubmitResponse(
        attempt=QuizAttemptResponse.from_entity(
            outcome.value, session.settings.quiz_pass_threshold
        ),
        course=CourseViewResponse.from_session(session),
    )


@router.get(
    "/{course_id}/days/{day_number}/quiz",
    response_model=QuizHistoryResponse,
    summary="Get quiz attempts",
)
async def get_quiz_history(
    day_number: int,
    session: ViewerSessionDep,
) -> QuizHistoryResponse:
    """Get the day's attempts from the backend, newest first."""
    outcome = await session.quiz.load_history(day_number)
    if not outcome.success:
        raise handle_progression_error(outcome.error)

    threshold = session.settings.quiz_pass_threshold
    return QuizHistoryResponse(
        day_number=day_number,
        quiz_number=session.roadmap.quiz_number(day_number),
        attempts=[
            QuizAttemptResponse.from_entity(attempt, threshold)
            for attempt in outcome.value
        ],
        attempts_remaining=session.quiz.attempts_remaining(day_number),
        can_attempt=session.quiz.can_attempt(day_number),
    )
