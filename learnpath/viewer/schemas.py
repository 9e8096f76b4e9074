"""Pydantic schemas for the course viewer API.

Request and response models for:
- Course view state (days, locks, progress)
- Day selection
- Quiz submission and history
"""

from datetime import datetime

from pydantic import BaseModel, Field

from learnpath.progress.engine import ProgressionEngine
from learnpath.progress.models import DayState, EnrollmentStatus
from learnpath.quiz.models import QuizAttempt

from .session import CourseViewerSession


# ==============================================================================
# Course View Schemas
# ==============================================================================


class DayStatusResponse(BaseModel):
    """One entry of the day sidebar."""

    day_number: int
    topic_text: str
    video_reference: str | None = None
    has_quiz: bool
    quiz_number: int | None = Field(default=None, description="Shown as 'Quiz N'")
    state: DayState
    locked: bool
    watched: bool
    completed: bool
    quiz_unlocked: bool
    attempts_used: int = 0
    attempts_remaining: int = 0
    best_score: int | None = None
    quiz_passed: bool = False
    can_continue: bool = False

    @classmethod
    def from_engine(cls, engine: ProgressionEngine, day_number: int) -> "DayStatusResponse":
        """Create response from the engine's view of one day."""
        day = engine.roadmap.get_day(day_number)
        ledger = engine.ledger
        return cls(
            day_number=day.day_number,
            topic_text=day.topic_text,
            video_reference=day.video_reference,
            has_quiz=day.has_quiz,
            quiz_number=engine.roadmap.quiz_number(day_number),
            state=engine.day_state(day_number),
            locked=engine.is_day_locked(day_number),
            watched=day_number in engine.watched_days,
            completed=day_number in engine.completed_days,
            quiz_unlocked=day.has_quiz and engine.is_quiz_unlocked(day_number),
            attempts_used=ledger.count(day_number),
            attempts_remaining=ledger.attempts_remaining(day_number) if day.has_quiz else 0,
            best_score=ledger.best_score(day_number),
            quiz_passed=engine.is_quiz_passed(day_number),
            can_continue=engine.can_continue(day_number),
        )


class CourseViewResponse(BaseModel):
    """Full state of an open course view."""

    course_id: str
    title: str
    total_days: int
    progress_percent: int = Field(description="0-100 percentage")
    status: EnrollmentStatus
    completed_days: list[int]
    watched_days: list[int]
    selected_day: int | None = None
    quiz_view_open: bool = False
    sync_error: str | None = Field(
        default=None, description="Code of the last failed backend sync, if any"
    )
    cache_error: str | None = Field(
        default=None, description="Code of the last failed local save, if any"
    )
    days: list[DayStatusResponse]

    @classmethod
    def from_session(cls, session: CourseViewerSession) -> "CourseViewResponse":
        """Create response from a mounted session."""
        engine = session.engine
        snapshot = engine.snapshot()
        return cls(
            course_id=engine.course_id,
            title=engine.roadmap.title,
            total_days=snapshot.total_days,
            progress_percent=snapshot.progress_percent,
            status=snapshot.status,
            completed_days=sorted(snapshot.completed_days),
            watched_days=sorted(snapshot.watched_days),
            selected_day=session.view_state.last_viewed_day,
            quiz_view_open=session.view_state.quiz_view_open,
            sync_error=session.sync_error.code if session.sync_error else None,
            cache_error=session.cache_error.code if session.cache_error else None,
            days=[
                DayStatusResponse.from_engine(engine, number)
                for number in engine.roadmap.day_numbers
            ],
        )


class SelectDayRequest(BaseModel):
    """Request to move the view to a day."""

    quiz_view_open: bool = Field(default=False, description="Open the quiz panel")


# ==============================================================================
# Quiz Schemas
# ==============================================================================


class QuizSubmitRequest(BaseModel):
    """Selected option index per question (null for unanswered)."""

    answers: list[int | None] = Field(..., min_length=1)


class QuizAttemptResponse(BaseModel):
    """A recorded quiz attempt."""

    day_number: int
    attempt_number: int
    score: int
    total_questions: int
    passed: bool
    submitted_at: datetime

    @classmethod
    def from_entity(
        cls, entity: QuizAttempt, pass_threshold: int
    ) -> "QuizAttemptResponse":
        """Create response from entity."""
        return cls(
            day_number=entity.day_number,
            attempt_number=entity.attempt_number,
            score=entity.score,
            total_questions=entity.total_questions,
            passed=entity.passed(pass_threshold),
            submitted_at=entity.submitted_at,
        )


class QuizSubmitResponse(BaseModel):
    """Result of a quiz submission plus the updated view."""

    attempt: QuizAttemptResponse
    course: CourseViewResponse


class QuizHistoryResponse(BaseModel):
    """Attempts of one day, newest first."""

    day_number: int
    quiz_number: int | None = None
    attempts: list[QuizAttemptResponse]
    attempts_remaining: int
    can_attempt: bool
