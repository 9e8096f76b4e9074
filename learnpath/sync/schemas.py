"""Pydantic schemas for the enrollment-progress and quiz-submission endpoints.

Field aliases carry the backend's camelCase names; Python code uses
snake_case. Models dump with ``by_alias=True`` when sent over the wire.
"""

import math
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from learnpath.progress.models import EnrollmentStatus
from learnpath.quiz.models import QuizAttempt
from learnpath.utils import round_half_up


def _whole_percent(value) -> int:
    """Round a numeric percentage from the wire; anything else is invalid."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"Expected a number, got {type(value).__name__}")
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"Expected a finite number, got {value!r}")
    return round_half_up(number)


# ==============================================================================
# Enrollment Progress
# ==============================================================================


class EnrollmentProgress(BaseModel):
    """Authoritative enrollment progress as reported by the backend.

    ``completed_days`` is None when the backend only reports a percentage.
    """

    model_config = ConfigDict(populate_by_name=True)

    completed_days: list[int] | None = Field(default=None, alias="completedDays")
    progress_percent: int = Field(default=0, ge=0, le=100, alias="progress")
    status: EnrollmentStatus = EnrollmentStatus.ENROLLED

    @field_validator("progress_percent", mode="before")
    @classmethod
    def _coerce_progress(cls, value):
        if value is None:
            return 0
        return _whole_percent(value)

    @field_validator("status", mode="before")
    @classmethod
    def _unknown_status_is_enrolled(cls, value):
        try:
            return EnrollmentStatus(value)
        except ValueError:
            return EnrollmentStatus.ENROLLED


class UpdateEnrollmentProgressRequest(BaseModel):
    """Body of PUT /api/enrollment-progress/{courseId}."""

    model_config = ConfigDict(populate_by_name=True)

    completed_days: list[int] = Field(..., alias="completedDays")
    progress: int = Field(..., ge=0, le=100)
    status: EnrollmentStatus


# ==============================================================================
# Quiz Submissions
# ==============================================================================


class QuizSubmissionRequest(BaseModel):
    """Body of POST /api/quiz-submissions."""

    model_config = ConfigDict(populate_by_name=True)

    course_id: str = Field(..., alias="courseId")
    day_number: int = Field(..., ge=1, alias="dayNumber")
    answers: list[int | None]
    score: int = Field(..., ge=0, le=100)
    attempt_number: int = Field(..., ge=1, alias="attemptNumber")
    submitted_date: datetime = Field(
        default_factory=lambda: datetime.now(UTC), alias="submittedDate"
    )
    force_retake: bool | None = Field(default=None, alias="forceRetake")


class QuizSubmissionRecord(BaseModel):
    """A stored quiz submission as returned by the backend."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    day_number: int = Field(..., alias="dayNumber")
    attempt_number: int = Field(default=1, ge=1, alias="attemptNumber")
    score: int = Field(..., ge=0, le=100)
    total_questions: int | None = Field(default=None, alias="totalQuestions")
    questions: list[dict] | None = None
    submitted_date: datetime | None = Field(default=None, alias="submittedDate")

    @field_validator("score", mode="before")
    @classmethod
    def _coerce_score(cls, value):
        return _whole_percent(value)

    def to_attempt(self, fallback_total: int = 0) -> QuizAttempt:
        """Convert to the immutable domain attempt."""
        total = self.total_questions
        if total is None:
            total = len(self.questions) if self.questions is not None else fallback_total
        submitted = self.submitted_date or datetime.now(UTC)
        if submitted.tzinfo is None:
            submitted = submitted.replace(tzinfo=UTC)
        return QuizAttempt(
            day_number=self.day_number,
            attempt_number=self.attempt_number,
            score=self.score,
            total_questions=total,
            submitted_at=submitted,
        )


class QuizSubmissionListResponse(BaseModel):
    """Body of GET /api/quiz-submissions/{courseId}."""

    data: list[QuizSubmissionRecord] = []
