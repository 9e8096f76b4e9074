"""Client for the authoritative enrollment-progress and quiz endpoints.

This is the only component that reads or writes enrollment progress on the
backend. Every method returns an ``Outcome``; nothing here raises to the
caller. The enrollment is addressed by its course id: the learner is implied
by the bearer credential.
"""

from collections.abc import Iterable, Sequence

import httpx
from pydantic import ValidationError

from learnpath.core.exceptions import BackendError, ProgressionError
from learnpath.core.http import BackendClient
from learnpath.core.logging import get_logger
from learnpath.core.results import Outcome
from learnpath.progress.models import EnrollmentStatus
from learnpath.quiz.models import QuizAttempt

from .schemas import (
    EnrollmentProgress,
    QuizSubmissionListResponse,
    QuizSubmissionRecord,
    QuizSubmissionRequest,
    UpdateEnrollmentProgressRequest,
)


logger = get_logger(__name__)


class ProgressSyncClient:
    """Pull/push of enrollment progress and quiz submissions."""

    def __init__(self, backend: BackendClient):
        self.backend = backend

    # ==========================================================================
    # Enrollment Progress
    # ==========================================================================

    async def pull(self, enrollment_id: str) -> Outcome[EnrollmentProgress]:
        """Fetch authoritative progress (one shot, on course-view mount)."""
        try:
            response = await self.backend.request(
                "GET", f"/api/enrollment-progress/{enrollment_id}"
            )
            body = response.json()
            if isinstance(body, dict) and isinstance(body.get("enrollment"), dict):
                body = body["enrollment"]
            progress = EnrollmentProgress.model_validate(body)
        except ProgressionError as e:
            logger.warning("progress_pull_failed", course_id=enrollment_id, error=e.code)
            return Outcome.fail(e)
        except (ValidationError, ValueError) as e:
            logger.error("progress_pull_invalid", course_id=enrollment_id, error=str(e))
            return Outcome.fail(BackendError(f"Invalid progress payload: {e}"))

        logger.info(
            "progress_pulled",
            course_id=enrollment_id,
            completed_days=progress.completed_days,
            progress=progress.progress_percent,
            status=progress.status.value,
        )
        return Outcome.ok(progress)

    async def push(
        self,
        enrollment_id: str,
        completed_days: Iterable[int],
        progress_percent: int,
        status: EnrollmentStatus,
    ) -> Outcome[None]:
        """Send the computed completed-day set and status to the backend.

        Failure is reported in the returned Outcome; local state is never
        rolled back by the caller on failure.
        """
        payload = UpdateEnrollmentProgressRequest(
            completed_days=sorted(set(completed_days)),
            progress=progress_percent,
            status=status,
        )
        try:
            await self.backend.request(
                "PUT",
                f"/api/enrollment-progress/{enrollment_id}",
                json=payload.model_dump(mode="json", by_alias=True),
            )
        except ProgressionError as e:
            logger.warning(
                "progress_push_failed",
                course_id=enrollment_id,
                progress=progress_percent,
                error=e.code,
            )
            return Outcome.fail(e)

        logger.info(
            "progress_pushed",
            course_id=enrollment_id,
            completed_days=payload.completed_days,
            progress=progress_percent,
            status=status.value,
        )
        return Outcome.ok()

    # ==========================================================================
    # Quiz Submissions
    # ==========================================================================

    async def pull_quiz_history(
        self,
        enrollment_id: str,
        day_number: int,
        total_questions: int = 0,
    ) -> Outcome[list[QuizAttempt]]:
        """Fetch prior attempts for a day, newest attempt number first.

        Args:
            enrollment_id: Course id of the enrollment.
            day_number: Day whose attempts are requested.
            total_questions: Fallback when records omit their question list.
        """
        try:
            response = await self.backend.request(
                "GET",
                f"/api/quiz-submissions/{enrollment_id}",
                params={"dayNumber": day_number},
            )
            body = response.json()
            if isinstance(body, list):
                body = {"data": body}
            records = QuizSubmissionListResponse.model_validate(body).data
        except ProgressionError as e:
            logger.warning(
                "quiz_history_pull_failed",
                course_id=enrollment_id,
                day=day_number,
                error=e.code,
            )
            return Outcome.fail(e)
        except (ValidationError, ValueError) as e:
            logger.error("quiz_history_invalid", course_id=enrollment_id, error=str(e))
            return Outcome.fail(BackendError(f"Invalid quiz history payload: {e}"))

        # The endpoint may return every day of the course; keep the one asked for
        attempts = [
            record.to_attempt(fallback_total=total_questions)
            for record in records
            if record.day_number == day_number
        ]
        attempts.sort(key=lambda a: a.attempt_number, reverse=True)
        return Outcome.ok(attempts)

    async def submit_quiz(
        self,
        enrollment_id: str,
        day_number: int,
        answers: Sequence[int | None],
        score: int,
        attempt_number: int,
        total_questions: int,
        force_retake: bool = False,
    ) -> Outcome[QuizAttempt]:
        """Record a quiz attempt on the backend.

        A duplicate/already-completed rejection comes back as a
        ``sync_conflict`` failure; deciding whether to retry is up to the caller.
        """
        request = QuizSubmissionRequest(
            course_id=enrollment_id,
            day_number=day_number,
            answers=list(answers),
            score=score,
            attempt_number=attempt_number,
            force_retake=True if force_retake else None,
        )
        try:
            response = await self.backend.request(
                "POST",
                "/api/quiz-submissions",
                json=request.model_dump(mode="json", by_alias=True, exclude_none=True),
            )
        except ProgressionError as e:
            logger.warning(
                "quiz_submit_rejected",
                course_id=enrollment_id,
                day=day_number,
                attempt=attempt_number,
                force_retake=force_retake,
                error=e.code,
            )
            return Outcome.fail(e)

        attempt = self._attempt_from_response(response, request, total_questions)
        logger.info(
            "quiz_submitted",
            course_id=enrollment_id,
            day=day_number,
            attempt=attempt.attempt_number,
            score=attempt.score,
        )
        return Outcome.ok(attempt)

    @staticmethod
    def _attempt_from_response(
        response: httpx.Response,
        request: QuizSubmissionRequest,
        total_questions: int,
    ) -> QuizAttempt:
        """Overlay the stored record echoed by the backend on the request."""
        fields = {
            "dayNumber": request.day_number,
            "attemptNumber": request.attempt_number,
            "score": request.score,
            "totalQuestions": total_questions,
            "submittedDate": request.submitted_date,
        }
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            record = body.get("submission", body)
            if isinstance(record, dict):
                fields.update(
                    {k: v for k, v in record.items() if k in fields and v is not None}
                )
        try:
            return QuizSubmissionRecord.model_validate(fields).to_attempt()
        except ValidationError as e:
            logger.warning("quiz_submit_echo_invalid", error=str(e))
            return QuizAttempt(
                day_number=request.day_number,
                attempt_number=request.attempt_number,
                score=request.score,
                total_questions=total_questions,
                submitted_at=request.submitted_date,
            )
