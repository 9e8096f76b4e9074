"""Quiz attempt submission with the attempt ceiling and conflict retry."""

from collections.abc import Sequence

from learnpath.core.exceptions import (
    AttemptLimitExceededError,
    InvalidTransitionError,
    ProgressionError,
)
from learnpath.core.logging import get_logger
from learnpath.core.results import Outcome
from learnpath.progress.engine import ProgressionEngine
from learnpath.roadmap.models import score_answers
from learnpath.sync.client import ProgressSyncClient

from .models import QuizAttempt, QuizAttemptLedger


logger = get_logger(__name__)


class QuizAttemptManager:
    """Scores and records quiz attempts for one course.

    Attempts are kept in the engine's ledger so that day completion sees
    them as soon as they are recorded.
    """

    def __init__(self, engine: ProgressionEngine, sync_client: ProgressSyncClient):
        self.engine = engine
        self.sync_client = sync_client

    @property
    def ledger(self) -> QuizAttemptLedger:
        return self.engine.ledger

    @property
    def course_id(self) -> str:
        return self.engine.course_id

    def attempts_remaining(self, day: int) -> int:
        return self.ledger.attempts_remaining(day)

    def can_attempt(self, day: int) -> bool:
        return self.ledger.can_attempt(day)

    def _ensure_can_submit(self, day: int) -> None:
        roadmap_day = self.engine.roadmap.get_day(day)
        if roadmap_day is None:
            raise InvalidTransitionError(f"Day {day} is not part of this course")
        if not roadmap_day.has_quiz:
            raise InvalidTransitionError(f"Day {day} has no quiz")
        if not self.engine.is_quiz_unlocked(day):
            raise InvalidTransitionError(
                f"Watch the day {day} video to unlock its quiz"
            )
        if self.ledger.has_perfect_score(day):
            raise AttemptLimitExceededError(
                f"Day {day} quiz already has a perfect score"
            )
        if not self.ledger.can_attempt(day):
            raise AttemptLimitExceededError(
                f"Maximum of {self.ledger.max_attempts} attempts reached for day {day}"
            )

    async def submit_attempt(
        self, day: int, answers: Sequence[int | None]
    ) -> Outcome[QuizAttempt]:
        """Score the answers and record the attempt on the backend.

        A backend conflict ("already completed") is retried exactly once with
        ``force_retake``; whatever the retry returns is final. The attempt is
        added to the ledger only once the backend accepted it.
        """
        try:
            self._ensure_can_submit(day)
        except ProgressionError as e:
            logger.info(
                "quiz_attempt_rejected",
                course_id=self.course_id,
                day=day,
                error=e.code,
                reason=e.message,
            )
            return Outcome.fail(e)

        questions = self.engine.roadmap.get_day(day).quiz_questions
        score = score_answers(questions, answers)
        attempt_number = self.ledger.next_attempt_number(day)

        submission = dict(
            enrollment_id=self.course_id,
            day_number=day,
            answers=list(answers),
            score=score,
            attempt_number=attempt_number,
            total_questions=len(questions),
        )
        outcome = await self.sync_client.submit_quiz(**submission)

        if not outcome.success and outcome.code == "sync_conflict":
            logger.info(
                "quiz_submit_conflict_retry",
                course_id=self.course_id,
                day=day,
                attempt=attempt_number,
            )
            outcome = await self.sync_client.submit_quiz(**submission, force_retake=True)

        if not outcome.success:
            return outcome

        attempt = outcome.value
        self.ledger.record(attempt)
        logger.info(
            "quiz_attempt_recorded",
            course_id=self.course_id,
            day=day,
            attempt=attempt.attempt_number,
            score=attempt.score,
            passed=attempt.passed(self.ledger.pass_threshold),
            attempts_remaining=self.ledger.attempts_remaining(day),
        )
        return Outcome.ok(attempt)

    async def load_history(self, day: int) -> Outcome[list[QuizAttempt]]:
        """Repopulate the ledger for a day from the backend's submissions.

        Returns the attempts newest first. On failure the ledger keeps what it
        had.
        """
        roadmap_day = self.engine.roadmap.get_day(day)
        if roadmap_day is None:
            return Outcome.fail(
                InvalidTransitionError(f"Day {day} is not part of this course")
            )
        if not roadmap_day.has_quiz:
            return Outcome.ok([])

        outcome = await self.sync_client.pull_quiz_history(
            self.course_id, day, total_questions=len(roadmap_day.quiz_questions)
        )
        if outcome.success:
            self.ledger.replace_day(day, outcome.value)
            logger.debug(
                "quiz_history_loaded",
                course_id=self.course_id,
                day=day,
                attempts=len(outcome.value),
            )
        return outcome
