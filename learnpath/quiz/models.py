"""Quiz attempts and the per-day attempt ledger."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


# Attempt policy
MAX_ATTEMPTS_PER_DAY = 2
PASS_THRESHOLD = 70
PERFECT_SCORE = 100


@dataclass(frozen=True)
class QuizAttempt:
    """One scored quiz submission. Never modified once recorded."""

    day_number: int
    attempt_number: int
    score: int
    total_questions: int
    submitted_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def passed(self, threshold: int = PASS_THRESHOLD) -> bool:
        return self.score >= threshold

    @property
    def is_perfect(self) -> bool:
        return self.score >= PERFECT_SCORE

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "day_number": self.day_number,
            "attempt_number": self.attempt_number,
            "score": self.score,
            "total_questions": self.total_questions,
            "submitted_at": self.submitted_at.isoformat(),
        }


class QuizAttemptLedger:
    """Recorded attempts per day, in submission order.

    The ledger only accumulates: recording appends, and repopulating a day
    from server history replaces that day's list wholesale.
    """

    def __init__(
        self,
        max_attempts: int = MAX_ATTEMPTS_PER_DAY,
        pass_threshold: int = PASS_THRESHOLD,
    ):
        self.max_attempts = max_attempts
        self.pass_threshold = pass_threshold
        self._attempts: dict[int, list[QuizAttempt]] = {}

    def attempts(self, day_number: int) -> list[QuizAttempt]:
        """Attempts for the day, oldest first."""
        return list(self._attempts.get(day_number, []))

    def count(self, day_number: int) -> int:
        return len(self._attempts.get(day_number, []))

    def has_attempt(self, day_number: int) -> bool:
        return self.count(day_number) > 0

    def next_attempt_number(self, day_number: int) -> int:
        """Count-based numbering: one more than the attempts recorded."""
        return self.count(day_number) + 1

    def best_score(self, day_number: int) -> int | None:
        scores = [a.score for a in self._attempts.get(day_number, [])]
        return max(scores) if scores else None

    def is_passed(self, day_number: int) -> bool:
        best = self.best_score(day_number)
        return best is not None and best >= self.pass_threshold

    def has_perfect_score(self, day_number: int) -> bool:
        return any(a.is_perfect for a in self._attempts.get(day_number, []))

    def attempts_remaining(self, day_number: int) -> int:
        if self.has_perfect_score(day_number):
            return 0
        return max(0, self.max_attempts - self.count(day_number))

    def can_attempt(self, day_number: int) -> bool:
        return self.attempts_remaining(day_number) > 0

    def record(self, attempt: QuizAttempt) -> None:
        self._attempts.setdefault(attempt.day_number, []).append(attempt)

    def replace_day(self, day_number: int, attempts: Iterable[QuizAttempt]) -> None:
        """Repopulate a day from server history (any order accepted)."""
        self._attempts[day_number] = sorted(
            (a for a in attempts if a.day_number == day_number),
            key=lambda a: a.attempt_number,
        )

    def clear_day(self, day_number: int) -> None:
        self._attempts.pop(day_number, None)

    def days(self) -> list[int]:
        return sorted(d for d, attempts in self._attempts.items() if attempts)
