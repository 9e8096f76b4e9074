"""Quiz attempts module.

Provides:
- Immutable quiz attempts and the per-day attempt ledger
- Attempt policy (ceiling, pass threshold, perfect-score stop)
- The QuizAttemptManager (``learnpath.quiz.service``)
"""

from .models import (
    MAX_ATTEMPTS_PER_DAY,
    PASS_THRESHOLD,
    PERFECT_SCORE,
    QuizAttempt,
    QuizAttemptLedger,
)


__all__ = [
    "MAX_ATTEMPTS_PER_DAY",
    "PASS_THRESHOLD",
    "PERFECT_SCORE",
    "QuizAttempt",
    "QuizAttemptLedger",
]
