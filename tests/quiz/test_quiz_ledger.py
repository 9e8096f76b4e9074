"""Tests for quiz attempts and the attempt ledger."""

from learnpath.quiz.models import QuizAttempt, QuizAttemptLedger


def attempt(day: int, number: int, score: int) -> QuizAttempt:
    return QuizAttempt(
        day_number=day, attempt_number=number, score=score, total_questions=4
    )


class TestQuizAttempt:
    """Tests for the immutable attempt record."""

    def test_passed_uses_threshold(self) -> None:
        """70 passes, 69 does not."""
        assert attempt(1, 1, 70).passed() is True
        assert attempt(1, 1, 69).passed() is False
        assert attempt(1, 1, 69).passed(threshold=60) is True

    def test_to_dict(self) -> None:
        """Serialized form carries every field."""
        data = attempt(2, 1, 100).to_dict()
        assert data["day_number"] == 2
        assert data["score"] == 100
        assert "submitted_at" in data


class TestQuizAttemptLedger:
    """Tests for the per-day ledger."""

    def test_attempt_numbers_are_count_based(self) -> None:
        """Next attempt number is one more than the recorded count."""
        ledger = QuizAttemptLedger()
        assert ledger.next_attempt_number(2) == 1

        ledger.record(attempt(2, 1, 40))

        assert ledger.next_attempt_number(2) == 2
        assert ledger.next_attempt_number(4) == 1

    def test_two_attempts_exhaust_the_day(self) -> None:
        """The ceiling is two attempts per day."""
        ledger = QuizAttemptLedger()
        ledger.record(attempt(2, 1, 40))
        assert ledger.attempts_remaining(2) == 1

        ledger.record(attempt(2, 2, 50))

        assert ledger.attempts_remaining(2) == 0
        assert ledger.can_attempt(2) is False

    def test_perfect_score_stops_further_attempts(self) -> None:
        """A first attempt of 100 leaves no attempts."""
        ledger = QuizAttemptLedger()
        ledger.record(attempt(2, 1, 100))

        assert ledger.has_perfect_score(2) is True
        assert ledger.can_attempt(2) is False

    def test_best_score_and_pass(self) -> None:
        """The best attempt decides whether the quiz is passed."""
        ledger = QuizAttemptLedger()
        assert ledger.best_score(2) is None
        assert ledger.is_passed(2) is False

        ledger.record(attempt(2, 1, 80))
        ledger.record(attempt(2, 2, 30))

        assert ledger.best_score(2) == 80
        assert ledger.is_passed(2) is True

    def test_replace_day_sorts_and_filters(self) -> None:
        """Server history replaces the day, oldest attempt first."""
        ledger = QuizAttemptLedger()
        ledger.record(attempt(2, 1, 10))

        ledger.replace_day(2, [attempt(2, 2, 90), attempt(2, 1, 60), attempt(4, 1, 50)])

        assert [a.attempt_number for a in ledger.attempts(2)] == [1, 2]
        assert ledger.count(4) == 0
        assert ledger.days() == [2]

    def test_custom_policy(self) -> None:
        """Ceiling and threshold come from the constructor."""
        ledger = QuizAttemptLedger(max_attempts=3, pass_threshold=50)
        ledger.record(attempt(2, 1, 55))
        ledger.record(attempt(2, 2, 20))

        assert ledger.can_attempt(2) is True
        assert ledger.is_passed(2) is True

    def test_clear_day(self) -> None:
        """Clearing a day forgets its attempts."""
        ledger = QuizAttemptLedger()
        ledger.record(attempt(2, 1, 10))
        ledger.clear_day(2)
        assert ledger.has_attempt(2) is False
