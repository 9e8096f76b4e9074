"""Day-by-day progression state machine for one learner in one course.

Per day: Locked -> NotWatched -> Watched -> [QuizPending ->] Completed, with
``mark_day_incomplete`` truncating a day and every later one back to
NotWatched (which re-locks everything after it).

The engine holds the session's authoritative in-memory copy of the watched
and completed day sets plus the quiz attempt ledger. Every mutation is saved
to the local cache before returning, and completed-set changes are handed to
the push hook afterwards (optimistic update, eventual push).
"""

from collections.abc import Callable, Iterable

from learnpath.cache.base import CachedProgress, LocalProgressCache
from learnpath.cache.reconcile import reconcile_progress
from learnpath.core.exceptions import (
    CacheUnavailableError,
    InvalidTransitionError,
    ProgressionError,
)
from learnpath.core.logging import get_logger
from learnpath.core.results import Outcome
from learnpath.quiz.models import QuizAttemptLedger
from learnpath.roadmap.models import Roadmap
from learnpath.utils import round_half_up

from .models import (
    DayState,
    EnrollmentStatus,
    ProgressSnapshot,
    progress_percent,
    status_for_percent,
)


logger = get_logger(__name__)

PushHook = Callable[[ProgressSnapshot], object]


class ProgressionEngine:
    """Lock/unlock and completion rules over a linear course roadmap."""

    def __init__(
        self,
        roadmap: Roadmap,
        cache: LocalProgressCache | None = None,
        ledger: QuizAttemptLedger | None = None,
        push: PushHook | None = None,
        watched: Iterable[int] = (),
        completed: Iterable[int] = (),
    ):
        """Initialize the engine.

        Args:
            roadmap: Course days (read-only).
            cache: Durable mirror written after every mutation.
            ledger: Quiz attempts per day.
            push: Called with a snapshot whenever the completed set changes.
            watched: Initial watched days.
            completed: Initial completed days (must be prefix-contiguous).
        """
        self.roadmap = roadmap
        self.cache = cache
        self.ledger = ledger or QuizAttemptLedger()
        self.push = push
        self._watched: set[int] = set(watched)
        self._completed: set[int] = set(completed)
        self.cache_error: CacheUnavailableError | None = None

    @classmethod
    def from_cache(
        cls,
        roadmap: Roadmap,
        cache: LocalProgressCache,
        ledger: QuizAttemptLedger | None = None,
        push: PushHook | None = None,
    ) -> "ProgressionEngine":
        """Restore the state saved before a reload (before any server pull).

        Cached days are passed through reconciliation with no server data, so
        stale entries for days the roadmap no longer has are dropped.
        """
        cached = reconcile_progress(cache.load(roadmap.course_id), None, roadmap)
        return cls(
            roadmap,
            cache=cache,
            ledger=ledger,
            push=push,
            watched=cached.watched,
            completed=cached.completed,
        )

    # ==========================================================================
    # Derived State
    # ==========================================================================

    @property
    def course_id(self) -> str:
        return self.roadmap.course_id

    @property
    def watched_days(self) -> frozenset[int]:
        return frozenset(self._watched)

    @property
    def completed_days(self) -> frozenset[int]:
        return frozenset(self._completed)

    @property
    def progress_percent(self) -> int:
        return progress_percent(len(self._completed), self.roadmap.total_days)

    @property
    def status(self) -> EnrollmentStatus:
        return status_for_percent(self.progress_percent)

    def snapshot(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            course_id=self.course_id,
            watched_days=self.watched_days,
            completed_days=self.completed_days,
            total_days=self.roadmap.total_days,
        )

    # ==========================================================================
    # Queries
    # ==========================================================================

    def is_day_locked(self, day: int) -> bool:
        """A day is locked until the day before it is completed.

        The first roadmap day is never locked; unknown days always are.
        """
        if not self.roadmap.contains(day):
            return True
        previous = self.roadmap.previous_day(day)
        return previous is not None and previous not in self._completed

    def is_quiz_unlocked(self, day: int) -> bool:
        """Watching unlocks the quiz; a completed day implies it was watched."""
        return day in self._watched or day in self._completed

    def check_day_completion(self, day: int) -> bool:
        """Whether the day satisfies its completion criteria.

        The video must be watched; a quiz day also needs at least one recorded
        attempt, whatever its score.
        """
        if day not in self._watched or not self.roadmap.contains(day):
            return False
        if not self.roadmap.has_quiz(day):
            return True
        return self.ledger.has_attempt(day)

    def is_quiz_passed(self, day: int) -> bool:
        return self.ledger.is_passed(day)

    def can_continue(self, day: int) -> bool:
        """Whether to offer "continue to next day" (completed, quiz passed)."""
        if day not in self._completed:
            return False
        if self.roadmap.has_quiz(day) and not self.ledger.is_passed(day):
            return False
        return self.roadmap.next_day(day) is not None

    def day_state(self, day: int) -> DayState:
        if day in self._completed:
            return DayState.COMPLETED
        if self.is_day_locked(day):
            return DayState.LOCKED
        if day not in self._watched:
            return DayState.NOT_WATCHED
        if self.roadmap.has_quiz(day) and not self.ledger.has_attempt(day):
            return DayState.QUIZ_PENDING
        return DayState.WATCHED

    # ==========================================================================
    # Transitions
    # ==========================================================================

    def record_video_watched(self, day: int) -> Outcome[ProgressSnapshot]:
        """Handle the player's completed signal for a day.

        Days without a quiz are completed right away when their predecessor
        is; quiz days wait for an attempt and an explicit completion.
        """
        if not self.roadmap.contains(day):
            return Outcome.fail(InvalidTransitionError(f"Day {day} is not part of this course"))

        if day not in self._watched:
            self._watched.add(day)
            self._save()
            logger.info("video_watched", course_id=self.course_id, day=day)

        if (
            day not in self._completed
            and not self.roadmap.has_quiz(day)
            and not self.is_day_locked(day)
            and self.check_day_completion(day)
        ):
            return self.mark_day_complete(day)

        return Outcome.ok(self.snapshot())

    def mark_day_complete(self, day: int) -> Outcome[ProgressSnapshot]:
        """Insert a day into the completed set.

        Fails with ``invalid_transition`` when the day's completion criteria
        do not hold or the previous day is not completed.
        """
        try:
            self._ensure_can_complete(day)
        except ProgressionError as e:
            logger.info(
                "day_completion_rejected",
                course_id=self.course_id,
                day=day,
                reason=e.message,
            )
            return Outcome.fail(e)

        if day in self._completed:
            return Outcome.ok(self.snapshot())

        self._completed.add(day)
        snapshot = self._commit()
        logger.info(
            "day_marked_complete",
            course_id=self.course_id,
            day=day,
            progress=snapshot.progress_percent,
            status=snapshot.status.value,
        )
        return Outcome.ok(snapshot)

    def mark_day_incomplete(self, day: int) -> Outcome[ProgressSnapshot]:
        """Undo a day: drop it and every later day from both sets.

        Later completions depend on earlier ones, so the undo truncates
        instead of removing the single day.
        """
        if not self.roadmap.contains(day):
            return Outcome.fail(InvalidTransitionError(f"Day {day} is not part of this course"))

        removed_completed = {d for d in self._completed if d >= day}
        removed_watched = {d for d in self._watched if d >= day}
        if not removed_completed and not removed_watched:
            return Outcome.ok(self.snapshot())

        self._completed -= removed_completed
        self._watched -= removed_watched

        if removed_completed:
            snapshot = self._commit()
        else:
            self._save()
            snapshot = self.snapshot()

        logger.info(
            "day_marked_incomplete",
            course_id=self.course_id,
            day=day,
            uncompleted=sorted(removed_completed),
            unwatched=sorted(removed_watched),
            progress=snapshot.progress_percent,
        )
        return Outcome.ok(snapshot)

    def toggle_day(self, day: int) -> Outcome[ProgressSnapshot]:
        """The "Mark as Complete" / "Mark as Incomplete" button."""
        if day in self._completed:
            return self.mark_day_incomplete(day)
        return self.mark_day_complete(day)

    # ==========================================================================
    # Reconciliation
    # ==========================================================================

    def reconcile(
        self,
        authoritative_completed: Iterable[int] | None,
        authoritative_percent: int | None = None,
    ) -> ProgressSnapshot:
        """Merge server progress into the local state (once per course load).

        When the server sends no completed-day list, days ``1..n`` are taken
        as completed where ``n`` is derived from its percentage. If the merged
        state is ahead of the server, it is pushed back.
        """
        if authoritative_completed is None and authoritative_percent is not None:
            count = round_half_up(
                authoritative_percent * self.roadmap.total_days / 100
            )
            authoritative_completed = self.roadmap.day_numbers[:count]

        merged = reconcile_progress(
            CachedProgress(
                watched=self.watched_days, completed=self.completed_days
            ),
            authoritative_completed,
            self.roadmap,
        )
        self._watched = set(merged.watched)
        self._completed = set(merged.completed)
        self._save()

        server_days = set(authoritative_completed or ())
        snapshot = self.snapshot()
        logger.info(
            "progress_reconciled",
            course_id=self.course_id,
            completed=sorted(snapshot.completed_days),
            server_completed=sorted(server_days),
            progress=snapshot.progress_percent,
        )
        if snapshot.completed_days != server_days:
            self._push(snapshot)
        return snapshot

    # ==========================================================================
    # Internals
    # ==========================================================================

    def _ensure_can_complete(self, day: int) -> None:
        if not self.roadmap.contains(day):
            raise InvalidTransitionError(f"Day {day} is not part of this course")
        if self.is_day_locked(day):
            raise InvalidTransitionError(
                f"Day {day} is locked until the previous day is completed"
            )
        if day in self._completed:
            return
        if day not in self._watched:
            raise InvalidTransitionError(f"Watch the day {day} video first")
        if not self.check_day_completion(day):
            raise InvalidTransitionError(f"Submit the day {day} quiz first")

    def _save(self) -> None:
        """Mirror the sets to the cache.

        A failed write keeps the in-memory state and is remembered in
        ``cache_error`` until the next successful save.
        """
        if self.cache is None:
            return
        try:
            self.cache.save(self.course_id, self._watched, self._completed)
        except CacheUnavailableError as e:
            self.cache_error = e
            logger.warning(
                "progress_not_cached",
                course_id=self.course_id,
                completed=sorted(self._completed),
            )
        else:
            self.cache_error = None

    def _commit(self) -> ProgressSnapshot:
        """Persist locally first, then hand the new state to the push hook."""
        self._save()
        snapshot = self.snapshot()
        self._push(snapshot)
        return snapshot

    def _push(self, snapshot: ProgressSnapshot) -> None:
        if self.push is not None:
            self.push(snapshot)
