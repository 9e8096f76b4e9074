"""Course viewer sessions: the call sequence a course view makes.

A session lives as long as one learner has one course open. ``mount`` runs
the load sequence (roadmap, cached progress, authoritative pull, one-shot
reconciliation, restored position); the remaining methods are the user
actions of the view.
"""

import hashlib
from collections.abc import Callable, Sequence

import httpx

from learnpath.cache import create_progress_cache
from learnpath.cache.base import LocalProgressCache, ViewState
from learnpath.config import Settings, get_settings
from learnpath.core.exceptions import (
    CacheUnavailableError,
    InvalidTransitionError,
    NotAuthenticatedError,
    ProgressionError,
)
from learnpath.core.http import BackendClient
from learnpath.core.logging import get_logger
from learnpath.core.results import Outcome
from learnpath.progress.engine import ProgressionEngine
from learnpath.progress.models import ProgressSnapshot
from learnpath.quiz.models import QuizAttempt, QuizAttemptLedger
from learnpath.quiz.service import QuizAttemptManager
from learnpath.roadmap.models import Roadmap
from learnpath.roadmap.service import RoadmapService
from learnpath.sync.client import ProgressSyncClient
from learnpath.sync.pusher import ProgressPusher


logger = get_logger(__name__)

CacheFactory = Callable[[str], LocalProgressCache]


def learner_key_for(token: str) -> str:
    """Stable cache namespace for a credential without storing the credential."""
    return hashlib.sha256(token.encode()).hexdigest()[:16]


class CourseViewerSession:
    """One learner's open course view."""

    def __init__(
        self,
        course_id: str,
        backend: BackendClient,
        cache: LocalProgressCache,
        settings: Settings | None = None,
    ):
        self.course_id = course_id
        self.backend = backend
        self.cache = cache
        self.settings = settings or get_settings()

        self.roadmap_service = RoadmapService(backend)
        self.sync_client = ProgressSyncClient(backend)
        self.pusher = ProgressPusher(
            self.sync_client, course_id, on_failure=self._on_push_failure
        )

        self.engine: ProgressionEngine | None = None
        self.quiz: QuizAttemptManager | None = None
        self.view_state = ViewState()
        self.sync_error: ProgressionError | None = None
        self._view_cache_error: CacheUnavailableError | None = None

    # ==========================================================================
    # State
    # ==========================================================================

    @property
    def is_mounted(self) -> bool:
        return self.engine is not None

    @property
    def roadmap(self) -> Roadmap:
        return self._require_engine().roadmap

    @property
    def selected_day(self) -> int | None:
        return self.view_state.last_viewed_day

    @property
    def cache_error(self) -> CacheUnavailableError | None:
        """Last failed local save (view position or progress), if any."""
        if self._view_cache_error is not None:
            return self._view_cache_error
        return self.engine.cache_error if self.engine is not None else None

    def _require_engine(self) -> ProgressionEngine:
        if self.engine is None:
            raise InvalidTransitionError("Course is not loaded")
        return self.engine

    def _on_push_failure(self, snapshot: ProgressSnapshot, error: ProgressionError) -> None:
        self.sync_error = error
        logger.warning(
            "progress_push_not_applied",
            course_id=self.course_id,
            completed=sorted(snapshot.completed_days),
            error=error.code,
        )

    # ==========================================================================
    # Load
    # ==========================================================================

    async def mount(self) -> Outcome[ProgressSnapshot]:
        """Load the course view.

        The cached state is shown first; the server's progress is merged in
        once. A failed pull leaves the cached state in place and is reported
        through ``sync_error``.
        """
        if not self.backend.is_authenticated:
            return Outcome.fail(NotAuthenticatedError())

        # Results of pushes from a previous load are of no interest any more
        self.pusher.discard()
        self.sync_error = None

        loaded = await self.roadmap_service.load(self.course_id)
        if not loaded.success:
            return Outcome.fail(loaded.error)
        roadmap = loaded.value

        ledger = QuizAttemptLedger(
            max_attempts=self.settings.quiz_max_attempts,
            pass_threshold=self.settings.quiz_pass_threshold,
        )
        self.engine = ProgressionEngine.from_cache(
            roadmap, self.cache, ledger=ledger, push=self.pusher
        )
        self.quiz = QuizAttemptManager(self.engine, self.sync_client)

        pulled = await self.sync_client.pull(self.course_id)
        if pulled.success:
            self.engine.reconcile(
                pulled.value.completed_days, pulled.value.progress_percent
            )
        else:
            self.sync_error = pulled.error
            logger.warning(
                "viewer_using_cached_progress",
                course_id=self.course_id,
                error=pulled.code,
            )

        self._restore_view_state(roadmap)
        day = self.view_state.last_viewed_day
        if day is not None:
            await self._load_quiz_history(day)

        snapshot = self.engine.snapshot()
        logger.info(
            "viewer_mounted",
            course_id=self.course_id,
            selected_day=day,
            progress=snapshot.progress_percent,
            status=snapshot.status.value,
        )
        return Outcome.ok(snapshot)

    def _restore_view_state(self, roadmap: Roadmap) -> None:
        saved = self.cache.load_view_state(self.course_id)
        day = saved.last_viewed_day
        if day is None or not roadmap.contains(day):
            day = roadmap.first_day
        quiz_open = saved.quiz_view_open and day is not None and roadmap.has_quiz(day)
        self.view_state = ViewState(last_viewed_day=day, quiz_view_open=quiz_open)

    async def _load_quiz_history(self, day: int) -> None:
        outcome = await self.quiz.load_history(day)
        if not outcome.success:
            self.sync_error = outcome.error

    # ==========================================================================
    # Actions
    # ==========================================================================

    async def select_day(
        self, day: int, quiz_view_open: bool = False
    ) -> Outcome[ViewState]:
        """Move the view to another day and refresh that day's attempts."""
        try:
            engine = self._require_engine()
        except ProgressionError as e:
            return Outcome.fail(e)
        if not engine.roadmap.contains(day):
            return Outcome.fail(
                InvalidTransitionError(f"Day {day} is not part of this course")
            )

        self.view_state = ViewState(
            last_viewed_day=day,
            quiz_view_open=quiz_view_open and engine.roadmap.has_quiz(day),
        )
        try:
            self.cache.save_view_state(self.course_id, self.view_state)
        except CacheUnavailableError as e:
            self._view_cache_error = e
        else:
            self._view_cache_error = None
        await self._load_quiz_history(day)
        return Outcome.ok(self.view_state)

    def on_video_completed(self, day: int) -> Outcome[ProgressSnapshot]:
        """Player signalled the end of the day's video."""
        try:
            engine = self._require_engine()
        except ProgressionError as e:
            return Outcome.fail(e)
        return engine.record_video_watched(day)

    async def submit_quiz(
        self, day: int, answers: Sequence[int | None]
    ) -> Outcome[QuizAttempt]:
        """Submit the day's quiz, then complete the day when it is allowed."""
        try:
            engine = self._require_engine()
        except ProgressionError as e:
            return Outcome.fail(e)

        outcome = await self.quiz.submit_attempt(day, answers)
        if (
            outcome.success
            and day not in engine.completed_days
            and not engine.is_day_locked(day)
            and engine.check_day_completion(day)
        ):
            engine.mark_day_complete(day)
        return outcome

    def toggle_day(self, day: int) -> Outcome[ProgressSnapshot]:
        try:
            engine = self._require_engine()
        except ProgressionError as e:
            return Outcome.fail(e)
        return engine.toggle_day(day)

    def close(self) -> None:
        """Leave the view. In-flight pushes finish but nobody hears of them."""
        self.pusher.discard()
        logger.debug("viewer_closed", course_id=self.course_id)


class SessionRegistry:
    """Open viewer sessions keyed by (credential, course)."""

    def __init__(
        self,
        settings: Settings | None = None,
        cache_factory: CacheFactory | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the registry.

        Args:
            settings: Application settings.
            cache_factory: Builds the cache for a learner key (defaults to the
                configured backend).
            transport: Optional httpx transport for backend clients (tests).
        """
        self.settings = settings or get_settings()
        self.cache_factory = cache_factory or (
            lambda learner_key: create_progress_cache(self.settings, learner_key)
        )
        self.transport = transport
        self._backends: dict[str, BackendClient] = {}
        self._sessions: dict[tuple[str, str], CourseViewerSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def _backend_for(self, token: str, learner_key: str) -> BackendClient:
        backend = self._backends.get(learner_key)
        if backend is None:
            backend = BackendClient(
                self.settings.backend_base_url,
                token,
                timeout=self.settings.backend_timeout_seconds,
                retries=self.settings.backend_retries,
                transport=self.transport,
            )
            self._backends[learner_key] = backend
        return backend

    def get(self, token: str, course_id: str) -> CourseViewerSession | None:
        return self._sessions.get((learner_key_for(token), course_id))

    def get_or_create(self, token: str, course_id: str) -> CourseViewerSession:
        learner_key = learner_key_for(token)
        session = self._sessions.get((learner_key, course_id))
        if session is None:
            session = CourseViewerSession(
                course_id,
                self._backend_for(token, learner_key),
                self.cache_factory(learner_key),
                settings=self.settings,
            )
            self._sessions[(learner_key, course_id)] = session
            logger.debug("viewer_session_created", course_id=course_id)
        return session

    def close(self, token: str, course_id: str) -> bool:
        session = self._sessions.pop((learner_key_for(token), course_id), None)
        if session is None:
            return False
        session.close()
        return True

    async def aclose(self) -> None:
        """Close every session and backend client (application shutdown)."""
        for session in self._sessions.values():
            session.close()
        self._sessions.clear()
        for backend in self._backends.values():
            await backend.aclose()
        self._backends.clear()
