"""Fire-and-forget delivery of progress snapshots to the backend.

Pushes run as asyncio tasks so the state change that triggered them is never
blocked. Several pushes may be in flight at once; each carries the full
completed-day set, so the backend ends up with whichever state it applies
last. Failures are kept for the caller to surface and are not retried: the
next mutation pushes the whole state again.
"""

import asyncio
from collections.abc import Callable

from learnpath.core.context import CourseContext
from learnpath.core.exceptions import ProgressionError
from learnpath.core.logging import get_logger
from learnpath.core.results import Outcome
from learnpath.progress.models import ProgressSnapshot

from .client import ProgressSyncClient


logger = get_logger(__name__)

FailureCallback = Callable[[ProgressSnapshot, ProgressionError], None]


class ProgressPusher:
    """Schedules pushes of engine snapshots without awaiting them."""

    def __init__(
        self,
        client: ProgressSyncClient,
        enrollment_id: str,
        on_failure: FailureCallback | None = None,
    ):
        self.client = client
        self.enrollment_id = enrollment_id
        self.on_failure = on_failure
        self.last_error: ProgressionError | None = None
        self._tasks: set[asyncio.Task] = set()
        self._generation = 0

    @property
    def in_flight(self) -> int:
        return sum(1 for task in self._tasks if not task.done())

    def __call__(self, snapshot: ProgressSnapshot) -> asyncio.Task | None:
        return self.schedule(snapshot)

    def schedule(self, snapshot: ProgressSnapshot) -> asyncio.Task | None:
        """Start pushing the snapshot in the background.

        Returns the task, or None when no event loop is running (the push is
        skipped and reported as a failure; the next mutation pushes again).
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(
                "progress_push_skipped_no_loop", course_id=self.enrollment_id
            )
            return None

        task = loop.create_task(self._push(snapshot, self._generation))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _push(self, snapshot: ProgressSnapshot, generation: int) -> Outcome[None]:
        with CourseContext(self.enrollment_id):
            outcome = await self.client.push(
                self.enrollment_id,
                snapshot.completed_days,
                snapshot.progress_percent,
                snapshot.status,
            )
        if generation != self._generation:
            # Nobody is interested any more (viewer navigated away)
            return outcome
        if outcome.success:
            self.last_error = None
        else:
            self.last_error = outcome.error
            if self.on_failure is not None and outcome.error is not None:
                self.on_failure(snapshot, outcome.error)
        return outcome

    async def drain(self) -> list[Outcome[None]]:
        """Wait for every in-flight push and return their outcomes."""
        if not self._tasks:
            return []
        return list(await asyncio.gather(*list(self._tasks)))

    def discard(self) -> None:
        """Stop reporting results of pushes already in flight.

        The pushes themselves are not cancelled; they are allowed to finish.
        """
        self._generation += 1
