"""Durable per-learner, per-course progress cache.

The cache bridges UI state across reloads until the authoritative pull
completes. Backends only move JSON strings in and out of a key-value store;
encoding, key layout and corruption handling live here so that every backend
behaves the same and can be swapped without touching the engine.
"""

import json
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass, field

import redis

from learnpath.core.exceptions import CacheUnavailableError
from learnpath.core.logging import get_logger


logger = get_logger(__name__)

# Failures of the backing store (Redis server or cache directory)
STORAGE_ERRORS = (redis.RedisError, OSError)


@dataclass(frozen=True)
class CachedProgress:
    """Watched and completed day sets as last saved."""

    watched: frozenset[int] = field(default_factory=frozenset)
    completed: frozenset[int] = field(default_factory=frozenset)

    @property
    def is_empty(self) -> bool:
        return not self.watched and not self.completed


@dataclass(frozen=True)
class ViewState:
    """Viewer position: last selected day and whether the quiz panel was open."""

    last_viewed_day: int | None = None
    quiz_view_open: bool = False


def _day_set(values: object) -> frozenset[int]:
    if not isinstance(values, list):
        return frozenset()
    return frozenset(
        v for v in values if isinstance(v, int) and not isinstance(v, bool) and v >= 1
    )


class LocalProgressCache(ABC):
    """Key-value progress cache namespaced by learner and course.

    Keys:
        ``{prefix}:{learner}:{course}:progress`` -> {"watched": [...], "completed": [...]}
        ``{prefix}:{learner}:{course}:view``     -> {"lastViewedDay": n, "quizViewOpen": b}
    """

    def __init__(self, learner_key: str, prefix: str = "learnpath"):
        self.learner_key = learner_key
        self.prefix = prefix

    # ==========================================================================
    # Storage primitives (implemented by backends)
    # ==========================================================================

    @abstractmethod
    def _read(self, key: str) -> str | None:
        """Return the stored string for key, or None if absent."""

    @abstractmethod
    def _write(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value atomically."""

    @abstractmethod
    def _delete(self, keys: Iterable[str]) -> None:
        """Remove keys (missing keys are ignored)."""

    # ==========================================================================
    # Keys
    # ==========================================================================

    def progress_key(self, course_id: str) -> str:
        return f"{self.prefix}:{self.learner_key}:{course_id}:progress"

    def view_key(self, course_id: str) -> str:
        return f"{self.prefix}:{self.learner_key}:{course_id}:view"

    def _read_json(self, key: str) -> dict | None:
        try:
            raw = self._read(key)
        except (*STORAGE_ERRORS, UnicodeDecodeError) as e:
            logger.warning("cache_read_failed", key=key, error=str(e))
            return None
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("cache_entry_corrupt", key=key)
            return None
        return data if isinstance(data, dict) else None

    def _store(self, key: str, value: str) -> None:
        try:
            self._write(key, value)
        except STORAGE_ERRORS as e:
            logger.warning("cache_save_failed", key=key, error=str(e))
            raise CacheUnavailableError() from e

    # ==========================================================================
    # Progress
    # ==========================================================================

    def load(self, course_id: str) -> CachedProgress:
        """Read cached progress; empty sets when absent or unreadable."""
        data = self._read_json(self.progress_key(course_id))
        if data is None:
            return CachedProgress()
        return CachedProgress(
            watched=_day_set(data.get("watched")),
            completed=_day_set(data.get("completed")),
        )

    def save(
        self,
        course_id: str,
        watched: Iterable[int],
        completed: Iterable[int],
    ) -> None:
        """Overwrite cached progress for the course.

        Raises:
            CacheUnavailableError: The backing store could not be written.
        """
        payload = {"watched": sorted(set(watched)), "completed": sorted(set(completed))}
        self._store(self.progress_key(course_id), json.dumps(payload))
        logger.debug(
            "cache_saved",
            course_id=course_id,
            watched=payload["watched"],
            completed=payload["completed"],
        )

    # ==========================================================================
    # View state
    # ==========================================================================

    def load_view_state(self, course_id: str) -> ViewState:
        data = self._read_json(self.view_key(course_id))
        if data is None:
            return ViewState()
        last_day = data.get("lastViewedDay")
        return ViewState(
            last_viewed_day=last_day
            if isinstance(last_day, int) and not isinstance(last_day, bool)
            else None,
            quiz_view_open=bool(data.get("quizViewOpen", False)),
        )

    def save_view_state(self, course_id: str, state: ViewState) -> None:
        payload = {
            "lastViewedDay": state.last_viewed_day,
            "quizViewOpen": state.quiz_view_open,
        }
        self._store(self.view_key(course_id), json.dumps(payload))

    def clear(self, course_id: str) -> None:
        """Forget everything cached for the course."""
        keys = [self.progress_key(course_id), self.view_key(course_id)]
        try:
            self._delete(keys)
        except STORAGE_ERRORS as e:
            logger.warning("cache_clear_failed", course_id=course_id, error=str(e))
            raise CacheUnavailableError() from e
