"""Progress state types for one learner in one course.

- Enrollment status derived from the completion percentage
- Per-day display state
- Immutable snapshots handed to the cache and the sync client
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from learnpath.roadmap.models import Roadmap
from learnpath.utils import percent_of


class EnrollmentStatus(str, Enum):
    """Course enrollment status."""

    ENROLLED = "enrolled"  # No day completed yet
    STARTED = "started"  # Some days completed
    COMPLETED = "completed"  # Every day completed


class DayState(str, Enum):
    """Display state of a single day."""

    LOCKED = "locked"
    NOT_WATCHED = "not_watched"
    WATCHED = "watched"
    QUIZ_PENDING = "quiz_pending"
    COMPLETED = "completed"


def progress_percent(completed_count: int, total_days: int) -> int:
    """Course completion percentage, rounded half up."""
    return percent_of(completed_count, total_days)


def status_for_percent(percent: int) -> EnrollmentStatus:
    """Map a completion percentage to an enrollment status."""
    if percent >= 100:
        return EnrollmentStatus.COMPLETED
    if percent > 0:
        return EnrollmentStatus.STARTED
    return EnrollmentStatus.ENROLLED


def longest_prefix(days: Iterable[int], roadmap: Roadmap) -> frozenset[int]:
    """Longest run of roadmap days, from the first one, contained in ``days``."""
    present = set(days)
    prefix: set[int] = set()
    for day_number in roadmap.day_numbers:
        if day_number not in present:
            break
        prefix.add(day_number)
    return frozenset(prefix)


def is_prefix_contiguous(days: Iterable[int], roadmap: Roadmap) -> bool:
    """Check that every completed day's predecessor is also completed."""
    present = frozenset(days)
    return present == longest_prefix(present, roadmap)


@dataclass(frozen=True)
class ProgressSnapshot:
    """Point-in-time copy of a learner's progress in one course."""

    course_id: str
    watched_days: frozenset[int]
    completed_days: frozenset[int]
    total_days: int
    taken_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def progress_percent(self) -> int:
        return progress_percent(len(self.completed_days), self.total_days)

    @property
    def status(self) -> EnrollmentStatus:
        return status_for_percent(self.progress_percent)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "course_id": self.course_id,
            "watched_days": sorted(self.watched_days),
            "completed_days": sorted(self.completed_days),
            "progress_percent": self.progress_percent,
            "status": self.status.value,
        }

    def __repr__(self) -> str:
        return (
            f"<ProgressSnapshot course={self.course_id} "
            f"{len(self.completed_days)}/{self.total_days} {self.progress_percent}%>"
        )
