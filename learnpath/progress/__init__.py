"""Course progression module.

Provides:
- Enrollment status and per-day display state
- Progress snapshots and prefix-contiguity helpers
- The ProgressionEngine (``learnpath.progress.engine``)
"""

from .models import (
    DayState,
    EnrollmentStatus,
    ProgressSnapshot,
    is_prefix_contiguous,
    longest_prefix,
    progress_percent,
    status_for_percent,
)


__all__ = [
    "DayState",
    "EnrollmentStatus",
    "ProgressSnapshot",
    "is_prefix_contiguous",
    "longest_prefix",
    "progress_percent",
    "status_for_percent",
]
