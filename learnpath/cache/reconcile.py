"""One-shot merge of cached progress with authoritative server progress."""

from collections.abc import Iterable

from learnpath.core.logging import get_logger
from learnpath.progress.models import longest_prefix
from learnpath.roadmap.models import Roadmap

from .base import CachedProgress


logger = get_logger(__name__)


def reconcile_progress(
    cached: CachedProgress,
    authoritative_completed: Iterable[int] | None,
    roadmap: Roadmap,
) -> CachedProgress:
    """Merge the server's completed days into the cached sets.

    The server's completed set (when present) is unioned into the cached one;
    days the roadmap does not know are dropped; the union is cut back to its
    longest contiguous prefix; watched days are widened to include every
    completed day, since completion implies watching.
    """
    known = set(roadmap.day_numbers)

    completed = {d for d in cached.completed if d in known}
    if authoritative_completed is not None:
        completed |= {d for d in authoritative_completed if d in known}

    contiguous = longest_prefix(completed, roadmap)
    if contiguous != completed:
        logger.warning(
            "reconcile_non_contiguous_truncated",
            course_id=roadmap.course_id,
            completed=sorted(completed),
            kept=sorted(contiguous),
        )

    watched = {d for d in cached.watched if d in known} | contiguous

    return CachedProgress(watched=frozenset(watched), completed=contiguous)
