"""Tests for merging cached progress with server progress."""

from learnpath.cache.base import CachedProgress
from learnpath.cache.reconcile import reconcile_progress


def cached(watched, completed) -> CachedProgress:
    return CachedProgress(watched=frozenset(watched), completed=frozenset(completed))


class TestReconcileProgress:
    """Tests for reconcile_progress."""

    def test_union_with_server(self, roadmap) -> None:
        """Server days are added to the cached ones."""
        result = reconcile_progress(cached({1, 2}, {1}), [1, 2], roadmap)

        assert result.completed == {1, 2}
        assert result.watched == {1, 2}

    def test_watched_covers_completed(self, roadmap) -> None:
        """Completed days count as watched."""
        result = reconcile_progress(cached(set(), set()), [1, 2, 3], roadmap)

        assert result.watched == {1, 2, 3}

    def test_no_server_data_keeps_cache(self, roadmap) -> None:
        """A missing server set leaves the cached state."""
        result = reconcile_progress(cached({1, 2, 4}, {1}), None, roadmap)

        assert result.completed == {1}
        assert result.watched == {1, 2, 4}

    def test_gap_truncated(self, roadmap) -> None:
        """A union with a gap keeps its longest prefix."""
        result = reconcile_progress(cached({1, 2}, {1, 2}), [4, 5], roadmap)

        assert result.completed == {1, 2}

    def test_unknown_days_dropped(self, roadmap) -> None:
        """Days the roadmap does not have are dropped."""
        result = reconcile_progress(cached({1, 8}, {1}), [0, 2, 11], roadmap)

        assert result.completed == {1, 2}
        assert 8 not in result.watched
