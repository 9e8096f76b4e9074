"""Tests for the local progress cache and its backends."""

import json
from unittest.mock import MagicMock, patch

import pytest
import redis

from learnpath.cache import create_progress_cache
from learnpath.cache.backends import (
    FileProgressCache,
    MemoryProgressCache,
    RedisProgressCache,
)
from learnpath.cache.base import CachedProgress, ViewState
from learnpath.core.exceptions import CacheUnavailableError


class TestCacheContract:
    """Behaviour shared by every backend."""

    @pytest.fixture(params=["memory", "file"])
    def store(self, request, tmp_path):
        if request.param == "memory":
            return MemoryProgressCache("learner-1")
        return FileProgressCache("learner-1", tmp_path)

    def test_empty_when_absent(self, store) -> None:
        """Nothing saved yet reads as empty sets."""
        cached = store.load("course-1")
        assert cached == CachedProgress()
        assert cached.is_empty is True

    def test_save_and_load(self, store) -> None:
        """Saved sets are read back."""
        store.save("course-1", watched={1, 2}, completed={1})

        cached = store.load("course-1")

        assert cached.watched == {1, 2}
        assert cached.completed == {1}

    def test_save_overwrites(self, store) -> None:
        """A save replaces the previous value."""
        store.save("course-1", watched=[1, 2, 3], completed=[1, 2])
        store.save("course-1", watched=[1], completed=[])

        assert store.load("course-1") == CachedProgress(
            watched=frozenset({1}), completed=frozenset()
        )

    def test_courses_are_separate(self, store) -> None:
        """Keys are namespaced by course."""
        store.save("course-1", watched=[1], completed=[1])

        assert store.load("course-2").is_empty is True

    def test_view_state(self, store) -> None:
        """Last viewed day and quiz panel survive a reload."""
        assert store.load_view_state("course-1") == ViewState()

        store.save_view_state("course-1", ViewState(last_viewed_day=3, quiz_view_open=True))

        assert store.load_view_state("course-1") == ViewState(3, True)

    def test_clear(self, store) -> None:
        """Clearing removes progress and view state."""
        store.save("course-1", watched=[1], completed=[1])
        store.save_view_state("course-1", ViewState(1, False))

        store.clear("course-1")

        assert store.load("course-1").is_empty is True
        assert store.load_view_state("course-1") == ViewState()


class TestCorruptEntries:
    """Unreadable values behave like absent ones."""

    def test_invalid_json(self) -> None:
        """Garbage is ignored."""
        store = MemoryProgressCache("learner-1")
        store._write(store.progress_key("course-1"), "{not json")

        assert store.load("course-1").is_empty is True

    def test_invalid_day_values_dropped(self) -> None:
        """Non-integer or non-positive days are dropped."""
        store = MemoryProgressCache("learner-1")
        store._write(
            store.progress_key("course-1"),
            json.dumps({"watched": [1, "2", 0, 3], "completed": "all"}),
        )

        cached = store.load("course-1")

        assert cached.watched == {1, 3}
        assert cached.completed == frozenset()

    def test_booleans_are_not_days(self) -> None:
        """JSON true is not day 1."""
        store = MemoryProgressCache("learner-1")
        store._write(
            store.progress_key("course-1"),
            json.dumps({"watched": [True, 2], "completed": [True]}),
        )
        store._write(store.view_key("course-1"), json.dumps({"lastViewedDay": True}))

        assert store.load("course-1").watched == {2}
        assert store.load("course-1").completed == frozenset()
        assert store.load_view_state("course-1").last_viewed_day is None


class TestKeyLayout:
    """Keys are namespaced by prefix, learner and course."""

    def test_keys(self) -> None:
        store = MemoryProgressCache("abc", prefix="lp")
        assert store.progress_key("c1") == "lp:abc:c1:progress"
        assert store.view_key("c1") == "lp:abc:c1:view"


class TestFileBackend:
    """File backend specifics."""

    def test_creates_directory(self, tmp_path) -> None:
        """The directory is created on first write."""
        directory = tmp_path / "nested" / "cache"
        store = FileProgressCache("learner-1", directory)

        store.save("course-1", watched=[1], completed=[1])

        assert directory.is_dir()
        assert [p.suffix for p in directory.iterdir()] == [".json"]

    def test_survives_new_instance(self, tmp_path) -> None:
        """A second cache over the same directory sees the data (reload)."""
        FileProgressCache("learner-1", tmp_path).save("course-1", [1, 2], [1])

        cached = FileProgressCache("learner-1", tmp_path).load("course-1")

        assert cached.completed == {1}


class TestRedisBackend:
    """Redis backend against a mocked client."""

    def test_set_and_get(self) -> None:
        """Values are written with SET and read with GET."""
        client = MagicMock()
        store = RedisProgressCache("learner-1", client)

        store.save("course-1", watched=[2, 1], completed=[1])

        key, value = client.set.call_args.args
        assert key == "learnpath:learner-1:course-1:progress"
        assert json.loads(value) == {"watched": [1, 2], "completed": [1]}

        client.get.return_value = value.encode()
        assert store.load("course-1").watched == {1, 2}

    def test_missing_key(self) -> None:
        """GET returning None reads as empty."""
        client = MagicMock()
        client.get.return_value = None

        assert RedisProgressCache("learner-1", client).load("course-1").is_empty

    def test_clear_deletes_both_keys(self) -> None:
        client = MagicMock()
        RedisProgressCache("learner-1", client).clear("course-1")

        client.delete.assert_called_once_with(
            "learnpath:learner-1:course-1:progress",
            "learnpath:learner-1:course-1:view",
        )


class TestCreateProgressCache:
    """Backend selection from settings."""

    def test_memory(self, settings) -> None:
        store = create_progress_cache(
            settings.model_copy(update={"cache_backend": "memory"}), "learner-1"
        )
        assert isinstance(store, MemoryProgressCache)

    def test_file(self, settings, tmp_path) -> None:
        store = create_progress_cache(
            settings.model_copy(
                update={"cache_backend": "file", "cache_dir": str(tmp_path)}
            ),
            "learner-1",
        )
        assert isinstance(store, FileProgressCache)
        assert store.directory == tmp_path

    def test_redis_uses_shared_client(self, settings) -> None:
        client = MagicMock()
        with patch("learnpath.core.redis.get_redis", return_value=client):
            store = create_progress_cache(
                settings.model_copy(update={"cache_backend": "redis"}), "learner-1"
            )

        assert isinstance(store, RedisProgressCache)
        assert store.client is client


class TestStorageFailures:
    """A broken backing store never crashes a read; writes report it."""

    def test_redis_write_failure(self) -> None:
        client = MagicMock()
        client.set.side_effect = redis.ConnectionError("down")
        store = RedisProgressCache("learner-1", client)

        with pytest.raises(CacheUnavailableError) as exc_info:
            store.save("course-1", watched=[1], completed=[1])

        assert exc_info.value.code == "cache_unavailable"
        with pytest.raises(CacheUnavailableError):
            store.save_view_state("course-1", ViewState(2, False))

    def test_redis_read_failure_reads_as_empty(self) -> None:
        client = MagicMock()
        client.get.side_effect = redis.TimeoutError("slow")
        store = RedisProgressCache("learner-1", client)

        assert store.load("course-1").is_empty is True
        assert store.load_view_state("course-1") == ViewState()

    def test_file_write_failure(self, tmp_path) -> None:
        """A cache directory that is a file cannot be written."""
        blocker = tmp_path / "cache"
        blocker.write_text("not a directory")
        store = FileProgressCache("learner-1", blocker)

        with pytest.raises(CacheUnavailableError):
            store.save("course-1", watched=[1], completed=[])

    def test_redis_clear_failure(self) -> None:
        client = MagicMock()
        client.delete.side_effect = redis.ConnectionError("down")

        with pytest.raises(CacheUnavailableError):
            RedisProgressCache("learner-1", client).clear("course-1")
