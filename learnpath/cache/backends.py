"""Storage backends for the local progress cache."""

import os
import tempfile
from collections.abc import Iterable
from pathlib import Path
from urllib.parse import quote

import redis

from .base import LocalProgressCache


class MemoryProgressCache(LocalProgressCache):
    """Process-local cache. Survives nothing; used for tests and previews."""

    def __init__(self, learner_key: str, prefix: str = "learnpath"):
        super().__init__(learner_key, prefix)
        self._entries: dict[str, str] = {}

    def _read(self, key: str) -> str | None:
        return self._entries.get(key)

    def _write(self, key: str, value: str) -> None:
        self._entries[key] = value

    def _delete(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._entries.pop(key, None)


class FileProgressCache(LocalProgressCache):
    """One JSON file per key under a directory.

    Writes go to a temporary file in the same directory and are moved into
    place with ``os.replace``, so readers never see a half-written entry.
    """

    def __init__(
        self,
        learner_key: str,
        directory: Path | str,
        prefix: str = "learnpath",
    ):
        super().__init__(learner_key, prefix)
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{quote(key, safe='')}.json"

    def _read(self, key: str) -> str | None:
        try:
            return self._path(key).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def _write(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.replace(tmp_name, self._path(key))
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _delete(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._path(key).unlink(missing_ok=True)


class RedisProgressCache(LocalProgressCache):
    """Cache stored in Redis (shared by every process of the learner)."""

    def __init__(
        self,
        learner_key: str,
        client: redis.Redis,
        prefix: str = "learnpath",
    ):
        super().__init__(learner_key, prefix)
        self.client = client

    def _read(self, key: str) -> str | None:
        value = self.client.get(key)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def _write(self, key: str, value: str) -> None:
        self.client.set(key, value)

    def _delete(self, keys: Iterable[str]) -> None:
        keys = list(keys)
        if keys:
            self.client.delete(*keys)
