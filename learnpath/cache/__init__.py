"""Local progress cache module.

Provides:
- The LocalProgressCache interface and its JSON key layout
- Memory, file and Redis backends
- Reconciliation of cached progress with server progress on course load
"""

from learnpath.config import Settings

from .backends import FileProgressCache, MemoryProgressCache, RedisProgressCache
from .base import CachedProgress, LocalProgressCache, ViewState
from .reconcile import reconcile_progress


def create_progress_cache(settings: Settings, learner_key: str) -> LocalProgressCache:
    """Build the cache backend selected by ``settings.cache_backend``."""
    if settings.cache_backend == "memory":
        return MemoryProgressCache(learner_key, prefix=settings.cache_key_prefix)
    if settings.cache_backend == "redis":
        from learnpath.core.redis import get_redis, init_redis

        client = get_redis() or init_redis()
        return RedisProgressCache(
            learner_key, client, prefix=settings.cache_key_prefix
        )
    return FileProgressCache(
        learner_key, settings.cache_dir, prefix=settings.cache_key_prefix
    )


__all__ = [
    "CachedProgress",
    "FileProgressCache",
    "LocalProgressCache",
    "MemoryProgressCache",
    "RedisProgressCache",
    "ViewState",
    "create_progress_cache",
    "reconcile_progress",
]
