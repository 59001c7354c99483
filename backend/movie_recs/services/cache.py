"""
In-process result caches.

Each cache is a bounded cachetools TTLCache (LRU eviction, fixed time to
live) guarded by a lock so it can be shared by FastAPI's worker threads.
Services receive a ResultCache explicitly; the module-level registry only
supplies the process-wide defaults.
"""

import threading
import time
from typing import Any, Callable, Hashable

from cachetools import TTLCache

from movie_recs.core.config import get_settings
from movie_recs.core.logging import get_logger

settings = get_settings()
logger = get_logger(__name__)

# Cache names
RECOMMENDATIONS = "user_recommendations"
VECTOR_RECOMMENDATIONS = "user_vector_recommendations"
SIMILAR_MOVIES = "similar_movies"
SEMANTIC_SEARCH = "semantic_search"

# Per-user result caches, cleared in full by every rating write
USER_CACHES = (RECOMMENDATIONS, VECTOR_RECOMMENDATIONS)

# Caches whose results depend on stored movie embeddings
VECTOR_CACHES = (SIMILAR_MOVIES, SEMANTIC_SEARCH, VECTOR_RECOMMENDATIONS)


class ResultCache:
    """Thread-safe TTL cache with hit/miss counters."""

    def __init__(
        self,
        name: str,
        maxsize: int | None = None,
        ttl: float | None = None,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self._cache = TTLCache(
            maxsize=maxsize or settings.CACHE_MAX_SIZE,
            ttl=ttl or settings.CACHE_TTL_SECONDS,
            timer=timer,
        )
        self._lock = threading.RLock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            self._cache.expire()
            return len(self._cache)

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._cache

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            try:
                value = self._cache[key]
            except KeyError:
                self.misses += 1
                return default
            self.hits += 1
            return value

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._cache[key] = value

    def get_or_compute(self, key: Hashable, compute: Callable[[], Any]) -> Any:
        """
        Return the cached value for `key`, computing and storing it on a miss.

        The computation runs outside the lock; two threads missing at once
        both compute and the later store wins.
        """
        with self._lock:
            try:
                value = self._cache[key]
            except KeyError:
                self.misses += 1
            else:
                self.hits += 1
                return value

        value = compute()
        self.set(key, value)
        return value

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def stats(self) -> dict:
        with self._lock:
            return {
                "name": self.name,
                "size": len(self._cache),
                "maxsize": self._cache.maxsize,
                "ttl": self._cache.ttl,
                "hits": self.hits,
                "misses": self.misses,
            }


_registry: dict[str, ResultCache] = {}
_registry_lock = threading.Lock()


def get_cache(name: str) -> ResultCache:
    """Process-wide cache for `name`, created on first use."""
    with _registry_lock:
        cache = _registry.get(name)
        if cache is None:
            cache = ResultCache(name)
            _registry[name] = cache
        return cache


def _clear(names: tuple[str, ...], reason: str) -> None:
    dropped = 0
    for name in names:
        cache = get_cache(name)
        dropped += len(cache)
        cache.clear()
    logger.debug(
        "Cleared result caches",
        extra={"extra_fields": {"caches": list(names), "entries": dropped, "reason": reason}},
    )


def clear_recommendation_caches() -> None:
    """Forget every cached per-user recommendation list."""
    _clear(USER_CACHES, "ratings changed")


def clear_vector_caches() -> None:
    """Forget every cached result ranked by movie embeddings."""
    _clear(VECTOR_CACHES, "embeddings changed")


def clear_movie_result_caches() -> None:
    """Forget every cached result that carries movie rating aggregates."""
    _clear(USER_CACHES + (SIMILAR_MOVIES, SEMANTIC_SEARCH), "movie stats changed")


def clear_all_caches() -> None:
    with _registry_lock:
        caches = list(_registry.values())
    for cache in caches:
        cache.clear()


def cache_stats() -> list[dict]:
    with _registry_lock:
        caches = list(_registry.values())
    return [cache.stats() for cache in caches]
