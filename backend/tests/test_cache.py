"""Tests for the in-process result caches."""

import pytest

from movie_recs.services import cache as result_cache
from movie_recs.services.cache import (
    ResultCache,
    clear_movie_result_caches,
    clear_recommendation_caches,
    clear_vector_caches,
    get_cache,
)


class FakeTimer:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestResultCache:
    def test_hit_and_miss_counters(self):
        cache = ResultCache("test", maxsize=10, ttl=60)

        assert cache.get("a") is None
        cache.set("a", 1)
        assert cache.get("a") == 1

        assert (cache.hits, cache.misses) == (1, 1)

    def test_get_or_compute_runs_once(self):
        cache = ResultCache("test", maxsize=10, ttl=60)
        calls = []

        def compute():
            calls.append(1)
            return "value"

        assert cache.get_or_compute("k", compute) == "value"
        assert cache.get_or_compute("k", compute) == "value"
        assert len(calls) == 1

    def test_least_recently_used_evicted(self):
        cache = ResultCache("test", maxsize=2, ttl=60)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")
        cache.set("c", 3)

        assert "a" in cache
        assert "b" not in cache
        assert "c" in cache

    def test_entries_expire(self):
        timer = FakeTimer()
        cache = ResultCache("test", maxsize=10, ttl=60, timer=timer)
        cache.set("a", 1)

        timer.now = 59.0
        assert cache.get("a") == 1
        timer.now = 61.0
        assert cache.get("a") is None
        assert len(cache) == 0

    def test_stats(self):
        cache = ResultCache("test", maxsize=5, ttl=30)
        cache.set("a", 1)
        stats = cache.stats()
        assert stats["name"] == "test"
        assert stats["size"] == 1
        assert stats["maxsize"] == 5


class TestNamedCaches:
    @pytest.fixture
    def filled(self):
        caches = {
            name: get_cache(name)
            for name in (
                result_cache.RECOMMENDATIONS,
                result_cache.VECTOR_RECOMMENDATIONS,
                result_cache.SIMILAR_MOVIES,
                result_cache.SEMANTIC_SEARCH,
            )
        }
        for cache in caches.values():
            cache.set((1, 10), "one")
            cache.set((2, 10), "two")
        return caches

    def test_rating_change_clears_every_users_recommendations(self, filled):
        clear_recommendation_caches()

        assert len(filled[result_cache.RECOMMENDATIONS]) == 0
        assert len(filled[result_cache.VECTOR_RECOMMENDATIONS]) == 0
        assert len(filled[result_cache.SIMILAR_MOVIES]) == 2
        assert len(filled[result_cache.SEMANTIC_SEARCH]) == 2

    def test_embedding_change_clears_vector_results(self, filled):
        clear_vector_caches()

        assert len(filled[result_cache.RECOMMENDATIONS]) == 2
        assert len(filled[result_cache.VECTOR_RECOMMENDATIONS]) == 0
        assert len(filled[result_cache.SIMILAR_MOVIES]) == 0
        assert len(filled[result_cache.SEMANTIC_SEARCH]) == 0

    def test_stats_change_clears_everything_with_aggregates(self, filled):
        clear_movie_result_caches()

        assert all(len(cache) == 0 for cache in filled.values())

    def test_registry_returns_same_instance(self):
        assert get_cache("anything") is get_cache("anything")
