"""Tests for embedding nearest-neighbour search."""

import json

import httpx
import pytest

from movie_recs.core.exceptions import InvalidInputError, NotFoundError
from movie_recs.services.cache import ResultCache
from movie_recs.services.embedding_provider import OllamaEmbeddingProvider
from movie_recs.services.vector_search import VectorSimilarityIndex
from movie_recs.services.vectors import zero_vector

from helpers import embedding_transport, vec


@pytest.fixture
def catalog(make_movie):
    """Four movies: three with embeddings around axes 0 and 1, one without."""
    return {
        "origin": make_movie("Origin", embedding=vec(d0=1.0)),
        "close": make_movie("Close", embedding=vec(d0=0.9, d1=0.1)),
        "far": make_movie("Far", embedding=vec(d1=1.0)),
        "bare": make_movie("Bare"),
    }


class TestNearestTo:
    """Test the core KNN primitive."""

    def test_ordered_by_similarity(self, db, catalog):
        results = VectorSimilarityIndex(db).nearest_to(vec(d0=1.0), None, 10)

        assert [r.movie_id for r in results] == [
            catalog["origin"].id,
            catalog["close"].id,
            catalog["far"].id,
        ]
        assert results[0].similarity == pytest.approx(1.0, abs=1e-5)
        assert results[2].similarity == pytest.approx(0.0, abs=1e-5)

    def test_movies_without_embedding_never_returned(self, db, catalog):
        results = VectorSimilarityIndex(db).nearest_to(vec(d5=1.0), None, 10)
        assert catalog["bare"].id not in {r.movie_id for r in results}

    def test_exclusions(self, db, catalog):
        results = VectorSimilarityIndex(db).nearest_to(
            vec(d0=1.0), {catalog["origin"].id, catalog["far"].id}, 10
        )
        assert [r.movie_id for r in results] == [catalog["close"].id]

    def test_ties_broken_by_id(self, db, make_movie):
        first = make_movie(embedding=vec(d2=1.0))
        second = make_movie(embedding=vec(d2=3.0))

        results = VectorSimilarityIndex(db).nearest_to(vec(d2=1.0), None, 10)

        assert [r.movie_id for r in results] == [first.id, second.id]

    def test_limit(self, db, catalog):
        results = VectorSimilarityIndex(db).nearest_to(vec(d0=1.0), None, 2)
        assert len(results) == 2

    def test_zero_query_returns_nothing(self, db, catalog):
        assert VectorSimilarityIndex(db).nearest_to(zero_vector(), None, 10) == []

    def test_dimension_mismatch(self, db, catalog):
        with pytest.raises(InvalidInputError):
            VectorSimilarityIndex(db).nearest_to([1.0, 0.0, 0.0], None, 10)

    def test_results_carry_bayesian_rating(self, db, make_movie):
        make_movie(avg_rating=4.0, rating_count=25, embedding=vec(d0=1.0))
        results = VectorSimilarityIndex(db).nearest_to(vec(d0=1.0), None, 1)
        assert results[0].bayesian_rating == 3.75


class TestFindSimilarMovies:
    def test_excludes_origin(self, db, catalog):
        results = VectorSimilarityIndex(db).find_similar_movies(catalog["origin"].id, 10)
        assert [r.movie_id for r in results] == [catalog["close"].id, catalog["far"].id]

    def test_origin_without_embedding(self, db, catalog):
        assert VectorSimilarityIndex(db).find_similar_movies(catalog["bare"].id, 10) == []

    def test_unknown_movie(self, db, catalog):
        with pytest.raises(NotFoundError):
            VectorSimilarityIndex(db).find_similar_movies(9999, 10)

    def test_cached_per_movie_and_limit(self, db, catalog):
        cache = ResultCache("test-similar")
        index = VectorSimilarityIndex(db, similar_cache=cache)

        first = index.find_similar_movies(catalog["origin"].id, 10)
        second = index.find_similar_movies(catalog["origin"].id, 10)
        index.find_similar_movies(catalog["origin"].id, 1)

        assert first == second
        assert cache.hits == 1
        assert cache.misses == 2


class TestRecommendForUser:
    def test_uses_preference_vector_and_skips_rated(self, db, catalog, make_user, rate):
        user = make_user()
        rate(user, catalog["origin"], 5)

        results = VectorSimilarityIndex(db).recommend_for_user(user.id, 10)

        assert [r.movie_id for r in results] == [catalog["close"].id, catalog["far"].id]

    def test_no_vector_no_results(self, db, catalog, make_user):
        user = make_user()
        assert VectorSimilarityIndex(db).recommend_for_user(user.id, 10) == []

    def test_unknown_user(self, db):
        with pytest.raises(NotFoundError):
            VectorSimilarityIndex(db).recommend_for_user(12345, 10)


class TestSemanticSearch:
    def test_embeds_query_and_searches(self, db, catalog, embedding_provider):
        # The mocked provider embeds every text on axis 1
        results = VectorSimilarityIndex(db, provider=embedding_provider).semantic_search(
            "space opera", 2
        )
        assert [r.movie_id for r in results] == [catalog["far"].id, catalog["close"].id]

    def test_query_embedded_as_cached(self, db, catalog):
        prompts = []

        def handler(request):
            prompts.append(json.loads(request.content)["prompt"])
            return httpx.Response(200, json={"embedding": vec(d1=1.0).tolist()})

        provider = OllamaEmbeddingProvider(
            base_url="http://ollama.test", transport=httpx.MockTransport(handler)
        )
        index = VectorSimilarityIndex(db, provider=provider, search_cache=ResultCache("test-search"))

        first = index.semantic_search("  heist ", 2)
        second = index.semantic_search("heist", 2)

        assert prompts == ["heist"]
        assert second == first

    def test_blank_query(self, db, catalog, embedding_provider):
        index = VectorSimilarityIndex(db, provider=embedding_provider)
        assert index.semantic_search("   ", 5) == []

    def test_provider_failure_gives_empty_and_is_not_cached(self, db, catalog):
        provider = OllamaEmbeddingProvider(
            base_url="http://ollama.test", transport=embedding_transport(status_code=503)
        )
        cache = ResultCache("test-search")
        index = VectorSimilarityIndex(db, provider=provider, search_cache=cache)

        assert index.semantic_search("heist", 5) == []
        assert len(cache) == 0
