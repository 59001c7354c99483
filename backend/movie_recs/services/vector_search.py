"""
Embedding-based nearest-neighbour search.

Every search reduces to one primitive, `nearest_to`: rank movies with an
embedding by cosine similarity to a query vector, highest first, ties broken
by movie id. Three queries are built on it:

1. Movies similar to a given movie (its embedding as the query)
2. Recommendations for a user (their preference vector as the query)
3. Semantic search (the embedded query text as the query)
"""

from sqlalchemy.orm import Session

from movie_recs.core.exceptions import NotFoundError
from movie_recs.core.logging import get_logger
from movie_recs.repos.movie_repository import MovieRepository
from movie_recs.repos.rating_repository import RatingRepository
from movie_recs.schemas.movie import SimilarMovie
from movie_recs.services import cache as result_cache
from movie_recs.services.cache import ResultCache
from movie_recs.services.embedding_provider import OllamaEmbeddingProvider
from movie_recs.services.preference_vector import PreferenceVectorManager
from movie_recs.services.vectors import as_vector, is_zero

logger = get_logger(__name__)

# Matches no movie; keeps the exclusion clause well-formed when nothing is excluded
NO_EXCLUSION = -1


class VectorSimilarityIndex:
    """Nearest-neighbour queries over movie and user embeddings."""

    def __init__(
        self,
        db: Session,
        provider: OllamaEmbeddingProvider | None = None,
        similar_cache: ResultCache | None = None,
        user_cache: ResultCache | None = None,
        search_cache: ResultCache | None = None,
    ):
        self.db = db
        self.provider = provider
        self.movies = MovieRepository(db)
        self.ratings = RatingRepository(db)
        self.similar_cache = similar_cache or result_cache.get_cache(result_cache.SIMILAR_MOVIES)
        self.user_cache = user_cache or result_cache.get_cache(result_cache.VECTOR_RECOMMENDATIONS)
        self.search_cache = search_cache or result_cache.get_cache(result_cache.SEMANTIC_SEARCH)

    def nearest_to(
        self, query_vector, exclude_ids: set[int] | None, limit: int
    ) -> list[SimilarMovie]:
        """
        Movies closest to `query_vector` by cosine similarity.

        Raises:
            InvalidInputError: if the query has the wrong dimension
        """
        vector = as_vector(query_vector)
        if limit <= 0 or is_zero(vector):
            return []

        exclude = set(exclude_ids) if exclude_ids else {NO_EXCLUSION}
        matches = self.movies.find_by_embedding_knn(vector, exclude, limit)
        return [SimilarMovie.from_match(movie, sim) for movie, sim in matches]

    def find_similar_movies(self, movie_id: int, limit: int = 10) -> list[SimilarMovie]:
        """Movies most similar to `movie_id`, excluding itself."""
        return self.similar_cache.get_or_compute(
            (movie_id, limit), lambda: self._find_similar_movies(movie_id, limit)
        )

    def _find_similar_movies(self, movie_id: int, limit: int) -> list[SimilarMovie]:
        movie = self.movies.find_by_id(movie_id)
        if movie is None:
            raise NotFoundError("Movie", movie_id)

        if movie.embedding is None:
            logger.warning(
                "Movie has no embedding, cannot find similar movies",
                extra={"extra_fields": {"movie_id": movie_id}},
            )
            return []

        return self.nearest_to(movie.embedding, {movie_id}, limit)

    def recommend_for_user(self, user_id: int, limit: int = 20) -> list[SimilarMovie]:
        """Unrated movies closest to the user's preference vector."""
        return self.user_cache.get_or_compute(
            (user_id, limit), lambda: self._recommend_for_user(user_id, limit)
        )

    def _recommend_for_user(self, user_id: int, limit: int) -> list[SimilarMovie]:
        vector = PreferenceVectorManager(self.db).current_vector(user_id)
        if vector is None:
            logger.info(
                "User has no preference vector, no vector-based recommendations",
                extra={"extra_fields": {"user_id": user_id}},
            )
            return []

        rated = set(self.ratings.ratings_map(user_id))
        return self.nearest_to(vector, rated, limit)

    def semantic_search(self, query_text: str, limit: int = 10) -> list[SimilarMovie]:
        """
        Movies whose embedding is closest to the embedded query text.

        Blank queries and provider failures give an empty list. Failed lookups
        are not cached so the next request tries the provider again.
        """
        if not query_text or not query_text.strip() or self.provider is None:
            return []

        query_text = query_text.strip()
        key = (query_text, limit)
        cached = self.search_cache.get(key)
        if cached is not None:
            return cached

        embedding = self.provider.embed(query_text)
        if is_zero(embedding):
            return []

        results = self.nearest_to(embedding, None, limit)
        self.search_cache.set(key, results)
        logger.info(
            "Semantic search",
            extra={"extra_fields": {"query": query_text, "results": len(results)}},
        )
        return results


def find_similar_movies(db: Session, movie_id: int, limit: int = 10) -> list[SimilarMovie]:
    return VectorSimilarityIndex(db).find_similar_movies(movie_id, limit)


def get_vector_based(db: Session, user_id: int, limit: int = 20) -> list[SimilarMovie]:
    return VectorSimilarityIndex(db).recommend_for_user(user_id, limit)


def semantic_search(
    db: Session, provider: OllamaEmbeddingProvider, query_text: str, limit: int = 10
) -> list[SimilarMovie]:
    return VectorSimilarityIndex(db, provider=provider).semantic_search(query_text, limit)
