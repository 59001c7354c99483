"""
Content-based recommendations from genre affinity.

1. Score each genre by summing the rating weight of every rated movie that
   carries it; keep the top MAX_PREFERRED_GENRES
2. Pull the best rated movies tagged with any of those genres
3. Drop movies the user already rated or bookmarked
"""

from collections import defaultdict
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from movie_recs.core.config import get_settings
from movie_recs.core.logging import get_logger
from movie_recs.repos.bookmark_repository import BookmarkRepository
from movie_recs.repos.movie_repository import MovieRepository
from movie_recs.repos.rating_repository import RatingRepository
from movie_recs.schemas.movie import MovieSummary
from movie_recs.services.popular import get_popular_movies
from movie_recs.services.preference_vector import rating_weight

settings = get_settings()
logger = get_logger(__name__)


@dataclass
class ContentBasedRecommender:
    db: Session
    weights: dict[int, float] = field(default_factory=lambda: dict(settings.RATING_WEIGHTS))
    max_genres: int = field(default_factory=lambda: settings.MAX_PREFERRED_GENRES)
    oversample_factor: int = field(default_factory=lambda: settings.CONTENT_OVERSAMPLE_FACTOR)

    def __post_init__(self):
        self.ratings = RatingRepository(self.db)
        self.movies = MovieRepository(self.db)
        self.bookmarks = BookmarkRepository(self.db)

    def genre_scores(self, user_id: int) -> dict[int, float]:
        """Weighted genre affinity as {genre_id: score}."""
        user_ratings = self.ratings.ratings_map(user_id)
        tags = self.movies.genre_ids_by_movie(list(user_ratings))

        scores: dict[int, float] = defaultdict(float)
        for movie_id, rating in user_ratings.items():
            w = rating_weight(rating, self.weights)
            for genre_id in tags.get(movie_id, []):
                scores[genre_id] += w
        return dict(scores)

    def preferred_genres(self, user_id: int) -> list[int]:
        """Top genre ids by score, ties broken by genre id."""
        scores = self.genre_scores(user_id)
        ranked = sorted(scores.items(), key=lambda x: (-x[1], x[0]))
        return [genre_id for genre_id, _ in ranked[: self.max_genres]]

    def recommend(self, user_id: int, limit: int) -> list[MovieSummary]:
        if limit <= 0:
            return []

        genres = self.preferred_genres(user_id)
        if not genres:
            logger.info(
                "No genre preferences, falling back to popular movies",
                extra={"extra_fields": {"user_id": user_id}},
            )
            return get_popular_movies(self.db, user_id, limit)

        seen = set(self.ratings.ratings_map(user_id)) | self.bookmarks.movie_ids_for_user(user_id)
        candidates = self.movies.find_by_genres(genres, limit * self.oversample_factor)

        logger.debug(
            "Content-based candidates",
            extra={
                "extra_fields": {
                    "user_id": user_id,
                    "genres": genres,
                    "candidates": len(candidates),
                }
            },
        )
        return [MovieSummary.from_movie(m) for m in candidates if m.id not in seen][:limit]
