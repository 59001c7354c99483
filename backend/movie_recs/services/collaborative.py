"""
User-user collaborative filtering.

1. Find other users who rated at least MIN_COMMON_RATINGS of the same movies
2. Score each with the Pearson correlation of the common ratings
3. Keep the MAX_NEIGHBORS most correlated neighbors
4. For every movie a neighbor rated highly that the user has not rated:
   score += neighbor_rating * correlation
"""

import math
from collections import defaultdict
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from movie_recs.core.config import get_settings
from movie_recs.core.logging import get_logger
from movie_recs.repos.movie_repository import MovieRepository
from movie_recs.repos.rating_repository import RatingRepository
from movie_recs.schemas.movie import MovieSummary

settings = get_settings()
logger = get_logger(__name__)


@dataclass
class Neighbor:
    """A similar user and how strongly their ratings track the target user's."""

    user_id: int
    correlation: float
    common_count: int


def pearson_correlation(
    ratings_a: dict[int, float], ratings_b: dict[int, float], common: set[int] | None = None
) -> float:
    """
    Pearson correlation of two users' ratings over their common movies.

    Returns:
        Value in [-1, 1]; 0.0 when there is no overlap or either user's
        ratings have no variance
    """
    if common is None:
        common = set(ratings_a) & set(ratings_b)
    n = len(common)
    if n == 0:
        return 0.0

    sum_a = sum_b = sum_a_sq = sum_b_sq = product_sum = 0.0
    for movie_id in common:
        a = ratings_a[movie_id]
        b = ratings_b[movie_id]
        sum_a += a
        sum_b += b
        sum_a_sq += a * a
        sum_b_sq += b * b
        product_sum += a * b

    numerator = product_sum - (sum_a * sum_b / n)
    variance = (sum_a_sq - sum_a * sum_a / n) * (sum_b_sq - sum_b * sum_b / n)
    if variance <= 0:
        return 0.0

    r = numerator / math.sqrt(variance)
    # Float rounding can land a hair outside the closed interval
    return max(-1.0, min(1.0, r))


@dataclass
class CollaborativeRecommender:
    db: Session
    min_common: int = field(default_factory=lambda: settings.MIN_COMMON_RATINGS)
    max_neighbors: int = field(default_factory=lambda: settings.MAX_NEIGHBORS)
    min_neighbor_rating: int = field(
        default_factory=lambda: settings.COLLABORATIVE_MIN_NEIGHBOR_RATING
    )

    def __post_init__(self):
        self.ratings = RatingRepository(self.db)
        self.movies = MovieRepository(self.db)

    def find_neighbors(self, user_id: int, user_ratings: dict[int, int]) -> list[Neighbor]:
        """Most correlated neighbors, correlation desc, ties by user id."""
        candidate_ids = self.ratings.find_users_with_common_ratings(
            user_id, set(user_ratings), self.min_common
        )
        if not candidate_ids:
            return []

        candidate_ratings = self.ratings.ratings_by_users(candidate_ids)
        rated = set(user_ratings)

        neighbors = []
        for neighbor_id in candidate_ids:
            their_ratings = candidate_ratings[neighbor_id]
            common = rated & set(their_ratings)
            if len(common) < self.min_common:
                continue
            neighbors.append(
                Neighbor(
                    user_id=neighbor_id,
                    correlation=pearson_correlation(user_ratings, their_ratings, common),
                    common_count=len(common),
                )
            )

        neighbors.sort(key=lambda n: (-n.correlation, n.user_id))
        return neighbors[: self.max_neighbors]

    def score_movies(self, user_id: int) -> list[tuple[int, float]]:
        """Candidate (movie_id, score) pairs, score desc, ties by movie id."""
        user_ratings = self.ratings.ratings_map(user_id)
        if not user_ratings:
            return []

        neighbors = self.find_neighbors(user_id, user_ratings)
        if not neighbors:
            return []

        neighbor_ratings = self.ratings.ratings_by_users([n.user_id for n in neighbors])
        scores: dict[int, float] = defaultdict(float)
        for neighbor in neighbors:
            for movie_id, rating in neighbor_ratings[neighbor.user_id].items():
                if movie_id in user_ratings or rating < self.min_neighbor_rating:
                    continue
                scores[movie_id] += rating * neighbor.correlation

        logger.debug(
            "Collaborative scoring",
            extra={
                "extra_fields": {
                    "user_id": user_id,
                    "neighbors": len(neighbors),
                    "candidates": len(scores),
                }
            },
        )
        return sorted(scores.items(), key=lambda x: (-x[1], x[0]))

    def recommend(self, user_id: int, limit: int) -> list[MovieSummary]:
        if limit <= 0:
            return []
        top = self.score_movies(user_id)[:limit]
        movies = self.movies.find_by_ids([movie_id for movie_id, _ in top])
        return [MovieSummary.from_movie(m) for m in movies]
