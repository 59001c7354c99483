"""
Recommendation service.

Chooses a strategy from how many movies the user has rated:

1. No ratings: most popular movies
2. Fewer than MIN_RATINGS_FOR_COLLABORATIVE: content-based (genre affinity)
3. Otherwise hybrid: collaborative results first, then content-based results
   not already present, each oversampled to absorb de-duplication loss
"""

import enum
import math
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from movie_recs.core.config import get_settings
from movie_recs.core.exceptions import NotFoundError
from movie_recs.core.logging import get_logger
from movie_recs.repos.rating_repository import RatingRepository
from movie_recs.repos.user_repository import UserRepository
from movie_recs.schemas.movie import MovieSummary
from movie_recs.schemas.recommendation import RecommendationStatus
from movie_recs.services import cache as result_cache
from movie_recs.services.cache import ResultCache
from movie_recs.services.collaborative import CollaborativeRecommender
from movie_recs.services.content_based import ContentBasedRecommender
from movie_recs.services.popular import get_popular_movies

settings = get_settings()
logger = get_logger(__name__)


class RecommendationPolicy(str, enum.Enum):
    POPULAR = "popular"
    CONTENT_ONLY = "content_only"
    HYBRID = "hybrid"


def select_policy(rating_count: int, min_for_collaborative: int | None = None) -> RecommendationPolicy:
    threshold = (
        settings.MIN_RATINGS_FOR_COLLABORATIVE
        if min_for_collaborative is None
        else min_for_collaborative
    )
    if rating_count == 0:
        return RecommendationPolicy.POPULAR
    if rating_count < threshold:
        return RecommendationPolicy.CONTENT_ONLY
    return RecommendationPolicy.HYBRID


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def merge_results(
    collaborative: list[MovieSummary], content: list[MovieSummary], limit: int
) -> list[MovieSummary]:
    """Collaborative results first, then unseen content results, truncated to `limit`."""
    merged: dict[int, MovieSummary] = {}
    for movie in collaborative:
        merged.setdefault(movie.id, movie)
    for movie in content:
        merged.setdefault(movie.id, movie)
    return list(merged.values())[:limit]


@dataclass
class HybridOrchestrator:
    """Picks a policy per request and assembles the ranked list."""

    db: Session
    cache: ResultCache | None = None
    content_weight: float = field(default_factory=lambda: settings.CONTENT_WEIGHT)
    collaborative_weight: float = field(default_factory=lambda: settings.COLLABORATIVE_WEIGHT)
    oversample_factor: float = field(default_factory=lambda: settings.HYBRID_OVERSAMPLE_FACTOR)

    def __post_init__(self):
        if self.cache is None:
            self.cache = result_cache.get_cache(result_cache.RECOMMENDATIONS)
        self.users = UserRepository(self.db)
        self.ratings = RatingRepository(self.db)
        self.content = ContentBasedRecommender(self.db)
        self.collaborative = CollaborativeRecommender(self.db)

    def _require_user(self, user_id: int) -> None:
        if self.users.find_by_id(user_id) is None:
            raise NotFoundError("User", user_id)

    def recommend(self, user_id: int, limit: int = 20) -> list[MovieSummary]:
        self._require_user(user_id)
        return self.cache.get_or_compute((user_id, limit), lambda: self._recommend(user_id, limit))

    def _recommend(self, user_id: int, limit: int) -> list[MovieSummary]:
        rating_count = self.ratings.count_by_user(user_id)
        policy = select_policy(rating_count)

        logger.info(
            "Generating recommendations",
            extra={
                "extra_fields": {
                    "user_id": user_id,
                    "ratings": rating_count,
                    "policy": policy.value,
                }
            },
        )

        if policy == RecommendationPolicy.POPULAR:
            return get_popular_movies(self.db, user_id, limit)
        if policy == RecommendationPolicy.CONTENT_ONLY:
            return self.content.recommend(user_id, limit)
        return self.hybrid(user_id, limit)

    def hybrid(self, user_id: int, limit: int) -> list[MovieSummary]:
        content_limit = _round_half_up(limit * self.content_weight * self.oversample_factor)
        collaborative_limit = _round_half_up(
            limit * self.collaborative_weight * self.oversample_factor
        )

        content = self.content.recommend(user_id, content_limit)
        collaborative = self.collaborative.recommend(user_id, collaborative_limit)
        return merge_results(collaborative, content, limit)

    def status(self, user_id: int) -> RecommendationStatus:
        self._require_user(user_id)
        total = self.ratings.count_by_user(user_id)
        return RecommendationStatus(
            total_ratings=total,
            policy=select_policy(total).value,
            has_recommendations=total > 0,
        )


def get_recommendations(db: Session, user_id: int, limit: int = 20) -> list[MovieSummary]:
    """
    Main entry point for personalized recommendations.

    Raises:
        NotFoundError: if the user does not exist
    """
    return HybridOrchestrator(db).recommend(user_id, limit)


def get_content_based(db: Session, user_id: int, limit: int = 20) -> list[MovieSummary]:
    if UserRepository(db).find_by_id(user_id) is None:
        raise NotFoundError("User", user_id)
    return ContentBasedRecommender(db).recommend(user_id, limit)


def get_collaborative(db: Session, user_id: int, limit: int = 20) -> list[MovieSummary]:
    if UserRepository(db).find_by_id(user_id) is None:
        raise NotFoundError("User", user_id)
    return CollaborativeRecommender(db).recommend(user_id, limit)


def recommendation_status(db: Session, user_id: int) -> RecommendationStatus:
    return HybridOrchestrator(db).status(user_id)
